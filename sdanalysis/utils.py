from typing import Optional, Tuple

import numpy as np

from .distance import Cell
from .dump_io import RawFrame


def random_quaternions(n: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Uniformly distributed random unit quaternions (w, x, y, z).

    Parameters
    ----------
    n : int
        Number of quaternions.
    rng : np.random.Generator, optional

    Returns
    -------
    (n, 4) float32 array
    """
    rng = rng if rng is not None else np.random.default_rng()
    q = rng.standard_normal((n, 4))
    q /= np.linalg.norm(q, axis=1)[:, None]
    return q.astype(np.float32)


def planar_quaternions(angles) -> np.ndarray:
    """Quaternions of rotations by ``angles`` (radians) about the z axis."""
    angles = np.asarray(angles, dtype=np.float64)
    q = np.zeros((angles.size, 4), dtype=np.float32)
    q[:, 0] = np.cos(angles / 2.0)
    q[:, 3] = np.sin(angles / 2.0)
    return q


def triangular_lattice(nx: int = 10, ny: int = 10, lattice_constant: float = 1.0,
                       timestep: int = 0, jitter: float = 0.0,
                       rng: Optional[np.random.Generator] = None) -> RawFrame:
    """
    A 2D triangular lattice filling a periodic cell, every other row offset.

    Parameters
    ----------
    nx, ny : int
        Particles per row and number of rows (``ny`` should be even for the
        lattice to be periodic).
    lattice_constant : float
        Nearest-neighbour distance.
    jitter : float
        Standard deviation of a gaussian displacement added to each particle.

    Returns
    -------
    RawFrame with identity orientations and Lz = 1.
    """
    a = float(lattice_constant)
    i, j = np.indices((nx, ny))
    x = a * (i + 0.5 * (j % 2))
    y = (np.sqrt(3.0) / 2.0) * a * j
    Lx, Ly = nx * a, ny * (np.sqrt(3.0) / 2.0) * a
    pos = np.column_stack([x.ravel() - 0.5 * Lx, y.ravel() - 0.5 * Ly, np.zeros(x.size)])
    if jitter > 0:
        rng = rng if rng is not None else np.random.default_rng()
        pos[:, :2] += jitter * rng.standard_normal((len(pos), 2))
    n = len(pos)
    return RawFrame(timestep=timestep, positions=pos.astype(np.float32),
                    orientations=planar_quaternions(np.zeros(n)), images=None,
                    cell=Cell(Lx, Ly, 1.0))


def random_frame(n: int = 100, box: Tuple[float, float, float] = (10.0, 10.0, 10.0),
                 tilt: Tuple[float, float, float] = (0.0, 0.0, 0.0), timestep: int = 0,
                 two_dimensional: bool = False,
                 rng: Optional[np.random.Generator] = None) -> RawFrame:
    """Uniformly random particles with random orientations in a (tilted) cell."""
    rng = rng if rng is not None else np.random.default_rng()
    cell = Cell(*box, *tilt)
    frac = rng.random((n, 3))
    if two_dimensional:
        frac[:, 2] = 0.5
    pos = (frac - 0.5) @ cell.lattice_vectors()
    if two_dimensional:
        orientations = planar_quaternions(rng.uniform(0.0, 2.0 * np.pi, n))
    else:
        orientations = random_quaternions(n, rng)
    return RawFrame(timestep=timestep, positions=pos.astype(np.float32),
                    orientations=orientations, images=np.zeros((n, 3), dtype=np.int32), cell=cell)


def crystal_in_liquid(nx: int = 20, ny: int = 20, crystal: float = 0.3, timestep: int = 0,
                      rng: Optional[np.random.Generator] = None) -> RawFrame:
    """
    Triangular lattice whose central region is orientationally ordered.

    Particles with |x/Lx| and |y/Ly| below ``crystal`` share one orientation;
    all others are randomly oriented in the plane.
    """
    rng = rng if rng is not None else np.random.default_rng()
    raw = triangular_lattice(nx, ny, timestep=timestep)
    x = np.abs(raw.positions[:, 0] / raw.cell.Lx)
    y = np.abs(raw.positions[:, 1] / raw.cell.Ly)
    angles = rng.uniform(0.0, 2.0 * np.pi, len(x))
    angles[(x < crystal) & (y < crystal)] = 0.0
    return RawFrame(timestep=timestep, positions=raw.positions,
                    orientations=planar_quaternions(angles), images=None, cell=raw.cell)

