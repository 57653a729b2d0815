# =============================================================================
# sdanalysis — distance.py
# Periodic metric for triclinic simulation cells.
#
# Tilt factors follow the HOOMD / freud convention: they are dimensionless and
# multiplied by the length of the axis they tilt against, i.e. the cell vectors
# are
#     a1 = (Lx, 0, 0)
#     a2 = (xy*Ly, Ly, 0)
#     a3 = (xz*Lz, yz*Lz, Lz)
# Fractional coordinates are centred so the cell spans [0, 1)^3 while the
# cartesian cell is centred on the origin.
#
# All arithmetic is float32 to match the precision of the trajectories.
# =============================================================================
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from .exceptions import CellError

FLOAT = np.float32


# =============================================================================
# Simulation cell
# =============================================================================

@dataclass(frozen=True)
class Cell:
    Lx: float
    Ly: float
    Lz: float
    xy: float = 0.0
    xz: float = 0.0
    yz: float = 0.0

    def __post_init__(self):
        for name in ("Lx", "Ly", "Lz"):
            value = float(getattr(self, name))
            if not np.isfinite(value) or value <= 0.0:
                raise CellError(f"Edge length {name} must be strictly positive, got {value!r}")
        for name in ("xy", "xz", "yz"):
            if not np.isfinite(float(getattr(self, name))):
                raise CellError(f"Tilt factor {name} must be finite")

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "Cell":
        """Build from the six numbers ``(Lx, Ly, Lz, xy, xz, yz)``."""
        arr = np.asarray(values, dtype=np.float64).ravel()
        if arr.shape != (6,):
            raise CellError(f"A simulation cell needs 6 values, got {arr.size}")
        return cls(*(float(v) for v in arr))

    def as_array(self) -> np.ndarray:
        return np.array([self.Lx, self.Ly, self.Lz, self.xy, self.xz, self.yz], dtype=FLOAT)

    def lattice_vectors(self) -> np.ndarray:
        """(3, 3) array whose rows are the three cell vectors."""
        return np.array([
            [self.Lx, 0.0, 0.0],
            [self.xy * self.Ly, self.Ly, 0.0],
            [self.xz * self.Lz, self.yz * self.Lz, self.Lz],
        ], dtype=np.float64)

    @property
    def area(self) -> float:
        """Area of the base (x, y) plane."""
        return float(self.Lx * self.Ly)

    @property
    def volume(self) -> float:
        return float(self.Lx * self.Ly * self.Lz)

    @property
    def is_reduced(self) -> bool:
        """True when the tilt is small enough for the minimum image to be exact.

        Each tilt offset has to stay within half of the edge it shears along.
        """
        return (
            abs(self.xy * self.Ly) <= 0.5 * self.Lx
            and abs(self.xz * self.Lz) <= 0.5 * self.Lx
            and abs(self.yz * self.Lz) <= 0.5 * self.Ly
        )

    def check_reduced(self) -> "Cell":
        if not self.is_reduced:
            raise CellError(
                f"Tilt factors (xy={self.xy}, xz={self.xz}, yz={self.yz}) exceed half an edge "
                "length; the minimum image convention is not valid for this cell"
            )
        return self

    def to_freud_box(self, is2D: bool = False):
        """Equivalent :class:`freud.box.Box` (same tilt convention)."""
        import freud

        if is2D:
            return freud.box.Box(Lx=self.Lx, Ly=self.Ly, xy=self.xy, is2D=True)
        return freud.box.Box(Lx=self.Lx, Ly=self.Ly, Lz=self.Lz,
                             xy=self.xy, xz=self.xz, yz=self.yz)


CellLike = Union[Cell, Sequence[float], np.ndarray]


def _cell_array(cell: CellLike) -> np.ndarray:
    if isinstance(cell, Cell):
        return cell.as_array()
    arr = np.asarray(cell, dtype=FLOAT).ravel()
    if arr.shape != (6,):
        raise CellError(f"A simulation cell needs 6 values, got {arr.size}")
    return arr


def _points(point) -> np.ndarray:
    p = np.asarray(point, dtype=FLOAT)
    if p.shape[-1] != 3:
        raise ValueError(f"points must have 3 components on the last axis, got shape {p.shape}")
    return p


# =============================================================================
# Coordinate transforms
# =============================================================================

def to_fractional(cell: CellLike, point) -> np.ndarray:
    """
    Map cartesian point(s) to fractional coordinates of the cell.

    Parameters
    ----------
    cell  : Cell or (6,) array (Lx, Ly, Lz, xy, xz, yz)
    point : (..., 3) array

    Returns
    -------
    (..., 3) float32 array; points inside the cell map into [0, 1)^3.
    """
    Lx, Ly, Lz, xy, xz, yz = _cell_array(cell)
    p = _points(point)
    x = p[..., 0] + FLOAT(0.5) * Lx
    y = p[..., 1] + FLOAT(0.5) * Ly
    z = p[..., 2] + FLOAT(0.5) * Lz
    x = x - ((xz - yz * xy) * p[..., 2] + xy * p[..., 1])
    y = y - yz * p[..., 2]
    return np.stack([x / Lx, y / Ly, z / Lz], axis=-1).astype(FLOAT, copy=False)


def to_cartesian(cell: CellLike, fractional) -> np.ndarray:
    """Inverse of :func:`to_fractional`; no wrapping is applied."""
    Lx, Ly, Lz, xy, xz, yz = _cell_array(cell)
    f = _points(fractional)
    X = (f[..., 0] - FLOAT(0.5)) * Lx
    Y = (f[..., 1] - FLOAT(0.5)) * Ly
    Z = (f[..., 2] - FLOAT(0.5)) * Lz
    x = X + xy * Y + xz * Z
    y = Y + yz * Z
    return np.stack([x, y, Z], axis=-1).astype(FLOAT, copy=False)


# =============================================================================
# Minimum image
# =============================================================================

def minimum_image(cell: CellLike, point) -> np.ndarray:
    """
    Periodic image of ``point`` inside the centred cell.

    The fractional coordinates are reduced into [0, 1) and mapped back, so
    cartesian results lie in the half-open cell [-L/2, L/2) along each
    (sheared) axis.
    """
    f = to_fractional(cell, point)
    f = f - np.floor(f)
    # rounding can push f - floor(f) up to exactly 1
    f = np.where(f >= FLOAT(1.0), f - FLOAT(1.0), f)
    return to_cartesian(cell, f)


def minimum_image_sequential(cell: CellLike, point) -> np.ndarray:
    """
    Same result as :func:`minimum_image` computed one axis at a time.

    z is wrapped first, then y, then x; every shift of a higher axis carries
    its tilt contribution into the lower ones.
    """
    Lx, Ly, Lz, xy, xz, yz = _cell_array(cell)
    p = _points(point)
    x = p[..., 0].copy()
    y = p[..., 1].copy()
    z = p[..., 2].copy()
    half = FLOAT(0.5)

    n = np.floor(z / Lz + half)
    z = z - n * Lz
    y = y - n * yz * Lz
    x = x - n * xz * Lz

    n = np.floor((y - yz * z) / Ly + half)
    y = y - n * Ly
    x = x - n * xy * Ly

    n = np.floor((x - xy * (y - yz * z) - xz * z) / Lx + half)
    x = x - n * Lx
    return np.stack([x, y, z], axis=-1).astype(FLOAT, copy=False)


def minimum_image_displacement(cell: CellLike, a, b) -> np.ndarray:
    """Shortest periodic separation vector from ``b`` to ``a``.

    Uses the per-axis form, which subtracts whole cell vectors and so keeps
    exact separations exact (a spacing of 1 stays 1.0 after wrapping).
    """
    return minimum_image_sequential(cell, _points(a) - _points(b))


def squared_distance(cell: CellLike, a, b) -> np.ndarray:
    """Squared norm of :func:`minimum_image_displacement`."""
    d = minimum_image_displacement(cell, a, b)
    return np.sum(d * d, axis=-1)
