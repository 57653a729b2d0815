# =============================================================================
# sdanalysis — frame.py
# One simulation snapshot plus the periodic neighbour index built over it.
# Dependencies: numpy, scipy.
# =============================================================================
import itertools
import logging
from typing import Iterator, Optional

import numpy as np
from scipy.spatial import cKDTree

from .distance import FLOAT, Cell, CellLike, minimum_image, minimum_image_displacement
from .exceptions import ShapeMismatchError

logger = logging.getLogger(__name__)

# Relative slack on tree radii; the exact test is always redone with the
# float32 periodic metric.
_RADIUS_SLACK = 1e-5


def _to_3d(positions: np.ndarray) -> np.ndarray:
    """Ensure (N,3) float32 positions; (N,2) input gets z = 0."""
    positions = np.asarray(positions, dtype=FLOAT)
    if positions.ndim == 1 and positions.size == 0:
        return np.zeros((0, 3), dtype=FLOAT)
    if positions.ndim != 2 or positions.shape[1] not in (2, 3):
        raise ShapeMismatchError(f"positions must be (N,2) or (N,3), got {positions.shape}")
    if positions.shape[1] == 3:
        return positions.copy()
    out = np.zeros((positions.shape[0], 3), dtype=FLOAT)
    out[:, :2] = positions
    return out


def _unit_quaternions(orientations, n: int) -> np.ndarray:
    """Normalise (N,4) quaternions, scalar first; zero rows become the identity."""
    if orientations is None:
        q = np.zeros((n, 4), dtype=FLOAT)
        q[:, 0] = 1.0
        return q
    q = np.asarray(orientations, dtype=FLOAT)
    if q.ndim == 1 and q.size == 0:
        q = q.reshape(0, 4)
    if q.ndim != 2 or q.shape != (n, 4):
        raise ShapeMismatchError(f"orientations must be ({n}, 4), got {q.shape}")
    norm = np.linalg.norm(q, axis=1)
    q = q.copy()
    zero = norm == 0
    q[zero] = (1.0, 0.0, 0.0, 0.0)
    norm[zero] = 1.0
    return (q / norm[:, None]).astype(FLOAT, copy=False)


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


# =============================================================================
# Spatial neighbour index
# =============================================================================

class NeighbourIndex:
    """Periodic neighbour queries over a fixed set of positions.

    Positions are wrapped into the centred cell and replicated into the 26
    surrounding images; a :class:`scipy.spatial.cKDTree` over the replicas
    proposes candidates, which are ranked with
    :func:`~sdanalysis.distance.minimum_image_displacement`. Every replica
    remembers the index of the particle it came from, so a particle is never
    reported twice and never reported as its own neighbour.

    The cell has to be reduced (see :meth:`Cell.check_reduced`).
    """

    def __init__(self, positions: np.ndarray, cell: Cell):
        self.cell = cell.check_reduced()
        self.points = np.asarray(positions, dtype=FLOAT)
        self.wrapped = minimum_image(cell, self.points)

        n = len(self.points)
        lattice = cell.lattice_vectors()
        shifts = np.array(list(itertools.product((-1, 0, 1), repeat=3)), dtype=np.float64) @ lattice
        replicas = self.wrapped.astype(np.float64)[None, :, :] + shifts[:, None, :]
        self._origin = np.tile(np.arange(n), len(shifts))
        self._tree = cKDTree(replicas.reshape(-1, 3)) if n else None
        # radius that reaches every replica from anywhere in the primary cell
        self._reach = 2.0 * float(np.sum(np.linalg.norm(lattice, axis=1)))
        logger.debug("Neighbour index built over %d particles (%d replicas)", n, len(self._origin))

    def __len__(self) -> int:
        return len(self.points)

    def _candidates(self, i: int, replica_ids) -> np.ndarray:
        cand = np.unique(self._origin[np.asarray(replica_ids, dtype=np.int64)])
        return cand[cand != i]

    def _distance2(self, i: int, others: np.ndarray) -> np.ndarray:
        d = minimum_image_displacement(self.cell, self.points[others], self.points[i])
        return np.sum(d * d, axis=-1)

    def _ball(self, i: int, radius: float) -> np.ndarray:
        ids = self._tree.query_ball_point(self.wrapped[i], radius * (1.0 + _RADIUS_SLACK) + 1e-6)
        return self._candidates(i, ids)

    def nearest(self, k: int) -> Iterator[np.ndarray]:
        """Yield, per particle, up to ``k`` neighbour indices by increasing distance.

        Ties are broken by the lower index.
        """
        n = len(self)
        empty = np.zeros(0, dtype=np.int64)
        if k <= 0 or n <= 1:
            for _ in range(n):
                yield empty
            return

        # First pass: k+1 nearest replicas bound the radius holding the k nearest
        # particles under the periodic metric.
        m = min(k + 1, self._tree.n)
        _, first = self._tree.query(self.wrapped.astype(np.float64), k=m)
        first = np.asarray(first).reshape(n, -1)

        for i in range(n):
            cand = self._candidates(i, first[i])
            if len(cand) >= k:
                d2 = self._distance2(i, cand)
                radius = float(np.sqrt(np.partition(d2, k - 1)[k - 1]))
            else:
                radius = self._reach
            cand = self._ball(i, radius)
            d2 = self._distance2(i, cand)
            order = np.lexsort((cand, d2))[:k]
            yield cand[order]

    def within(self, cutoff: float) -> Iterator[np.ndarray]:
        """Yield, per particle, the unordered neighbour indices with d^2 < cutoff^2."""
        n = len(self)
        if n == 0:
            return
        if cutoff <= 0:
            for _ in range(n):
                yield np.zeros(0, dtype=np.int64)
            return

        cutoff2 = FLOAT(cutoff) * FLOAT(cutoff)
        radius = float(cutoff) * (1.0 + _RADIUS_SLACK) + 1e-6
        hits = self._tree.query_ball_point(self.wrapped.astype(np.float64), radius)
        for i, replica_ids in enumerate(hits):
            cand = self._candidates(i, replica_ids)
            yield cand[self._distance2(i, cand) < cutoff2]


# =============================================================================
# Frame
# =============================================================================

class Frame:
    """
    Immutable snapshot of a periodic particle configuration.

    Parameters
    ----------
    positions : (N,3) or (N,2) array
        Cartesian positions; 2D input gets z = 0.
    orientations : (N,4) array or None
        Quaternions, scalar first (w, x, y, z). Normalised on ingestion;
        ``None`` means every particle has the identity orientation.
    cell : Cell or (6,) array
        (Lx, Ly, Lz, xy, xz, yz).
    timestep : int
        Opaque label of the snapshot.
    images : (N,3) int array or None
        Periodic image flags, zeros when absent.

    The neighbour index is built eagerly, so construction costs O(N log N)
    and every later query is read-only.
    """

    def __init__(self, positions, orientations, cell: CellLike, timestep: int = 0,
                 images: Optional[np.ndarray] = None):
        self.timestep = int(timestep)
        self.cell = cell if isinstance(cell, Cell) else Cell.from_array(cell)

        positions = _to_3d(positions)
        n = positions.shape[0]
        self.positions = _readonly(positions)
        self.orientations = _readonly(_unit_quaternions(orientations, n))

        if images is None:
            images = np.zeros((n, 3), dtype=np.int32)
        else:
            images = np.array(images, dtype=np.int32)
            if images.size == 0 and n == 0:
                images = images.reshape(0, 3)
            if images.shape != (n, 3):
                raise ShapeMismatchError(f"images must be ({n}, 3), got {images.shape}")
        self.images = _readonly(images)

        self._index = NeighbourIndex(self.positions, self.cell)

    @classmethod
    def from_raw(cls, raw) -> "Frame":
        """Build from a record with ``timestep, positions, orientations, images, cell``."""
        return cls(raw.positions, raw.orientations, raw.cell,
                   timestep=raw.timestep, images=raw.images)

    def __len__(self) -> int:
        return self.positions.shape[0]

    def __repr__(self) -> str:
        return f"Frame(timestep={self.timestep}, N={len(self)}, cell={self.cell})"

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def neighbours_n(self, k: int) -> Iterator[np.ndarray]:
        """For every particle, its ``k`` nearest neighbours (self excluded)."""
        return self._index.nearest(int(k))

    def neighbours_cutoff(self, cutoff: float) -> Iterator[np.ndarray]:
        """For every particle, the neighbours closer than ``cutoff`` (self excluded)."""
        return self._index.within(float(cutoff))
