# =============================================================================
# sdanalysis — voronoi.py
# Per-particle Voronoi cell areas in the base plane of the simulation cell.
# Dependencies: numpy, scipy (Delaunay), freud (periodic variant).
# =============================================================================
import logging
from typing import List

import freud
import numpy as np
from scipy.spatial import Delaunay, QhullError

from .distance import minimum_image, to_cartesian
from .exceptions import DegenerateGeometryError
from .frame import Frame

logger = logging.getLogger(__name__)

# Fractional corners of the base plane, counter-clockwise
_BASE_CORNERS = np.array([[0.0, 0.0, 0.5], [1.0, 0.0, 0.5], [1.0, 1.0, 0.5], [0.0, 1.0, 0.5]])


def shoelace(polygon) -> float:
    """
    Area of a simple polygon from its cyclic vertex sequence.

    area = |sum (x_i + x_{i+1}) (y_{i+1} - y_i)| / 2
    """
    p = np.asarray(polygon, dtype=np.float64).reshape(-1, 2)
    if len(p) < 3:
        return 0.0
    x, y = p[:, 0], p[:, 1]
    x_next, y_next = np.roll(x, -1), np.roll(y, -1)
    return float(abs(np.sum((x_next + x) * (y_next - y))) / 2.0)


def cell_boundary(cell) -> np.ndarray:
    """(4, 2) corners of the base plane of ``cell``, counter-clockwise."""
    return to_cartesian(cell, _BASE_CORNERS)[:, :2].astype(np.float64)


def _clip(polygon: np.ndarray, site: np.ndarray, other: np.ndarray) -> np.ndarray:
    """Part of a convex ``polygon`` on the ``site`` side of the bisector with ``other``."""
    if len(polygon) == 0:
        return polygon
    normal = other - site
    side = polygon @ normal - 0.5 * normal @ (site + other)
    out = []
    n = len(polygon)
    for j in range(n):
        cur, nxt = polygon[j], polygon[(j + 1) % n]
        s_cur, s_nxt = side[j], side[(j + 1) % n]
        if s_cur <= 0:
            out.append(cur)
        if (s_cur <= 0) != (s_nxt <= 0):
            t = s_cur / (s_cur - s_nxt)
            out.append(cur + t * (nxt - cur))
    return np.asarray(out, dtype=np.float64).reshape(-1, 2)


def voronoi_polygons(frame: Frame) -> List[np.ndarray]:
    """
    Voronoi cell of every particle, clipped to the base plane of the cell.

    Positions are wrapped into the cell and projected onto (x, y). The points
    are NOT replicated across the periodic boundary, so cells of particles
    near the edge are cut by the cell outline instead of wrapping round; this
    approximation is kept on purpose (see :func:`voronoi_area_periodic`).

    Raises
    ------
    DegenerateGeometryError
        Fewer than 3 points, coincident points, or collinear input.
    """
    n = len(frame)
    if n < 3:
        raise DegenerateGeometryError(f"Voronoi tessellation needs at least 3 points, got {n}")
    points = minimum_image(frame.cell, frame.positions)[:, :2].astype(np.float64)
    try:
        tri = Delaunay(points)
    except QhullError as e:
        raise DegenerateGeometryError(f"Tessellation failed for timestep {frame.timestep}") from e
    if len(tri.coplanar):
        raise DegenerateGeometryError(
            f"{len(tri.coplanar)} coincident point(s) in timestep {frame.timestep}"
        )

    boundary = cell_boundary(frame.cell)
    indptr, indices = tri.vertex_neighbor_vertices
    polygons = []
    for i in range(n):
        poly = boundary
        for j in indices[indptr[i]:indptr[i + 1]]:
            poly = _clip(poly, points[i], points[j])
        polygons.append(poly)
    return polygons


def voronoi_area(frame: Frame) -> np.ndarray:
    """(N,) Voronoi cell area of every particle; see :func:`voronoi_polygons`."""
    areas = np.array([shoelace(p) for p in voronoi_polygons(frame)], dtype=np.float64)
    logger.debug("Voronoi areas for timestep %d: total %.4f of cell area %.4f",
                 frame.timestep, areas.sum(), frame.cell.area)
    return areas


def voronoi_area_periodic(frame: Frame) -> np.ndarray:
    """
    (N,) Voronoi cell areas with the periodic boundary taken into account.

    Computed with :class:`freud.locality.Voronoi` on the 2D box spanned by
    (Lx, Ly, xy); the areas sum to the area of the cell.
    """
    n = len(frame)
    if n < 3:
        raise DegenerateGeometryError(f"Voronoi tessellation needs at least 3 points, got {n}")
    box = frame.cell.to_freud_box(is2D=True)
    points = np.array(frame.positions, dtype=np.float32)
    points[:, 2] = 0.0
    points = box.wrap(points)
    voro = freud.locality.Voronoi()
    voro.compute((box, points))
    return np.asarray(voro.volumes, dtype=np.float64)
