# =============================================================================
# sdanalysis — order.py
# Per-particle order parameters: orientational order, hexatic order and
# neighbour counts, all computed from the periodic neighbour lists of a Frame.
# =============================================================================
import logging

import numpy as np

from .distance import minimum_image_displacement
from .frame import Frame

logger = logging.getLogger(__name__)


# =============================================================================
# Quaternion helpers
# =============================================================================

def quaternion_angle(q1, q2) -> np.ndarray:
    """
    Angle of the rotation taking unit quaternion ``q1`` onto ``q2``.

    Both inputs broadcast over leading axes, last axis of size 4. The result is
    ``2 arccos |q1 . q2|`` in [0, pi], identical for q and -q.
    """
    q1 = np.asarray(q1, dtype=np.float64)
    q2 = np.asarray(q2, dtype=np.float64)
    dot = np.abs(np.sum(q1 * q2, axis=-1))
    return 2.0 * np.arccos(np.minimum(dot, 1.0))


def relative_orientations(frame: Frame, k: int = 6) -> np.ndarray:
    """
    Angle between each particle and each of its ``k`` nearest neighbours.

    Returns
    -------
    (N, k) float array; rows of particles with fewer than ``k`` neighbours
    are zero padded.
    """
    out = np.zeros((len(frame), max(int(k), 0)), dtype=np.float64)
    q = frame.orientations
    for i, neighs in enumerate(frame.neighbours_n(k)):
        if len(neighs):
            out[i, :len(neighs)] = quaternion_angle(q[i], q[neighs])
    return out


# =============================================================================
# Order parameters
# =============================================================================

def orientational_order(frame: Frame, k: int = 6) -> np.ndarray:
    """
    Orientational order of every particle.

    Mean of cos^2 of the relative orientation angle to the ``k`` nearest
    neighbours. A particle without neighbours has order 0.

    Returns
    -------
    (N,) float array in [0, 1]
    """
    order = np.zeros(len(frame), dtype=np.float64)
    q = frame.orientations
    for i, neighs in enumerate(frame.neighbours_n(k)):
        if len(neighs) == 0:
            continue
        order[i] = np.mean(np.cos(quaternion_angle(q[i], q[neighs])) ** 2)
    return order


def hexatic_order_complex(frame: Frame, k: int = 6) -> np.ndarray:
    """
    Complex k-fold bond order of every particle.

    The planar bonds to the ``k`` nearest neighbours are sorted by polar angle;
    theta is the rotation between each pair of angularly adjacent bonds
    (the last pair wraps round to the first). The value is the mean of
    exp(i k theta), which is invariant under a global rotation.
    """
    psi = np.zeros(len(frame), dtype=np.complex128)
    pos = frame.positions
    for i, neighs in enumerate(frame.neighbours_n(k)):
        if len(neighs) == 0:
            continue
        bonds = minimum_image_displacement(frame.cell, pos[neighs], pos[i])[:, :2].astype(np.float64)
        phi = np.sort(np.arctan2(bonds[:, 1], bonds[:, 0]))
        theta = np.diff(np.append(phi, phi[0] + 2.0 * np.pi))
        psi[i] = np.mean(np.exp(1j * k * theta))
    return psi


def hexatic_order(frame: Frame, k: int = 6) -> np.ndarray:
    """Modulus of :func:`hexatic_order_complex`, one value in [0, 1] per particle."""
    return np.minimum(np.abs(hexatic_order_complex(frame, k)), 1.0)


def num_neighbours(frame: Frame, cutoff: float) -> np.ndarray:
    """Number of particles closer than ``cutoff`` to each particle."""
    return np.fromiter((len(n) for n in frame.neighbours_cutoff(cutoff)),
                       dtype=np.int64, count=len(frame))
