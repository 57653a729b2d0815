import numpy as np
import pytest

from sdanalysis import (
    Frame,
    hexatic_order,
    hexatic_order_complex,
    num_neighbours,
    orientational_order,
    quaternion_angle,
    relative_orientations,
)
from sdanalysis.utils import planar_quaternions, random_frame, triangular_lattice


def hexagon(rotation=0.0, centre_angle=0.0):
    """A particle with six neighbours on a unit hexagon, inside a large cell."""
    angles = rotation + np.arange(6) * np.pi / 3
    pos = np.zeros((7, 3))
    pos[1:, 0] = np.cos(angles)
    pos[1:, 1] = np.sin(angles)
    orient = planar_quaternions(np.r_[centre_angle, np.zeros(6)])
    return Frame(pos, orient, (20.0, 20.0, 20.0, 0, 0, 0))


# ---------------- quaternion angle ----------------

@pytest.mark.parametrize("angle", [0.0, 0.3, np.pi / 2, 2.0, np.pi])
def test_quaternion_angle_planar(angle):
    q = planar_quaternions([0.0, angle])
    assert quaternion_angle(q[0], q[1]) == pytest.approx(angle, abs=1e-6)


def test_quaternion_angle_sign_invariant():
    q = np.array([0.6, 0.0, 0.0, 0.8])
    assert quaternion_angle(q, -q) == pytest.approx(0.0, abs=1e-6)
    assert quaternion_angle(q, q) == pytest.approx(0.0, abs=1e-6)


def test_quaternion_angle_broadcasts():
    q = planar_quaternions([0.0, 0.5, 1.0])
    np.testing.assert_allclose(quaternion_angle(q[0], q), [0.0, 0.5, 1.0], atol=1e-6)


# ---------------- orientational order ----------------

def test_aligned_particles_fully_ordered():
    frame = hexagon()
    np.testing.assert_allclose(orientational_order(frame), 1.0, atol=1e-6)


def test_perpendicular_centre():
    frame = hexagon(centre_angle=np.pi / 2)
    order = orientational_order(frame)
    assert order[0] == pytest.approx(0.0, abs=1e-6)
    # outer particles see the centre as one of their six nearest neighbours
    assert np.all(order[1:] < 1.0)


def test_lone_particle_has_zero_order():
    frame = Frame(np.zeros((1, 3)), None, (5.0, 5.0, 5.0, 0, 0, 0))
    np.testing.assert_array_equal(orientational_order(frame), [0.0])
    np.testing.assert_array_equal(hexatic_order(frame), [0.0])


def test_orientational_order_range():
    frame = Frame.from_raw(random_frame(200, rng=np.random.default_rng(4)))
    order = orientational_order(frame)
    assert order.shape == (200,)
    assert np.all((order >= 0.0) & (order <= 1.0))


def test_relative_orientations_padding():
    pos = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)
    frame = Frame(pos, planar_quaternions([0.0, 0.4, 0.8]), (10.0, 10.0, 10.0, 0, 0, 0))
    rel = relative_orientations(frame, k=4)
    assert rel.shape == (3, 4)
    np.testing.assert_array_equal(rel[:, 2:], 0.0)
    # particle 0: neighbours 1 then 2, tied at distance 1, ordered by index
    np.testing.assert_allclose(rel[0, :2], [0.4, 0.8], atol=1e-6)


# ---------------- hexatic order ----------------

@pytest.mark.parametrize("rotation", [0.0, 0.1, 1.0, np.pi / 7])
def test_perfect_hexagon(rotation):
    frame = hexagon(rotation)
    assert hexatic_order(frame)[0] == pytest.approx(1.0, abs=1e-5)


def test_triangular_lattice_hexatic():
    frame = Frame.from_raw(triangular_lattice(10, 10))
    np.testing.assert_allclose(hexatic_order(frame), 1.0, atol=1e-4)
    np.testing.assert_array_equal(num_neighbours(frame, 1.1), 6)


def test_hexatic_range_random():
    frame = Frame.from_raw(random_frame(300, box=(15.0, 15.0, 1.0), two_dimensional=True,
                                        rng=np.random.default_rng(8)))
    psi = hexatic_order(frame)
    assert np.all((psi >= 0.0) & (psi <= 1.0))
    assert psi.mean() < 0.9


def test_hexatic_rotation_invariant():
    rng = np.random.default_rng(12)
    xy = rng.uniform(-4.0, 4.0, (40, 2))
    angle = 0.83
    rot = np.array([[np.cos(angle), -np.sin(angle)], [np.sin(angle), np.cos(angle)]])
    cell = (40.0, 40.0, 1.0, 0, 0, 0)
    a = hexatic_order_complex(Frame(xy, None, cell))
    b = hexatic_order_complex(Frame(xy @ rot.T, None, cell))
    np.testing.assert_allclose(a, b, atol=1e-4)


# ---------------- neighbour counts ----------------

def test_num_neighbours_chain():
    pos = np.zeros((10, 3))
    pos[:, 0] = np.arange(10) - 5
    frame = Frame(pos, None, (10.0, 10.0, 10.0, 0, 0, 0))
    np.testing.assert_array_equal(num_neighbours(frame, 1.5), 2)
    np.testing.assert_array_equal(num_neighbours(frame, 1.0), 0)
    np.testing.assert_array_equal(num_neighbours(frame, 2.5), 4)
    assert num_neighbours(frame, 1.5).dtype == np.int64
