import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np

from silodem.utils.geometry import norm, overlap, project_onto_wall, unit


def test_overlap_of_slightly_intersecting_disks():
    r = 0.01
    a = jnp.array([0.1, 0.2])
    b = a + jnp.array([2 * r - 0.001, 0.0])
    assert np.isclose(float(overlap(a, b, r, r)), 0.001, atol=1e-12)


def test_overlap_is_zero_for_separated_disks():
    a = jnp.array([0.0, 0.0])
    b = jnp.array([0.0, 0.05])
    assert float(overlap(a, b, 0.01, 0.02)) == 0.0


def test_overlap_broadcasts_against_one_disk():
    pos = jnp.array([[0.0, 0.0], [0.015, 0.0], [1.0, 1.0]])
    xi = overlap(pos, jnp.array([0.0, 0.0]), jnp.full(3, 0.01), 0.01)
    np.testing.assert_allclose(np.asarray(xi), [0.02, 0.005, 0.0], atol=1e-12)


def test_projection_is_measured_from_wall_start():
    start = jnp.array([1.0, 1.0])
    direction = jnp.array([2.0, 0.0])
    p = project_onto_wall(jnp.array([1.5, 3.0]), start, direction)
    np.testing.assert_allclose(np.asarray(p), [0.5, 0.0])


def test_projection_behind_the_start_points_backwards():
    start = jnp.array([0.0, 0.0])
    direction = jnp.array([0.0, 1.0])
    p = project_onto_wall(jnp.array([0.3, -0.5]), start, direction)
    np.testing.assert_allclose(np.asarray(p), [0.0, -0.5])
    assert float(jnp.dot(p, direction)) < 0


def test_unit_maps_zero_to_zero():
    v = jnp.array([[3.0, 4.0], [0.0, 0.0]])
    u = unit(v)
    np.testing.assert_allclose(np.asarray(u), [[0.6, 0.8], [0.0, 0.0]])
    np.testing.assert_allclose(np.asarray(norm(u)), [1.0, 0.0])
