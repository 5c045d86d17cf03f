import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np
import pytest

import silodem as sd
from silodem.respawn import pile_statistics
from silodem.utils.geometry import overlap

G = jnp.array([0.0, -10.0])
R = 0.01


def pile_with_fallen(fallen_y):
    pos = [[0.05, 0.3], [0.1, 0.32], [0.15, 0.31], [0.2, 0.33], [0.25, 0.3]]
    pos += [[0.15, y] for y in fallen_y]
    N = len(pos)
    return sd.State.create(
        pos=jnp.array(pos),
        vel=jnp.tile(jnp.array([0.0, -2.0]), (N, 1)),
        rad=jnp.full(N, R),
        mass=jnp.full(N, 0.01),
    )


def assert_no_overlaps(state):
    pos, rad = state.pos, state.rad
    xi = overlap(pos[:, None, :], pos[None, :, :], rad[:, None], rad[None, :])
    xi = np.asarray(xi) * (1 - np.eye(state.N))
    assert np.all(xi == 0.0)


def test_pile_statistics():
    mean, std = pile_statistics(
        jnp.array([1.0, 2.0, 3.0, -1.0]), jnp.array([True, True, True, False])
    )
    assert np.isclose(float(mean), 2.0)
    assert np.isclose(float(std), np.sqrt(2.0 / 3.0))


def test_pile_statistics_without_particles_inside():
    with pytest.raises(RuntimeError):
        pile_statistics(jnp.array([-1.0, -2.0]), jnp.array([False, False]))


def test_fallen_particles_are_placed_above_the_pile():
    state = pile_with_fallen([-0.2, -0.3])
    manager = sd.RespawnManager(length=0.7, width=0.3)
    new, mask, count = manager.respawn(state, jax.random.PRNGKey(0), G)

    np.testing.assert_array_equal(np.asarray(mask), [False] * 5 + [True, True])
    assert count == 2

    y = np.asarray(state.pos[:5, 1])
    min_y = y.mean() + 2 * y.std()
    moved = np.asarray(new.pos[5:])
    assert np.all(moved[:, 1] >= min_y + 4 * R - 1e-12)
    assert np.all(moved[:, 1] <= min_y + 8 * R + 1e-12)
    assert np.all((moved[:, 0] >= R) & (moved[:, 0] <= 0.3 - R))

    np.testing.assert_array_equal(np.asarray(new.vel[5:]), 0.0)
    np.testing.assert_array_equal(np.asarray(new.accel[5:]), np.tile(np.asarray(G), (2, 1)))
    # Particles that were not selected are untouched.
    np.testing.assert_array_equal(np.asarray(new.pos[:5]), np.asarray(state.pos[:5]))
    np.testing.assert_array_equal(np.asarray(new.vel[:5]), np.asarray(state.vel[:5]))
    assert_no_overlaps(new)


def test_respawn_is_deterministic_given_a_key():
    state = pile_with_fallen([-0.2, -0.3])
    manager = sd.RespawnManager(length=0.7, width=0.3)
    a, _, _ = manager.respawn(state, jax.random.PRNGKey(7), G)
    b, _, _ = manager.respawn(state, jax.random.PRNGKey(7), G)
    np.testing.assert_array_equal(np.asarray(a.pos), np.asarray(b.pos))


def test_particles_just_below_the_outlet_are_left_alone():
    state = pile_with_fallen([-0.05])
    manager = sd.RespawnManager(length=0.7, width=0.3)
    new, mask, count = manager.respawn(state, jax.random.PRNGKey(0), G)
    assert count == 0
    assert not np.asarray(mask).any()
    np.testing.assert_array_equal(np.asarray(new.pos), np.asarray(state.pos))


def test_drained_silo_is_refilled_above_the_outlet():
    state = sd.State.create(
        pos=jnp.array([[0.1, -0.01], [0.15, -0.2], [0.2, -0.5]]),
        rad=jnp.full(3, R),
        mass=jnp.full(3, 0.01),
    )
    manager = sd.RespawnManager(length=0.7, width=0.3)
    new, mask, count = manager.respawn(state, jax.random.PRNGKey(3), G)
    assert count == 3
    assert np.asarray(mask).all()
    y = np.asarray(new.pos[:, 1])
    assert np.all((y >= 0.0) & (y <= 3 * R))
    assert_no_overlaps(new)


def test_exhausted_placement_leaves_particle_in_place():
    # A huge disk inside the pile covers the whole respawn band.
    state = sd.State.create(
        pos=jnp.array([[0.15, 0.3], [0.15, 0.35], [0.15, -0.2]]),
        rad=jnp.array([R, 1.0, R]),
        mass=jnp.full(3, 0.01),
    )
    manager = sd.RespawnManager(length=0.7, width=0.3, max_tries=20)
    new, mask, count = manager.respawn(state, jax.random.PRNGKey(0), G)
    assert count == 0
    assert not np.asarray(mask).any()
    np.testing.assert_array_equal(np.asarray(new.pos), np.asarray(state.pos))


def test_invalid_manager():
    with pytest.raises(ValueError):
        sd.RespawnManager(length=0.7, width=0.3, max_tries=0)
    with pytest.raises(ValueError):
        sd.RespawnManager(length=-1.0, width=0.3)
