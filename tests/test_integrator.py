import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np
import pytest

import silodem as sd

G = jnp.array([0.0, -10.0])


@pytest.fixture
def world():
    walls = sd.Walls.create(sd.silo_walls(0.7, 0.3, 0.06))
    contact = sd.ContactForceCalculator.create(kn=1e5, gamma=1.0)
    collider = sd.Collider.create("naive")
    return contact, walls, collider


def free_fall(world, dt, steps, accel):
    contact, walls, collider = world
    state = sd.State.create(
        pos=jnp.array([[0.15, 0.6]]),
        accel=jnp.array([accel]),
        rad=jnp.array([0.01]),
        mass=jnp.array([0.01]),
    )
    integrator = sd.Integrator.create("beeman").initialize(state, G)
    for _ in range(steps):
        state, integrator = integrator.step(state, contact, walls, G, dt, collider)
    return state


def test_free_fall_matches_analytic_trajectory(world):
    dt, steps = 1e-3, 300
    state = free_fall(world, dt, steps, accel=[0.0, -10.0])
    t = dt * steps
    np.testing.assert_allclose(np.asarray(state.pos[0]), [0.15, 0.6 - 5.0 * t**2], atol=1e-9)
    np.testing.assert_allclose(np.asarray(state.vel[0]), [0.0, -10.0 * t], atol=1e-9)
    np.testing.assert_allclose(np.asarray(state.accel[0]), [0.0, -10.0], atol=1e-9)


def test_free_fall_error_shrinks_with_time_step(world):
    # Starting at rest with zero acceleration, the first step is inconsistent
    # with the gravity history and leaves an O(dt) error.
    t = 0.1
    errors = []
    for dt in (2e-3, 1e-3, 5e-4):
        state = free_fall(world, dt, round(t / dt), accel=[0.0, 0.0])
        errors.append(abs(float(state.pos[0, 1]) - (0.6 - 5.0 * t**2)))
    assert errors[0] > errors[1] > errors[2]


def test_history_is_rolled_forward(world):
    contact, walls, collider = world
    state = sd.State.create(pos=jnp.array([[0.15, 0.6]]), rad=jnp.array([0.01]), mass=jnp.array([0.01]))
    integrator = sd.Integrator.create("beeman").initialize(state, G)
    new_state, integrator = integrator.step(state, contact, walls, G, 1e-3, collider)
    np.testing.assert_array_equal(np.asarray(integrator.prev_accel), np.asarray(state.accel))
    np.testing.assert_allclose(np.asarray(new_state.accel), [[0.0, -10.0]])


def test_contacts_are_evaluated_at_predicted_state(world):
    contact, walls, collider = world
    # Two disks slightly overlapping, at rest, far from the walls.
    state = sd.State.create(
        pos=jnp.array([[0.1, 0.4], [0.119, 0.4]]),
        rad=jnp.full(2, 0.01),
        mass=jnp.full(2, 0.01),
        accel=jnp.tile(G, (2, 1)),
    )
    integrator = sd.Integrator.create("beeman").initialize(state, G)
    state, integrator = integrator.step(state, contact, walls, G, 1e-6, collider)
    # Equal and opposite repulsion on top of gravity.
    ax = np.asarray(state.accel[:, 0])
    assert ax[0] < 0 < ax[1]
    assert np.isclose(ax[0], -ax[1])
    np.testing.assert_allclose(np.asarray(state.accel[:, 1]), -10.0)


def test_missing_history_fails_loudly(world):
    contact, walls, collider = world
    state = sd.State.create(pos=jnp.array([[0.15, 0.6]]), rad=jnp.array([0.01]))
    beeman = sd.Integrator.create("beeman")
    with pytest.raises(RuntimeError):
        beeman.step(state, contact, walls, G, 1e-3, collider)
    with pytest.raises(RuntimeError):
        beeman.next_position(state, 1e-3)


def test_unregistered_particles_fail_loudly(world):
    contact, walls, collider = world
    one = sd.State.create(pos=jnp.array([[0.15, 0.6]]), rad=jnp.array([0.01]))
    two = sd.State.create(pos=jnp.array([[0.15, 0.6], [0.05, 0.6]]), rad=jnp.full(2, 0.01))
    integrator = sd.Integrator.create("beeman").initialize(one, G)
    with pytest.raises(RuntimeError):
        integrator.step(two, contact, walls, G, 1e-3, collider)
    with pytest.raises(RuntimeError):
        integrator.correct_velocity(two, jnp.zeros((2, 2)), 1e-3)


def test_reset_sets_gravity_for_masked_particles():
    beeman = sd.integrators.Beeman(prev_accel=jnp.ones((3, 2)))
    beeman = beeman.reset(jnp.array([True, False, True]), G)
    np.testing.assert_allclose(
        np.asarray(beeman.prev_accel), [[0.0, -10.0], [1.0, 1.0], [0.0, -10.0]]
    )


def test_helpers_follow_beeman_formulas():
    dt = 0.1
    state = sd.State.create(
        pos=jnp.array([[1.0, 2.0]]),
        vel=jnp.array([[0.5, -0.5]]),
        accel=jnp.array([[1.0, -2.0]]),
    )
    beeman = sd.integrators.Beeman(prev_accel=jnp.array([[3.0, 0.0]]))
    np.testing.assert_allclose(
        np.asarray(beeman.next_position(state, dt)),
        [[1.0 + 0.05 + (2 / 3) * 0.01 - (1 / 6) * 0.03, 2.0 - 0.05 - (2 / 3) * 0.02]],
    )
    np.testing.assert_allclose(
        np.asarray(beeman.predict_velocity(state, dt)),
        [[0.5 + 0.15 - 0.15, -0.5 - 0.3]],
    )
    new_accel = jnp.array([[6.0, 6.0]])
    np.testing.assert_allclose(
        np.asarray(beeman.correct_velocity(state, new_accel, dt)),
        [[0.5 + 0.2 + (5 / 6) * 0.1 - 0.05, -0.5 + 0.2 - (5 / 6) * 0.2]],
    )


def test_unknown_integrator():
    with pytest.raises(KeyError):
        sd.Integrator.create("verlet")
