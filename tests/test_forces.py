import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np
import pytest

import silodem as sd

R = 0.01


def calculator(kn=1e5, gamma=2.0):
    return sd.ContactForceCalculator.create(kn=kn, gamma=gamma)


def test_no_force_without_overlap():
    contact = calculator()
    a, b = jnp.array([0.0, 0.0]), jnp.array([0.05, 0.0])
    va, vb = jnp.array([1.0, 0.0]), jnp.array([-1.0, 0.0])
    f_ab = contact.between_particles(a, va, R, b, vb, R)
    f_ba = contact.between_particles(b, vb, R, a, va, R)
    assert np.all(np.asarray(f_ab) == 0.0)
    assert np.all(np.asarray(f_ba) == 0.0)


def test_elastic_force_pushes_disks_apart():
    contact = calculator(kn=1e5, gamma=0.0)
    a, b = jnp.array([0.0, 0.0]), jnp.array([0.019, 0.0])
    zero = jnp.zeros(2)
    f = contact.between_particles(a, zero, R, b, zero, R)
    np.testing.assert_allclose(np.asarray(f), [-100.0, 0.0], rtol=1e-9)


def test_newtons_third_law():
    contact = calculator()
    a, b = jnp.array([0.1, 0.1]), jnp.array([0.112, 0.108])
    va, vb = jnp.array([0.3, -0.2]), jnp.array([-0.1, 0.4])
    f_ab = contact.between_particles(a, va, R, b, vb, 0.012)
    f_ba = contact.between_particles(b, vb, 0.012, a, va, R)
    assert np.linalg.norm(np.asarray(f_ab)) > 0
    np.testing.assert_allclose(np.asarray(f_ab), -np.asarray(f_ba), rtol=1e-12)


def test_damping_opposes_approach():
    contact = calculator(kn=1e5, gamma=5.0)
    a, b = jnp.array([0.0, 0.0]), jnp.array([0.019, 0.0])
    approaching = contact.between_particles(a, jnp.array([1.0, 0.0]), R, b, jnp.zeros(2), R)
    resting = contact.between_particles(a, jnp.zeros(2), R, b, jnp.zeros(2), R)
    np.testing.assert_allclose(
        np.asarray(approaching - resting), [-5.0, 0.0], rtol=1e-9
    )


# Bottom wall from (0, 0) to (1, 0); a disk sitting 0.001 into it.
START = jnp.array([0.0, 0.0])
END = jnp.array([1.0, 0.0])
INSIDE = jnp.array([0.5, 0.009])


def test_wall_pushes_particle_out():
    contact = calculator(kn=1e5, gamma=0.0)
    f = contact.between_particle_and_wall(INSIDE, jnp.zeros(2), R, START, END)
    np.testing.assert_allclose(np.asarray(f), [0.0, 100.0], rtol=1e-9)


@pytest.mark.parametrize(
    "pos",
    [
        jnp.array([-0.005, 0.009]),  # projects behind the start
        jnp.array([1.005, 0.009]),  # projects past the end
        jnp.array([0.5, 0.02]),  # does not reach the wall
    ],
)
def test_no_wall_force_outside_footprint(pos):
    f = calculator().between_particle_and_wall(pos, jnp.array([0.0, -1.0]), R, START, END)
    assert np.all(np.asarray(f) == 0.0)


def test_wall_force_grows_with_stiffness():
    zero = jnp.zeros(2)
    soft = calculator(kn=1e4, gamma=0.0).between_particle_and_wall(INSIDE, zero, R, START, END)
    stiff = calculator(kn=1e5, gamma=0.0).between_particle_and_wall(INSIDE, zero, R, START, END)
    assert np.linalg.norm(np.asarray(stiff)) > np.linalg.norm(np.asarray(soft))

    n, xi = jnp.array([0.0, -1.0]), jnp.asarray(0.001)
    assert np.linalg.norm(np.asarray(calculator(kn=1e5).elastic(n, xi))) > np.linalg.norm(
        np.asarray(calculator(kn=1e4).elastic(n, xi))
    )


def test_wall_damping_grows_with_gamma():
    falling = jnp.array([0.0, -1.0])
    n = jnp.array([0.0, -1.0])
    weak = calculator(gamma=1.0).damping(n, falling)
    strong = calculator(gamma=10.0).damping(n, falling)
    assert np.linalg.norm(np.asarray(strong)) > np.linalg.norm(np.asarray(weak))

    f_weak = calculator(kn=1e5, gamma=1.0).between_particle_and_wall(INSIDE, falling, R, START, END)
    f_strong = calculator(kn=1e5, gamma=10.0).between_particle_and_wall(INSIDE, falling, R, START, END)
    assert float(f_strong[1]) > float(f_weak[1]) > 0


def test_total_force_respects_neighbor_mask():
    contact = calculator(kn=1e5, gamma=0.0)
    walls = sd.Walls.create(sd.silo_walls(0.7, 0.3, 0.06))
    pos = jnp.array([[0.1, 0.3], [0.119, 0.3]])
    vel = jnp.zeros_like(pos)
    rad = jnp.full(2, R)

    on = contact.total_force(pos, vel, rad, jnp.array([[False, True], [True, False]]), walls)
    off = contact.total_force(pos, vel, rad, jnp.zeros((2, 2), dtype=bool), walls)
    np.testing.assert_allclose(np.asarray(on), [[-100.0, 0.0], [100.0, 0.0]], rtol=1e-9)
    np.testing.assert_allclose(np.asarray(off), 0.0)


def test_invalid_constants_are_rejected():
    with pytest.raises(ValueError):
        sd.ContactForceCalculator.create(kn=0.0, gamma=1.0)
    with pytest.raises(ValueError):
        sd.ContactForceCalculator.create(kn=1.0, gamma=-1.0)
