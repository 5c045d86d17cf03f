# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Beeman predictor-corrector integrator."""

from __future__ import annotations

import jax
import jax.numpy as jnp

from dataclasses import dataclass, replace
from functools import partial
from typing import TYPE_CHECKING, Optional, Tuple

from . import Integrator

if TYPE_CHECKING:  # pragma: no cover
    from ..state import State
    from ..forces import ContactForceCalculator
    from ..walls import Walls
    from ..colliders import Collider


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="Beeman.next_position")
def next_position(pos, vel, accel, prev_accel, dt) -> jax.Array:
    return pos + vel * dt + (2.0 / 3.0) * accel * dt**2 - (1.0 / 6.0) * prev_accel * dt**2


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="Beeman.predict_velocity")
def predict_velocity(vel, accel, prev_accel, dt) -> jax.Array:
    return vel + 1.5 * accel * dt - 0.5 * prev_accel * dt


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="Beeman.correct_velocity")
def correct_velocity(vel, accel, prev_accel, new_accel, dt) -> jax.Array:
    return (
        vel
        + (1.0 / 3.0) * new_accel * dt
        + (5.0 / 6.0) * accel * dt
        - (1.0 / 6.0) * prev_accel * dt
    )


@jax.jit
@partial(jax.named_call, name="Beeman.step")
def _step(
    state: "State",
    prev_accel: jax.Array,
    contact: "ContactForceCalculator",
    walls: "Walls",
    gravity: jax.Array,
    dt: jax.Array,
    collider: "Collider",
) -> "State":
    # Contacts are searched at the committed positions, forces are evaluated
    # at the predicted ones.
    neighbors = collider.neighbors(state.pos, state.rad)

    pos = next_position(state.pos, state.vel, state.accel, prev_accel, dt)
    vel = predict_velocity(state.vel, state.accel, prev_accel, dt)

    force = contact.total_force(pos, vel, state.rad, neighbors, walls)
    new_accel = force / state.mass[..., None] + gravity

    vel = correct_velocity(state.vel, state.accel, prev_accel, new_accel, dt)

    # Batched commit: nothing above read a partially updated particle.
    state.pos = pos
    state.vel = vel
    state.accel = new_accel
    return state


@Integrator.register("beeman")
@jax.tree_util.register_dataclass
@dataclass(slots=True)
class Beeman(Integrator):
    r"""
    Beeman's third-order predictor-corrector scheme.

    .. math::
        r(t + \Delta t) &= r(t) + v(t) \Delta t + \frac{2}{3} a(t) \Delta t^2 - \frac{1}{6} a(t - \Delta t) \Delta t^2 \\
        v^p(t + \Delta t) &= v(t) + \frac{3}{2} a(t) \Delta t - \frac{1}{2} a(t - \Delta t) \Delta t \\
        a(t + \Delta t) &= \frac{F\left(r(t + \Delta t), v^p(t + \Delta t)\right)}{m} + g \\
        v(t + \Delta t) &= v(t) + \frac{1}{3} a(t + \Delta t) \Delta t + \frac{5}{6} a(t) \Delta t - \frac{1}{6} a(t - \Delta t) \Delta t

    where:
        - :math:`r` is the particle position (:attr:`silodem.State.pos`)
        - :math:`v` is the particle velocity (:attr:`silodem.State.vel`)
        - :math:`a` is the particle acceleration (:attr:`silodem.State.accel`)
        - :math:`a(t - \Delta t)` is the acceleration of the previous step (:attr:`prev_accel`)
        - :math:`v^p` is the predicted velocity used only to evaluate the contact damping

    The scheme needs one step of history. Particles that have none (right
    after :meth:`initialize` or :meth:`reset`) use gravity, which is exact for
    a particle at rest in free fall.
    """

    prev_accel: Optional[jax.Array] = None
    """Acceleration of every particle at the previous step. Shape ``(N, 2)``."""

    def _history(self, state: "State") -> jax.Array:
        if self.prev_accel is None:
            raise RuntimeError(
                "Beeman integrator has no acceleration history. "
                "Call initialize(state, gravity) before stepping."
            )
        if self.prev_accel.shape != state.shape:
            raise RuntimeError(
                f"Beeman history has shape {self.prev_accel.shape} but the state "
                f"has shape {state.shape}. Some particles were never registered "
                "with the integrator; call initialize(state, gravity)."
            )
        return self.prev_accel

    def initialize(self, state: "State", gravity) -> "Beeman":
        gravity = jnp.asarray(gravity, dtype=float)
        return replace(self, prev_accel=jnp.broadcast_to(gravity, state.shape))

    def reset(self, mask, gravity) -> "Beeman":
        if self.prev_accel is None:
            raise RuntimeError("Cannot reset the history of an uninitialized integrator.")
        gravity = jnp.asarray(gravity, dtype=float)
        mask = jnp.asarray(mask, dtype=bool)
        return replace(
            self, prev_accel=jnp.where(mask[..., None], gravity, self.prev_accel)
        )

    def next_position(self, state: "State", dt) -> jax.Array:
        """Predicted positions after one step of size `dt`."""
        return next_position(
            state.pos, state.vel, state.accel, self._history(state), dt
        )

    def predict_velocity(self, state: "State", dt) -> jax.Array:
        """Predicted velocities, used to evaluate the contact damping."""
        return predict_velocity(state.vel, state.accel, self._history(state), dt)

    def correct_velocity(self, state: "State", new_accel, dt) -> jax.Array:
        """Corrected velocities once the new accelerations are known."""
        return correct_velocity(
            state.vel, state.accel, self._history(state), new_accel, dt
        )

    def step(
        self,
        state: "State",
        contact: "ContactForceCalculator",
        walls: "Walls",
        gravity,
        dt,
        collider: "Collider",
    ) -> Tuple["State", "Beeman"]:
        prev_accel = self._history(state)
        accel = state.accel
        state = _step(
            state,
            prev_accel,
            contact,
            walls,
            jnp.asarray(gravity, dtype=float),
            jnp.asarray(dt, dtype=float),
            collider,
        )
        return state, replace(self, prev_accel=accel)


__all__ = ["Beeman"]
