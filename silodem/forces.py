# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Linear spring-dashpot normal contact force."""

from __future__ import annotations

import jax
import jax.numpy as jnp

from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

from .utils.geometry import norm, overlap, project_onto_wall, unit

if TYPE_CHECKING:  # pragma: no cover
    from .walls import Walls

EPSILON = 1e-12
"""Tolerance for the sign test that decides whether a point projects behind a wall."""


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="forces.elastic")
def elastic(n: jax.Array, xi: jax.Array, kn: jax.Array) -> jax.Array:
    r"""Spring term :math:`-k_n \xi \hat{n}`."""
    return -kn * xi[..., None] * n


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="forces.damping")
def damping(n: jax.Array, v_rel: jax.Array, gamma: jax.Array) -> jax.Array:
    r"""Dashpot term :math:`-\gamma (v_{rel} \cdot \hat{n}) \hat{n}`."""
    return -gamma * jnp.sum(v_rel * n, axis=-1, keepdims=True) * n


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="forces.pair_force")
def pair_force(pos_a, vel_a, rad_a, pos_b, vel_b, rad_b, kn, gamma) -> jax.Array:
    xi = overlap(pos_a, pos_b, rad_a, rad_b)
    n = unit(pos_b - pos_a)
    f = elastic(n, xi, kn) + damping(n, vel_a - vel_b, gamma)
    return jnp.where((xi > 0)[..., None], f, 0.0)


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="forces.wall_force")
def wall_force(pos, vel, rad, start, end, kn, gamma) -> jax.Array:
    direction = end - start
    projection = project_onto_wall(pos, start, direction)
    behind = jnp.sum(projection * direction, axis=-1) < -EPSILON
    beyond = norm(projection) > norm(direction)

    contact = start + projection - pos
    xi = rad - norm(contact)
    n = unit(contact)
    f = elastic(n, xi, kn) + damping(n, vel, gamma)
    touching = ~behind & ~beyond & (xi > 0)
    return jnp.where(touching[..., None], f, 0.0)


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="forces.total_force")
def total_force(pos, vel, rad, neighbors, walls: "Walls", kn, gamma) -> jax.Array:
    pairs = jax.vmap(
        lambda pa, va, ra: jax.vmap(
            pair_force, in_axes=(None, None, None, 0, 0, 0, None, None)
        )(pa, va, ra, pos, vel, rad, kn, gamma),
    )(pos, vel, rad)
    pairs = jnp.where(neighbors[..., None], pairs, 0.0).sum(axis=1)

    against_walls = jax.vmap(
        lambda p, v, r: jax.vmap(
            wall_force, in_axes=(None, None, None, 0, 0, None, None)
        )(p, v, r, walls.start, walls.end, kn, gamma),
    )(pos, vel, rad).sum(axis=1)

    return pairs + against_walls


@jax.tree_util.register_dataclass
@dataclass(slots=True)
class ContactForceCalculator:
    r"""
    Normal contact force between disks, and between a disk and a wall segment.

    For an overlap :math:`\xi > 0` along the unit normal :math:`\hat{n}` that points
    from the body the force acts on towards the other body,

    .. math::
        F = -k_n \xi \hat{n} - \gamma \left( v_{rel} \cdot \hat{n} \right) \hat{n}

    where :math:`v_{rel}` is the velocity of the body the force acts on relative
    to the other one. Walls do not move.

    The calculator holds no particle state. Positions and velocities are passed
    explicitly, which lets the integrator evaluate forces at predicted states.
    """

    kn: jax.Array
    """Normal elastic constant :math:`k_n`."""

    gamma: jax.Array
    r"""Viscous damping coefficient :math:`\gamma`."""

    @staticmethod
    def create(kn: float, gamma: float) -> "ContactForceCalculator":
        """
        Raises
        ------
        ValueError
            If ``kn <= 0`` or ``gamma < 0``.
        """
        if not kn > 0:
            raise ValueError(f"The elastic constant must be positive, got {kn}")
        if not gamma >= 0:
            raise ValueError(f"The damping coefficient must be non-negative, got {gamma}")
        return ContactForceCalculator(
            kn=jnp.asarray(kn, dtype=float), gamma=jnp.asarray(gamma, dtype=float)
        )

    def between_particles(self, pos_a, vel_a, rad_a, pos_b, vel_b, rad_b) -> jax.Array:
        """
        Force that disk `b` exerts on disk `a`.

        Returns the zero vector when the disks do not overlap.
        """
        args = (pos_a, vel_a, rad_a, pos_b, vel_b, rad_b)
        return pair_force(*(jnp.asarray(a, dtype=float) for a in args), self.kn, self.gamma)

    def between_particle_and_wall(self, pos, vel, rad, start, end) -> jax.Array:
        """
        Force a wall going from `start` to `end` exerts on a disk.

        The force is zero when the disk's center projects behind the start of
        the segment or past its end, or when the disk does not reach the wall.
        """
        args = (pos, vel, rad, start, end)
        return wall_force(*(jnp.asarray(a, dtype=float) for a in args), self.kn, self.gamma)

    def elastic(self, n, xi) -> jax.Array:
        return elastic(jnp.asarray(n, dtype=float), jnp.asarray(xi, dtype=float), self.kn)

    def damping(self, n, v_rel) -> jax.Array:
        return damping(
            jnp.asarray(n, dtype=float), jnp.asarray(v_rel, dtype=float), self.gamma
        )

    def total_force(self, pos, vel, rad, neighbors, walls: "Walls") -> jax.Array:
        """
        Sum of contact forces on every disk.

        Parameters
        ----------
        pos, vel, rad : jax.Array
            Positions ``(N, 2)``, velocities ``(N, 2)`` and radii ``(N,)`` at
            which to evaluate the contacts.
        neighbors : jax.Array
            Boolean ``(N, N)`` mask; only pairs marked here are evaluated.
        walls : Walls
            Walls every disk is tested against.

        Returns
        -------
        jax.Array
            Total contact force per disk, shape ``(N, 2)``.
        """
        return total_force(pos, vel, rad, neighbors, walls, self.kn, self.gamma)


__all__ = ["ContactForceCalculator", "EPSILON", "elastic", "damping"]
