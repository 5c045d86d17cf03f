# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
Recycling of particles that fell out of the silo back on top of the pile.
"""

from __future__ import annotations

import logging

import jax
import jax.numpy as jnp

from dataclasses import dataclass, replace
from functools import partial
from typing import TYPE_CHECKING, Tuple

from .utils.geometry import overlap

if TYPE_CHECKING:  # pragma: no cover
    from .state import State

logger = logging.getLogger(__name__)


def pile_statistics(y: jax.Array, inside: jax.Array) -> Tuple[jax.Array, jax.Array]:
    """
    Mean and standard deviation of the heights `y` of the particles selected
    by the boolean mask `inside`.

    Raises
    ------
    RuntimeError
        If `inside` selects no particle.
    """
    count = jnp.sum(inside)
    if int(count) == 0:
        raise RuntimeError(
            "Cannot compute pile statistics without any particle inside the silo."
        )
    mean = jnp.sum(jnp.where(inside, y, 0.0)) / count
    variance = jnp.sum(jnp.where(inside, (y - mean) ** 2, 0.0)) / count
    return mean, jnp.sqrt(variance)


@partial(jax.jit, static_argnames=("max_tries",))
@partial(jax.named_call, name="RespawnManager.place")
def _place(
    pos: jax.Array,
    rad: jax.Array,
    select: jax.Array,
    low: jax.Array,
    high: jax.Array,
    width: jax.Array,
    key: jax.Array,
    max_tries: int,
) -> Tuple[jax.Array, jax.Array]:
    """
    Sequentially move every selected particle to a random free spot.

    Particle `i` is drawn with ``x`` in ``[r_i, width - r_i]`` and ``y`` in
    ``[low_i, high_i]`` until it overlaps nobody, at most `max_tries` times.
    Later particles see the new positions of earlier ones.
    """
    N = pos.shape[0]
    iota = jax.lax.iota(dtype=int, size=N)
    keys = jax.random.split(key, N)

    def place_one(i, carry):
        def attempt(carry):
            pos, placed = carry

            def keep_trying(c):
                tries, found, _ = c
                return (tries < max_tries) & ~found

            def try_once(c):
                tries, _, _ = c
                kx, ky = jax.random.split(jax.random.fold_in(keys[i], tries))
                x = jax.random.uniform(kx, minval=rad[i], maxval=width - rad[i])
                y = jax.random.uniform(ky, minval=low[i], maxval=high[i])
                candidate = jnp.stack([x, y])
                xi = overlap(pos, candidate, rad, rad[i])
                clash = jnp.any((xi > 0) & (iota != i))
                return tries + 1, ~clash, candidate

            _, found, candidate = jax.lax.while_loop(
                keep_trying, try_once, (jnp.asarray(0), jnp.asarray(False), pos[i])
            )
            pos = pos.at[i].set(jnp.where(found, candidate, pos[i]))
            return pos, placed.at[i].set(found)

        return jax.lax.cond(select[i], attempt, lambda c: c, carry)

    return jax.lax.fori_loop(0, N, place_one, (pos, jnp.zeros(N, dtype=bool)))


@dataclass(slots=True, frozen=True)
class RespawnManager:
    """
    Puts particles that fell well below the outlet back above the pile, so the
    population stays constant forever (an infinite hourglass).

    The outlet plane is ``y = 0``; particles with ``y > 0`` are inside the silo.
    Particles below ``-length / 10`` are moved into a band over the pile:
    with :math:`\\mu` and :math:`\\sigma` the mean and standard deviation of the
    heights inside, the band for a particle of radius `r` is
    ``[mu + 2 sigma + 4 r, mu + 2 sigma + 8 r]``. If the silo ever drains
    completely, every particle is put back into ``[0, 3 r]`` instead.

    Placement is random with a bounded number of tries per particle. A particle
    that cannot be placed stays where it is and is retried on the next call.
    """

    length: float
    width: float
    max_tries: int = 1000

    def __post_init__(self):
        if not (self.length > 0 and self.width > 0):
            raise ValueError(
                f"Silo size must be positive, got length={self.length}, width={self.width}"
            )
        if self.max_tries < 1:
            raise ValueError(f"max_tries must be at least 1, got {self.max_tries}")

    @property
    def threshold(self) -> float:
        """Height below which an exited particle is recycled."""
        return -self.length / 10

    def respawn(
        self, state: "State", key: jax.Array, gravity
    ) -> Tuple["State", jax.Array, int]:
        """
        Recycle the particles that fell out of the silo.

        Parameters
        ----------
        state : State
            State committed by the integrator for this step.
        key : jax.Array
            PRNG key for the random placements.
        gravity : array-like
            Acceleration given to respawned particles.

        Returns
        -------
        Tuple[State, jax.Array, int]
            The new state, the boolean mask of respawned particles (to hand to
            :meth:`Integrator.reset`) and how many were respawned.
        """
        y = state.pos[:, 1]
        inside = y > 0

        if not bool(jnp.any(inside)):
            logger.info("Silo drained completely, respawning all %d particles", state.N)
            select = jnp.ones(state.N, dtype=bool)
            low = jnp.zeros_like(state.rad)
            high = 3.0 * state.rad
        else:
            select = y < self.threshold
            if not bool(jnp.any(select)):
                return state, select, 0
            mean, std = pile_statistics(y, inside)
            min_y = mean + 2.0 * std
            low = min_y + 4.0 * state.rad
            high = min_y + 8.0 * state.rad

        pos, placed = _place(
            state.pos,
            state.rad,
            select,
            low,
            high,
            jnp.asarray(self.width, dtype=float),
            key,
            self.max_tries,
        )

        failed = int(jnp.sum(select & ~placed))
        if failed:
            logger.debug(
                "Could not place %d particle(s) after %d tries, retrying next step",
                failed,
                self.max_tries,
            )

        gravity = jnp.asarray(gravity, dtype=float)
        mask = placed[..., None]
        state = replace(
            state,
            pos=pos,
            vel=jnp.where(mask, 0.0, state.vel),
            accel=jnp.where(mask, gravity, state.accel),
        )
        return state, placed, int(jnp.sum(placed))


__all__ = ["RespawnManager", "pile_statistics"]
