# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
Random initial filling of the silo.
"""

from __future__ import annotations

import math

import jax
import jax.numpy as jnp

from functools import partial
from typing import Optional

from ..state import State
from .geometry import overlap


@partial(jax.jit, static_argnames=("capacity", "max_tries"))
@partial(jax.named_call, name="provider.fill")
def _fill(key, width, low, high, min_radius, max_radius, capacity: int, max_tries: int):
    iota = jax.lax.iota(dtype=int, size=capacity)

    def keep_going(carry):
        _, _, _, count, fails = carry
        return (count < capacity) & (fails < max_tries)

    def try_once(carry):
        key, pos, rad, count, fails = carry
        key, kr, kx, ky = jax.random.split(key, 4)
        r = jax.random.uniform(kr, minval=min_radius, maxval=max_radius)
        x = jax.random.uniform(kx, minval=r, maxval=width - r)
        y = jax.random.uniform(ky, minval=low + r, maxval=high - r)
        candidate = jnp.stack([x, y])

        xi = overlap(pos, candidate, rad, r)
        ok = ~jnp.any((xi > 0) & (iota < count))

        pos = pos.at[count].set(jnp.where(ok, candidate, pos[count]))
        rad = rad.at[count].set(jnp.where(ok, r, rad[count]))
        return key, pos, rad, count + ok, jnp.where(ok, 0, fails + 1)

    init = (
        key,
        jnp.zeros((capacity, 2), dtype=float),
        jnp.zeros(capacity, dtype=float),
        jnp.asarray(0),
        jnp.asarray(0),
    )
    _, pos, rad, count, _ = jax.lax.while_loop(keep_going, try_once, init)
    return pos, rad, count


def fill_silo(
    key: jax.Array,
    *,
    width: float,
    length: float,
    min_radius: float,
    max_radius: float,
    mass: float,
    fill_fraction: float = 0.5,
    max_particles: Optional[int] = None,
    max_tries: int = 1000,
) -> State:
    """
    Randomly place non-overlapping disks at rest in the top part of the silo.

    Disks are drawn one at a time with a radius uniform in
    ``[min_radius, max_radius]`` and a center uniform in
    ``x in [r, width - r]``, ``y in [length * (1 - fill_fraction) + r, length - r]``.
    A candidate overlapping an already placed disk is rejected. Filling stops
    after `max_tries` consecutive rejections or once `max_particles` disks are
    placed.

    Parameters
    ----------
    key : jax.Array
        PRNG key.
    width, length : float
        Silo dimensions.
    min_radius, max_radius : float
        Radius range.
    mass : float
        Mass of every disk.
    fill_fraction : float, optional
        Fraction of the silo height, measured from the top, that is filled.
    max_particles : int, optional
        Upper bound on the number of disks.
    max_tries : int, optional
        Consecutive rejections after which the silo is considered full.

    Returns
    -------
    State
        Disks at rest with zero acceleration.

    Raises
    ------
    ValueError
        If a parameter is out of range or no disk fits in the region.
    """
    if not (0 < min_radius <= max_radius):
        raise ValueError(
            f"Radii must satisfy 0 < min_radius <= max_radius, got {min_radius}, {max_radius}"
        )
    if not mass > 0:
        raise ValueError(f"Particle mass must be positive, got {mass}")
    if not (0 < fill_fraction <= 1):
        raise ValueError(f"fill_fraction must be in (0, 1], got {fill_fraction}")
    if max_particles is not None and max_particles < 1:
        raise ValueError(f"max_particles must be at least 1, got {max_particles}")
    if max_tries < 1:
        raise ValueError(f"max_tries must be at least 1, got {max_tries}")

    low = length * (1.0 - fill_fraction)
    high = length
    if width <= 2 * max_radius or high - low <= 2 * max_radius:
        raise ValueError(
            f"No particle of radius up to {max_radius} fits in a {width} x {high - low} region"
        )

    capacity = math.floor(width * (high - low) / (math.pi * min_radius**2)) + 1
    if max_particles is not None:
        capacity = min(capacity, int(max_particles))

    pos, rad, count = _fill(
        key,
        jnp.asarray(width, dtype=float),
        jnp.asarray(low, dtype=float),
        jnp.asarray(high, dtype=float),
        jnp.asarray(min_radius, dtype=float),
        jnp.asarray(max_radius, dtype=float),
        capacity,
        max_tries,
    )
    count = int(count)
    if count == 0:
        raise ValueError("Could not place a single particle in the silo.")

    return State.create(
        pos=pos[:count],
        rad=rad[:count],
        mass=jnp.full(count, mass, dtype=float),
    )


__all__ = ["fill_silo"]
