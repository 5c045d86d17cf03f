# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Naive :math:`O(N^2)` collider implementation."""

from __future__ import annotations

import jax
import jax.numpy as jnp

from dataclasses import dataclass
from functools import partial

from . import Collider
from ..utils.geometry import overlap


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="NaiveCollider.neighbors")
def _all_pairs(pos: jax.Array, rad: jax.Array) -> jax.Array:
    xi = overlap(pos[:, None, :], pos[None, :, :], rad[:, None], rad[None, :])
    return (xi > 0) & ~jnp.eye(pos.shape[0], dtype=bool)


@Collider.register("naive")
@jax.tree_util.register_dataclass
@dataclass(slots=True)
class NaiveCollider(Collider):
    r"""
    Checks every pair of disks, :math:`O(N^2)` in time and memory.

    Notes
    -----
    For a few hundred disks this is as fast as anything smarter, and it is the
    reference other colliders are tested against.
    """

    def neighbors(self, pos: jax.Array, rad: jax.Array) -> jax.Array:
        return _all_pairs(pos, rad)


__all__ = ["NaiveCollider"]
