# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
Geometric helpers for disks and wall segments.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from functools import partial


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="geometry.unit")
def unit(v: jax.Array) -> jax.Array:
    """
    Normalize vectors along the last axis.
    v: (..., D)
    returns: (..., D), unit vectors; zeros map to zeros.
    """
    norm2 = jnp.sum(v * v, axis=-1, keepdims=True)
    scale = jnp.where(norm2 == 0, 1.0, jax.lax.rsqrt(jnp.where(norm2 == 0, 1.0, norm2)))
    return v * scale


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="geometry.norm")
def norm(v: jax.Array) -> jax.Array:
    """Euclidean norm along the last axis."""
    return jnp.sqrt(jnp.sum(v * v, axis=-1))


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="geometry.overlap")
def overlap(
    pos_a: jax.Array, pos_b: jax.Array, rad_a: jax.Array, rad_b: jax.Array
) -> jax.Array:
    r"""
    Penetration depth between two disks.

    .. math::
        \xi = \max \left(0, R_a + R_b - \lVert r_a - r_b \rVert \right)

    A value of zero means the disks are not in contact. Broadcasts over
    leading axes, so `pos_a` of shape ``(N, 2)`` against a single `pos_b` of
    shape ``(2,)`` gives the ``(N,)`` overlaps with every disk.

    Parameters
    ----------
    pos_a, pos_b : jax.Array
        Disk centers, shape ``(..., 2)``.
    rad_a, rad_b : jax.Array
        Disk radii, shape ``(...)``.

    Returns
    -------
    jax.Array
        Overlap, shape ``(...)``.
    """
    return jnp.maximum(0.0, rad_a + rad_b - norm(pos_a - pos_b))


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="geometry.project_onto_wall")
def project_onto_wall(
    point: jax.Array, start: jax.Array, direction: jax.Array
) -> jax.Array:
    r"""
    Orthogonal projection of `point` onto the line through a wall.

    .. math::
        p = d \, \frac{(x - s) \cdot d}{\lVert d \rVert^2}

    where :math:`s` is the wall's start point and :math:`d` its direction vector.
    The result is measured from `start`. It is not clipped to the segment;
    callers decide whether it lands on the wall.
    """
    rel = point - start
    scale = jnp.sum(rel * direction, axis=-1, keepdims=True) / jnp.sum(
        direction * direction, axis=-1, keepdims=True
    )
    return direction * scale


__all__ = ["unit", "norm", "overlap", "project_onto_wall"]
