# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
Rigid wall segments and the silo geometry built from them.
"""

from __future__ import annotations

import math

import jax
import jax.numpy as jnp

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

from .utils.geometry import project_onto_wall

Point = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class Wall:
    """
    Immutable directed segment going from `start` to `end`.
    """

    start: Point
    end: Point

    def __post_init__(self):
        if self.start is None or self.end is None:
            raise ValueError("A wall needs both a start and an end point.")
        start = tuple(float(c) for c in self.start)
        end = tuple(float(c) for c in self.end)
        if len(start) != 2 or len(end) != 2:
            raise ValueError(f"Wall points must be 2D, got {self.start} and {self.end}")
        if not all(math.isfinite(c) for c in start + end):
            raise ValueError(f"Wall points must be finite, got {start} and {end}")
        if start == end:
            raise ValueError(f"Wall has zero length: {start} -> {end}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def direction(self) -> Point:
        """Direction vector ``end - start``."""
        return (self.end[0] - self.start[0], self.end[1] - self.start[1])

    @property
    def length(self) -> float:
        return math.hypot(*self.direction)

    def project(self, point) -> jax.Array:
        """Projection of `point` onto the wall's line, measured from `start`."""
        return project_onto_wall(
            jnp.asarray(point, dtype=float),
            jnp.asarray(self.start, dtype=float),
            jnp.asarray(self.direction, dtype=float),
        )


@jax.tree_util.register_dataclass
@dataclass(slots=True, frozen=True)
class Walls:
    """
    Stacked wall endpoints, so contact forces against every wall can be
    evaluated in one vectorised call.
    """

    start: jax.Array
    """Start points. Shape ``(W, 2)``."""

    end: jax.Array
    """End points. Shape ``(W, 2)``."""

    @staticmethod
    def create(walls: Sequence[Wall]) -> "Walls":
        walls = tuple(walls)
        if not walls:
            raise ValueError("Walls.create() received an empty sequence")
        return Walls(
            start=jnp.asarray([w.start for w in walls], dtype=float),
            end=jnp.asarray([w.end for w in walls], dtype=float),
        )

    @property
    def direction(self) -> jax.Array:
        return self.end - self.start

    def __len__(self) -> int:
        return self.start.shape[0]

    def __iter__(self) -> Iterator[Wall]:
        for s, e in zip(self.start.tolist(), self.end.tolist()):
            yield Wall(start=tuple(s), end=tuple(e))


def silo_walls(length: float, width: float, hole: float) -> Tuple[Wall, ...]:
    """
    The five walls of a silo with its outlet centred on ``y = 0``.

    Order is left, right, bottom-left, bottom-right, top. The outlet is the gap
    between ``(width - hole) / 2`` and ``(width + hole) / 2`` on the bottom.

    Raises
    ------
    ValueError
        Unless ``length > width > hole > 0``.
    """
    if not hole > 0:
        raise ValueError(f"The silo's hole must be positive, got {hole}")
    if not (length > width > hole):
        raise ValueError(
            f"Silo dimensions must satisfy length > width > hole, "
            f"got length={length}, width={width}, hole={hole}"
        )
    return (
        Wall(start=(0.0, 0.0), end=(0.0, length)),
        Wall(start=(width, 0.0), end=(width, length)),
        Wall(start=(0.0, 0.0), end=((width - hole) / 2, 0.0)),
        Wall(start=((width + hole) / 2, 0.0), end=(width, 0.0)),
        Wall(start=(0.0, length), end=(width, length)),
    )


__all__ = ["Wall", "Walls", "silo_walls"]
