# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Neighbor detection interfaces and implementations."""

from __future__ import annotations

import jax

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..factory import Factory


@jax.tree_util.register_dataclass
@dataclass(slots=True)
class Collider(Factory, ABC):
    r"""
    Base interface for finding which disks are in contact.

    A collider turns positions and radii into a boolean ``(N, N)`` mask whose
    entry ``(i, j)`` is true when disks `i` and `j` overlap. The diagonal is
    always false. Implementations differ only in how fast they get there, and
    must agree on the result.

    Example
    -------
    >>> @Collider.register("mycollider")
    >>> @jax.tree_util.register_dataclass
    >>> @dataclass(slots=True)
    >>> class MyCollider(Collider):
            ...

    >>> silodem.Collider.create("naive").neighbors(pos, rad)
    """

    @abstractmethod
    def neighbors(self, pos: jax.Array, rad: jax.Array) -> jax.Array:
        """
        Overlap mask at the given positions.

        Parameters
        ----------
        pos : jax.Array
            Disk centers, shape ``(N, 2)``.
        rad : jax.Array
            Disk radii, shape ``(N,)``.

        Returns
        -------
        jax.Array
            Boolean mask of shape ``(N, N)``.
        """
        raise NotImplementedError


from .naive import NaiveCollider
from .cell_list import CellList

__all__ = ["Collider", "NaiveCollider", "CellList"]
