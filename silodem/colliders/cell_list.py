# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Cell List :math:`O(N log N)` collider implementation."""

from __future__ import annotations

import logging
import math

import jax
import jax.numpy as jnp

from dataclasses import dataclass, field
from typing import Optional
from functools import partial

from . import Collider
from ..utils.geometry import overlap

logger = logging.getLogger(__name__)


@partial(jax.jit, static_argnames=("max_occupancy",))
@partial(jax.named_call, name="CellList.neighbors")
def _cell_list_pairs(
    pos: jax.Array,
    rad: jax.Array,
    neighbor_mask: jax.Array,
    cell_size: jax.Array,
    max_occupancy: int,
) -> jax.Array:
    N = pos.shape[0]
    iota = jax.lax.iota(dtype=int, size=N)

    # 1. Grid anchored one cell below the lowest particle, so every stencil
    # cell has non-negative coordinates and hashes never alias across rows.
    anchor = jnp.min(pos, axis=0) - cell_size
    grid_dims = jnp.floor((jnp.max(pos, axis=0) - anchor) / cell_size).astype(int) + 2
    strides = jnp.stack([jnp.ones((), dtype=int), grid_dims[0]])

    # 2. Spatial hashing
    cell_ids = jnp.floor((pos - anchor) / cell_size).astype(int)
    particle_hash = jnp.dot(cell_ids, strides)

    # 3. Sort hashes, keep the permutation to map back to particle indices
    particle_hash, perm = jax.lax.sort([particle_hash, iota], num_keys=1)
    cell_ids = cell_ids[perm]

    # 4. Hash of every stencil cell around every particle, shape (N, M)
    cell_hashes = jnp.dot(cell_ids[:, None, :] + neighbor_mask, strides)

    # 5. Probe max_occupancy entries from the start of each neighbor cell
    start_idx = jnp.searchsorted(
        particle_hash, cell_hashes, side="left", method="scan_unrolled"
    )
    k = start_idx[..., None] + jax.lax.iota(dtype=int, size=max_occupancy)
    safe_k = jnp.minimum(k, N - 1)
    valid = (
        (k < N)
        & (particle_hash[safe_k] == cell_hashes[..., None])
        & (safe_k != iota[:, None, None])
    )

    # 6. Exact overlap test on the candidates, scattered back to (N, N)
    i = jnp.broadcast_to(perm[:, None, None], safe_k.shape)
    j = perm[safe_k]
    xi = overlap(pos[i], pos[j], rad[i], rad[j])
    hits = (valid & (xi > 0)).astype(int)
    return jnp.zeros((N, N), dtype=int).at[i, j].add(hits) > 0


@jax.jit
@partial(jax.named_call, name="CellList.max_cell_occupancy")
def _max_cell_occupancy(pos: jax.Array, cell_size: jax.Array) -> jax.Array:
    anchor = jnp.min(pos, axis=0) - cell_size
    grid_dims = jnp.floor((jnp.max(pos, axis=0) - anchor) / cell_size).astype(int) + 2
    strides = jnp.stack([jnp.ones((), dtype=int), grid_dims[0]])
    particle_hash = jnp.sort(jnp.dot(jnp.floor((pos - anchor) / cell_size).astype(int), strides))
    first = jnp.searchsorted(particle_hash, particle_hash, side="left", method="scan_unrolled")
    return jnp.max(jax.lax.iota(dtype=int, size=pos.shape[0]) - first) + 1


def _log_overflow(occupancy, max_occupancy: int) -> None:
    if int(occupancy) > max_occupancy:
        logger.debug(
            "A cell holds %d disks but only %d are probed, some contacts are missed",
            int(occupancy),
            max_occupancy,
        )


@Collider.register("celllist")
@jax.tree_util.register_dataclass
@dataclass(slots=True)
class CellList(Collider):
    r"""
    Implicit cell-list (spatial hashing) collider.

    Disks are binned into square cells of side ``cell_size``, sorted by cell
    hash, and each disk is only tested against disks in the 3×3 block of cells
    around its own. The grid follows the particles: it is anchored at the
    lowest particle coordinates on every call, so particles falling out of
    the silo never leave it.

    The cell list is implicit: per-cell lists are never stored, the sorted
    hashes and a fixed ``max_occupancy`` are probed in place instead.

    Complexity
    ----------
    - Time: :math:`O(N \log N)` from sorting, plus :math:`O(9 N K)` for
      neighbor probing (K = ``max_occupancy``).
    - Memory: :math:`O(N^2)` for the returned mask, :math:`O(9 N K)` otherwise.

    Notes
    -----
    - If a cell ever holds more than ``max_occupancy`` disks, some contacts are
      missed. The default bound comes from packing the smallest disks into one
      cell and is only exceeded under very large overlaps. With the
      ``silodem.colliders.cell_list`` logger at ``DEBUG`` level, every call
      checks the occupancy and logs when it is exceeded. ``naive`` is the
      reference collider and the silo default.
    """

    neighbor_mask: jax.Array
    """
    Integer offsets of the 3×3 Moore neighborhood in cell coordinates. Shape ``(9, 2)``.
    """

    cell_size: jax.Array
    """
    Linear size of a grid cell (scalar).
    """

    max_occupancy: int = field(metadata={"static": True})
    """
    Maximum number of disks assumed to occupy a single cell.
    """

    @staticmethod
    def Create(
        max_radius: float,
        min_radius: Optional[float] = None,
        cell_size: Optional[float] = None,
        max_occupancy: Optional[int] = None,
    ) -> "CellList":
        """
        Creates a CellList collider for disks with radii in ``[min_radius, max_radius]``.

        Parameters
        ----------
        max_radius : float
            Largest disk radius the collider will see.
        min_radius : float, optional
            Smallest disk radius, used to bound the cell occupancy. Defaults
            to `max_radius`.
        cell_size : float, optional
            Cell edge length. Defaults to slightly more than ``2 * max_radius``,
            the largest distance between two touching centers. Smaller values
            are rejected since the 3×3 stencil would miss contacts.
        max_occupancy : int, optional
            Assumed maximum number of disks per cell.

        Raises
        ------
        ValueError
            If a radius is not positive or `cell_size` is too small.
        """
        if min_radius is None:
            min_radius = max_radius
        if not (0 < min_radius <= max_radius):
            raise ValueError(
                f"Radii must satisfy 0 < min_radius <= max_radius, "
                f"got min_radius={min_radius}, max_radius={max_radius}"
            )

        cutoff = 2.0 * max_radius
        if cell_size is None:
            cell_size = 1.02 * cutoff
        cell_size = float(cell_size)
        if cell_size < cutoff:
            raise ValueError(
                f"cell_size={cell_size} is smaller than the contact cutoff {cutoff}"
            )

        if max_occupancy is None:
            box_area = (cell_size + 2.0 * min_radius) ** 2
            smallest_disk_area = math.pi * min_radius**2
            max_occupancy = max(2, math.ceil(box_area / smallest_disk_area))
        max_occupancy = int(max_occupancy)

        r = jnp.arange(-1, 2, dtype=int)
        mesh = jnp.meshgrid(r, r, indexing="ij")
        neighbor_mask = jnp.stack([m.ravel() for m in mesh], axis=1)

        return CellList(
            neighbor_mask=neighbor_mask.astype(int),
            cell_size=jnp.asarray(cell_size, dtype=float),
            max_occupancy=max_occupancy,
        )

    def max_cell_occupancy(self, pos: jax.Array) -> jax.Array:
        """Largest number of disks sharing one cell for positions `pos`."""
        return _max_cell_occupancy(pos, self.cell_size)

    def neighbors(self, pos: jax.Array, rad: jax.Array) -> jax.Array:
        if logger.isEnabledFor(logging.DEBUG):
            jax.debug.callback(
                partial(_log_overflow, max_occupancy=self.max_occupancy),
                self.max_cell_occupancy(pos),
            )
        return _cell_list_pairs(
            pos, rad, self.neighbor_mask, self.cell_size, self.max_occupancy
        )


__all__ = ["CellList"]
