# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
Defines the particle State and the per-particle Particle record.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike
import numpy as np

from dataclasses import dataclass
from typing import Optional, Tuple, final
from functools import partial


@dataclass(frozen=True, slots=True)
class Particle:
    """
    Immutable record of one disk, detached from the JAX arrays.

    Produced by :meth:`State.particles` and stored in silo snapshots.
    """

    mass: float
    radius: float
    position: Tuple[float, float]
    velocity: Tuple[float, float] = (0.0, 0.0)
    acceleration: Tuple[float, float] = (0.0, 0.0)

    def __post_init__(self):
        if not self.mass > 0:
            raise ValueError(f"Particle mass must be positive, got {self.mass}")
        if not self.radius > 0:
            raise ValueError(f"Particle radius must be positive, got {self.radius}")


@partial(jax.jit, inline=True)
@partial(jax.named_call, name="State.kinetic_energy")
def _kinetic_energy(vel: jax.Array, mass: jax.Array) -> jax.Array:
    return 0.5 * jnp.sum(mass * jnp.sum(vel * vel, axis=-1), axis=-1)


@final
@jax.tree_util.register_dataclass
@dataclass(slots=True)
class State:
    r"""
    Struct-of-arrays view of every disk in the silo.

    Index ``i`` of every array refers to the same particle, so side data kept by
    other components (the integrator's acceleration history, exit flags) is
    stored in arrays of the same length and indexed the same way.

    Mass and radius never change after creation. Positions, velocities and
    accelerations are only rewritten by the integrator and the respawn pass.

    Example
    -------
    >>> import silodem as sd
    >>> import jax.numpy as jnp
    >>>
    >>> state = sd.State.create(
    ...     pos=jnp.array([[0.1, 0.5], [0.2, 0.5]]),
    ...     rad=jnp.array([0.01, 0.012]),
    ...     mass=jnp.array([0.01, 0.01]),
    ... )
    >>> print(state.N, state.dim)
    """

    pos: jax.Array
    """Disk centers. Shape ``(N, 2)``."""

    vel: jax.Array
    """Velocities. Shape ``(N, 2)``."""

    accel: jax.Array
    """Accelerations from the last integration step. Shape ``(N, 2)``."""

    rad: jax.Array
    """Radii. Shape ``(N,)``."""

    mass: jax.Array
    """Masses. Shape ``(N,)``."""

    ID: jax.Array
    """Particle identifiers. Shape ``(N,)``."""

    @property
    def N(self) -> int:
        """Number of particles."""
        return self.pos.shape[-2]

    @property
    def dim(self) -> int:
        """Spatial dimension."""
        return self.pos.shape[-1]

    @property
    def shape(self) -> Tuple:
        """Shape of the vector fields, ``(N, dim)``."""
        return self.pos.shape

    @property
    def is_valid(self) -> bool:
        """
        Check that the arrays describe a consistent set of 2D disks.

        Raises
        ------
        AssertionError
            If any shape is inconsistent.
        """
        valid = self.dim == 2
        assert valid, f"Silo simulations are 2D (pos.shape[-1]={self.dim})."

        for name in ("vel", "accel"):
            arr = getattr(self, name)
            valid = valid and arr.shape == self.pos.shape
            assert (
                valid
            ), f"{name}.shape={arr.shape} is not equal to pos.shape={self.pos.shape}."

        for name in ("rad", "mass", "ID"):
            arr = getattr(self, name)
            valid = valid and arr.shape == self.pos.shape[:-1]
            assert (
                valid
            ), f"{name}.shape={arr.shape} is not equal to pos.shape[:-1]={self.pos.shape[:-1]}."

        return valid

    def __init_subclass__(cls, *args, **kw):
        raise TypeError(f"{State.__name__} is final and cannot be subclassed")

    @staticmethod
    def create(
        pos: ArrayLike,
        *,
        vel: Optional[ArrayLike] = None,
        accel: Optional[ArrayLike] = None,
        rad: Optional[ArrayLike] = None,
        mass: Optional[ArrayLike] = None,
        ID: Optional[ArrayLike] = None,
    ) -> "State":
        """
        Build a :class:`State`, filling in defaults and validating it.

        Parameters
        ----------
        pos : ArrayLike
            Disk centers, shape ``(N, 2)``.
        vel, accel : ArrayLike or None, optional
            Default to zeros.
        rad, mass : ArrayLike or None, optional
            Default to ones. Must be strictly positive.
        ID : ArrayLike or None, optional
            Defaults to ``arange(N)``.

        Raises
        ------
        ValueError
            If shapes are inconsistent or a mass or radius is not positive.
        """
        pos = jnp.asarray(pos, dtype=float)
        if pos.ndim != 2:
            raise ValueError(f"pos must have shape (N, 2), got {pos.shape}")
        N = pos.shape[0]

        vel = jnp.zeros_like(pos) if vel is None else jnp.asarray(vel, dtype=float)
        accel = (
            jnp.zeros_like(pos) if accel is None else jnp.asarray(accel, dtype=float)
        )
        rad = jnp.ones(N, dtype=float) if rad is None else jnp.asarray(rad, dtype=float)
        mass = (
            jnp.ones(N, dtype=float) if mass is None else jnp.asarray(mass, dtype=float)
        )
        ID = jnp.arange(N, dtype=int) if ID is None else jnp.asarray(ID, dtype=int)

        state = State(pos=pos, vel=vel, accel=accel, rad=rad, mass=mass, ID=ID)
        try:
            valid = state.is_valid
        except AssertionError as err:
            raise ValueError(f"State is not valid: {err}") from None
        if not valid:
            raise ValueError(f"State is not valid, state={state}")

        if not bool(jnp.all(mass > 0)):
            raise ValueError("Particle masses must be strictly positive.")
        if not bool(jnp.all(rad > 0)):
            raise ValueError("Particle radii must be strictly positive.")

        return state

    def kinetic_energy(self) -> jax.Array:
        r"""Total kinetic energy :math:`\sum_i \frac{1}{2} m_i \lVert v_i \rVert^2`."""
        return _kinetic_energy(self.vel, self.mass)

    def particles(self) -> Tuple[Particle, ...]:
        """
        Every particle as an immutable :class:`Particle` record, in index order.

        The arrays are copied to the host once for the whole batch.
        """
        columns = (self.mass, self.rad, self.pos, self.vel, self.accel)
        return tuple(_record(*row) for row in zip(*(np.asarray(a).tolist() for a in columns)))

    def particle(self, i: int) -> Particle:
        """Return particle `i` as an immutable :class:`Particle` record."""
        columns = (self.mass[i], self.rad[i], self.pos[i], self.vel[i], self.accel[i])
        return _record(*(np.asarray(a).tolist() for a in columns))


def _record(mass, rad, pos, vel, accel) -> Particle:
    return Particle(
        mass=float(mass),
        radius=float(rad),
        position=(float(pos[0]), float(pos[1])),
        velocity=(float(vel[0]), float(vel[1])),
        acceleration=(float(accel[0]), float(accel[1])),
    )


__all__ = ["State", "Particle"]
