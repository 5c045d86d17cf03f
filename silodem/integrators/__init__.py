# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Time-integration interfaces and implementations."""

from __future__ import annotations

import jax

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

from ..factory import Factory

if TYPE_CHECKING:  # pragma: no cover
    from ..state import State
    from ..forces import ContactForceCalculator
    from ..walls import Walls
    from ..colliders import Collider


@jax.tree_util.register_dataclass
@dataclass(slots=True)
class Integrator(Factory, ABC):
    """
    Abstract base class for time-stepping schemes.

    Integrators are immutable pytrees. Any per-particle history they need is
    stored in arrays indexed like the :class:`State`, and every method returns
    a new integrator instead of mutating this one.

    Example
    -------
    To define a custom integrator, inherit from :class:`Integrator` and implement its abstract methods:

    >>> @Integrator.register("myCustomIntegrator")
    >>> @jax.tree_util.register_dataclass
    >>> @dataclass(slots=True)
    >>> class MyCustomIntegrator(Integrator):
            ...
    """

    @abstractmethod
    def initialize(self, state: "State", gravity: jax.Array) -> "Integrator":
        """
        Register every particle of `state`, discarding any previous history.

        Called once after construction and again whenever the particle set is
        replaced.
        """
        raise NotImplementedError

    @abstractmethod
    def step(
        self,
        state: "State",
        contact: "ContactForceCalculator",
        walls: "Walls",
        gravity: jax.Array,
        dt: jax.Array,
        collider: "Collider",
    ) -> Tuple["State", "Integrator"]:
        """
        Advance every particle by one time step.

        Parameters
        ----------
        state : State
            Committed state at the start of the step.
        contact : ContactForceCalculator
            Contact law.
        walls : Walls
            Rigid walls.
        gravity : jax.Array
            Gravitational acceleration, shape ``(2,)``.
        dt : jax.Array
            Time step.
        collider : Collider
            Neighbor detection.

        Returns
        -------
        Tuple[State, Integrator]
            The committed state after the step and the integrator carrying the
            updated history.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, mask: jax.Array, gravity: jax.Array) -> "Integrator":
        """
        Forget the history of the particles selected by the boolean `mask`,
        as if they had just been registered.
        """
        raise NotImplementedError


from .beeman import Beeman

__all__ = ["Integrator", "Beeman"]
