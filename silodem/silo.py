# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
The silo: owns the particles and walls and advances them step by step.
"""

from __future__ import annotations

import logging

import jax
import jax.numpy as jnp

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .colliders import Collider
from .config import SiloConfig
from .forces import ContactForceCalculator
from .integrators import Integrator
from .respawn import RespawnManager
from .state import Particle, State
from .utils.provider import fill_silo
from .walls import Walls, silo_walls

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class SiloSnapshot:
    """
    Immutable copy of the silo after one step, handed to the writers.
    """

    step: int
    time: float
    walls: Tuple[Tuple[Point, Point], ...]
    """Wall endpoints as ``(start, end)`` pairs, in the order left, right, bottom-left, bottom-right, top."""

    particles: Optional[Tuple[Particle, ...]]
    """Every particle, or ``None`` when this snapshot carries no particle data."""

    kinetic_energy: float
    new_exits: int
    """Particles that left the silo during this step."""

    total_exits: int
    total_respawns: int
    outside: int
    """Particles that left the silo and have not been recycled yet."""


@dataclass(slots=True)
class Silo:
    r"""
    A 2D silo discharging through a hole in its bottom, with the particles that
    fall out recycled on top of the pile.

    Each :meth:`update` integrates one step of size
    :math:`\Delta t = 10^{-3} \sqrt{m / k_n}`, measures the kinetic energy and
    the particles that crossed the outlet plane ``y = 0``, and recycles
    particles that fell far enough.

    Exits and respawns are tracked by two separate monotonic counters. A
    particle counts as exited once, when it first goes below ``y = 0``, and
    can only exit again after being respawned.

    Example
    -------
    >>> silo = Silo.create(SiloConfig.load("silo.json"))
    >>> while not silo.should_stop():
    ...     silo.update()
    ...     print(silo.kinetic_energy, silo.new_exits)
    """

    config: SiloConfig
    walls: Walls
    contact: ContactForceCalculator
    integrator: Integrator
    collider: Collider
    respawner: RespawnManager
    gravity: jax.Array
    dt: float
    state: State
    key: jax.Array

    time: float = 0.0
    step_count: int = 0
    kinetic_energy: float = 0.0
    new_exits: int = 0
    total_exits: int = 0
    total_respawns: int = 0
    exited: jax.Array = field(default=None)
    """Per-particle flag, true once a particle went below the outlet and until it is respawned."""

    wall_endpoints: Tuple[Tuple[Point, Point], ...] = ()
    """Wall endpoints, shared by every snapshot."""

    _clean: bool = True

    @staticmethod
    def create(
        config: SiloConfig,
        *,
        seed: Optional[int] = None,
        key: Optional[jax.Array] = None,
        state: Optional[State] = None,
        integrator: str = "beeman",
        collider: str = "naive",
    ) -> "Silo":
        """
        Build a silo from a validated `config`.

        Parameters
        ----------
        config : SiloConfig
            Simulation parameters.
        seed : int, optional
            Overrides ``config.seed``.
        key : jax.Array, optional
            PRNG key; takes precedence over any seed.
        state : State, optional
            Initial particles. By default the silo is filled with
            :func:`silodem.utils.fill_silo`. :meth:`restart` always refills.
        integrator, collider : str, optional
            Registry keys of the integrator and the collider.

        Raises
        ------
        ValueError
            If the config is invalid.
        KeyError
            If `integrator` or `collider` is not registered.
        """
        config.validate()

        if key is None:
            key = jax.random.PRNGKey(config.seed if seed is None else seed)

        walls = Walls.create(silo_walls(config.length, config.width, config.hole))
        contact = ContactForceCalculator.create(config.kn, config.gamma)
        gravity = jnp.asarray(config.gravity, dtype=float)

        collider_kw = {}
        if collider.lower() == "celllist":
            collider_kw = dict(min_radius=config.min_radius, max_radius=config.max_radius)

        if state is None:
            key, subkey = jax.random.split(key)
            state = _fill(config, subkey)

        silo = Silo(
            config=config,
            walls=walls,
            contact=contact,
            integrator=Integrator.create(integrator).initialize(state, gravity),
            collider=Collider.create(collider, **collider_kw),
            respawner=RespawnManager(length=config.length, width=config.width),
            gravity=gravity,
            dt=config.time_step,
            state=state,
            key=key,
            kinetic_energy=float(state.kinetic_energy()),
            exited=state.pos[:, 1] < 0,
            wall_endpoints=tuple((w.start, w.end) for w in walls),
        )
        logger.info(
            "Created silo %gx%g with hole %g: %d particles, dt=%.3e, %s integrator, %s collider",
            config.width,
            config.length,
            config.hole,
            state.N,
            silo.dt,
            integrator,
            collider,
        )
        return silo

    @property
    def N(self) -> int:
        return self.state.N

    @property
    def outside(self) -> int:
        """Particles that left the silo and have not been recycled yet."""
        return int(jnp.sum(self.exited))

    def update(self) -> None:
        """Advance the simulation by one time step."""
        state, self.integrator = self.integrator.step(
            self.state, self.contact, self.walls, self.gravity, self.dt, self.collider
        )
        self.kinetic_energy = float(state.kinetic_energy())

        crossed = (state.pos[:, 1] < 0) & ~self.exited
        self.new_exits = int(jnp.sum(crossed))
        self.total_exits += self.new_exits
        exited = self.exited | crossed

        self.key, subkey = jax.random.split(self.key)
        state, respawned, count = self.respawner.respawn(state, subkey, self.gravity)
        if count:
            self.integrator = self.integrator.reset(respawned, self.gravity)
            exited = exited & ~respawned
            self.total_respawns += count

        self.state = state
        self.exited = exited
        self.time += self.dt
        self.step_count += 1
        self._clean = False

    def restart(self) -> None:
        """
        Start over with a fresh set of particles. Does nothing if the silo
        has not been advanced since it was created or last restarted.
        """
        if self._clean:
            return

        self.key, subkey = jax.random.split(self.key)
        self.state = _fill(self.config, subkey)
        self.integrator = self.integrator.initialize(self.state, self.gravity)
        self.exited = self.state.pos[:, 1] < 0

        self.time = 0.0
        self.step_count = 0
        self.kinetic_energy = float(self.state.kinetic_energy())
        self.new_exits = 0
        self.total_exits = 0
        self.total_respawns = 0
        self._clean = True
        logger.info("Silo restarted with %d particles", self.N)

    def should_stop(self) -> bool:
        return self.time > self.config.duration

    def snapshot(self, *, with_particles: Optional[bool] = None) -> SiloSnapshot:
        """
        Immutable copy of the current step.

        Particle data is included every ``config.snapshot_every`` steps, or
        according to `with_particles` when given.
        """
        if with_particles is None:
            with_particles = self.step_count % self.config.snapshot_every == 0

        particles = self.state.particles() if with_particles else None

        return SiloSnapshot(
            step=self.step_count,
            time=self.time,
            walls=self.wall_endpoints,
            particles=particles,
            kinetic_energy=self.kinetic_energy,
            new_exits=self.new_exits,
            total_exits=self.total_exits,
            total_respawns=self.total_respawns,
            outside=self.outside,
        )

    def run(
        self, callback: Optional[Callable[["Silo"], None]] = None
    ) -> List[SiloSnapshot]:
        """
        Call :meth:`update` until :meth:`should_stop`, taking a snapshot after
        every step. `callback` is called with the silo after each step.
        """
        snapshots = []
        while not self.should_stop():
            self.update()
            snapshots.append(self.snapshot())
            if callback is not None:
                callback(self)

        logger.info(
            "Finished after %d steps (t=%.4f s): %d exits, %d respawns",
            self.step_count,
            self.time,
            self.total_exits,
            self.total_respawns,
        )
        return snapshots


def _fill(config: SiloConfig, key: jax.Array) -> State:
    return fill_silo(
        key,
        width=config.width,
        length=config.length,
        min_radius=config.min_radius,
        max_radius=config.max_radius,
        mass=config.mass,
        fill_fraction=config.fill_fraction,
        max_particles=config.max_particles,
    )


__all__ = ["Silo", "SiloSnapshot"]
