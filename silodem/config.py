# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
Simulation parameters and their JSON representation.
"""

from __future__ import annotations

import json
import math

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True, slots=True)
class SiloConfig:
    """
    Parameters of a silo discharge simulation, in SI units.

    Example
    -------
    >>> config = SiloConfig.load("silo.json")
    >>> config = SiloConfig(
    ...     length=0.7, width=0.3, hole=0.06,
    ...     min_diameter=0.02, max_diameter=0.03,
    ...     mass=0.01, kn=1e5, gamma=10.0, duration=5.0,
    ... )
    """

    length: float
    """Silo height :math:`L`."""

    width: float
    """Silo width :math:`W`."""

    hole: float
    """Outlet size :math:`D`."""

    min_diameter: float
    max_diameter: float

    mass: float
    """Mass of every particle."""

    kn: float
    """Normal elastic constant."""

    gamma: float
    """Normal viscous damping coefficient."""

    duration: float
    """Simulated time after which the run stops."""

    gravity: Tuple[float, float] = (0.0, -10.0)
    fill_fraction: float = 0.5
    """Fraction of the silo height, from the top, filled at start-up."""

    max_particles: Optional[int] = None
    snapshot_every: int = 1000
    """Particle data is kept in one snapshot out of this many. Runs take
    millions of steps, so keeping it every step does not fit in memory."""

    seed: int = 0

    def __post_init__(self):
        object.__setattr__(self, "gravity", tuple(float(g) for g in self.gravity))

    @property
    def min_radius(self) -> float:
        return self.min_diameter / 2

    @property
    def max_radius(self) -> float:
        return self.max_diameter / 2

    @property
    def time_step(self) -> float:
        r"""Integration step :math:`\Delta t = 10^{-3} \sqrt{m / k_n}`."""
        return 0.001 * math.sqrt(self.mass / self.kn)

    def validate(self) -> "SiloConfig":
        """
        Check every parameter. Returns the config itself so calls can be chained.

        Raises
        ------
        ValueError
            On non-positive sizes or constants, or if ``length > width > hole``
            does not hold.
        """
        for name in ("length", "width", "hole", "min_diameter", "max_diameter", "mass", "kn", "duration"):
            value = getattr(self, name)
            if not (isinstance(value, (int, float)) and value > 0):
                raise ValueError(f"{name} must be a positive number, got {value!r}")
        if not self.gamma >= 0:
            raise ValueError(f"gamma must be non-negative, got {self.gamma!r}")
        if not (self.length > self.width > self.hole):
            raise ValueError(
                f"Silo dimensions must satisfy length > width > hole, got "
                f"length={self.length}, width={self.width}, hole={self.hole}"
            )
        if self.min_diameter > self.max_diameter:
            raise ValueError(
                f"min_diameter={self.min_diameter} is larger than max_diameter={self.max_diameter}"
            )
        if len(self.gravity) != 2:
            raise ValueError(f"gravity must be a 2D vector, got {self.gravity}")
        if not (0 < self.fill_fraction <= 1):
            raise ValueError(f"fill_fraction must be in (0, 1], got {self.fill_fraction}")
        if self.max_particles is not None and self.max_particles < 1:
            raise ValueError(f"max_particles must be at least 1, got {self.max_particles}")
        if self.snapshot_every < 1:
            raise ValueError(f"snapshot_every must be at least 1, got {self.snapshot_every}")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiloConfig":
        """
        Build a config from a mapping of field names to values.

        Raises
        ------
        KeyError
            If `data` contains a key that is not a config field.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise KeyError(f"Unknown config key(s) {unknown}. Known keys: {sorted(known)}")
        return cls(**data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SiloConfig":
        """Read a config from a JSON file."""
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["gravity"] = list(self.gravity)
        return data

    def save(self, path: Union[str, Path]) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)


__all__ = ["SiloConfig"]
