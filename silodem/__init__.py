# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
SiloDEM module
"""

from __future__ import annotations

import jax

# Steps are ~1e-7 s, displacements per step are far below float32 resolution.
jax.config.update("jax_enable_x64", True)

from .state import State, Particle
from .walls import Wall, Walls, silo_walls
from .forces import ContactForceCalculator
from .colliders import Collider
from .integrators import Integrator
from .respawn import RespawnManager
from .config import SiloConfig
from .silo import Silo, SiloSnapshot
from .writers import Writer
from .factory import Factory
from .utils import fill_silo

__all__ = [
    "State",
    "Particle",
    "Wall",
    "Walls",
    "silo_walls",
    "ContactForceCalculator",
    "Collider",
    "Integrator",
    "RespawnManager",
    "SiloConfig",
    "Silo",
    "SiloSnapshot",
    "Writer",
    "Factory",
    "fill_silo",
]
