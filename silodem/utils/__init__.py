# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Geometry helpers and the initial particle provider."""

from .geometry import norm, overlap, project_onto_wall, unit
from .provider import fill_silo

__all__ = ["norm", "overlap", "project_onto_wall", "unit", "fill_silo"]
