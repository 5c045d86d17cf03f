# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Kinetic energy and flow log writer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Sequence, Union

from . import Writer

if TYPE_CHECKING:  # pragma: no cover
    from ..silo import SiloSnapshot


@Writer.register("physics")
@dataclass(slots=True, frozen=True)
class PhysicsWriter(Writer):
    """
    Writes the per-step kinetic energy and flow as two array literals that
    MATLAB, Octave or Python can read back directly:

    .. code-block:: text

        kineticEnergy = [e0, e1, ...];
        flow = [n0, n1, ...];

    `flow` is the number of particles that left the silo during each step.
    """

    def save(
        self, snapshots: Sequence["SiloSnapshot"], path: Union[str, Path]
    ) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        energy = ", ".join(str(float(s.kinetic_energy)) for s in snapshots)
        flow = ", ".join(str(int(s.new_exits)) for s in snapshots)
        with open(path, "w") as f:
            f.write(f"kineticEnergy = [{energy}];\n")
            f.write(f"flow = [{flow}];\n")
        return path


__all__ = ["PhysicsWriter"]
