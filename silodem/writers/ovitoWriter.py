# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""Extended XYZ trajectory writer for OVITO."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List, Sequence, Union

from . import Writer

if TYPE_CHECKING:  # pragma: no cover
    from ..silo import SiloSnapshot

WALL_RADIUS = 0.005


@Writer.register("ovito")
@dataclass(slots=True, frozen=True)
class OvitoWriter(Writer):
    """
    Writes every snapshot that carries particle data as one frame of a
    whitespace separated trajectory file.

    Each frame is

    .. code-block:: text

        <N + 2 * number of walls>
        <frame index>
        x y vx vy r 1 1 1          (one line per particle)
        x y 0 0 0.005 1 0 0        (one line per wall endpoint)

    The last three columns are an RGB colour, so particles render white and
    wall endpoints red. Frame indices count written frames from zero.
    """

    @staticmethod
    def frame(snapshot: "SiloSnapshot", index: int) -> str:
        particles = snapshot.particles or ()
        lines: List[str] = [str(len(particles) + 2 * len(snapshot.walls)), str(index)]
        for p in particles:
            x, y = p.position
            vx, vy = p.velocity
            lines.append(f"{x} {y} {vx} {vy} {p.radius} 1 1 1")
        for start, end in snapshot.walls:
            for x, y in (start, end):
                lines.append(f"{x} {y} 0 0 {WALL_RADIUS} 1 0 0")
        return "\n".join(lines) + "\n"

    def save(
        self, snapshots: Sequence["SiloSnapshot"], path: Union[str, Path]
    ) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        frames = (s for s in snapshots if s.particles is not None)
        with open(path, "w") as f:
            for index, snapshot in enumerate(frames):
                f.write(self.frame(snapshot, index))
        return path


__all__ = ["OvitoWriter"]
