# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
Interface for writing a sequence of silo snapshots to disk.

Concrete writers: ``"ovito"`` (trajectory for OVITO), ``"physics"`` (kinetic
energy and flow log) and ``"vtk"`` (ParaView PolyData files).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Sequence, Union

from ..factory import Factory

if TYPE_CHECKING:  # pragma: no cover
    from ..silo import SiloSnapshot


@dataclass(slots=True, frozen=True)
class Writer(Factory, ABC):
    """
    Abstract base class for writers that serialize silo snapshots.

    Example
    -------
    To define a custom writer, inherit from `Writer` and implement its abstract methods:

    >>> @Writer.register("my_custom_writer")
    >>> @dataclass(slots=True, frozen=True)
    >>> class MyCustomWriter(Writer):
            ...

    >>> silodem.Writer.create("physics").save(snapshots, "physics.txt")
    """

    @abstractmethod
    def save(
        self, snapshots: Sequence["SiloSnapshot"], path: Union[str, Path]
    ) -> Path:
        """
        Write `snapshots`, in order, to `path`.

        Parameters
        ----------
        snapshots : Sequence[SiloSnapshot]
            Snapshots returned by :meth:`silodem.Silo.run`.
        path : str or Path
            Target file or directory, depending on the writer. Missing parent
            directories are created.

        Returns
        -------
        Path
            The path that was written.
        """
        raise NotImplementedError


from .ovitoWriter import OvitoWriter
from .physicsWriter import PhysicsWriter
from .vtkSiloWriter import VTKSiloWriter

__all__ = ["Writer", "OvitoWriter", "PhysicsWriter", "VTKSiloWriter"]
