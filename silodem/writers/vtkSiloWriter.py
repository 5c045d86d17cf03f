# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""VTK PolyData writer for particles and walls."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List, Sequence, Tuple, Union

import numpy as np
import vtk
import vtk.util.numpy_support as vtk_np
import xml.etree.ElementTree as ET

from . import Writer

if TYPE_CHECKING:  # pragma: no cover
    from ..silo import SiloSnapshot


def _pad3(arr: np.ndarray) -> np.ndarray:
    # VTK points and vectors are always 3D
    return np.pad(arr, ((0, 0), (0, 1)), "constant")


def _write_poly(poly: vtk.vtkPolyData, filename: Path, binary: bool) -> None:
    writer = vtk.vtkXMLPolyDataWriter()
    writer.SetFileName(str(filename))
    writer.SetInputData(poly)
    if binary:
        writer.SetDataModeToAppended()
        compressor = vtk.vtkZLibDataCompressor()
        writer.SetCompressor(compressor)
    else:
        writer.SetDataModeToAscii()
    ok = writer.Write()
    if ok != 1:
        raise RuntimeError(f"VTK writer failed to write {filename}")


@Writer.register("vtk")
@dataclass(slots=True, frozen=True)
class VTKSiloWriter(Writer):
    """
    Writes a directory of ParaView files:

    - ``particles_XXXXXXXX.vtp``, one per snapshot that carries particle data,
      with disk centers as points and ``vel``, ``rad``, ``mass`` and ``ID``
      point arrays,
    - ``walls.vtp`` with one line cell per wall,
    - ``particles.pvd``, a time collection of the particle files.

    2D positions and velocities are padded to 3D as required by VTK.
    """

    binary: bool = True
    """Write compressed binary files instead of ASCII."""

    collection: bool = True
    """Also write the ``.pvd`` time collection."""

    @staticmethod
    def particles(snapshot: "SiloSnapshot") -> vtk.vtkPolyData:
        particles = snapshot.particles or ()
        n = len(particles)
        pos = np.array([p.position for p in particles], dtype=float).reshape(n, 2)
        vel = np.array([p.velocity for p in particles], dtype=float).reshape(n, 2)
        data = {
            "vel": _pad3(vel),
            "rad": np.array([p.radius for p in particles], dtype=float),
            "mass": np.array([p.mass for p in particles], dtype=float),
            "ID": np.arange(n, dtype=np.int64),
        }

        poly = vtk.vtkPolyData()
        points = vtk.vtkPoints()
        points.SetData(vtk_np.numpy_to_vtk(_pad3(pos), deep=True))
        poly.SetPoints(points)

        for name, arr in data.items():
            vtk_arr = vtk_np.numpy_to_vtk(arr, deep=True)
            vtk_arr.SetName(name)
            poly.GetPointData().AddArray(vtk_arr)
        return poly

    @staticmethod
    def walls(segments: Sequence[Tuple]) -> vtk.vtkPolyData:
        points = vtk.vtkPoints()
        lines = vtk.vtkCellArray()
        for start, end in segments:
            a = points.InsertNextPoint(start[0], start[1], 0.0)
            b = points.InsertNextPoint(end[0], end[1], 0.0)
            line = vtk.vtkLine()
            line.GetPointIds().SetId(0, a)
            line.GetPointIds().SetId(1, b)
            lines.InsertNextCell(line)

        poly = vtk.vtkPolyData()
        poly.SetPoints(points)
        poly.SetLines(lines)
        return poly

    def save(
        self, snapshots: Sequence["SiloSnapshot"], path: Union[str, Path]
    ) -> Path:
        directory = Path(path)
        directory.mkdir(parents=True, exist_ok=True)

        written: List[Tuple[float, str]] = []
        for snapshot in snapshots:
            if snapshot.particles is None:
                continue
            name = f"particles_{snapshot.step:08d}.vtp"
            _write_poly(self.particles(snapshot), directory / name, self.binary)
            written.append((snapshot.time, name))

        if snapshots:
            _write_poly(
                self.walls(snapshots[0].walls), directory / "walls.vtp", self.binary
            )

        if self.collection and written:
            vtk_file_element = ET.Element(
                "VTKFile",
                type="Collection",
                version="0.1",
                byte_order="LittleEndian",
            )
            collection_element = ET.SubElement(vtk_file_element, "Collection")
            for t, name in written:
                ET.SubElement(
                    collection_element,
                    "DataSet",
                    timestep=format(t, ".12g"),
                    file=name,
                )
            ET.ElementTree(vtk_file_element).write(
                directory / "particles.pvd", encoding="utf-8", xml_declaration=True
            )

        return directory


__all__ = ["VTKSiloWriter"]
