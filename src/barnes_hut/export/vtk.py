"""
Legacy VTK export of particle positions.

Writes one ASCII POLYDATA file per frame containing a POINTS block, which
ParaView and other VTK readers load directly as a point cloud.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ..particles import ParticleStore


VTK_HEADER = "# vtk DataFile Version 5.1"


def to_vtk(store: ParticleStore, *, title: str = "vtk output") -> str:
    """
    Export current particle positions to legacy VTK format.

    Args:
        store: Particle store
        title: Second header line (free text, single line)

    Returns:
        VTK file content as a string
    """
    positions = store.positions
    lines = [
        VTK_HEADER,
        title.replace("\n", " "),
        "ASCII",
        "DATASET POLYDATA",
        f"POINTS {len(positions)} double",
    ]
    lines.extend(f"{x!r} {y!r} {z!r}" for x, y, z in positions.tolist())
    return "\n".join(lines) + "\n"


def frame_path(directory: Union[str, Path], frame: int) -> Path:
    """Path of a frame file: <directory>/datafile_<frame>.vtk."""
    return Path(directory) / f"datafile_{frame}.vtk"


def write_vtk_frame(store: ParticleStore, directory: Union[str, Path], frame: int) -> Path:
    """
    Write the current positions as one frame file.

    Args:
        store: Particle store
        directory: Output directory (created if missing)
        frame: Frame number used in the file name

    Returns:
        Path of the written file
    """
    path = frame_path(directory, frame)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_vtk(store), encoding="ascii")
    return path


__all__ = ["frame_path", "to_vtk", "write_vtk_frame"]
