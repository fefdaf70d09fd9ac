"""
Export functionality for simulation frames.

This module provides functions to export particle positions:
- VTK: legacy ASCII POLYDATA point clouds, one file per frame

Example usage:
    from barnes_hut import Simulation, random_particles
    from barnes_hut.export import write_vtk_frame

    store = random_particles(1000, seed=1)
    Simulation(
        store,
        steps=100,
        on_tick=lambda event: write_vtk_frame(store, "Data", event["step"]),
    ).run()
"""

from .vtk import VTK_HEADER, frame_path, to_vtk, write_vtk_frame

__all__ = [
    # VTK export
    "to_vtk",
    "write_vtk_frame",
    "frame_path",
    "VTK_HEADER",
]
