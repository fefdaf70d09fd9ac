"""Tests for VTK frame export."""

import pytest

from barnes_hut import ParticleStore
from barnes_hut.export import VTK_HEADER, frame_path, to_vtk, write_vtk_frame

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store():
    """Three particles with distinct coordinates."""
    return ParticleStore(
        [1.0, 1.0, 2.0],
        [(0.0, 0.0, 0.0), (1.5, -2.25, 3.0), (1e-3, 1e6, -0.5)],
    )


# =============================================================================
# VTK Export Tests
# =============================================================================


class TestToVtk:
    """Tests for legacy VTK export."""

    def test_header(self, store):
        """File starts with the legacy header block."""
        lines = to_vtk(store).splitlines()
        assert lines[0] == VTK_HEADER == "# vtk DataFile Version 5.1"
        assert lines[1] == "vtk output"
        assert lines[2] == "ASCII"
        assert lines[3] == "DATASET POLYDATA"
        assert lines[4] == "POINTS 3 double"

    def test_points(self, store):
        """One line of coordinates per particle."""
        lines = to_vtk(store).splitlines()
        points = [tuple(float(v) for v in line.split()) for line in lines[5:]]
        assert points == [(0.0, 0.0, 0.0), (1.5, -2.25, 3.0), (1e-3, 1e6, -0.5)]

    def test_full_precision(self):
        """Coordinates round-trip exactly through the text."""
        value = 0.1 + 0.2
        out = to_vtk(ParticleStore([1.0], [(value, 0.0, 0.0)]))
        assert float(out.splitlines()[5].split()[0]) == value

    def test_trailing_newline(self, store):
        """Output ends with a newline."""
        assert to_vtk(store).endswith("\n")

    def test_custom_title(self, store):
        """Title replaces the second header line and stays on one line."""
        lines = to_vtk(store, title="step 5\nof 10").splitlines()
        assert lines[1] == "step 5 of 10"
        assert lines[2] == "ASCII"

    def test_empty_store(self):
        """Empty store writes zero points."""
        lines = to_vtk(ParticleStore.empty()).splitlines()
        assert lines[-1] == "POINTS 0 double"


class TestWriteFrame:
    """Tests for per-frame files."""

    def test_frame_path(self, tmp_path):
        """Frame files are named datafile_<n>.vtk."""
        assert frame_path(tmp_path, 12) == tmp_path / "datafile_12.vtk"
        assert frame_path("Data", 0).name == "datafile_0.vtk"

    def test_write_creates_directory(self, store, tmp_path):
        """Missing output directory is created."""
        out_dir = tmp_path / "Data"
        path = write_vtk_frame(store, out_dir, 3)
        assert path == out_dir / "datafile_3.vtk"
        assert path.read_text(encoding="ascii") == to_vtk(store)

    def test_overwrite(self, store, tmp_path):
        """Writing the same frame twice replaces the file."""
        write_vtk_frame(store, tmp_path, 0)
        path = write_vtk_frame(ParticleStore.empty(), tmp_path, 0)
        assert "POINTS 0 double" in path.read_text(encoding="ascii")
