"""Test the MeshGenerator and Visualizer classes."""

import numpy as np
import pytest
import pyvista as pv
import trimesh

from facet_mender.data_factory import DataFactory
from facet_mender.facet_mender import FacetMender
from facet_mender.mesh_generator import MeshGenerator
from facet_mender.mesh_store import MeshStore
from facet_mender.visualizer import Visualizer


@pytest.mark.parametrize(
    "mesh",
    [
        trimesh.creation.box(),
        trimesh.creation.icosphere(),
        trimesh.creation.cylinder(radius=1, height=2),
    ],
)
def test_from_trimesh(mesh: trimesh.Trimesh) -> None:
    """Test that every face becomes a facet in the same order."""
    store = MeshGenerator.from_trimesh(mesh)
    assert store.fault is None
    assert store.facet_count == len(mesh.faces)
    assert store.vertices.dtype == np.float32
    np.testing.assert_allclose(store.vertices, mesh.triangles, atol=1e-6)

    report = FacetMender(store).repair(exact=True)
    assert report.stats.fully_connected
    assert report.stats.volume == pytest.approx(mesh.volume, rel=1e-5)


def test_from_trimesh_double_precision() -> None:
    """Test that the working precision can be chosen."""
    mesh = trimesh.creation.box()
    store = MeshGenerator.from_trimesh(mesh, dtype=np.float64)
    assert store.vertices.dtype == np.float64
    np.testing.assert_array_equal(store.vertices, mesh.triangles)


def test_to_trimesh() -> None:
    """Test that a store converts to an unmerged indexed mesh."""
    store = DataFactory.cube()
    mesh = MeshGenerator.to_trimesh(store)
    assert mesh.faces.shape == (12, 3)
    assert len(mesh.vertices) == 36
    np.testing.assert_array_equal(mesh.triangles, store.vertices)
    assert mesh.volume == pytest.approx(1.0)

    round_trip = MeshGenerator.from_trimesh(mesh)
    np.testing.assert_array_equal(round_trip.vertices, store.vertices)


def test_to_trimesh_repaired_is_watertight() -> None:
    """Test that a repaired store is watertight once vertices are merged."""
    store = DataFactory.cube_missing_facet()
    before = MeshGenerator.to_trimesh(store)
    before.merge_vertices()
    assert not before.is_watertight

    FacetMender(store).repair(fix_all=True)
    mesh = MeshGenerator.to_trimesh(store)
    mesh.merge_vertices()
    assert mesh.is_watertight
    assert mesh.is_winding_consistent


@pytest.mark.slow
def test_from_voxels() -> None:
    """Test that a labeled voxel block gives a closed surface."""
    store = MeshGenerator.from_voxels(DataFactory.voxel_block())
    assert store.fault is None
    assert store.facet_count > 0
    report = FacetMender(store).repair(fix_all=True)
    assert report.stats.volume > 0


def test_to_polydata() -> None:
    """Test that every facet becomes a triangle cell with its own points."""
    mesh = Visualizer.to_polydata(DataFactory.cube())
    assert mesh.n_cells == 12
    assert mesh.n_points == 36
    assert mesh.is_all_triangles


@pytest.mark.parametrize(
    ("store", "expected_lines"),
    [
        (DataFactory.cube(), 0),
        (DataFactory.cube_missing_facet(), 3),
        (DataFactory.open_box(), 4),
    ],
)
def test_boundary_lines(store: MeshStore, expected_lines: int) -> None:
    """Test that one line is drawn per unmatched edge of a matched store."""
    FacetMender(store).repair(exact=True)
    lines = Visualizer.boundary_lines(store)
    assert isinstance(lines, pv.PolyData)
    assert lines.n_cells == expected_lines


@pytest.mark.slow
def test_show_store() -> None:
    """Test that a scene is built without opening a window."""
    store = DataFactory.open_box()
    FacetMender(store).repair(exact=True)
    plotter = Visualizer.show_store(
        store,
        highlight_facets=[0, 1],
        add_face_normals=True,
        add_face_labels=True,
        show=False,
    )
    assert isinstance(plotter, pv.Plotter)
    plotter.close()
