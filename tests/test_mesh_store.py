"""Test the MeshStore and MeshStats classes."""

import numpy as np
import pytest
import trimesh

from facet_mender.mesh_store import MeshStats, MeshStore


def _box_arrays(dtype: type = np.float32) -> tuple[np.ndarray, np.ndarray]:
    mesh = trimesh.creation.box()
    return (
        np.asarray(mesh.triangles, dtype=dtype),
        np.asarray(mesh.face_normals, dtype=dtype),
    )


def test_mesh_store_init() -> None:
    """Test that the MeshStore class can be initialized."""
    store = MeshStore()
    assert store.facet_count == 0
    assert store.fault is None
    store = MeshStore(*_box_arrays())
    assert store.facet_count == 12
    assert len(store.neighbors) == 12


@pytest.mark.parametrize("dtype", [np.float32, np.float64])
def test_round_trip(dtype: type) -> None:
    """Test that exporting an unrepaired store reproduces the input exactly."""
    vertices, normals = _box_arrays(dtype)
    store = MeshStore.from_arrays(vertices, normals)
    exported_vertices, exported_normals = store.to_arrays()
    assert exported_vertices.dtype == dtype
    np.testing.assert_array_equal(exported_vertices, vertices)
    np.testing.assert_array_equal(exported_normals, normals)


def test_round_trip_facets() -> None:
    """Test that facets survive a trip through the store."""
    store = MeshStore.from_arrays(*_box_arrays())
    facets = store.to_facets()
    assert len(facets) == 12
    copy = MeshStore.from_facets(facets)
    np.testing.assert_array_equal(copy.vertices, store.vertices)
    np.testing.assert_array_equal(copy.normals, store.normals)


def test_export_is_a_copy() -> None:
    """Test that changing exported arrays leaves the store untouched."""
    store = MeshStore.from_arrays(*_box_arrays())
    vertices, _ = store.to_arrays()
    vertices[0, 0] = 100
    assert store.vertices[0, 0, 0] != 100


def test_integer_input_is_single_precision() -> None:
    """Test that non-float coordinates are stored as float32."""
    store = MeshStore.from_arrays([[[0, 0, 0], [1, 0, 0], [0, 1, 0]]])
    assert store.vertices.dtype == np.float32
    np.testing.assert_array_equal(store.normals, [[0, 0, 1]])


@pytest.mark.parametrize(
    ("vertices", "normals", "expected_count", "message"),
    [
        (np.zeros((2, 3)), None, None, "shape"),
        (np.zeros((2, 4, 3)), None, None, "shape"),
        (np.zeros((2, 3, 3)), None, 3, "Expected 3 facets"),
        (np.full((1, 3, 3), np.nan), None, None, "non-finite"),
        (np.full((1, 3, 3), np.inf), None, None, "non-finite"),
        (np.zeros((2, 3, 3)), np.zeros((3, 3)), None, "normals"),
    ],
)
def test_load_fault(
    vertices: np.ndarray,
    normals: np.ndarray | None,
    expected_count: int | None,
    message: str,
) -> None:
    """Test that malformed input leaves an empty, faulted store."""
    store = MeshStore()
    assert not store.load(vertices, normals, expected_count=expected_count)
    assert store.fault is not None
    assert message in store.fault
    assert store.facet_count == 0


def test_load_clears_fault() -> None:
    """Test that a successful load clears a previous fault."""
    store = MeshStore(np.zeros((2, 3)))
    assert store.fault is not None
    assert store.load(*_box_arrays())
    assert store.fault is None
    assert store.facet_count == 12


def test_initial_stats() -> None:
    """Test the statistics of an untouched unit box."""
    stats = MeshStore.from_arrays(*_box_arrays()).initial_stats()
    assert stats.number_of_facets == 12
    assert stats.original_number_of_facets == 12
    assert stats.min == (-0.5, -0.5, -0.5)
    assert stats.max == (0.5, 0.5, 0.5)
    assert stats.size == (1.0, 1.0, 1.0)
    assert np.isclose(stats.bounding_diameter, np.sqrt(3))
    assert stats.shortest_edge == 1.0
    # No matching has happened yet
    assert stats.connected_facets_1_edge == 0
    assert stats.facets_w_3_bad_edge == 12


def test_shortest_edge_skips_zero_length() -> None:
    """Test that zero length edges don't become the shortest edge."""
    store = MeshStore.from_arrays(
        [
            [[0, 0, 0], [0, 0, 0], [0, 2, 0]],
            [[0, 0, 0], [3, 0, 0], [0, 4, 0]],
        ],
    )
    assert store.initial_stats().shortest_edge == 2.0


@pytest.mark.parametrize(
    ("degrees", "expected"),
    [
        ([3, 3, 3], (3, 3, 3, 0, 0, 0)),
        ([3, 2, 1, 0, 3], (4, 3, 2, 1, 1, 1)),
        ([0, 0], (0, 0, 0, 0, 0, 2)),
        ([2, 2, 1], (3, 2, 0, 2, 1, 0)),
    ],
)
def test_with_connectivity(degrees: list[int], expected: tuple[int, ...]) -> None:
    """Test that the connectivity counters follow the degree histogram."""
    stats = MeshStats().with_connectivity(np.array(degrees), backwards_edges=1)
    assert (
        stats.connected_facets_1_edge,
        stats.connected_facets_2_edge,
        stats.connected_facets_3_edge,
        stats.facets_w_1_bad_edge,
        stats.facets_w_2_bad_edge,
        stats.facets_w_3_bad_edge,
    ) == expected
    assert stats.number_of_facets == len(degrees)
    assert stats.backwards_edges == 1
    assert stats.fully_connected == (expected[2] == len(degrees))


def test_replace_vertex() -> None:
    """Test that every copy of a vertex is moved."""
    store = MeshStore.from_arrays(*_box_arrays())
    moved = store.replace_vertex(np.array([-0.5, -0.5, -0.5]), np.array([-1, -1, -1]))
    assert moved == 4
    assert not np.any(np.all(store.vertices == -0.5, axis=2))
    assert np.sum(np.all(store.vertices == -1, axis=2)) == 4


def test_reverse_facet() -> None:
    """Test that reversing swaps the first two vertices and negates the normal."""
    vertices, normals = _box_arrays()
    store = MeshStore.from_arrays(vertices, normals)
    store.reverse_facet(3)
    np.testing.assert_array_equal(store.vertices[3], vertices[3][[1, 0, 2]])
    np.testing.assert_array_equal(store.normals[3], -normals[3])
    np.testing.assert_array_equal(store.vertices[4], vertices[4])


def test_append_and_compact() -> None:
    """Test that facets are appended and compacted with the neighbor table."""
    vertices, normals = _box_arrays()
    store = MeshStore.from_arrays(vertices[:2], normals[:2])
    store.append(vertices[2:4], normals[2:4])
    assert store.facet_count == 4
    assert len(store.neighbors) == 4
    store.compact(np.array([True, False, True, False]))
    assert store.facet_count == 2
    assert len(store.neighbors) == 2
    np.testing.assert_array_equal(store.vertices, vertices[[0, 2]])
