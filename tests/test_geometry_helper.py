"""Test the GeometryHelper class."""

import numpy as np
import pytest

from facet_mender.geometry_helper import GeometryHelper


def test_vertex_key_unifies_signed_zero() -> None:
    """Test that negative and positive zeros produce the same key."""
    assert GeometryHelper.vertex_key(
        np.array([-0.0, 1.0, -0.0], dtype=np.float32),
    ) == GeometryHelper.vertex_key(np.array([0.0, 1.0, 0.0], dtype=np.float32))


@pytest.mark.parametrize(
    ("first", "second"),
    [
        ([0, 0, 0], [0, 0, 1e-7]),
        ([1, 2, 3], [3, 2, 1]),
        ([0.1, 0.2, 0.3], [0.1, 0.2, 0.30000001]),
    ],
)
def test_vertex_key_distinct(first: list[float], second: list[float]) -> None:
    """Test that distinct vertices produce distinct keys."""
    assert GeometryHelper.vertex_key(
        np.array(first, dtype=np.float64),
    ) != GeometryHelper.vertex_key(np.array(second, dtype=np.float64))


@pytest.mark.parametrize(
    ("triangle", "expected"),
    [
        ([[0, 0, 0], [1, 0, 0], [0, 1, 0]], [0, 0, 1]),
        ([[0, 0, 0], [0, 1, 0], [1, 0, 0]], [0, 0, -1]),
        ([[0, 0, 0], [0, 1, 0], [0, 0, 1]], [1, 0, 0]),
        ([[0, 0, 0], [2, 0, 0], [0, 0, 5]], [0, -1, 0]),
        ([[0, 0, 0], [1, 1, 1], [2, 2, 2]], [0, 0, 0]),
        ([[1, 1, 1], [1, 1, 1], [0, 1, 0]], [0, 0, 0]),
    ],
)
def test_triangle_normals(triangle: list[list[int]], expected: list[int]) -> None:
    """Test GeometryHelper.triangle_normals."""
    normals = GeometryHelper.triangle_normals(np.array([triangle], dtype=float))
    np.testing.assert_allclose(normals[0], expected, atol=1e-12)


def test_triangle_normals_empty() -> None:
    """Test that no triangles give no normals."""
    assert GeometryHelper.triangle_normals(np.empty((0, 3, 3))).shape == (0, 3)


@pytest.mark.parametrize("dtype", [np.float32, np.float64])
def test_extended_areas(dtype: type) -> None:
    """Test that areas are computed and returned in the working precision."""
    triangles = np.array(
        [
            [[0, 0, 0], [1, 0, 0], [0, 1, 0]],
            [[0, 0, 0], [4, 0, 0], [0, 0, 3]],
        ],
        dtype=dtype,
    )
    normals = GeometryHelper.triangle_normals(triangles)
    areas = GeometryHelper.extended_areas(triangles, normals)
    assert areas.dtype == dtype
    np.testing.assert_allclose(areas, [0.5, 6.0], rtol=1e-6)


def test_extended_areas_large_coordinates() -> None:
    """Test that large offsets do not destroy the area in single precision."""
    offset = np.float32(1e4)
    triangles = np.array([[[0, 0, 0], [1, 0, 0], [0, 1, 0]]], dtype=np.float32)
    triangles[..., 2] += offset
    normals = GeometryHelper.triangle_normals(triangles)
    areas = GeometryHelper.extended_areas(triangles, normals)
    np.testing.assert_allclose(areas, [0.5], rtol=1e-3)


@pytest.mark.parametrize(
    ("points", "expected"),
    [
        ([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], [0, 0, 1]),
        ([[0, 0, 0], [0, 1, 0], [1, 1, 0], [1, 0, 0]], [0, 0, -1]),
        ([[0, 0, 0], [0, 0, 1], [0, 1, 1], [0, 1, 0]], [-1, 0, 0]),
        ([[0, 0, 0], [1, 0, 0], [2, 0, 0]], [0, 0, 0]),
    ],
)
def test_newell_normal(points: list[list[int]], expected: list[int]) -> None:
    """Test GeometryHelper.newell_normal."""
    np.testing.assert_allclose(
        GeometryHelper.newell_normal(np.array(points)),
        expected,
        atol=1e-12,
    )


@pytest.mark.parametrize(
    "normal",
    [
        [1, 0, 0],
        [0, 1, 0],
        [0, 0, -1],
        [1, 1, 1],
        [0.95, 0.1, 0.2],
    ],
)
def test_plane_basis(normal: list[float]) -> None:
    """Test that the plane basis is orthonormal and right-handed."""
    normal = np.array(normal, dtype=float)
    normal /= np.linalg.norm(normal)
    u, v = GeometryHelper.plane_basis(normal)
    assert np.isclose(np.linalg.norm(u), 1)
    assert np.isclose(np.linalg.norm(v), 1)
    assert np.isclose(np.dot(u, v), 0)
    np.testing.assert_allclose(np.cross(u, v), normal, atol=1e-12)


@pytest.mark.parametrize(
    ("point", "expected"),
    [
        ([0.25, 0.25], True),
        ([0, 0], True),
        ([0.5, 0.5], True),
        ([1, 1], False),
        ([-0.1, 0.5], False),
        ([0.5, -0.1], False),
    ],
)
def test_point_in_triangle(point: list[float], *, expected: bool) -> None:
    """Test GeometryHelper.point_in_triangle."""
    assert (
        GeometryHelper.point_in_triangle(
            np.array(point),
            np.array([0.0, 0.0]),
            np.array([1.0, 0.0]),
            np.array([0.0, 1.0]),
        )
        == expected
    )


def _signed_area(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    ab, ac = b - a, c - a
    return 0.5 * (ab[0] * ac[1] - ab[1] * ac[0])


@pytest.mark.parametrize(
    ("polygon", "expected_area"),
    [
        ([[0, 0], [1, 0], [0, 1]], 0.5),
        ([[0, 0], [1, 0], [1, 1], [0, 1]], 1.0),
        ([[0, 0], [2, 0], [2, 1], [1, 1], [1, 2], [0, 2]], 3.0),
        ([[0, 0], [4, 0], [4, 4], [2, 1], [0, 4]], 10.0),
    ],
)
def test_ear_clip(polygon: list[list[int]], expected_area: float) -> None:
    """Test that ear clipping covers the polygon with counter-clockwise triangles."""
    polygon = np.array(polygon, dtype=float)
    triangles = GeometryHelper.ear_clip(polygon)
    assert len(triangles) == len(polygon) - 2
    areas = [_signed_area(*polygon[list(triangle)]) for triangle in triangles]
    assert all(area > 0 for area in areas)
    assert np.isclose(sum(areas), expected_area)


@pytest.mark.parametrize(
    ("polygon", "message"),
    [
        ([[0, 0], [1, 0]], "Polygon needs at least 3 vertices"),
        ([[0, 0], [0, 1], [1, 1], [1, 0]], "No ear found"),
    ],
)
def test_ear_clip_invalid(polygon: list[list[int]], message: str) -> None:
    """Test that ear clipping rejects short and clockwise polygons."""
    with pytest.raises(ValueError, match=message):
        GeometryHelper.ear_clip(np.array(polygon, dtype=float))
