"""Provides a class containing helper functions for geometry calculations."""

import numpy as np
import trimesh
from numpy.typing import NDArray


class GeometryHelper:
    """A class containing helper functions for geometry calculations."""

    @staticmethod
    def vertex_key(vertex: NDArray) -> bytes:
        """Get the exact lookup key of a vertex.

        Positive and negative zeros compare equal as floats but not as raw bytes, so
        every ``-0.0`` is unified to ``+0.0`` before the bytes are taken.

        Parameters
        ----------
        vertex : NDArray
            The (x, y, z) coordinates of the vertex.

        Returns
        -------
        bytes
            The raw bytes of the coordinates.
        """
        return (np.asarray(vertex) + 0.0).tobytes()

    @staticmethod
    def triangle_normals(triangles: NDArray) -> NDArray[np.float64]:
        """Compute the unit normal of each triangle from its winding.

        Parameters
        ----------
        triangles : NDArray
            An (n, 3, 3) array of triangle vertices.

        Returns
        -------
        NDArray[np.float64]
            An (n, 3) array of unit normals. Degenerate triangles get a zero vector.
        """
        triangles = np.asarray(triangles, dtype=np.float64).reshape((-1, 3, 3))
        result = np.zeros((len(triangles), 3), dtype=np.float64)
        if len(triangles) == 0:
            return result
        normals, valid = trimesh.triangles.normals(triangles)
        result[valid] = normals
        return result

    @staticmethod
    def extended_areas(triangles: NDArray, normals: NDArray) -> NDArray:
        """Compute triangle areas with the cross products in extended precision.

        Large coordinates can overflow the cross products in the working precision,
        which in turn yields a wrong volume and a wrong global reversal. The products
        are summed in a wider type and narrowed back before the final projection.

        Parameters
        ----------
        triangles : NDArray
            An (n, 3, 3) array of triangle vertices in the working precision.
        normals : NDArray
            An (n, 3) array of unit normals computed from the winding.

        Returns
        -------
        NDArray
            An (n,) array of areas in the working precision.
        """
        working = np.asarray(triangles).dtype
        extended = np.longdouble if working == np.float64 else np.float64
        vertices = np.asarray(triangles, dtype=extended)
        cross_sum = (
            np.cross(vertices[:, 0], vertices[:, 1])
            + np.cross(vertices[:, 1], vertices[:, 2])
            + np.cross(vertices[:, 2], vertices[:, 0])
        )
        with np.errstate(over="ignore", invalid="ignore"):
            narrowed = cross_sum.astype(working)
            return 0.5 * np.sum(np.asarray(normals, dtype=working) * narrowed, axis=1)

    @staticmethod
    def newell_normal(points: NDArray) -> NDArray[np.float64]:
        """Compute the unit normal of a closed polygon using Newell's method.

        Parameters
        ----------
        points : NDArray
            An (n, 3) array of polygon vertices in order.

        Returns
        -------
        NDArray[np.float64]
            The unit normal, or a zero vector if the polygon has no area.
        """
        points = np.asarray(points, dtype=np.float64)
        x, y, z = points.T
        next_x, next_y, next_z = np.roll(points, -1, axis=0).T
        normal = np.array(
            [
                np.sum((y - next_y) * (z + next_z)),
                np.sum((z - next_z) * (x + next_x)),
                np.sum((x - next_x) * (y + next_y)),
            ],
        )
        length = np.linalg.norm(normal)
        if length == 0:
            return normal
        return normal / length

    @staticmethod
    def plane_basis(normal: NDArray) -> tuple[NDArray, NDArray]:
        """Get an orthonormal (u, v) basis of the plane with the given normal.

        The basis is right-handed, ``u x v == normal``, so a polygon whose Newell
        normal equals ``normal`` projects counter-clockwise.

        Parameters
        ----------
        normal : NDArray
            The unit normal of the plane.

        Returns
        -------
        u : NDArray
            The first in-plane axis.
        v : NDArray
            The second in-plane axis.
        """
        axis = np.array([1.0, 0.0, 0.0])
        if abs(np.dot(axis, normal)) > 0.9:  # noqa: PLR2004
            axis = np.array([0.0, 0.0, 1.0])
        u = np.cross(normal, axis)
        u /= np.linalg.norm(u)
        v = np.cross(normal, u)
        return u, v

    @staticmethod
    def point_in_triangle(
        point: NDArray,
        a: NDArray,
        b: NDArray,
        c: NDArray,
        *,
        tolerance: float = 1e-12,
    ) -> bool:
        """Check if a 2D point lies inside or on a 2D triangle.

        Parameters
        ----------
        point : NDArray
            The (x, y) coordinate of the test point.
        a : NDArray
            The first triangle corner.
        b : NDArray
            The second triangle corner.
        c : NDArray
            The third triangle corner.
        tolerance : float, optional
            The tolerance for the barycentric bounds, by default 1e-12

        Returns
        -------
        bool
            Whether the point is inside the triangle.
        """
        v0 = c - a
        v1 = b - a
        v2 = point - a
        dot00 = np.dot(v0, v0)
        dot01 = np.dot(v0, v1)
        dot02 = np.dot(v0, v2)
        dot11 = np.dot(v1, v1)
        dot12 = np.dot(v1, v2)
        denominator = dot00 * dot11 - dot01 * dot01
        if abs(denominator) < tolerance:
            return False
        u = (dot11 * dot02 - dot01 * dot12) / denominator
        v = (dot00 * dot12 - dot01 * dot02) / denominator
        return bool(u >= -tolerance and v >= -tolerance and u + v <= 1 + tolerance)

    @staticmethod
    def ear_clip(
        polygon: NDArray,
        *,
        tolerance: float = 1e-12,
    ) -> list[tuple[int, int, int]]:
        """Triangulate a counter-clockwise simple 2D polygon by ear clipping.

        Parameters
        ----------
        polygon : NDArray
            An (n, 2) array of polygon vertices in counter-clockwise order.
        tolerance : float, optional
            The tolerance for convexity and containment tests, by default 1e-12

        Returns
        -------
        list[tuple[int, int, int]]
            The ``n - 2`` triangles as counter-clockwise index triples into
            ``polygon``.

        Raises
        ------
        ValueError
            If the polygon has fewer than three vertices.
        ValueError
            If no ear can be found, which happens for self-intersecting or
            clockwise polygons.
        """
        if len(polygon) < 3:  # noqa: PLR2004
            msg = "Polygon needs at least 3 vertices"
            raise ValueError(msg)

        remaining = list(range(len(polygon)))
        triangles = []
        while len(remaining) > 3:  # noqa: PLR2004
            count = len(remaining)
            for position in range(count):
                previous = remaining[position - 1]
                current = remaining[position]
                following = remaining[(position + 1) % count]
                a, b, c = polygon[previous], polygon[current], polygon[following]

                # Reflex or flat corners are never ears
                ab, ac = b - a, c - a
                if ab[0] * ac[1] - ab[1] * ac[0] <= tolerance:
                    continue
                if any(
                    GeometryHelper.point_in_triangle(
                        polygon[other],
                        a,
                        b,
                        c,
                        tolerance=tolerance,
                    )
                    for other in remaining
                    if other not in (previous, current, following)
                ):
                    continue

                triangles.append((previous, current, following))
                remaining.pop(position)
                break
            else:
                msg = "No ear found"
                raise ValueError(msg)

        triangles.append((remaining[0], remaining[1], remaining[2]))
        return triangles
