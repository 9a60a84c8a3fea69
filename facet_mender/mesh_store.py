"""Provides the facet soup store and its aggregate statistics."""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import NamedTuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

from facet_mender.geometry_helper import GeometryHelper
from facet_mender.neighbors import NeighborTable

Point = tuple[float, float, float]


class Facet(NamedTuple):
    """A single triangle with its own vertex copies and a normal."""

    normal: NDArray
    vertices: NDArray


@dataclass(frozen=True)
class MeshStats:
    """Aggregate statistics of a mesh during one repair call.

    The ``connected_facets_*`` counters hold the number of facets with *at least*
    that many matched edges, while the ``facets_w_*_bad_edge`` counters hold the
    number of facets with *exactly* that many unmatched edges.
    """

    number_of_facets: int = 0
    original_number_of_facets: int = 0
    connected_facets_1_edge: int = 0
    connected_facets_2_edge: int = 0
    connected_facets_3_edge: int = 0
    facets_w_1_bad_edge: int = 0
    facets_w_2_bad_edge: int = 0
    facets_w_3_bad_edge: int = 0
    backwards_edges: int = 0
    edges_fixed: int = 0
    degenerate_facets: int = 0
    facets_removed: int = 0
    facets_added: int = 0
    facets_reversed: int = 0
    normals_fixed: int = 0
    min: Point = (0.0, 0.0, 0.0)
    max: Point = (0.0, 0.0, 0.0)
    size: Point = (0.0, 0.0, 0.0)
    bounding_diameter: float = 0.0
    shortest_edge: float = 0.0
    volume: float = 0.0
    surface_area: float = 0.0

    @property
    def fully_connected(self) -> bool:
        """Whether every facet has all three edges matched."""
        return self.connected_facets_3_edge == self.number_of_facets

    def with_connectivity(
        self,
        degrees: NDArray[np.int64],
        backwards_edges: int,
    ) -> "MeshStats":
        """Return a copy with the connectivity counters recomputed.

        Parameters
        ----------
        degrees : NDArray[np.int64]
            The number of matched edges of every facet.
        backwards_edges : int
            The number of backwards edges.

        Returns
        -------
        MeshStats
            The updated statistics.
        """
        count = len(degrees)
        connected_1 = int(np.sum(degrees >= 1))
        connected_2 = int(np.sum(degrees >= 2))  # noqa: PLR2004
        connected_3 = int(np.sum(degrees >= 3))  # noqa: PLR2004
        return replace(
            self,
            number_of_facets=count,
            connected_facets_1_edge=connected_1,
            connected_facets_2_edge=connected_2,
            connected_facets_3_edge=connected_3,
            facets_w_1_bad_edge=connected_2 - connected_3,
            facets_w_2_bad_edge=connected_1 - connected_2,
            facets_w_3_bad_edge=count - connected_1,
            backwards_edges=backwards_edges,
        )


class MeshStore:
    """The facet array, normals and neighbor table of one repair call.

    Only repair phases mutate a store once it is loaded. A store that failed to
    load keeps the reason in ``fault`` and holds no facets until ``load`` succeeds.
    """

    def __init__(
        self,
        vertices: ArrayLike = (),
        normals: ArrayLike | None = None,
        *,
        expected_count: int | None = None,
    ) -> None:
        self.vertices: NDArray = np.empty((0, 3, 3), dtype=np.float32)
        self.normals: NDArray = np.empty((0, 3), dtype=np.float32)
        self.neighbors = NeighborTable()
        self.fault: str | None = None
        self.load(vertices, normals, expected_count=expected_count)

    @classmethod
    def from_arrays(
        cls,
        vertices: ArrayLike,
        normals: ArrayLike | None = None,
        *,
        expected_count: int | None = None,
    ) -> "MeshStore":
        """Create a store from an (n, 3, 3) vertex array and an (n, 3) normal array."""
        return cls(vertices, normals, expected_count=expected_count)

    @classmethod
    def from_facets(
        cls,
        facets: Iterable[Facet],
        *,
        expected_count: int | None = None,
    ) -> "MeshStore":
        """Create a store from a sequence of facets."""
        facets = list(facets)
        if not facets:
            return cls(expected_count=expected_count)
        return cls(
            [facet.vertices for facet in facets],
            [facet.normal for facet in facets],
            expected_count=expected_count,
        )

    @property
    def facet_count(self) -> int:
        """The number of facets currently stored."""
        return len(self.vertices)

    def load(
        self,
        vertices: ArrayLike,
        normals: ArrayLike | None = None,
        *,
        expected_count: int | None = None,
    ) -> bool:
        """Replace the content of the store and clear any previous fault.

        Coordinates keep their floating point type so that exporting an unrepaired
        store reproduces the input exactly. Non-float input is stored as float32.

        Parameters
        ----------
        vertices : ArrayLike
            An (n, 3, 3) array of facet vertices.
        normals : ArrayLike | None, optional
            An (n, 3) array of facet normals, by default None

            Missing normals are computed from the winding.
        expected_count : int | None, optional
            The facet count declared by the source, by default None

        Returns
        -------
        bool
            Whether the data was loaded. On failure ``fault`` holds the reason and
            the store is empty.
        """
        self.fault = None
        vertex_array = np.asarray(vertices)
        if vertex_array.size == 0:
            vertex_array = vertex_array.reshape((0, 3, 3))
        if not np.issubdtype(vertex_array.dtype, np.floating):
            vertex_array = vertex_array.astype(np.float32)

        if vertex_array.ndim != 3 or vertex_array.shape[1:] != (3, 3):  # noqa: PLR2004
            return self._set_fault(
                f"Expected facet vertices of shape (n, 3, 3), got {vertex_array.shape}",
            )
        if expected_count is not None and expected_count != len(vertex_array):
            return self._set_fault(
                f"Expected {expected_count} facets but the data holds "
                f"{len(vertex_array)}",
            )
        if not np.all(np.isfinite(vertex_array)):
            return self._set_fault("Facet vertices contain non-finite coordinates")

        if normals is None:
            normal_array = GeometryHelper.triangle_normals(vertex_array).astype(
                vertex_array.dtype,
            )
        else:
            normal_array = np.asarray(normals)
            if normal_array.size == 0:
                normal_array = normal_array.reshape((0, 3))
            if not np.issubdtype(normal_array.dtype, np.floating):
                normal_array = normal_array.astype(vertex_array.dtype)
            if normal_array.shape != (len(vertex_array), 3):
                return self._set_fault(
                    f"Expected {len(vertex_array)} normals of shape (3,), got "
                    f"{normal_array.shape}",
                )

        self.vertices = vertex_array.copy()
        self.normals = normal_array.copy()
        self.neighbors = NeighborTable(len(self.vertices))
        return True

    def _set_fault(self, reason: str) -> bool:
        self.vertices = np.empty((0, 3, 3), dtype=np.float32)
        self.normals = np.empty((0, 3), dtype=np.float32)
        self.neighbors = NeighborTable()
        self.fault = reason
        return False

    def to_arrays(self) -> tuple[NDArray, NDArray]:
        """Export copies of the vertex and normal arrays."""
        return self.vertices.copy(), self.normals.copy()

    def to_facets(self) -> list[Facet]:
        """Export the store as a list of facets."""
        return [
            Facet(normal.copy(), vertices.copy())
            for normal, vertices in zip(self.normals, self.vertices, strict=True)
        ]

    def initial_stats(self) -> MeshStats:
        """Get fresh statistics for a new repair call."""
        stats = MeshStats(
            number_of_facets=self.facet_count,
            original_number_of_facets=self.facet_count,
        )
        return self.update_size(stats).with_connectivity(
            self.neighbors.degrees(),
            self.neighbors.backwards_count(),
        )

    def update_size(self, stats: MeshStats) -> MeshStats:
        """Return a copy of ``stats`` with the extents and shortest edge recomputed.

        The shortest edge is the shortest edge of non-zero length and seeds the nearby
        matching tolerance.
        """
        if self.facet_count == 0:
            return replace(stats, number_of_facets=0)
        points = self.vertices.reshape((-1, 3)).astype(np.float64)
        minimum = points.min(axis=0)
        maximum = points.max(axis=0)
        size = maximum - minimum
        lengths = self.edge_lengths()
        positive = lengths[lengths > 0]
        return replace(
            stats,
            number_of_facets=self.facet_count,
            min=tuple(minimum.tolist()),
            max=tuple(maximum.tolist()),
            size=tuple(size.tolist()),
            bounding_diameter=float(np.linalg.norm(size)),
            shortest_edge=float(positive.min()) if len(positive) else 0.0,
        )

    def edge_lengths(self) -> NDArray[np.float64]:
        """Get the (n, 3) lengths of every facet edge."""
        vertices = self.vertices.astype(np.float64)
        return np.linalg.norm(np.roll(vertices, -1, axis=1) - vertices, axis=2)

    def edge(self, facet: int, slot: int) -> tuple[NDArray, NDArray]:
        """Get the start and end points of one directed edge."""
        return self.vertices[facet, slot], self.vertices[facet, (slot + 1) % 3]

    def winding_normals(self) -> NDArray[np.float64]:
        """Compute every facet's unit normal from its vertex order."""
        return GeometryHelper.triangle_normals(self.vertices)

    def append(self, vertices: NDArray, normals: NDArray) -> None:
        """Append facets with empty neighbor slots."""
        self.vertices = np.concatenate(
            [self.vertices, np.asarray(vertices, dtype=self.vertices.dtype)],
        )
        self.normals = np.concatenate(
            [self.normals, np.asarray(normals, dtype=self.normals.dtype)],
        )
        self.neighbors.append(len(vertices))

    def compact(self, keep: NDArray[np.bool_]) -> None:
        """Drop every facet not in ``keep`` and renumber the neighbor table."""
        self.vertices = self.vertices[keep]
        self.normals = self.normals[keep]
        self.neighbors.compact(keep)

    def reverse_facet(self, facet: int) -> None:
        """Swap the first two vertices of a facet and negate its normal."""
        self.vertices[facet, [0, 1]] = self.vertices[facet, [1, 0]]
        self.normals[facet] = -self.normals[facet]
        self.neighbors.reverse(facet)

    def reverse_all(self) -> None:
        """Reverse the winding and normal of every facet."""
        self.vertices[:, [0, 1]] = self.vertices[:, [1, 0]]
        self.normals = -self.normals
        self.neighbors.reverse_all()

    def replace_vertex(self, old: NDArray, new: NDArray) -> int:
        """Move every copy of a vertex to a new position.

        Parameters
        ----------
        old : NDArray
            The current (x, y, z) value of the vertex.
        new : NDArray
            The new (x, y, z) value.

        Returns
        -------
        int
            The number of vertex copies moved.
        """
        old = np.array(old, dtype=self.vertices.dtype)
        new = np.array(new, dtype=self.vertices.dtype)
        mask = np.all(self.vertices == old, axis=2)
        self.vertices[mask] = new
        return int(mask.sum())
