"""Provides a factory of small defective facet soups."""

import numpy as np
import trimesh
from numpy.typing import NDArray

from facet_mender.mesh_store import MeshStore

# Facets of ``trimesh.creation.box`` covering the x = -0.5 side
BOX_SIDE_FACETS = (0, 2)


class DataFactory:
    """A class of test meshes, each built on the unit box centered at the origin.

    The box has 12 facets and every box vertex index follows the (x, y, z) bits of
    the corner, so vertex 0 is (-0.5, -0.5, -0.5) and vertex 7 is (0.5, 0.5, 0.5).
    """

    @staticmethod
    def _box_arrays() -> tuple[NDArray, NDArray]:
        mesh = trimesh.creation.box()
        return (
            np.asarray(mesh.triangles, dtype=np.float32),
            np.asarray(mesh.face_normals, dtype=np.float32),
        )

    @staticmethod
    def cube() -> MeshStore:
        """Get a closed, consistently wound cube."""
        return MeshStore.from_arrays(*DataFactory._box_arrays())

    @staticmethod
    def cube_missing_facet(flipped: int | None = None) -> MeshStore:
        """Get a cube without its first facet, leaving a triangular hole.

        Parameters
        ----------
        flipped : int | None, optional
            A box facet to wind backwards while keeping its normal, by default None

        Returns
        -------
        MeshStore
            The 11 remaining facets.
        """
        vertices, normals = DataFactory._box_arrays()
        if flipped is not None:
            vertices[flipped, [0, 1]] = vertices[flipped, [1, 0]]
        return MeshStore.from_arrays(vertices[1:], normals[1:])

    @staticmethod
    def open_box() -> MeshStore:
        """Get a cube without one square side, leaving a four edge hole."""
        vertices, normals = DataFactory._box_arrays()
        keep = np.ones(len(vertices), dtype=bool)
        keep[list(BOX_SIDE_FACETS)] = False
        return MeshStore.from_arrays(vertices[keep], normals[keep])

    @staticmethod
    def cube_with_offset_edge(offset: float = 1e-4) -> MeshStore:
        """Get a cube whose second facet has two vertices moved by ``offset``.

        Every coordinate of the moved vertices changes, so none of the facet's three
        edges match exactly.
        """
        vertices, normals = DataFactory._box_arrays()
        vertices[1, :2] += np.float32(offset)
        return MeshStore.from_arrays(vertices, normals)

    @staticmethod
    def cube_with_flipped_facet(index: int = 5) -> MeshStore:
        """Get a cube with one facet wound backwards but with its original normal."""
        vertices, normals = DataFactory._box_arrays()
        vertices[index, [0, 1]] = vertices[index, [1, 0]]
        return MeshStore.from_arrays(vertices, normals)

    @staticmethod
    def cube_with_isolated_facet() -> MeshStore:
        """Get a cube plus a facet floating above it that shares no edge."""
        vertices, normals = DataFactory._box_arrays()
        isolated = np.array(
            [[[0, 0, 3], [1, 0, 3], [0, 1, 3]]],
            dtype=np.float32,
        )
        return MeshStore.from_arrays(
            np.concatenate([vertices, isolated]),
            np.concatenate([normals, np.array([[0, 0, 1]], dtype=np.float32)]),
        )

    @staticmethod
    def cube_with_degenerate_facet() -> MeshStore:
        """Get a cube plus a facet with two coincident vertices on the cube."""
        vertices, normals = DataFactory._box_arrays()
        degenerate = vertices[:1].copy()
        degenerate[0, 1] = degenerate[0, 0]
        return MeshStore.from_arrays(
            np.concatenate([vertices, degenerate]),
            np.concatenate([normals, np.zeros((1, 3), dtype=np.float32)]),
        )

    @staticmethod
    def inverted_cube() -> MeshStore:
        """Get a cube with every facet and normal pointing inwards."""
        vertices, normals = DataFactory._box_arrays()
        return MeshStore.from_arrays(vertices[:, [1, 0, 2]], -normals)

    @staticmethod
    def icosphere(subdivisions: int = 2) -> MeshStore:
        """Get a closed sphere approximation."""
        mesh = trimesh.creation.icosphere(subdivisions=subdivisions)
        return MeshStore.from_arrays(
            np.asarray(mesh.triangles, dtype=np.float32),
            np.asarray(mesh.face_normals, dtype=np.float32),
        )

    @staticmethod
    def voxel_block() -> NDArray:
        """Get a 2x2x2 block of labeled voxels padded by background."""
        data = np.zeros((4, 4, 4), dtype=np.uint8)
        data[1:3, 1:3, 1:3] = 1
        return data
