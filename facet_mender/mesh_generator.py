"""Provides conversions between facet soups and indexed meshes."""

import numpy as np
import pyvista as pv
import trimesh
from numpy.typing import DTypeLike, NDArray

from facet_mender.mesh_store import MeshStore


class MeshGenerator:
    """A class for moving meshes in and out of a ``MeshStore``."""

    @staticmethod
    def from_trimesh(
        mesh: trimesh.Trimesh,
        *,
        dtype: DTypeLike = np.float32,
    ) -> MeshStore:
        """Unroll an indexed mesh into a facet soup.

        Parameters
        ----------
        mesh : trimesh.Trimesh
            The mesh to convert.
        dtype : DTypeLike, optional
            The working precision of the store, by default np.float32

        Returns
        -------
        MeshStore
            A store with one facet per face, sharing no vertex storage.
        """
        return MeshStore.from_arrays(
            np.asarray(mesh.triangles, dtype=dtype),
            np.asarray(mesh.face_normals, dtype=dtype),
        )

    @staticmethod
    def to_trimesh(store: MeshStore) -> trimesh.Trimesh:
        """Convert a store into an indexed mesh.

        Vertices are not merged, so every face keeps its own three vertices and the
        face order matches the facet order.
        """
        vertices = store.vertices.reshape((-1, 3))
        faces = np.arange(len(vertices)).reshape((-1, 3))
        return trimesh.Trimesh(
            vertices=vertices,
            faces=faces,
            face_normals=store.normals,
            process=False,
        )

    @staticmethod
    def from_voxels(data: NDArray, *, dtype: DTypeLike = np.float32) -> MeshStore:
        """Convert a labeled voxel array to a facet soup using Surface Nets from VTK.

        Parameters
        ----------
        data : NDArray
            A 3D array of voxel labels. Zero is background.
        dtype : DTypeLike, optional
            The working precision of the store, by default np.float32

        Returns
        -------
        MeshStore
            A store holding the boundary surface of the labeled voxels.
        """
        pv_data: pv.ImageData = pv.wrap(data)
        mesh = pv_data.contour_labels(output_mesh_type="triangles", smoothing=False)
        faces = mesh.faces.reshape((mesh.n_cells, 4))[:, 1:]
        return MeshGenerator.from_trimesh(
            trimesh.Trimesh(mesh.points, faces),
            dtype=dtype,
        )
