"""Module for visualizing facet soups using PyVista."""

from typing import Literal

import numpy as np
import pyvista as pv

from facet_mender.mesh_store import MeshStore


class Visualizer:
    """Class for visualizing facet soups using PyVista."""

    @staticmethod
    def to_polydata(store: MeshStore) -> pv.PolyData:
        """Convert a store to a PolyData with three unshared points per facet."""
        points = store.vertices.reshape((-1, 3))
        faces = np.column_stack(
            [
                np.full(store.facet_count, 3),
                np.arange(len(points)).reshape((-1, 3)),
            ],
        )
        return pv.PolyData(points, faces.ravel())

    @staticmethod
    def boundary_lines(store: MeshStore) -> pv.PolyData:
        """Get the edges without a matched neighbor as line cells.

        Parameters
        ----------
        store : MeshStore
            The store whose neighbor table is current.

        Returns
        -------
        pv.PolyData
            One line per unmatched edge. Empty if every edge is matched.
        """
        unmatched = store.neighbors.unmatched()
        if not unmatched:
            return pv.PolyData()
        points = np.array(
            [point for facet, slot in unmatched for point in store.edge(facet, slot)],
        )
        lines = np.column_stack(
            [
                np.full(len(unmatched), 2),
                np.arange(len(points)).reshape((-1, 2)),
            ],
        )
        return pv.PolyData(points, lines=lines.ravel())

    @staticmethod
    def show_store(
        store: MeshStore,
        *,
        highlight_facets: list[int] | None = None,
        show_boundary: bool = True,
        add_face_normals: bool = False,
        add_face_labels: bool = False,
        opacity: float = 1.0,
        style: Literal["points", "wireframe", "surface"] = "surface",
        show: bool = True,
    ) -> pv.Plotter:
        """Render a store with its residual defects highlighted.

        Parameters
        ----------
        store : MeshStore
            The store to render.
        highlight_facets : list[int] | None, optional
            Facets to draw in a highlight color, by default None
        show_boundary : bool, optional
            Whether to draw the unmatched edges, by default True
        add_face_normals : bool, optional
            Whether to draw the stored normals as arrows, by default False
        add_face_labels : bool, optional
            Whether to label facets with their index, by default False
        opacity : float, optional
            The opacity of the surface, by default 1.0
        style : Literal["points", "wireframe", "surface"], optional
            The render style of the surface, by default "surface"
        show : bool, optional
            Whether to open the render window, by default True

        Returns
        -------
        pv.Plotter
            The plotter holding the scene.
        """
        mesh = Visualizer.to_polydata(store)
        plotter = pv.Plotter(off_screen=not show)
        plotter.add_mesh(mesh, show_edges=True, style=style, opacity=opacity)

        if add_face_normals:
            centers = mesh.cell_centers()
            centers["Normals"] = store.normals
            plotter.add_mesh(
                centers.glyph(orient="Normals", scale=False, factor=0.2),
                color="#FF5555",
            )

        if highlight_facets:
            unique_facets = np.unique(highlight_facets)
            highlighted_facets = mesh.extract_cells(unique_facets)
            plotter.add_mesh(highlighted_facets, color="lightgreen", show_edges=True)
            if add_face_labels:
                plotter.add_point_labels(
                    highlighted_facets.cell_centers().points,
                    unique_facets.tolist(),
                    point_size=0,
                    text_color="#B30909",
                )
        elif add_face_labels:
            plotter.add_point_labels(
                mesh.cell_centers().points,
                list(range(mesh.n_cells)),
                point_size=0,
                text_color="#B30909",
            )

        if show_boundary:
            boundary = Visualizer.boundary_lines(store)
            if boundary.n_cells:
                plotter.add_mesh(
                    boundary,
                    render_lines_as_tubes=True,
                    color="#FFD700",
                    line_width=2.5,
                )

        if show:
            plotter.show()
        return plotter
