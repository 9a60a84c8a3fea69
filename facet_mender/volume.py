"""Provides the class for computing the signed volume and fixing global inversion."""

import logging
from dataclasses import replace

import numpy as np

from facet_mender.events import Diagnostic, PhaseResult, RepairEvent, Severity, Status
from facet_mender.geometry_helper import GeometryHelper
from facet_mender.mesh_store import MeshStats, MeshStore


class VolumeCorrector:
    """The class for settling the inside and outside of the whole mesh."""

    def __init__(self, *, debug: bool = False) -> None:
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    @staticmethod
    def facet_areas(store: MeshStore) -> np.ndarray:
        """Get the area of every facet in the working precision."""
        dtype = store.vertices.dtype
        normals = store.winding_normals().astype(dtype)
        return GeometryHelper.extended_areas(store.vertices, normals)

    @staticmethod
    def signed_volume(store: MeshStore) -> float:
        """Compute the signed volume of the mesh.

        Every facet contributes its area times the signed distance from a fixed
        reference point, the first vertex of the first facet, to its plane, divided
        by three. The normals are recomputed from the winding rather than trusted.

        Parameters
        ----------
        store : MeshStore
            The store to measure.

        Returns
        -------
        float
            The signed volume. It is negative when the mesh is inside out and not
            finite when the computation overflowed.
        """
        if store.facet_count == 0:
            return 0.0
        dtype = store.vertices.dtype
        normals = store.winding_normals().astype(dtype)
        areas = GeometryHelper.extended_areas(store.vertices, normals)
        with np.errstate(over="ignore", invalid="ignore"):
            reference = store.vertices[0, 0]
            heights = np.sum(normals * (store.vertices[:, 0] - reference), axis=1)
            return float(np.sum(areas * heights / 3))

    def run(self, store: MeshStore, stats: MeshStats) -> PhaseResult:
        """Compute the volume and reverse every facet if it is negative.

        Parameters
        ----------
        store : MeshStore
            The store to correct.
        stats : MeshStats
            The statistics before the correction.

        Returns
        -------
        PhaseResult
            The result holding the non-negative volume, or a fault if the volume is
            not finite.
        """
        volume = self.signed_volume(store)
        if not np.isfinite(volume):
            self.logger.warning("Volume computation overflowed")
            return PhaseResult(
                stats,
                Status.FAULT,
                diagnostics=(
                    Diagnostic(
                        "NUMERIC_FAULT",
                        "The signed volume is not finite",
                        Severity.ERROR,
                    ),
                ),
            )

        reversed_count = 0
        if volume < 0:
            self.logger.debug("Volume %f is negative, reversing all facets", volume)
            store.reverse_all()
            reversed_count = store.facet_count
            volume = -volume

        surface_area = 0.0
        if store.facet_count:
            surface_area = float(np.sum(self.facet_areas(store)))
        stats = replace(
            stats,
            volume=volume,
            surface_area=surface_area,
            facets_reversed=stats.facets_reversed + reversed_count,
        )
        return PhaseResult(
            stats,
            events=(
                RepairEvent(
                    "volume",
                    "Calculated volume",
                    {
                        "volume": volume,
                        "surface_area": surface_area,
                        "facets_reversed": reversed_count,
                    },
                ),
            ),
        )
