"""Provides the class for checking that the neighbor table matches the geometry."""

import logging
from dataclasses import replace

import numpy as np

from facet_mender.events import Diagnostic, PhaseResult, RepairEvent, Severity
from facet_mender.mesh_store import MeshStats, MeshStore
from facet_mender.neighbors import Backward, Forward, NeighborLink, shared_slot


class NeighborVerifier:
    """The class for re-checking every recorded neighbor link. It never mutates."""

    def __init__(self, *, debug: bool = False) -> None:
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def run(self, store: MeshStore, stats: MeshStats) -> PhaseResult:
        """Verify every link of the neighbor table.

        Parameters
        ----------
        store : MeshStore
            The store to verify.
        stats : MeshStats
            The current statistics.

        Returns
        -------
        PhaseResult
            The result holding the recounted backwards edges and one diagnostic per
            broken link.
        """
        diagnostics = []
        for facet, slot, link in store.neighbors.links():
            diagnostic = self.check_link(store, facet, slot, link)
            if diagnostic is not None:
                self.logger.debug(diagnostic.message)
                diagnostics.append(diagnostic)

        backwards_edges = store.neighbors.backwards_count()
        return PhaseResult(
            replace(stats, backwards_edges=backwards_edges),
            events=(
                RepairEvent(
                    "verify_neighbors",
                    "Verified neighbors",
                    {
                        "mismatches": len(diagnostics),
                        "backwards_edges": backwards_edges,
                    },
                ),
            ),
            diagnostics=tuple(diagnostics),
        )

    @staticmethod
    def check_link(
        store: MeshStore,
        facet: int,
        slot: int,
        link: NeighborLink,
    ) -> Diagnostic | None:
        """Check one link against the reciprocal link and the shared edge.

        Parameters
        ----------
        store : MeshStore
            The store holding the link.
        facet : int
            The index of the facet owning the link.
        slot : int
            The edge slot of the link.
        link : NeighborLink
            The link to check.

        Returns
        -------
        Diagnostic | None
            The problem found, or None if the link is valid.
        """
        match link:
            case Forward(neighbor, vertex_not) | Backward(neighbor, vertex_not):
                pass
            case _:
                return None

        data = {"slot": slot, "vertex_not": vertex_not}
        if not 0 <= neighbor < store.facet_count:
            return Diagnostic(
                "NEIGHBOR_OUT_OF_RANGE",
                f"Edge {slot} of facet {facet} links to missing facet {neighbor}",
                Severity.ERROR,
                (facet, neighbor),
                data,
            )
        if neighbor == facet:
            return Diagnostic(
                "SELF_LINK",
                f"Edge {slot} of facet {facet} links to its own facet",
                Severity.WARNING,
                (facet,),
                data,
            )
        if not 0 <= vertex_not < 3:  # noqa: PLR2004
            return Diagnostic(
                "EDGE_MISMATCH",
                f"Edge {slot} of facet {facet} names vertex {vertex_not} of facet "
                f"{neighbor}",
                Severity.WARNING,
                (facet, neighbor),
                data,
            )

        other_slot = shared_slot(vertex_not)
        back = store.neighbors.get(neighbor, other_slot)
        if back != type(link)(facet, (slot + 2) % 3):
            return Diagnostic(
                "ASYMMETRIC_LINK",
                f"Edge {slot} of facet {facet} links to edge {other_slot} of facet "
                f"{neighbor}, which doesn't link back",
                Severity.WARNING,
                (facet, neighbor),
                data,
            )

        start, end = store.edge(facet, slot)
        other_start, other_end = store.edge(neighbor, other_slot)
        if isinstance(link, Forward):
            other_start, other_end = other_end, other_start
        if not (np.array_equal(start, other_start) and np.array_equal(end, other_end)):
            return Diagnostic(
                "EDGE_MISMATCH",
                f"Edge {slot} of facet {facet} doesn't match edge {other_slot} of "
                f"facet {neighbor}",
                Severity.WARNING,
                (facet, neighbor),
                data,
            )
        return None
