"""Provides the class for building facet adjacency from bit-identical edges."""

import logging
from dataclasses import replace

import numpy as np
from numpy.typing import NDArray

from facet_mender.events import PhaseResult, RepairEvent
from facet_mender.geometry_helper import GeometryHelper
from facet_mender.mesh_store import MeshStats, MeshStore
from facet_mender.neighbors import NeighborTable


class ExactMatcher:
    """The class for matching facet edges with exactly equal endpoints."""

    def __init__(self, *, debug: bool = False) -> None:
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    @staticmethod
    def find_degenerate(store: MeshStore) -> NDArray[np.bool_]:
        """Find facets with two coincident vertices.

        Parameters
        ----------
        store : MeshStore
            The store to check.

        Returns
        -------
        NDArray[np.bool_]
            An (n,) mask of the degenerate facets.
        """
        v = store.vertices
        return (
            np.all(v[:, 0] == v[:, 1], axis=1)
            | np.all(v[:, 1] == v[:, 2], axis=1)
            | np.all(v[:, 2] == v[:, 0], axis=1)
        )

    def run(self, store: MeshStore, stats: MeshStats) -> PhaseResult:
        """Rebuild the neighbor table from scratch.

        Degenerate facets are removed first so they are never matched. Then every
        directed edge is looked up by its unordered pair of exact endpoint keys. An
        edge paired with one running the opposite way is a forward link, one running
        the same way is a backwards edge. The first match wins, and every later copy
        of a matched edge stays unmatched for the nearby and hole phases.

        Parameters
        ----------
        store : MeshStore
            The store to match. Its neighbor table is replaced.
        stats : MeshStats
            The statistics before matching.

        Returns
        -------
        PhaseResult
            The result holding the recounted statistics.
        """
        degenerate = self.find_degenerate(store)
        removed = int(degenerate.sum())
        if removed:
            self.logger.debug("Removing %d degenerate facets", removed)
            store.compact(~degenerate)
            stats = replace(
                stats,
                degenerate_facets=stats.degenerate_facets + removed,
                facets_removed=stats.facets_removed + removed,
            )

        table = NeighborTable(store.facet_count)
        pending: dict[tuple[bytes, bytes], list[tuple[int, int, bytes]]] = {}
        # Edges already matched once, every later copy stays unmatched
        consumed: set[tuple[bytes, bytes]] = set()
        backwards_edges = 0
        for facet, vertices in enumerate(store.vertices):
            keys = [GeometryHelper.vertex_key(vertex) for vertex in vertices]
            for slot in range(3):
                start, end = keys[slot], keys[(slot + 1) % 3]
                edge_key = (start, end) if start < end else (end, start)
                if edge_key in consumed:
                    continue
                waiting = pending.setdefault(edge_key, [])
                partner = next((w for w in waiting if w[0] != facet), None)
                if partner is None:
                    waiting.append((facet, slot, start))
                    continue

                del pending[edge_key]
                consumed.add(edge_key)
                other_facet, other_slot, other_start = partner
                backwards = other_start == start
                table.link(facet, slot, other_facet, other_slot, backwards=backwards)
                if backwards:
                    self.logger.debug(
                        "Edge %d of facet %d runs the same way as edge %d of facet %d",
                        slot,
                        facet,
                        other_slot,
                        other_facet,
                    )
                    backwards_edges += 1

        store.neighbors = table
        stats = store.update_size(stats).with_connectivity(
            table.degrees(),
            backwards_edges,
        )
        self.logger.debug(
            "Exact check: %d of %d facets fully connected, %d backwards edges",
            stats.connected_facets_3_edge,
            stats.number_of_facets,
            backwards_edges,
        )
        return PhaseResult(
            stats,
            events=(
                RepairEvent(
                    "exact",
                    "Checked exact edges",
                    {
                        "facets": stats.number_of_facets,
                        "connected_facets_3_edge": stats.connected_facets_3_edge,
                        "facets_w_1_bad_edge": stats.facets_w_1_bad_edge,
                        "facets_w_2_bad_edge": stats.facets_w_2_bad_edge,
                        "facets_w_3_bad_edge": stats.facets_w_3_bad_edge,
                        "backwards_edges": backwards_edges,
                        "degenerate_facets_removed": removed,
                    },
                ),
            ),
        )
