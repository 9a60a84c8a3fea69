"""Provides the class for removing facets that share no edge with any other facet."""

import logging
from dataclasses import replace

from facet_mender.events import PhaseResult, RepairEvent
from facet_mender.mesh_store import MeshStats, MeshStore


class UnconnectedPruner:
    """The class for removing isolated facets."""

    def __init__(self, *, debug: bool = False) -> None:
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def run(self, store: MeshStore, stats: MeshStats) -> PhaseResult:
        """Remove every facet without a single matched edge.

        The facet array and the neighbor table are compacted together, so no index
        from before the pruning stays valid.

        Parameters
        ----------
        store : MeshStore
            The store to prune. It must hold a current neighbor table.
        stats : MeshStats
            The statistics before pruning.

        Returns
        -------
        PhaseResult
            The result holding the updated statistics.
        """
        isolated = store.neighbors.degrees() == 0
        removed = int(isolated.sum())
        if removed:
            self.logger.debug(
                "Removing %d unconnected facets: %s",
                removed,
                isolated.nonzero()[0].tolist(),
            )
            store.compact(~isolated)

        stats = replace(stats, facets_removed=stats.facets_removed + removed)
        stats = store.update_size(stats).with_connectivity(
            store.neighbors.degrees(),
            store.neighbors.backwards_count(),
        )
        return PhaseResult(
            stats,
            events=(
                RepairEvent(
                    "remove_unconnected",
                    "Removed unconnected facets",
                    {"facets_removed": removed, "facets": stats.number_of_facets},
                ),
            ),
        )
