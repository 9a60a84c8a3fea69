"""Provides the class for matching nearly equal edges with a growing tolerance."""

import logging
import math
from dataclasses import replace

import numpy as np
from scipy.spatial import cKDTree

from facet_mender.events import PhaseResult, RepairEvent
from facet_mender.exact_matcher import ExactMatcher
from facet_mender.mesh_store import MeshStats, MeshStore


class NearbyMatcher:
    """The class for matching unmatched edges whose endpoints nearly coincide.

    This is a heuristic. A large tolerance can merge edges that were never meant to
    touch on small or dense meshes, and the iteration count is the only bound besides
    reaching full connectivity.
    """

    def __init__(
        self,
        tolerance: float,
        increment: float,
        iterations: int,
        *,
        debug: bool = False,
    ) -> None:
        if tolerance < 0:
            msg = f"Tolerance must not be negative, got {tolerance}"
            raise ValueError(msg)
        if increment < 0:
            msg = f"Increment must not be negative, got {increment}"
            raise ValueError(msg)
        if iterations < 0:
            msg = f"Iterations must not be negative, got {iterations}"
            raise ValueError(msg)
        self.tolerance = tolerance
        self.increment = increment
        self.iterations = iterations
        self._exact = ExactMatcher(debug=debug)
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def run(self, store: MeshStore, stats: MeshStats) -> PhaseResult:
        """Match nearby edges, widening the tolerance after every iteration.

        Parameters
        ----------
        store : MeshStore
            The store to repair. It must hold a current neighbor table.
        stats : MeshStats
            The statistics after exact matching.

        Returns
        -------
        PhaseResult
            The result holding the updated statistics and one event per iteration.
        """
        tolerance = self.tolerance
        events = []
        for iteration in range(self.iterations):
            if stats.fully_connected:
                self.logger.debug(
                    "All facets connected. No further nearby check necessary.",
                )
                break

            matched_before = int(store.neighbors.degrees().sum())
            pairs = self.match_once(store, tolerance)
            stats = self._exact.run(store, stats).stats
            fixed = max(0, int(store.neighbors.degrees().sum()) - matched_before)
            stats = replace(stats, edges_fixed=stats.edges_fixed + fixed)
            self.logger.debug(
                "Checking nearby. Tolerance=%f Iteration=%d of %d... Fixed %d edges.",
                tolerance,
                iteration + 1,
                self.iterations,
                fixed,
            )
            events.append(
                RepairEvent(
                    "nearby",
                    f"Checked nearby edges, iteration {iteration + 1} of "
                    f"{self.iterations}",
                    {
                        "iteration": iteration + 1,
                        "tolerance": tolerance,
                        "pairs_snapped": pairs,
                        "edges_fixed": fixed,
                        "backwards_edges": stats.backwards_edges,
                    },
                ),
            )
            tolerance += self.increment

        return PhaseResult(stats, events=tuple(events))

    def match_once(self, store: MeshStore, tolerance: float) -> int:
        """Snap pairs of unmatched edges whose endpoints lie within ``tolerance``.

        Pairs that would move an endpoint by half an edge length or more are skipped.

        A candidate running the opposite way is preferred, one running the same way
        is accepted as a backwards edge. Every copy of the candidate's endpoints is
        moved onto the first edge's endpoints so that links already matched at those
        vertices stay exact. The neighbor table is stale afterwards and must be rebuilt
        by the caller.

        Parameters
        ----------
        store : MeshStore
            The store to snap.
        tolerance : float
            The largest allowed distance between corresponding endpoints.

        Returns
        -------
        int
            The number of edge pairs snapped.
        """
        unmatched = store.neighbors.unmatched()
        if len(unmatched) < 2:  # noqa: PLR2004
            return 0

        keys = np.array(
            [np.concatenate(store.edge(facet, slot)) for facet, slot in unmatched],
            dtype=np.float64,
        )
        tree = cKDTree(keys)
        # Both endpoints within the tolerance bound the 6D distance
        radius = tolerance * math.sqrt(2)
        used = np.zeros(len(unmatched), dtype=bool)

        pairs = 0
        for index, (facet, slot) in enumerate(unmatched):
            if used[index]:
                continue
            start, end = (p.astype(np.float64) for p in store.edge(facet, slot))
            candidate = self._find_candidate(
                store,
                tree,
                unmatched,
                used,
                index,
                start,
                end,
                tolerance,
                radius,
            )
            if candidate is None:
                continue

            other, near_start, near_end = candidate
            self.logger.debug(
                "Snapping edge %d of facet %d onto edge %d of facet %d",
                unmatched[other][1],
                unmatched[other][0],
                slot,
                facet,
            )
            # Read the targets before moving anything since they may share values
            target_start, target_end = (p.copy() for p in store.edge(facet, slot))
            if not np.array_equal(near_start, target_start):
                store.replace_vertex(near_start, target_start)
            if not np.array_equal(near_end, target_end):
                store.replace_vertex(near_end, target_end)
            used[index] = True
            used[other] = True
            pairs += 1

        return pairs

    @staticmethod
    def _find_candidate(
        store: MeshStore,
        tree: cKDTree,
        unmatched: list[tuple[int, int]],
        used: np.ndarray,
        index: int,
        start: np.ndarray,
        end: np.ndarray,
        tolerance: float,
        radius: float,
    ) -> tuple[int, np.ndarray, np.ndarray] | None:
        facet = unmatched[index][0]
        for reverse in (True, False):
            query = np.concatenate([end, start] if reverse else [start, end])
            for other in sorted(tree.query_ball_point(query, radius)):
                other_facet, other_slot = unmatched[other]
                if used[other] or other == index or other_facet == facet:
                    continue
                other_start, other_end = (
                    p.copy() for p in store.edge(other_facet, other_slot)
                )
                # Endpoints of the candidate corresponding to start and end
                near_start, near_end = (
                    (other_end, other_start) if reverse else (other_start, other_end)
                )
                # Moving an endpoint by half an edge or more would fold the edge
                limit = 0.5 * min(
                    np.linalg.norm(end - start),
                    np.linalg.norm(other_end.astype(np.float64) - other_start),
                )
                distances = (
                    np.linalg.norm(near_start.astype(np.float64) - start),
                    np.linalg.norm(near_end.astype(np.float64) - end),
                )
                if all(d <= tolerance and d < limit for d in distances):
                    return other, near_start, near_end
        return None
