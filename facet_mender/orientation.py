"""Provides the classes for making facet winding and normals consistent."""

import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import replace

import numpy as np
from numpy.typing import NDArray

from facet_mender.events import Diagnostic, PhaseResult, RepairEvent, Severity
from facet_mender.mesh_store import MeshStats, MeshStore
from facet_mender.neighbors import Backward, Forward

# Largest per-component difference between a supplied and a computed normal that
# still counts as correct
NORMAL_TOLERANCE = 0.001


def propagate_orientation(
    facet_count: int,
    links: Iterable[tuple[int, int, bool]],
    seed_flip: Callable[[int], bool] | None = None,
) -> tuple[NDArray[np.bool_], int]:
    """Decide which facets to reverse so every connected component is consistent.

    A breadth-first traversal assigns each facet a flip parity. A consistent link
    joins facets of equal parity and a backwards link joins facets of opposite
    parity. Each component starts from its lowest unvisited facet, whose parity is
    given by ``seed_flip``. When a component can't be made consistent (a Moebius
    strip, for example) the first parity assigned to a facet wins.

    Parameters
    ----------
    facet_count : int
        The number of facets.
    links : Iterable[tuple[int, int, bool]]
        The ``(facet_a, facet_b, consistent)`` adjacency. Direction is irrelevant.
    seed_flip : Callable[[int], bool] | None, optional
        Whether to reverse a component's seed facet, by default None (never).

    Returns
    -------
    flips : NDArray[np.bool_]
        An (n,) mask of the facets to reverse.
    components : int
        The number of connected components.
    """
    adjacency: list[list[tuple[int, bool]]] = [[] for _ in range(facet_count)]
    for facet_a, facet_b, consistent in links:
        adjacency[facet_a].append((facet_b, consistent))
        adjacency[facet_b].append((facet_a, consistent))

    flips = np.zeros(facet_count, dtype=bool)
    visited = np.zeros(facet_count, dtype=bool)
    components = 0
    for seed in range(facet_count):
        if visited[seed]:
            continue
        components += 1
        visited[seed] = True
        flips[seed] = bool(seed_flip(seed)) if seed_flip else False
        queue = deque([seed])
        while queue:
            facet = queue.popleft()
            for neighbor, consistent in adjacency[facet]:
                if visited[neighbor]:
                    continue
                visited[neighbor] = True
                flips[neighbor] = flips[facet] ^ (not consistent)
                queue.append(neighbor)
    return flips, components


class OrientationFixer:
    """The class for propagating consistent winding across connected facets."""

    def __init__(self, *, debug: bool = False) -> None:
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    @staticmethod
    def links(store: MeshStore) -> list[tuple[int, int, bool]]:
        """Get the adjacency of a store as ``(facet_a, facet_b, consistent)``."""
        result = []
        for facet, _, link in store.neighbors.links():
            match link:
                case Forward(neighbor, _) if facet < neighbor:
                    result.append((facet, neighbor, True))
                case Backward(neighbor, _) if facet < neighbor:
                    result.append((facet, neighbor, False))
        return result

    def run(self, store: MeshStore, stats: MeshStats) -> PhaseResult:
        """Reverse facets so that neighbors agree on their winding.

        A component's seed is reversed when its supplied normal points against the
        normal of its winding. Consistency is only guaranteed within a component;
        the sign of each component is settled by the volume check.

        Parameters
        ----------
        store : MeshStore
            The store to repair. It must hold a current neighbor table.
        stats : MeshStats
            The statistics before the fix.

        Returns
        -------
        PhaseResult
            The result holding the updated statistics.
        """
        winding = store.winding_normals()
        supplied = store.normals.astype(np.float64)

        def seed_flip(facet: int) -> bool:
            return bool(np.dot(winding[facet], supplied[facet]) < 0)

        flips, components = propagate_orientation(
            store.facet_count,
            self.links(store),
            seed_flip,
        )
        for facet in np.flatnonzero(flips):
            store.reverse_facet(int(facet))
        reversed_count = int(flips.sum())

        backwards_edges = store.neighbors.backwards_count()
        self.logger.debug(
            "Reversed %d facets across %d components, %d backwards edges remain",
            reversed_count,
            components,
            backwards_edges,
        )
        stats = replace(
            stats,
            facets_reversed=stats.facets_reversed + reversed_count,
            backwards_edges=backwards_edges,
        )
        diagnostics = ()
        if backwards_edges:
            diagnostics = (
                Diagnostic(
                    "NON_ORIENTABLE",
                    f"{backwards_edges} backwards edges could not be made consistent",
                    Severity.WARNING,
                    data={"backwards_edges": backwards_edges},
                ),
            )
        return PhaseResult(
            stats,
            events=(
                RepairEvent(
                    "fix_normal_directions",
                    "Checked normal directions",
                    {
                        "facets_reversed": reversed_count,
                        "components": components,
                        "backwards_edges": backwards_edges,
                    },
                ),
            ),
            diagnostics=diagnostics,
        )


def reverse_all(store: MeshStore, stats: MeshStats) -> PhaseResult:
    """Reverse the winding and normal of every facet.

    Parameters
    ----------
    store : MeshStore
        The store to reverse.
    stats : MeshStats
        The statistics before reversing.

    Returns
    -------
    PhaseResult
        The result holding the updated statistics.
    """
    store.reverse_all()
    stats = replace(stats, facets_reversed=stats.facets_reversed + store.facet_count)
    return PhaseResult(
        stats,
        events=(
            RepairEvent(
                "reverse_all",
                "Reversed all facets",
                {"facets_reversed": store.facet_count},
            ),
        ),
    )


class NormalValueFixer:
    """The class for replacing supplied normals with the normals of the winding."""

    def __init__(self, *, debug: bool = False) -> None:
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def run(self, store: MeshStore, stats: MeshStats) -> PhaseResult:
        """Recompute every normal from its facet's vertex order.

        Normals more than ``NORMAL_TOLERANCE`` away from the computed value in any
        component are counted as fixed. Degenerate facets get a zero normal.

        Parameters
        ----------
        store : MeshStore
            The store to repair.
        stats : MeshStats
            The statistics before the fix.

        Returns
        -------
        PhaseResult
            The result holding the updated statistics.
        """
        computed = store.winding_normals()
        wrong = np.any(
            np.abs(store.normals.astype(np.float64) - computed) > NORMAL_TOLERANCE,
            axis=1,
        )
        fixed = int(wrong.sum())
        store.normals = computed.astype(store.normals.dtype)
        self.logger.debug("Fixed %d normal values", fixed)
        return PhaseResult(
            replace(stats, normals_fixed=stats.normals_fixed + fixed),
            events=(
                RepairEvent(
                    "fix_normal_values",
                    "Checked normal values",
                    {"normals_fixed": fixed},
                ),
            ),
        )
