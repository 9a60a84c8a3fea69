"""Provides the class for closing boundary loops with new facets."""

import logging
from dataclasses import replace

import numpy as np
from numpy.typing import NDArray

from facet_mender.events import Diagnostic, PhaseResult, RepairEvent, Severity
from facet_mender.exact_matcher import ExactMatcher
from facet_mender.geometry_helper import GeometryHelper
from facet_mender.mesh_store import MeshStats, MeshStore

# (facet, slot, flipped), where a flipped edge is walked from its end to its start
BoundaryEdge = tuple[int, int, bool]

# How far a new facet may lean against the facets around its hole
FACING_TOLERANCE = 1e-6


class HoleFiller:
    """The class for triangulating holes left between partially connected facets."""

    def __init__(self, *, debug: bool = False) -> None:
        self._exact = ExactMatcher(debug=debug)
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def run(self, store: MeshStore, stats: MeshStats) -> PhaseResult:
        """Fill every closed boundary loop and re-match the mesh.

        Parameters
        ----------
        store : MeshStore
            The store to repair. It must hold a current neighbor table.
        stats : MeshStats
            The statistics before filling.

        Returns
        -------
        PhaseResult
            The result holding the updated statistics and one diagnostic per
            boundary that could not be closed.
        """
        loops, chains = self.trace_boundaries(store)
        self.logger.debug(
            "Found %d closed boundary loops and %d open chains",
            len(loops),
            len(chains),
        )

        winding = store.winding_normals()
        diagnostics = []
        new_facets: list[NDArray] = []
        holes_filled = 0
        for loop in loops:
            points = self.loop_points(store, loop)
            signs = np.array([-1.0 if flipped else 1.0 for _, _, flipped in loop])
            facets = [facet for facet, _, _ in loop]
            bordering = np.mean(winding[facets] * signs[:, None], axis=0)
            triangles = self.triangulate(points, bordering=bordering)
            if triangles is None:
                diagnostics.append(
                    Diagnostic(
                        "OPEN_BOUNDARY",
                        f"Could not triangulate a hole bounded by {len(loop)} edges",
                        Severity.WARNING,
                        tuple(sorted({facet for facet, _, _ in loop})),
                        {"edges": len(loop), "closed": True},
                    ),
                )
                continue
            self.logger.debug(
                "Filling a hole bounded by %d edges with %d facets",
                len(loop),
                len(triangles),
            )
            new_facets.extend(triangles)
            holes_filled += 1

        for chain in chains:
            diagnostics.append(
                Diagnostic(
                    "OPEN_BOUNDARY",
                    f"Boundary chain of {len(chain)} edges does not close",
                    Severity.WARNING,
                    tuple(sorted({facet for facet, _, _ in chain})),
                    {"edges": len(chain), "closed": False},
                ),
            )

        if new_facets:
            vertices = np.array(new_facets, dtype=store.vertices.dtype)
            store.append(vertices, GeometryHelper.triangle_normals(vertices))
            stats = replace(stats, facets_added=stats.facets_added + len(vertices))

        stats = self._exact.run(store, stats).stats
        return PhaseResult(
            stats,
            events=(
                RepairEvent(
                    "fill_holes",
                    "Filled holes",
                    {
                        "holes_filled": holes_filled,
                        "facets_added": len(new_facets),
                        "open_boundaries": len(diagnostics),
                    },
                ),
            ),
            diagnostics=tuple(diagnostics),
        )

    def trace_boundaries(
        self,
        store: MeshStore,
    ) -> tuple[list[list[BoundaryEdge]], list[list[BoundaryEdge]]]:
        """Chain the unmatched edges of partially connected facets.

        Each chain continues with an unused unmatched edge touching the vertex where
        the previous edge ends, preferring one that starts there. An edge that ends
        there instead is walked backwards, which happens next to a facet wound
        against its neighbors. Closed chains are split at repeated vertices into
        simple loops, and each loop is turned to run the way most of its bordering
        facets' edges do.

        Parameters
        ----------
        store : MeshStore
            The store to trace. It must hold a current neighbor table.

        Returns
        -------
        loops : list[list[BoundaryEdge]]
            The closed loops as ``(facet, slot, flipped)`` edges in boundary order.
        chains : list[list[BoundaryEdge]]
            The chains that could not be closed.
        """
        degrees = store.neighbors.degrees()
        unmatched = [
            (facet, slot)
            for facet, slot in store.neighbors.unmatched()
            if degrees[facet] > 0
        ]
        starts = [
            GeometryHelper.vertex_key(store.vertices[facet, slot])
            for facet, slot in unmatched
        ]
        ends = [
            GeometryHelper.vertex_key(store.vertices[facet, (slot + 1) % 3])
            for facet, slot in unmatched
        ]
        incident: dict[bytes, list[int]] = {}
        for index in range(len(unmatched)):
            incident.setdefault(starts[index], []).append(index)
            incident.setdefault(ends[index], []).append(index)

        used = [False] * len(unmatched)

        def next_edge(tip: bytes) -> tuple[int, bool] | None:
            candidates = [e for e in incident.get(tip, ()) if not used[e]]
            if not candidates:
                return None
            forward = [e for e in candidates if starts[e] == tip]
            following = (forward or candidates)[0]
            used[following] = True
            return following, starts[following] != tip

        def far_end(step: tuple[int, bool]) -> bytes:
            index, flipped = step
            return starts[index] if flipped else ends[index]

        loops = []
        chains = []
        for first in range(len(unmatched)):
            if used[first]:
                continue
            used[first] = True
            chain = [(first, False)]
            while far_end(chain[-1]) != starts[first]:
                step = next_edge(far_end(chain[-1]))
                if step is None:
                    break
                chain.append(step)
            else:
                for loop in self._split_loop(chain, starts, ends):
                    oriented = [(*unmatched[index], flipped) for index, flipped in loop]
                    loops.append(self._majority_direction(oriented))
                continue

            # Open chain, so also walk away from its first vertex
            tail = []
            tip = starts[first]
            step = next_edge(tip)
            while step is not None:
                tail.append(step)
                step = next_edge(far_end(step))
            chain = [(index, not flipped) for index, flipped in reversed(tail)] + chain
            chains.append([(*unmatched[index], flipped) for index, flipped in chain])
        return loops, chains

    @staticmethod
    def _split_loop(
        chain: list[tuple[int, bool]],
        starts: list[bytes],
        ends: list[bytes],
    ) -> list[list[tuple[int, bool]]]:
        loops = []
        stack: list[tuple[int, bool]] = []
        position: dict[bytes, int] = {}
        for index, flipped in chain:
            key = ends[index] if flipped else starts[index]
            if key in position:
                begin = position[key]
                loops.append(stack[begin:])
                for removed, removed_flipped in stack[begin:]:
                    del position[ends[removed] if removed_flipped else starts[removed]]
                stack = stack[:begin]
            position[key] = len(stack)
            stack.append((index, flipped))
        if stack:
            loops.append(stack)
        return loops

    @staticmethod
    def _majority_direction(loop: list[BoundaryEdge]) -> list[BoundaryEdge]:
        against = sum(flipped for _, _, flipped in loop)
        if 2 * against <= len(loop):
            return loop
        return [(facet, slot, not flipped) for facet, slot, flipped in loop[::-1]]

    @staticmethod
    def loop_points(store: MeshStore, loop: list[BoundaryEdge]) -> NDArray:
        """Get the (n, 3) vertices of a loop, each the start of a boundary edge."""
        return np.array(
            [
                store.vertices[facet, (slot + 1) % 3 if flipped else slot]
                for facet, slot, flipped in loop
            ],
        )

    @staticmethod
    def triangulate(
        points: NDArray,
        *,
        bordering: NDArray | None = None,
    ) -> list[NDArray] | None:
        """Triangulate a boundary loop.

        The new facets run the loop backwards, so each new edge is the reverse of the
        bordering facet's edge and inherits its winding. A fan from the first vertex
        is used unless one of its triangles is degenerate, faces away from the
        loop's Newell normal or leans against the facets around the hole. Otherwise
        the loop is ear clipped in its plane.

        Parameters
        ----------
        points : NDArray
            An (n, 3) array of the loop vertices in boundary order.
        bordering : NDArray | None, optional
            The mean normal of the bordering facets, each turned to agree with the
            loop, by default None (unchecked)

        Returns
        -------
        list[NDArray] | None
            The ``n - 2`` new (3, 3) facets, or None if the loop can't be filled.
        """
        if len(points) < 3:  # noqa: PLR2004
            return None
        ring = np.asarray(points)[::-1]
        reference = GeometryHelper.newell_normal(ring)
        if not reference.any():
            return None

        fan = [(0, i, i + 1) for i in range(1, len(ring) - 1)]
        normals = GeometryHelper.triangle_normals(ring[np.array(fan)])
        facing = np.all(normals @ reference > 0)
        if facing and bordering is not None:
            # A hole closing a sheet faces away from its rim as a whole
            if bordering @ reference < 0:
                bordering = -bordering
            facing = np.all(normals @ bordering > -FACING_TOLERANCE)
        if facing:
            indices = fan
        else:
            u, v = GeometryHelper.plane_basis(reference)
            flat = ring.astype(np.float64) @ np.stack([u, v], axis=1)
            try:
                indices = GeometryHelper.ear_clip(flat)
            except ValueError:
                return None
        return [ring[list(triangle)] for triangle in indices]
