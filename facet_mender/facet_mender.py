"""Provides the class for repairing facet soup meshes."""

import logging

from facet_mender.config import RepairConfig
from facet_mender.events import (
    Diagnostic,
    PhaseResult,
    RepairEvent,
    RepairReport,
    Severity,
    Sink,
    Status,
)
from facet_mender.exact_matcher import ExactMatcher
from facet_mender.hole_filler import HoleFiller
from facet_mender.mesh_store import MeshStore
from facet_mender.nearby_matcher import NearbyMatcher
from facet_mender.orientation import NormalValueFixer, OrientationFixer, reverse_all
from facet_mender.pruner import UnconnectedPruner
from facet_mender.verifier import NeighborVerifier
from facet_mender.volume import VolumeCorrector

logging.basicConfig(format="%(message)s")


class FacetMender:
    """The class for repairing facet soup meshes.

    The phases always run in the same order: exact matching, nearby matching,
    removal of unconnected facets, hole filling, reversing all facets, fixing normal
    directions, fixing normal values, volume correction and neighbor verification.
    Each phase only runs when requested, except the volume correction which always
    runs.
    """

    def __init__(
        self,
        store: MeshStore,
        *,
        debug: bool = False,
        sink: Sink | None = None,
    ) -> None:
        self.store = store
        self.sink = sink
        self.debug = debug
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def repair(
        self,
        config: RepairConfig | None = None,
        **flags: object,
    ) -> RepairReport:
        """Repair the mesh in place.

        Parameters
        ----------
        config : RepairConfig | None, optional
            The phases to run, by default None
        **flags : object
            ``RepairConfig`` fields, used when no ``config`` is given.

        Returns
        -------
        RepairReport
            The statistics, events and diagnostics of the repair.

        Raises
        ------
        ValueError
            If both a config and flags are given.
        """
        if config is not None and flags:
            msg = "Pass either a RepairConfig or flags, not both"
            raise ValueError(msg)
        config = (config or RepairConfig(**flags)).resolved()  # type: ignore[arg-type]
        debug = self.debug or config.verbose
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

        store = self.store
        report = RepairReport(store.initial_stats())
        if store.fault is not None:
            self._emit(
                report,
                Diagnostic(
                    "MESH_FAULT",
                    f"Mesh is faulted and must be reloaded: {store.fault}",
                    Severity.ERROR,
                ),
            )
            report.status = Status.FAULT
            return report
        if store.facet_count == 0:
            self._emit(
                report,
                Diagnostic(
                    "EMPTY_MESH",
                    "Mesh has no facets to repair",
                    Severity.ERROR,
                ),
            )

        if config.exact:
            self.logger.debug("Checking exact...")
            result = ExactMatcher(debug=debug).run(store, report.stats)
            if not self._apply(report, "exact", result):
                return report

        if config.nearby:
            if report.stats.fully_connected:
                self.logger.debug("All facets connected. No nearby check necessary.")
            else:
                tolerance, increment = config.nearby_parameters(
                    report.stats.shortest_edge,
                    report.stats.bounding_diameter,
                )
                matcher = NearbyMatcher(
                    tolerance,
                    increment,
                    config.iterations,
                    debug=debug,
                )
                result = matcher.run(store, report.stats)
                if not self._apply(report, "nearby", result):
                    return report

        if config.remove_unconnected:
            if report.stats.fully_connected:
                self.logger.debug("No unconnected need to be removed.")
            else:
                self.logger.debug("Removing unconnected facets...")
                result = UnconnectedPruner(debug=debug).run(store, report.stats)
                if not self._apply(report, "remove_unconnected", result):
                    return report

        if config.fill_holes:
            if report.stats.fully_connected:
                self.logger.debug("No holes need to be filled.")
            else:
                self.logger.debug("Filling holes...")
                result = HoleFiller(debug=debug).run(store, report.stats)
                if not self._apply(report, "fill_holes", result):
                    return report

        if config.reverse_all:
            self.logger.debug("Reversing all facets...")
            result = reverse_all(store, report.stats)
            if not self._apply(report, "reverse_all", result):
                return report

        if config.normal_directions:
            self.logger.debug("Checking normal directions...")
            result = OrientationFixer(debug=debug).run(store, report.stats)
            if not self._apply(report, "fix_normal_directions", result):
                return report

        if config.normal_values:
            self.logger.debug("Checking normal values...")
            result = NormalValueFixer(debug=debug).run(store, report.stats)
            if not self._apply(report, "fix_normal_values", result):
                return report

        # Always calculate the volume
        self.logger.debug("Calculating volume...")
        result = VolumeCorrector(debug=debug).run(store, report.stats)
        if not self._apply(report, "volume", result):
            return report

        if config.exact:
            self.logger.debug("Verifying neighbors...")
            result = NeighborVerifier(debug=debug).run(store, report.stats)
            if not self._apply(report, "verify_neighbors", result):
                return report
            self._report_residual_defects(report)

        return report

    def _apply(self, report: RepairReport, phase: str, result: PhaseResult) -> bool:
        """Fold a phase result into the report.

        Returns
        -------
        bool
            Whether the pipeline may continue.
        """
        report.phases.append(phase)
        report.stats = result.stats
        for event in result.events:
            self._emit(report, event)
        for diagnostic in result.diagnostics:
            self._emit(report, diagnostic)
        if result.status is Status.FAULT:
            reason = next(
                (d.message for d in result.diagnostics if d.severity is Severity.ERROR),
                f"Phase {phase} failed",
            )
            self.logger.warning("Repair stopped after %s: %s", phase, reason)
            self.store.fault = reason
            report.status = Status.FAULT
            return False
        return True

    def _report_residual_defects(self, report: RepairReport) -> None:
        stats = report.stats
        unmatched = self.store.neighbors.unmatched()
        if unmatched:
            self._emit(
                report,
                Diagnostic(
                    "UNMATCHED_EDGES",
                    f"{len(unmatched)} edges remain without a neighbor",
                    Severity.WARNING,
                    tuple(sorted({facet for facet, _ in unmatched})),
                    {
                        "edges": len(unmatched),
                        "facets_w_1_bad_edge": stats.facets_w_1_bad_edge,
                        "facets_w_2_bad_edge": stats.facets_w_2_bad_edge,
                        "facets_w_3_bad_edge": stats.facets_w_3_bad_edge,
                    },
                ),
            )
        if stats.backwards_edges:
            self._emit(
                report,
                Diagnostic(
                    "BACKWARDS_EDGES",
                    f"{stats.backwards_edges} edges join facets of opposite winding",
                    Severity.WARNING,
                    data={"backwards_edges": stats.backwards_edges},
                ),
            )

    def _emit(self, report: RepairReport, item: RepairEvent | Diagnostic) -> None:
        if isinstance(item, Diagnostic):
            report.diagnostics.append(item)
            if item.severity is Severity.ERROR:
                self.logger.warning("%s: %s", item.code, item.message)
        else:
            report.events.append(item)
            self.logger.debug("%s: %s %s", item.phase, item.message, item.counters)
        if self.sink is not None:
            self.sink(item)
