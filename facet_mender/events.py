"""Provides the progress events, diagnostics and results reported by repairs."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from facet_mender.mesh_store import MeshStats


class Status(Enum):
    """The outcome of a repair phase."""

    OK = "ok"
    FAULT = "fault"


class Severity(Enum):
    """How prominently a diagnostic should be surfaced."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class RepairEvent:
    """A progress event emitted by a repair phase."""

    phase: str
    message: str
    counters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Diagnostic:
    """A defect or fault found during a repair.

    Attributes
    ----------
    code : str
        A stable identifier such as ``"ASYMMETRIC_LINK"``.
    message : str
        A human readable description.
    severity : Severity
        How prominently the diagnostic should be surfaced.
    facets : tuple[int, ...]
        The indices of the facets involved.
    data : dict[str, Any] | None
        Extra structured details.
    """

    code: str
    message: str
    severity: Severity = Severity.WARNING
    facets: tuple[int, ...] = ()
    data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert the diagnostic to plain data."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "facets": list(self.facets),
            "data": self.data,
        }


Sink = Callable[[RepairEvent | Diagnostic], None]


@dataclass(frozen=True)
class PhaseResult:
    """What a repair phase hands back to the orchestrator."""

    stats: MeshStats
    status: Status = Status.OK
    events: tuple[RepairEvent, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()


class MeshFaultError(Exception):
    """Raised on request when a repair ended in a mesh fault."""

    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic


@dataclass
class RepairReport:
    """The outcome of one repair call."""

    stats: MeshStats
    status: Status = Status.OK
    phases: list[str] = field(default_factory=list)
    events: list[RepairEvent] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def has_errors(self) -> bool:
        """Whether any error severity diagnostic was reported."""
        return any(d.severity is Severity.ERROR for d in self.diagnostics)

    def find(self, code: str) -> list[Diagnostic]:
        """Get every diagnostic with the given code."""
        return [d for d in self.diagnostics if d.code == code]

    def raise_for_fault(self) -> None:
        """Raise a ``MeshFaultError`` if the repair ended in a fault.

        Raises
        ------
        MeshFaultError
            If the status is ``Status.FAULT``.
        """
        if self.status is not Status.FAULT:
            return
        first = next(
            (d for d in self.diagnostics if d.severity is Severity.ERROR),
            Diagnostic("MESH_FAULT", "Repair ended in a fault", Severity.ERROR),
        )
        raise MeshFaultError(first)
