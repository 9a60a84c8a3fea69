"""FacetMender: A Connectivity Repair Algorithm for Triangle Facet Soups."""

from .config import RepairConfig
from .data_factory import DataFactory
from .events import (
    Diagnostic,
    MeshFaultError,
    PhaseResult,
    RepairEvent,
    RepairReport,
    Severity,
    Status,
)
from .facet_mender import FacetMender
from .geometry_helper import GeometryHelper
from .mesh_generator import MeshGenerator
from .mesh_store import Facet, MeshStats, MeshStore
from .neighbors import Backward, Forward, NeighborLink, NeighborTable, NoNeighbor
from .visualizer import Visualizer

__all__ = [
    "Backward",
    "DataFactory",
    "Diagnostic",
    "Facet",
    "FacetMender",
    "Forward",
    "GeometryHelper",
    "MeshFaultError",
    "MeshGenerator",
    "MeshStats",
    "MeshStore",
    "NeighborLink",
    "NeighborTable",
    "NoNeighbor",
    "PhaseResult",
    "RepairConfig",
    "RepairEvent",
    "RepairReport",
    "Severity",
    "Status",
]
