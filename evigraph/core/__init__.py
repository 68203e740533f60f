"""Core evidence graph engine: density presets, progress tracking, graph model."""

from .density import (
    DEFAULT_DENSITY,
    DENSITY_PRESETS,
    DensityConfig,
    DensityLevel,
    get_density_config,
    infer_density_level,
    resolve_density_level,
)
from .graph import Edge, EdgeRelation, EvidenceGraph, Node, NodeType
from .progress import Phase, ProgressState, ProgressTracker

__all__ = [
    "DEFAULT_DENSITY",
    "DENSITY_PRESETS",
    "DensityConfig",
    "DensityLevel",
    "get_density_config",
    "infer_density_level",
    "resolve_density_level",
    "Edge",
    "EdgeRelation",
    "EvidenceGraph",
    "Node",
    "NodeType",
    "Phase",
    "ProgressState",
    "ProgressTracker",
]
