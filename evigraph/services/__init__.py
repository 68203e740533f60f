"""Graph building services: extraction, semantic edges, assembly and expansion."""

from .concept_extractor import ExtractionResult, SecondaryConceptExtractor
from .expansion import ExpansionResult, ExpansionService
from .graph_assembler import GraphAssembler, GraphBuildResult
from .semantic_edges import SemanticEdgeBuilder, node_text

__all__ = [
    "ExpansionResult",
    "ExpansionService",
    "ExtractionResult",
    "GraphAssembler",
    "GraphBuildResult",
    "SecondaryConceptExtractor",
    "SemanticEdgeBuilder",
    "node_text",
]
