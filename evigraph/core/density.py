"""Density configuration for the evidence graph.

A density level scales fan-out at every stage of the pipeline:
- number of sources retrieved
- direct sources kept per answer block
- secondary concepts extracted
- semantic edge density

Levels:
    low: minimal graph for simple questions, faster response
    medium: balanced graph for most questions (default)
    high: rich graph for complex multi-part questions
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class DensityLevel(str, Enum):
    """Named density presets."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


DEFAULT_DENSITY = DensityLevel.MEDIUM


@dataclass(frozen=True)
class DirectSourceBounds:
    """Range of direct sources kept per answer block."""

    min: int
    target: int
    max: int


@dataclass(frozen=True)
class SecondarySourceLimits:
    """Secondary concept extraction limits."""

    top_sources_to_process: int
    concepts_per_source: int
    max_total_concepts: int


@dataclass(frozen=True)
class SemanticEdgeLimits:
    """Semantic edge generation limits."""

    min_similarity: float
    top_k: int
    max_edges: int


@dataclass(frozen=True)
class DensityConfig:
    """Configuration for graph density at each stage of the pipeline."""

    search_result_count: int
    direct_sources_per_block: DirectSourceBounds
    secondary_sources: SecondarySourceLimits
    semantic_edges: SemanticEdgeLimits

    def to_dict(self) -> Dict[str, Any]:
        """Wire form consumed by the graph client."""
        return {
            "exaNumResults": self.search_result_count,
            "directSourcesPerBlock": {
                "min": self.direct_sources_per_block.min,
                "target": self.direct_sources_per_block.target,
                "max": self.direct_sources_per_block.max,
            },
            "secondarySources": {
                "topSourcesToProcess": self.secondary_sources.top_sources_to_process,
                "conceptsPerSource": self.secondary_sources.concepts_per_source,
                "maxTotalConcepts": self.secondary_sources.max_total_concepts,
            },
            "semanticEdges": {
                "minSimilarity": self.semantic_edges.min_similarity,
                "topK": self.semantic_edges.top_k,
                "maxEdges": self.semantic_edges.max_edges,
            },
        }


DENSITY_PRESETS: Dict[DensityLevel, DensityConfig] = {
    DensityLevel.LOW: DensityConfig(
        search_result_count=6,
        direct_sources_per_block=DirectSourceBounds(min=1, target=2, max=4),
        secondary_sources=SecondarySourceLimits(
            top_sources_to_process=3, concepts_per_source=2, max_total_concepts=15
        ),
        semantic_edges=SemanticEdgeLimits(min_similarity=0.65, top_k=4, max_edges=40),
    ),
    DensityLevel.MEDIUM: DensityConfig(
        search_result_count=10,
        direct_sources_per_block=DirectSourceBounds(min=1, target=4, max=6),
        secondary_sources=SecondarySourceLimits(
            top_sources_to_process=5, concepts_per_source=3, max_total_concepts=30
        ),
        semantic_edges=SemanticEdgeLimits(min_similarity=0.60, top_k=6, max_edges=80),
    ),
    DensityLevel.HIGH: DensityConfig(
        search_result_count=12,
        direct_sources_per_block=DirectSourceBounds(min=1, target=5, max=8),
        secondary_sources=SecondarySourceLimits(
            top_sources_to_process=8, concepts_per_source=4, max_total_concepts=40
        ),
        semantic_edges=SemanticEdgeLimits(min_similarity=0.55, top_k=8, max_edges=120),
    ),
}

_MULTI_PART = re.compile(r"\b(and|or|also|additionally|furthermore|moreover)\b", re.IGNORECASE)
_LIST_REQUEST = re.compile(r"\b(list|enumerate|what are|types of|kinds of|examples of)\b", re.IGNORECASE)


def resolve_density_level(value: Union[str, DensityLevel, None]) -> DensityLevel:
    """Coerce a requested level to a preset, falling back to medium."""
    if isinstance(value, DensityLevel):
        return value
    if isinstance(value, str):
        try:
            return DensityLevel(value.strip().lower())
        except ValueError:
            pass
    return DEFAULT_DENSITY


def get_density_config(level: Union[str, DensityLevel, None] = None) -> DensityConfig:
    """Get density configuration for a level. Never fails."""
    return DENSITY_PRESETS[resolve_density_level(level)]


def infer_density_level(question: str, answer_block_count: Optional[int] = None) -> DensityLevel:
    """Pick a density level from question complexity.

    Additive score over question length, question marks, multi-part and
    list indicators, and (when known) the number of answer blocks.

    Args:
        question: The user's question
        answer_block_count: Number of answer blocks generated, if available

    Returns:
        Recommended density level
    """
    word_count = len(question.split())
    question_marks = question.count("?")

    score = 0

    if word_count > 20:
        score += 2
    elif word_count > 10:
        score += 1

    if question_marks > 1:
        score += 2

    if _MULTI_PART.search(question):
        score += 1
    if _LIST_REQUEST.search(question):
        score += 1

    if answer_block_count is not None:
        if answer_block_count >= 6:
            score += 2
        elif answer_block_count >= 4:
            score += 1

    if score >= 4:
        return DensityLevel.HIGH
    if score >= 2:
        return DensityLevel.MEDIUM
    return DensityLevel.LOW


def log_density_config(level: DensityLevel, config: DensityConfig) -> None:
    """Log the active density configuration."""
    logger.info("Using density level: %s", level.value.upper())
    logger.info("  search results: %d", config.search_result_count)
    logger.info(
        "  sources per block: %d-%d (target: %d)",
        config.direct_sources_per_block.min,
        config.direct_sources_per_block.max,
        config.direct_sources_per_block.target,
    )
    logger.info(
        "  secondary concepts: up to %d (%d per source)",
        config.secondary_sources.max_total_concepts,
        config.secondary_sources.concepts_per_source,
    )
    logger.info(
        "  semantic edges: up to %d (topK: %d, minSim: %.2f)",
        config.semantic_edges.max_edges,
        config.semantic_edges.top_k,
        config.semantic_edges.min_similarity,
    )
