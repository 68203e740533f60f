"""Secondary concept extraction.

Turns the highest-ranked direct sources into layer 3 secondary_source nodes,
one per supporting concept, each linked to its parent source by an
underpins edge.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

from evigraph.core import constants
from evigraph.core.contracts import Concept, Source
from evigraph.core.density import DensityConfig
from evigraph.core.errors import ConfigurationError
from evigraph.core.graph import Edge, EdgeRelation, SecondarySourceNode
from evigraph.providers.base import ConceptProvider

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """
    Output of one extraction pass.

    Attributes:
        nodes: New secondary_source nodes, in source-rank order
        edges: underpins edges from each parent source to its concepts
        failed_sources: Ids of sources whose extraction call failed
        skipped_sources: Ids of sources with no usable content
        truncated: Concepts dropped by the total cap
    """

    nodes: List[SecondarySourceNode] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    failed_sources: List[str] = field(default_factory=list)
    skipped_sources: List[str] = field(default_factory=list)
    truncated: int = 0


def concept_node(
    node_id: str,
    concept: Concept,
    source_id: str,
    parent_block_ids: Sequence[str] = (),
) -> SecondarySourceNode:
    """Build the layer 3 node for a concept."""
    return SecondarySourceNode(
        id=node_id,
        label=concept.short_label,
        title=concept.title,
        text=concept.text,
        short_label=concept.short_label,
        importance=concept.importance,
        parent_source_id=source_id,
        parent_block_ids=tuple(parent_block_ids),
    )


def cap_by_importance(candidates: List[Tuple[Source, int, Concept]], limit: int) -> List[Tuple[Source, int, Concept]]:
    """Keep the limit most important candidates, preserving input order.

    Concepts without importance rank below any scored concept; ties keep
    input order.
    """
    if len(candidates) <= limit:
        return candidates
    ranked = sorted(
        range(len(candidates)),
        key=lambda i: (candidates[i][2].importance is None, -(candidates[i][2].importance or 0.0)),
    )
    keep = sorted(ranked[:limit])
    return [candidates[i] for i in keep]


class SecondaryConceptExtractor:
    """Extracts supporting concepts from direct sources with bounded concurrency."""

    def __init__(self, provider: ConceptProvider, max_concurrent_calls: Optional[int] = None):
        self.provider = provider
        self.max_concurrent_calls = max_concurrent_calls or constants.MAX_CONCURRENT_CALLS

    async def extract_for_source(self, source: Source, concept_count: int) -> List[Concept]:
        """Extract up to concept_count concepts from one source. Errors propagate."""
        concepts = await self.provider.extract_concepts(source, concept_count)
        return list(concepts)[:concept_count]

    async def extract(
        self,
        direct_sources: Sequence[Source],
        density: DensityConfig,
        block_index: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> ExtractionResult:
        """
        Extract concepts from the top-ranked direct sources.

        A failed call skips only that source. A ConfigurationError aborts
        the whole pass.

        Args:
            direct_sources: Direct sources of the graph
            density: Active density configuration
            block_index: Source id to ids of the blocks citing it

        Returns:
            ExtractionResult with nodes and underpins edges
        """
        limits = density.secondary_sources
        block_index = block_index or {}
        result = ExtractionResult()

        ranked = sorted(direct_sources, key=lambda source: -source.score)
        selected = ranked[: limits.top_sources_to_process]
        logger.info(
            "Extracting concepts from %d of %d direct sources (%d per source)",
            len(selected),
            len(direct_sources),
            limits.concepts_per_source,
        )

        semaphore = asyncio.Semaphore(self.max_concurrent_calls)

        async def run(source: Source) -> Optional[List[Concept]]:
            if not source.content.strip():
                logger.warning("Skipping concept extraction for %s: no content", source.id)
                result.skipped_sources.append(source.id)
                return []
            async with semaphore:
                try:
                    return await self.extract_for_source(source, limits.concepts_per_source)
                except ConfigurationError:
                    raise
                except Exception as e:
                    logger.warning("Concept extraction failed for %s (%s): %s", source.id, source.url, e)
                    return None

        outcomes = await asyncio.gather(*(run(source) for source in selected))

        candidates: List[Tuple[Source, int, Concept]] = []
        for source, concepts in zip(selected, outcomes):
            if concepts is None:
                result.failed_sources.append(source.id)
                continue
            for index, concept in enumerate(concepts):
                candidates.append((source, index, concept))

        kept = cap_by_importance(candidates, limits.max_total_concepts)
        result.truncated = len(candidates) - len(kept)
        if result.truncated:
            logger.info(
                "Capped secondary concepts at %d (dropped %d lower-importance concepts)",
                limits.max_total_concepts,
                result.truncated,
            )

        for source, index, concept in kept:
            node = concept_node(
                f"{source.id}::concept-{index + 1}",
                concept,
                source.id,
                block_index.get(source.id, ()),
            )
            result.nodes.append(node)
            result.edges.append(Edge(source=source.id, target=node.id, relation=EdgeRelation.UNDERPINS))

        logger.info(
            "Extracted %d secondary concepts (%d sources failed, %d skipped)",
            len(result.nodes),
            len(result.failed_sources),
            len(result.skipped_sources),
        )
        return result
