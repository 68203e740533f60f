"""Evidence graph assembly.

Orchestrates one graph build:

    research  search the web for the question
    answer    generate a cited answer split into blocks
    graph     layers 0-2 from the answer and its citations,
              layer 3 from secondary concept extraction,
              semantic edges across every node

Each stage is bounded by the resolved density configuration and reports to
the progress tracker at its boundaries. Extraction and embedding recover per
item, a failed search leaves the answer without sources, and answer
failures abort the build.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from evigraph.core import constants
from evigraph.core.contracts import Answer, AnswerBlock, Source
from evigraph.core.density import (
    DensityConfig,
    DensityLevel,
    DirectSourceBounds,
    get_density_config,
    infer_density_level,
    log_density_config,
    resolve_density_level,
)
from evigraph.core.errors import CollaboratorError, InvalidInputError, MalformedResponseError
from evigraph.core.graph import (
    AnswerBlockNode,
    AnswerRootNode,
    DirectSourceNode,
    Edge,
    EdgeRelation,
    EvidenceGraph,
    QuestionNode,
)
from evigraph.core.progress import Phase, ProgressTracker
from evigraph.providers.base import Collaborators

from .concept_extractor import SecondaryConceptExtractor
from .semantic_edges import SemanticEdgeBuilder

logger = logging.getLogger(__name__)

QUESTION_NODE_ID = "question"
ANSWER_ROOT_NODE_ID = "answer_root"
AUTO_DENSITY = "auto"

# Separates a source id from the suffix of nodes derived from it
DERIVED_ID_SEPARATOR = "::"


@dataclass
class GraphBuildResult:
    """Everything produced by one build."""

    question: str
    graph: EvidenceGraph
    answer: Answer
    sources: List[Source]
    density_level: DensityLevel
    density_config: DensityConfig
    job_id: Optional[str] = None
    timings: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        graph = self.graph.to_dict()
        return {
            "jobId": self.job_id,
            "question": self.question,
            "answer": self.answer.to_dict(),
            "sources": [source.to_dict() for source in self.sources],
            "densityLevel": self.density_level.value,
            "densityConfig": self.density_config.to_dict(),
            "evidence_graph": {"nodes": graph["nodes"], "edges": graph["edges"]},
            "meta": {"timings": dict(self.timings), "warnings": list(self.warnings), "stats": graph["stats"]},
        }


def _truncate_label(text: str, limit: int = None) -> str:
    limit = limit or constants.LABEL_MAX_CHARS
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3].rstrip() + "..."


def _clamp_weight(score: Optional[float]) -> float:
    if score is None:
        return 1.0
    return min(1.0, max(0.0, float(score)))


def select_block_sources(
    block: AnswerBlock,
    sources_by_id: Mapping[str, Source],
    bounds: DirectSourceBounds,
) -> List[str]:
    """
    Choose the direct sources kept for one answer block.

    Citations are restricted to known sources and deduplicated in citation
    order. Blocks citing more than bounds.max keep the highest-scored ones
    (ties keep citation order); blocks citing fewer than bounds.min keep
    what they have.

    Returns:
        Kept source ids in citation order
    """
    cited: List[str] = []
    for source_id in block.source_ids:
        if source_id in sources_by_id and source_id not in cited:
            cited.append(source_id)

    if len(cited) > bounds.max:
        ranked = sorted(range(len(cited)), key=lambda i: -sources_by_id[cited[i]].score)
        cited = [cited[i] for i in sorted(ranked[: bounds.max])]
    elif len(cited) < bounds.min:
        logger.debug("Block %s cites %d sources, below minimum %d", block.id, len(cited), bounds.min)
    return cited


def build_structure(
    question: str,
    answer: Answer,
    sources: Sequence[Source],
    density: DensityConfig,
) -> Tuple[EvidenceGraph, List[Source], Dict[str, Tuple[str, ...]], List[str]]:
    """
    Build layers 0-2 of the evidence graph.

    Blocks whose id repeats an earlier node, names a source, or contains
    DERIVED_ID_SEPARATOR are dropped with a warning.

    Returns:
        (graph, direct sources in first-citation order,
         source id to citing block ids, warnings)
    """
    warnings: List[str] = []
    graph = EvidenceGraph()
    sources_by_id = {source.id: source for source in sources}

    graph.add_node(QuestionNode(id=QUESTION_NODE_ID, label=_truncate_label(question), text=question))
    graph.add_node(AnswerRootNode(id=ANSWER_ROOT_NODE_ID, label="Answer", text=answer.text))
    graph.add_edge(Edge(source=QUESTION_NODE_ID, target=ANSWER_ROOT_NODE_ID, relation=EdgeRelation.ANSWERS))

    kept_blocks: List[Tuple[AnswerBlock, List[str]]] = []
    for block in answer.blocks:
        if graph.has_node(block.id):
            logger.warning("Dropping answer block with duplicate id %s", block.id)
            warnings.append(f"Dropped duplicate answer block {block.id}")
            continue
        if block.id in sources_by_id or DERIVED_ID_SEPARATOR in block.id:
            logger.warning("Dropping answer block %s: id is reserved for sources or concepts", block.id)
            warnings.append(f"Dropped answer block {block.id}: reserved id")
            continue
        cited = select_block_sources(block, sources_by_id, density.direct_sources_per_block)
        graph.add_node(
            AnswerBlockNode(
                id=block.id,
                label=_truncate_label(block.text),
                text=block.text,
                block_type=block.type,
                source_ids=tuple(cited),
            )
        )
        graph.add_edge(Edge(source=block.id, target=ANSWER_ROOT_NODE_ID, relation=EdgeRelation.ANSWERS))
        kept_blocks.append((block, cited))

    citing: Dict[str, List[str]] = {}
    for block, cited in kept_blocks:
        for source_id in cited:
            citing.setdefault(source_id, []).append(block.id)

    direct_sources: List[Source] = []
    for source_id, block_ids in citing.items():
        source = sources_by_id[source_id]
        if graph.has_node(source.id):
            logger.warning("Source id %s collides with an existing node, skipping", source.id)
            warnings.append(f"Skipped source {source.id}: id collision")
            continue
        graph.add_node(
            DirectSourceNode(
                id=source.id,
                label=_truncate_label(source.title),
                title=source.title,
                url=source.url,
                snippet=source.snippet,
                full_text=source.full_text,
                score=source.score,
                author=source.author,
                published_date=source.published_date,
                cited_by=tuple(block_ids),
            )
        )
        direct_sources.append(source)

    for block, cited in kept_blocks:
        for source_id in cited:
            if isinstance(graph.get_node(source_id), DirectSourceNode):
                graph.add_edge(
                    Edge(
                        source=block.id,
                        target=source_id,
                        relation=EdgeRelation.SUPPORTS,
                        weight=_clamp_weight(sources_by_id[source_id].score),
                    )
                )

    block_index = {source.id: tuple(citing[source.id]) for source in direct_sources}
    return graph, direct_sources, block_index, warnings


class GraphAssembler:
    """Builds evidence graphs from a question using the configured collaborators."""

    def __init__(
        self,
        collaborators: Collaborators,
        tracker: Optional[ProgressTracker] = None,
        max_concurrent_calls: Optional[int] = None,
    ):
        self.collaborators = collaborators
        self.tracker = tracker
        self.extractor = SecondaryConceptExtractor(collaborators.concepts, max_concurrent_calls)
        self.edge_builder = SemanticEdgeBuilder(collaborators.embeddings, max_concurrent_calls)

    def _report(self, job_id: Optional[str], progress: int, status: str, phase: Phase) -> None:
        if self.tracker is not None and job_id:
            self.tracker.update_progress(job_id, progress, status, phase)

    async def build(
        self,
        question: str,
        job_id: Optional[str] = None,
        density_level: Union[str, DensityLevel, None] = None,
    ) -> GraphBuildResult:
        """
        Build an evidence graph for a question.

        Args:
            question: The user's question
            job_id: Progress job id; the job is created if not yet tracked
            density_level: low, medium, high, or "auto" to infer from the
                question (and then refine from the answer's block count)

        Returns:
            GraphBuildResult

        Raises:
            InvalidInputError: If the question is empty
            ConfigurationError: If a collaborator credential is missing
            CollaboratorError: If answer generation fails
        """
        if not isinstance(question, str) or not question.strip():
            raise InvalidInputError("question", "must be a non-empty string")
        question = question.strip()

        auto = isinstance(density_level, str) and density_level.strip().lower() == AUTO_DENSITY
        level = infer_density_level(question) if auto else resolve_density_level(density_level)
        density = get_density_config(level)
        log_density_config(level, density)

        if self.tracker is not None and job_id and self.tracker.get_progress(job_id) is None:
            self.tracker.create_job(job_id)

        timings: Dict[str, int] = {}
        search_warnings: List[str] = []
        phase = Phase.INIT
        started = time.perf_counter()

        try:
            phase = Phase.RESEARCH
            self._report(job_id, 10, "Searching the web...", phase)
            stage = time.perf_counter()
            try:
                sources = await self.collaborators.search.search(question, density.search_result_count)
            except CollaboratorError as e:
                logger.warning("Search failed, answering without sources: %s", e)
                search_warnings.append(f"Search failed: {e.message}")
                sources = []
            timings["research"] = int((time.perf_counter() - stage) * 1000)
            self._report(job_id, 30, f"Found {len(sources)} sources", phase)

            phase = Phase.ANSWER
            self._report(job_id, 40, "Generating answer...", phase)
            stage = time.perf_counter()
            answer = await self.collaborators.answer.generate_answer(question, sources)
            timings["answer"] = int((time.perf_counter() - stage) * 1000)
            if not answer.blocks:
                raise MalformedResponseError("answer", "answer has no blocks")
            self._report(job_id, 60, f"Answer ready ({len(answer.blocks)} blocks)", phase)

            if auto:
                refined = infer_density_level(question, len(answer.blocks))
                if refined is not level:
                    logger.info("Refined density from %s to %s after answer", level.value, refined.value)
                    level, density = refined, get_density_config(refined)

            phase = Phase.GRAPH
            self._report(job_id, 70, "Building evidence graph...", phase)
            graph, direct_sources, block_index, warnings = build_structure(question, answer, sources, density)
            warnings[:0] = search_warnings
            if not sources and not search_warnings:
                warnings.append("Search returned no sources")

            stage = time.perf_counter()
            base_nodes = list(graph.nodes.values())
            embed_task = asyncio.create_task(self.edge_builder.embed_nodes(base_nodes))
            try:
                extraction = await self.extractor.extract(direct_sources, density, block_index)
            except BaseException:
                embed_task.cancel()
                raise
            timings["extraction"] = int((time.perf_counter() - stage) * 1000)

            for node in extraction.nodes:
                graph.add_node(node)
            for edge in extraction.edges:
                graph.add_edge(edge)
            for source_id in extraction.failed_sources:
                warnings.append(f"Concept extraction failed for {source_id}")

            base_vectors = await embed_task
            dimension = next(iter(base_vectors.values())).size if base_vectors else None
            concept_vectors = await self.edge_builder.embed_nodes(extraction.nodes, dimension)
            vectors = {**base_vectors, **concept_vectors}
            missing = len(graph.nodes) - len(vectors)
            if missing:
                warnings.append(f"{missing} nodes have no embedding")

            for edge in self.edge_builder.build_edges(list(graph.nodes.values()), vectors, density):
                graph.add_edge(edge)
            timings["graph"] = int((time.perf_counter() - stage) * 1000)
            self._report(job_id, 85, "Linking related nodes...", phase)

        except Exception as e:
            logger.error("Graph build failed in %s phase: %s", phase.value, e)
            self._report(job_id, 0, f"Error: {e}", phase)
            raise

        timings["total"] = int((time.perf_counter() - started) * 1000)
        if self.tracker is not None and job_id:
            self.tracker.complete_job(job_id)

        stats = graph.stats()
        logger.info(
            "Built evidence graph: %d nodes, %d edges in %dms",
            stats["node_count"],
            stats["edge_count"],
            timings["total"],
        )
        return GraphBuildResult(
            question=question,
            graph=graph,
            answer=answer,
            sources=list(sources),
            density_level=level,
            density_config=density,
            job_id=job_id,
            timings=timings,
            warnings=warnings,
        )
