"""Incremental expansion of an existing evidence graph.

Expansion runs one focused collaborator call on demand: concepts for a
single source, or expanded reasoning for a single answer block. Results are
additive; new nodes always get fresh ids so repeated expansions of the same
node never collide with what the client already holds.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from evigraph.core.contracts import Concept, ReasoningExpansion, Source
from evigraph.core.density import DensityLevel, get_density_config, resolve_density_level
from evigraph.core.errors import InvalidInputError, MissingConfigError
from evigraph.core.graph import AnswerBlockNode, DirectSourceNode, Edge, EdgeRelation, Node, SecondarySourceNode
from evigraph.providers.base import ConceptProvider, ReasoningProvider

from .concept_extractor import SecondaryConceptExtractor, concept_node

logger = logging.getLogger(__name__)

MISSING_OR_INVALID = "missing or invalid"
EMPTY = "cannot be empty"


@dataclass
class ExpansionResult:
    """Concepts extracted by a source expansion, plus graph additions when anchored to a node."""

    concepts: List[Concept] = field(default_factory=list)
    nodes: List[SecondarySourceNode] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"concepts": [concept.to_dict() for concept in self.concepts]}
        if self.nodes:
            data["nodes"] = [node.to_dict() for node in self.nodes]
            data["edges"] = [edge.to_dict() for edge in self.edges]
        data["meta"] = dict(self.meta)
        return data


def _require_text(payload: Mapping[str, Any], name: str, allow_blank: bool = False) -> str:
    value = payload.get(name)
    if not isinstance(value, str):
        raise InvalidInputError(name, MISSING_OR_INVALID)
    if not allow_blank and not value.strip():
        raise InvalidInputError(name, EMPTY)
    if not value:
        raise InvalidInputError(name, MISSING_OR_INVALID)
    return value


def validate_source_input(payload: Any) -> Source:
    """
    Validate a source expansion request body.

    Raises:
        InvalidInputError: With reason MISSING_OR_INVALID when a field is
            absent or not a string, EMPTY when content is blank
    """
    if not isinstance(payload, Mapping):
        raise InvalidInputError("title", MISSING_OR_INVALID)
    title = _require_text(payload, "title", allow_blank=True)
    url = _require_text(payload, "url", allow_blank=True)
    content = _require_text(payload, "content")
    source_id = payload.get("sourceId") or payload.get("id")
    return Source(
        id=source_id if isinstance(source_id, str) and source_id else "source",
        title=title,
        url=url,
        snippet="",
        full_text=content,
    )


class ExpansionService:
    """On-demand concept and reasoning expansion."""

    def __init__(
        self,
        concepts: ConceptProvider,
        reasoning: Optional[ReasoningProvider] = None,
        max_concurrent_calls: Optional[int] = None,
    ):
        self.extractor = SecondaryConceptExtractor(concepts, max_concurrent_calls)
        self.reasoning = reasoning

    async def expand_source(
        self,
        source: Union[Source, Mapping[str, Any]],
        density_level: Union[str, DensityLevel, None] = None,
        source_node_id: Optional[str] = None,
        parent_block_ids: Sequence[str] = (),
        existing_ids: Optional[Sequence[str]] = None,
    ) -> ExpansionResult:
        """
        Extract supporting concepts from one source.

        Args:
            source: Source record, or a request body with title, url and content
            density_level: Controls how many concepts are requested
            source_node_id: When given, concepts are also returned as new
                secondary_source nodes linked from this node
            parent_block_ids: Blocks citing the source, recorded on new nodes
            existing_ids: Node ids already in the client's graph

        Raises:
            InvalidInputError: If title, url or content is missing or empty
            ConfigurationError: If the concept collaborator is not configured
            CollaboratorError: If extraction fails
        """
        if not isinstance(source, Source):
            source = validate_source_input(source)
        elif not source.content.strip():
            raise InvalidInputError("content", EMPTY)

        level = resolve_density_level(density_level)
        count = get_density_config(level).secondary_sources.concepts_per_source
        logger.info("Expanding source %s (%s) at %s density", source.title, source.url, level.value)

        started = time.perf_counter()
        concepts = await self.extractor.extract_for_source(source, count)
        result = ExpansionResult(
            concepts=concepts,
            meta={
                "latencyMs": int((time.perf_counter() - started) * 1000),
                "densityLevel": level.value,
                "sourceTitle": source.title,
                "sourceUrl": source.url,
            },
        )

        if source_node_id:
            taken = set(existing_ids or ())
            batch = uuid.uuid4().hex[:8]
            for index, concept in enumerate(concepts):
                node_id = f"{source_node_id}::expanded-{batch}-{index + 1}"
                while node_id in taken:
                    node_id = f"{source_node_id}::expanded-{uuid.uuid4().hex[:8]}-{index + 1}"
                taken.add(node_id)
                node = concept_node(node_id, concept, source_node_id, parent_block_ids)
                result.nodes.append(node)
                result.edges.append(Edge(source=source_node_id, target=node_id, relation=EdgeRelation.UNDERPINS))

        logger.info("Expanded source %s into %d concepts", source.url, len(concepts))
        return result

    async def expand_block(self, title: str, text: str) -> ReasoningExpansion:
        """
        Expand the reasoning behind one answer block. Creates no nodes.

        Raises:
            InvalidInputError: If text is missing or empty
            MissingConfigError: If no reasoning collaborator is configured
        """
        if not isinstance(title, str):
            raise InvalidInputError("title", MISSING_OR_INVALID)
        if not isinstance(text, str) or not text:
            raise InvalidInputError("text", MISSING_OR_INVALID)
        if not text.strip():
            raise InvalidInputError("text", EMPTY)
        if self.reasoning is None:
            raise MissingConfigError("reasoning provider", source="service configuration")

        started = time.perf_counter()
        expansion = await self.reasoning.expand_reasoning(title, text)
        meta = dict(expansion.meta)
        meta.setdefault("latencyMs", int((time.perf_counter() - started) * 1000))
        return ReasoningExpansion(expanded_text=expansion.expanded_text, meta=meta)

    async def expand_node(
        self,
        node: Node,
        density_level: Union[str, DensityLevel, None] = None,
        existing_ids: Optional[Sequence[str]] = None,
    ) -> Union[ExpansionResult, ReasoningExpansion]:
        """Expand a graph node according to its variant."""
        if isinstance(node, DirectSourceNode):
            source = Source(
                id=node.id,
                title=node.title,
                url=node.url,
                snippet=node.snippet,
                score=node.score,
                full_text=node.full_text,
            )
            return await self.expand_source(
                source,
                density_level=density_level,
                source_node_id=node.id,
                parent_block_ids=node.cited_by,
                existing_ids=existing_ids,
            )
        if isinstance(node, AnswerBlockNode):
            return await self.expand_block(node.label, node.text)
        raise InvalidInputError("node", f"cannot expand {node.node_type.value} nodes")
