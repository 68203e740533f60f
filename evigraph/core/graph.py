"""Evidence graph model.

Nodes form a closed set of variants, one per layer role:

    layer 0  QuestionNode, AnswerRootNode
    layer 1  AnswerBlockNode
    layer 2  DirectSourceNode
    layer 3  SecondarySourceNode

Each variant is a frozen dataclass carrying only its own metadata. Edges are
directed and tagged with a relation; semantic_related edges are treated as
undirected for uniqueness. EvidenceGraph enforces the invariants (unique node
ids, no self-edges, no dangling endpoints, one semantic edge per unordered
pair) and only ever grows.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple

from evigraph.core.errors import GraphIntegrityError


class NodeType(str, Enum):
    """Node variant discriminator."""

    QUESTION = "question"
    ANSWER_ROOT = "answer_root"
    ANSWER_BLOCK = "answer_block"
    DIRECT_SOURCE = "direct_source"
    SECONDARY_SOURCE = "secondary_source"


class EdgeRelation(str, Enum):
    """Edge relation tags."""

    ANSWERS = "answers"
    SUPPORTS = "supports"
    UNDERPINS = "underpins"
    SEMANTIC_RELATED = "semantic_related"


STRUCTURAL_RELATIONS = frozenset({EdgeRelation.ANSWERS, EdgeRelation.SUPPORTS, EdgeRelation.UNDERPINS})


@dataclass(frozen=True)
class Node:
    """Common node attributes. Use one of the variants below."""

    id: str
    label: str

    node_type: ClassVar[NodeType]
    layer: ClassVar[int]

    def metadata(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.node_type.value,
            "label": self.label,
            "layer": self.layer,
            "metadata": self.metadata(),
        }


@dataclass(frozen=True)
class QuestionNode(Node):
    text: str = ""

    node_type: ClassVar[NodeType] = NodeType.QUESTION
    layer: ClassVar[int] = 0

    def metadata(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class AnswerRootNode(Node):
    text: str = ""

    node_type: ClassVar[NodeType] = NodeType.ANSWER_ROOT
    layer: ClassVar[int] = 0

    def metadata(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class AnswerBlockNode(Node):
    text: str = ""
    block_type: str = "paragraph"
    source_ids: Tuple[str, ...] = ()

    node_type: ClassVar[NodeType] = NodeType.ANSWER_BLOCK
    layer: ClassVar[int] = 1

    def metadata(self) -> Dict[str, Any]:
        return {"text": self.text, "block_type": self.block_type, "source_ids": list(self.source_ids)}


@dataclass(frozen=True)
class DirectSourceNode(Node):
    title: str = ""
    url: str = ""
    snippet: str = ""
    full_text: Optional[str] = None
    score: float = 0.0
    author: Optional[str] = None
    published_date: Optional[str] = None
    cited_by: Tuple[str, ...] = ()

    node_type: ClassVar[NodeType] = NodeType.DIRECT_SOURCE
    layer: ClassVar[int] = 2

    def metadata(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "full_text": self.full_text,
            "score": self.score,
            "author": self.author,
            "published_date": self.published_date,
            "cited_by": list(self.cited_by),
        }


@dataclass(frozen=True)
class SecondarySourceNode(Node):
    title: str = ""
    text: str = ""
    short_label: str = ""
    importance: Optional[float] = None
    parent_source_id: str = ""
    parent_block_ids: Tuple[str, ...] = ()

    node_type: ClassVar[NodeType] = NodeType.SECONDARY_SOURCE
    layer: ClassVar[int] = 3

    def metadata(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "text": self.text,
            "short_label": self.short_label,
            "importance": self.importance,
            "parent_source_id": self.parent_source_id,
            "parent_block_ids": list(self.parent_block_ids),
        }


@dataclass(frozen=True)
class Edge:
    """A directed, weighted, tagged edge."""

    source: str
    target: str
    relation: EdgeRelation
    weight: float = 1.0

    def __post_init__(self):
        if self.source == self.target:
            raise GraphIntegrityError(f"Self-edge on node {self.source}")
        if not 0.0 <= self.weight <= 1.0:
            raise GraphIntegrityError(f"Edge weight {self.weight} outside [0, 1]")

    @property
    def pair(self) -> Tuple[str, str]:
        """Unordered endpoint pair, sorted by id."""
        return (self.source, self.target) if self.source <= self.target else (self.target, self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "relation": self.relation.value,
            "weight": self.weight,
        }


@dataclass
class EvidenceGraph:
    """Nodes and edges of one evidence graph."""

    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)
    _semantic_pairs: set = field(default_factory=set, repr=False)
    _edge_keys: set = field(default_factory=set, repr=False)

    def add_node(self, node: Node) -> None:
        if node.id in self.nodes:
            raise GraphIntegrityError(f"Duplicate node id {node.id}")
        self.nodes[node.id] = node

    def add_edge(self, edge: Edge) -> None:
        for endpoint in (edge.source, edge.target):
            if endpoint not in self.nodes:
                raise GraphIntegrityError(f"Edge endpoint {endpoint} is not a node")
        if edge.relation is EdgeRelation.SEMANTIC_RELATED:
            if edge.pair in self._semantic_pairs:
                raise GraphIntegrityError(f"Duplicate semantic edge {edge.pair}")
            self._semantic_pairs.add(edge.pair)
        key = (edge.source, edge.target, edge.relation)
        if key in self._edge_keys:
            raise GraphIntegrityError(f"Duplicate edge {edge.source} -> {edge.target} ({edge.relation.value})")
        self._edge_keys.add(key)
        self.edges.append(edge)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def get_node(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def nodes_of_type(self, node_type: NodeType) -> List[Node]:
        return [node for node in self.nodes.values() if node.node_type is node_type]

    def edges_of(self, relation: EdgeRelation) -> List[Edge]:
        return [edge for edge in self.edges if edge.relation is relation]

    def merge(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> Tuple[int, int]:
        """Add expansion results without touching existing elements.

        Nodes whose id already exists and edges already present are skipped.

        Returns:
            (nodes_added, edges_added)
        """
        nodes_added = 0
        for node in nodes:
            if node.id not in self.nodes:
                self.add_node(node)
                nodes_added += 1

        edges_added = 0
        for edge in edges:
            duplicate = (edge.source, edge.target, edge.relation) in self._edge_keys or (
                edge.relation is EdgeRelation.SEMANTIC_RELATED and edge.pair in self._semantic_pairs
            )
            if not duplicate:
                self.add_edge(edge)
                edges_added += 1
        return nodes_added, edges_added

    def stats(self) -> Dict[str, Any]:
        node_counts = {t.value: 0 for t in NodeType}
        for node in self.nodes.values():
            node_counts[node.node_type.value] += 1
        edge_counts = {r.value: 0 for r in EdgeRelation}
        for edge in self.edges:
            edge_counts[edge.relation.value] += 1
        return {
            "node_count": len(self.nodes),
            "edge_count": len(self.edges),
            "nodes_by_type": node_counts,
            "edges_by_relation": edge_counts,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges],
            "stats": self.stats(),
        }
