"""Semantic edge construction.

Embeds node text, computes pairwise cosine similarity and keeps, for each
node, its top-k most similar neighbours above a similarity floor. Pairs are
undirected: each unordered pair yields at most one semantic_related edge,
and the total is capped by descending similarity.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from evigraph.core import constants
from evigraph.core.density import DensityConfig
from evigraph.core.errors import ConfigurationError
from evigraph.core.graph import (
    AnswerBlockNode,
    AnswerRootNode,
    DirectSourceNode,
    Edge,
    EdgeRelation,
    Node,
    QuestionNode,
    SecondarySourceNode,
)
from evigraph.providers.base import EmbeddingProvider

logger = logging.getLogger(__name__)


def node_text(node: Node) -> str:
    """Canonical text used to embed a node."""
    if isinstance(node, (QuestionNode, AnswerRootNode, AnswerBlockNode)):
        text = node.text
    elif isinstance(node, DirectSourceNode):
        text = f"{node.title}\n\n{node.full_text or node.snippet}"
    elif isinstance(node, SecondarySourceNode):
        text = f"{node.title}\n\n{node.text}"
    else:
        raise TypeError(f"Unsupported node type: {type(node).__name__}")
    return text.strip()[: constants.EMBED_TEXT_MAX_CHARS]


def _usable(node_id: str, vector: np.ndarray, dimension: Optional[int]) -> bool:
    if vector.ndim != 1 or vector.size == 0:
        logger.warning("Excluding node %s: empty embedding", node_id)
        return False
    if dimension is not None and vector.size != dimension:
        logger.warning("Excluding node %s: embedding dimension %d != %d", node_id, vector.size, dimension)
        return False
    if not np.all(np.isfinite(vector)) or np.linalg.norm(vector) == 0:
        logger.warning("Excluding node %s: zero or non-finite embedding", node_id)
        return False
    return True


class SemanticEdgeBuilder:
    """Builds semantic_related edges from node embeddings."""

    def __init__(self, provider: EmbeddingProvider, max_concurrent_calls: Optional[int] = None):
        self.provider = provider
        self.max_concurrent_calls = max_concurrent_calls or constants.MAX_CONCURRENT_CALLS

    async def embed_nodes(self, nodes: Sequence[Node], dimension: Optional[int] = None) -> Dict[str, np.ndarray]:
        """
        Embed nodes with bounded concurrency.

        Failed calls, empty or zero-norm vectors, and vectors whose dimension
        differs from the first accepted one (or from dimension, when given)
        are excluded with a warning. A ConfigurationError propagates.

        Returns:
            Node id to vector, in node order
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_calls)

        async def embed_one(node: Node) -> Optional[np.ndarray]:
            text = node_text(node)
            if not text:
                logger.warning("Excluding node %s: no text to embed", node.id)
                return None
            async with semaphore:
                try:
                    return np.asarray(await self.provider.embed(text), dtype=float)
                except ConfigurationError:
                    raise
                except Exception as e:
                    logger.warning("Embedding failed for node %s: %s", node.id, e)
                    return None

        raw = await asyncio.gather(*(embed_one(node) for node in nodes))

        vectors: Dict[str, np.ndarray] = {}
        for node, vector in zip(nodes, raw):
            if vector is None or not _usable(node.id, vector, dimension):
                continue
            dimension = dimension or vector.size
            vectors[node.id] = vector

        logger.info("Embedded %d of %d nodes", len(vectors), len(nodes))
        return vectors

    def build_edges(self, nodes: Sequence[Node], vectors: Dict[str, np.ndarray], density: DensityConfig) -> List[Edge]:
        """
        Select semantic edges from precomputed vectors.

        Nodes without a vector are skipped. Ties in similarity keep the
        order in which pairs were discovered.
        """
        limits = density.semantic_edges
        ids: List[str] = []
        rows: List[np.ndarray] = []
        dimension = None
        for node in nodes:
            vector = vectors.get(node.id)
            if vector is None or node.id in ids:
                continue
            if dimension is not None and vector.size != dimension:
                logger.warning("Excluding node %s: embedding dimension %d != %d", node.id, vector.size, dimension)
                continue
            dimension = vector.size
            ids.append(node.id)
            rows.append(vector)

        if len(ids) < 2 or limits.top_k <= 0 or limits.max_edges <= 0:
            return []

        matrix = np.vstack(rows)
        matrix = matrix / np.linalg.norm(matrix, axis=1, keepdims=True)
        similarities = matrix @ matrix.T

        pairs: Dict[tuple, float] = {}
        for i in range(len(ids)):
            row = similarities[i]
            order = np.argsort(-row, kind="stable")
            taken = 0
            for j in order:
                if taken >= limits.top_k:
                    break
                if j == i:
                    continue
                sim = float(row[j])
                if sim < limits.min_similarity:
                    break
                taken += 1
                key = (ids[i], ids[j]) if ids[i] <= ids[j] else (ids[j], ids[i])
                if key not in pairs or sim > pairs[key]:
                    pairs[key] = sim

        ranked = sorted(pairs.items(), key=lambda item: -item[1])[: limits.max_edges]
        edges = [
            Edge(
                source=a,
                target=b,
                relation=EdgeRelation.SEMANTIC_RELATED,
                weight=min(1.0, max(0.0, sim)),
            )
            for (a, b), sim in ranked
        ]
        logger.info(
            "Built %d semantic edges from %d candidate pairs (minSim %.2f, topK %d)",
            len(edges),
            len(pairs),
            limits.min_similarity,
            limits.top_k,
        )
        return edges

    async def build(self, nodes: Sequence[Node], density: DensityConfig) -> List[Edge]:
        """Embed nodes and build their semantic edges."""
        vectors = await self.embed_nodes(nodes)
        return self.build_edges(nodes, vectors, density)
