"""Abstract base classes for external collaborators.

The graph engine only talks to these interfaces. Every method is a
suspension point; implementations raise CollaboratorError (or a subclass)
when a call fails and MissingConfigError when a credential is absent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from evigraph.core.contracts import Answer, Concept, ReasoningExpansion, Source


class SearchProvider(ABC):
    """Web retrieval."""

    name: str = "search"

    @abstractmethod
    async def search(self, query: str, count: int) -> List[Source]:
        """
        Retrieve web sources for a query.

        Args:
            query: Search query (the user's question)
            count: Number of results wanted

        Returns:
            Sources in rank order with ids src-1..src-n and scores in [0, 1]

        Raises:
            CollaboratorError: If the search fails
        """
        pass


class AnswerProvider(ABC):
    """Cited answer generation."""

    @abstractmethod
    async def generate_answer(self, question: str, sources: List[Source]) -> Answer:
        """
        Generate an answer split into cited blocks.

        Blocks only cite ids present in sources.

        Raises:
            CollaboratorError: If generation fails or yields no usable block
        """
        pass


class ConceptProvider(ABC):
    """Supporting concept extraction from one source."""

    @abstractmethod
    async def extract_concepts(self, source: Source, count: int) -> List[Concept]:
        """
        Extract up to count supporting concepts from a source.

        Returns:
            Valid concepts (malformed items already dropped)

        Raises:
            CollaboratorError: If the call fails
        """
        pass


class EmbeddingProvider(ABC):
    """Text embedding."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embed text into a fixed-dimension vector.

        Raises:
            CollaboratorError: If the call fails
        """
        pass


class ReasoningProvider(ABC):
    """Expanded reasoning for an answer block."""

    @abstractmethod
    async def expand_reasoning(self, title: str, text: str) -> ReasoningExpansion:
        """
        Explain the reasoning behind a block of text in more depth.

        Raises:
            CollaboratorError: If the call fails
        """
        pass


@dataclass
class Collaborators:
    """The set of collaborators one graph build needs."""

    search: SearchProvider
    answer: AnswerProvider
    concepts: ConceptProvider
    embeddings: EmbeddingProvider
    reasoning: Optional[ReasoningProvider] = None
