"""Collaborator abstraction: search, answer, concept, embedding and reasoning providers."""

from typing import Literal, Optional

from evigraph.config import AppConfig

from .base import (
    AnswerProvider,
    Collaborators,
    ConceptProvider,
    EmbeddingProvider,
    ReasoningProvider,
    SearchProvider,
)
from .openai_provider import OpenAIProvider
from .search import (
    SEARCH_BACKENDS,
    BraveSearchProvider,
    ExaSearchProvider,
    TavilySearchProvider,
)

SearchBackend = Literal["exa", "brave", "tavily"]


def create_search_provider(backend: SearchBackend, **kwargs) -> SearchProvider:
    """
    Factory function to create a search provider.

    Args:
        backend: "exa", "brave", or "tavily"
        **kwargs: Backend-specific configuration (api_key, timeout)

    Raises:
        ValueError: If backend is not supported
    """
    provider_class = SEARCH_BACKENDS.get(backend)
    if provider_class is None:
        raise ValueError(f"Unsupported search backend: {backend}")
    return provider_class(**kwargs)


def create_collaborators(config: Optional[AppConfig] = None) -> Collaborators:
    """Build the production collaborator set from configuration.

    Nothing here contacts a service; missing keys surface as
    MissingConfigError on the first call that needs them.
    """
    config = config or AppConfig.from_env()
    search_config = config.search
    api_key = {
        "exa": search_config.exa_api_key,
        "brave": search_config.brave_api_key,
        "tavily": search_config.tavily_api_key,
    }[search_config.backend]

    llm = OpenAIProvider(
        api_key=config.provider.openai_api_key,
        base_url=config.provider.openai_base_url,
        organization=config.provider.openai_organization,
        answer_model=config.provider.answer_model,
        concept_model=config.provider.concept_model,
        reasoning_model=config.provider.reasoning_model,
        embedding_model=config.provider.embedding_model,
        timeout=config.provider.request_timeout,
    )
    return Collaborators(
        search=create_search_provider(search_config.backend, api_key=api_key, timeout=search_config.timeout),
        answer=llm,
        concepts=llm,
        embeddings=llm,
        reasoning=llm,
    )


__all__ = [
    "AnswerProvider",
    "BraveSearchProvider",
    "Collaborators",
    "ConceptProvider",
    "EmbeddingProvider",
    "ExaSearchProvider",
    "OpenAIProvider",
    "ReasoningProvider",
    "SearchBackend",
    "SearchProvider",
    "TavilySearchProvider",
    "create_collaborators",
    "create_search_provider",
]
