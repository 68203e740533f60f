"""OpenAI implementation of the LLM-backed collaborators."""

import asyncio
import json
import logging
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, RateLimitError

from evigraph.core import constants
from evigraph.core.contracts import Answer, Concept, ReasoningExpansion, Source, parse_answer_blocks, parse_concepts
from evigraph.core.errors import (
    CollaboratorError,
    CollaboratorRateLimitError,
    CollaboratorTimeoutError,
    EvigraphError,
    MalformedResponseError,
    MissingConfigError,
)

from .base import AnswerProvider, ConceptProvider, EmbeddingProvider, ReasoningProvider
from .prompts import (
    ANSWER_SYSTEM_PROMPT,
    CONCEPT_SYSTEM_PROMPT,
    REASONING_SYSTEM_PROMPT,
    build_answer_prompt,
    build_concept_prompt,
    build_reasoning_prompt,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OpenAIProvider(AnswerProvider, ConceptProvider, EmbeddingProvider, ReasoningProvider):
    """Answer, concept, embedding and reasoning collaborator backed by OpenAI."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
        answer_model: str = "gpt-4o-mini",
        concept_model: str = "gpt-4o-mini",
        reasoning_model: str = "gpt-4o-mini",
        embedding_model: str = "text-embedding-3-small",
        timeout: float = 60.0,
    ):
        """
        Initialize OpenAI provider.

        The client is created on first use, so a missing key only fails the
        request that needs it.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            base_url: Custom base URL (optional)
            organization: OpenAI organization ID (optional)
            answer_model: Model for answer generation
            concept_model: Model for concept extraction
            reasoning_model: Model for reasoning expansion
            embedding_model: Model for embeddings
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.base_url = base_url
        self.organization = organization
        self.answer_model = answer_model
        self.concept_model = concept_model
        self.reasoning_model = reasoning_model
        self.embedding_model = embedding_model
        self.timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise MissingConfigError("OPENAI_API_KEY")
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                organization=self.organization,
                timeout=self.timeout,
            )
        return self._client

    async def _with_retry(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run an API call, retrying rate limit and connection errors with exponential backoff."""
        max_retries = constants.COLLABORATOR_MAX_RETRIES
        retry_delay = constants.COLLABORATOR_RETRY_DELAY

        for attempt in range(max_retries):
            try:
                return await call()

            except (RateLimitError, APIConnectionError) as e:
                if attempt < max_retries - 1:
                    wait_time = retry_delay * (2**attempt)
                    logger.warning(
                        "OpenAI %s failed (attempt %d/%d): %s. Retrying in %.1fs",
                        operation,
                        attempt + 1,
                        max_retries,
                        e,
                        wait_time,
                    )
                    await asyncio.sleep(wait_time)
                    continue
                if isinstance(e, RateLimitError):
                    raise CollaboratorRateLimitError("openai") from e
                if isinstance(e, APITimeoutError):
                    raise CollaboratorTimeoutError("openai", self.timeout) from e
                raise CollaboratorError(
                    f"OpenAI {operation} failed after {max_retries} retries: {e}",
                    collaborator="openai",
                    original_error=e,
                ) from e

            except EvigraphError:
                raise

            except Exception as e:
                raise CollaboratorError(
                    f"OpenAI {operation} failed: {e}",
                    collaborator="openai",
                    original_error=e,
                ) from e

        raise CollaboratorError(f"OpenAI {operation} failed after all retries", collaborator="openai")

    async def _chat_json(self, operation: str, model: str, system: str, prompt: str) -> Any:
        """Request a JSON completion and decode it."""

        async def call():
            return await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
            )

        response = await self._with_retry(operation, call)
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise MalformedResponseError("openai", f"empty {operation} response")
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedResponseError("openai", f"{operation} response is not valid JSON: {e}") from e

    async def generate_answer(self, question: str, sources: List[Source]) -> Answer:
        payload = await self._chat_json(
            "answer generation",
            self.answer_model,
            ANSWER_SYSTEM_PROMPT,
            build_answer_prompt(question, sources),
        )
        if not isinstance(payload, dict):
            raise MalformedResponseError("openai", "answer payload is not an object")

        parsed = parse_answer_blocks(payload.get("blocks"), [source.id for source in sources])
        if parsed.dropped:
            logger.warning("Dropped %d malformed answer blocks", parsed.dropped)
        if not parsed.items:
            raise MalformedResponseError("openai", "answer contained no valid blocks")

        text = payload.get("text")
        if not isinstance(text, str) or not text.strip():
            text = "\n\n".join(block.text for block in parsed.items)
        return Answer(text=text.strip(), blocks=tuple(parsed.items))

    async def extract_concepts(self, source: Source, count: int) -> List[Concept]:
        logger.info("Extracting %d concepts from source: %s", count, source.title)
        payload = await self._chat_json(
            "concept extraction",
            self.concept_model,
            CONCEPT_SYSTEM_PROMPT,
            build_concept_prompt(source, count),
        )
        parsed = parse_concepts(payload)
        if parsed.dropped:
            logger.warning("Dropped %d invalid concepts from %s", parsed.dropped, source.url)
        return parsed.items[:count]

    async def embed(self, text: str) -> List[float]:
        async def call():
            return await self.client.embeddings.create(model=self.embedding_model, input=text)

        response = await self._with_retry("embedding", call)
        if not response.data:
            raise MalformedResponseError("openai", "embedding response has no data")
        return list(response.data[0].embedding)

    async def expand_reasoning(self, title: str, text: str) -> ReasoningExpansion:
        payload = await self._chat_json(
            "reasoning expansion",
            self.reasoning_model,
            REASONING_SYSTEM_PROMPT,
            build_reasoning_prompt(title, text),
        )
        expanded = None
        if isinstance(payload, dict):
            expanded = payload.get("expandedText") or payload.get("expanded_text")
        if not isinstance(expanded, str) or not expanded.strip():
            raise MalformedResponseError("openai", "reasoning response has no expandedText")

        meta: Dict[str, Any] = {"model": self.reasoning_model}
        return ReasoningExpansion(expanded_text=expanded.strip(), meta=meta)
