"""Pytest configuration and fixtures."""

import hashlib
import json
from typing import Dict, List, Optional, Sequence
from unittest.mock import MagicMock

import pytest

from evigraph.core import constants
from evigraph.core.contracts import Answer, AnswerBlock, Concept, ReasoningExpansion, Source
from evigraph.core.progress import ProgressTracker
from evigraph.providers.base import (
    AnswerProvider,
    Collaborators,
    ConceptProvider,
    EmbeddingProvider,
    ReasoningProvider,
    SearchProvider,
)


class FakeClock:
    """Manually advanced clock for progress tracker tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSearch(SearchProvider):
    name = "fake-search"

    def __init__(self, sources: Sequence[Source] = (), error: Optional[Exception] = None):
        self.sources = list(sources)
        self.error = error
        self.calls: List[tuple] = []

    async def search(self, query: str, count: int) -> List[Source]:
        self.calls.append((query, count))
        if self.error:
            raise self.error
        return self.sources[:count]


class FakeAnswer(AnswerProvider):
    def __init__(self, answer: Optional[Answer] = None, error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls: List[tuple] = []

    async def generate_answer(self, question: str, sources: List[Source]) -> Answer:
        self.calls.append((question, [source.id for source in sources]))
        if self.error:
            raise self.error
        return self.answer


class FakeConcepts(ConceptProvider):
    """Returns count generated concepts per source unless told otherwise.

    overrides maps a source id to a concept list or an exception to raise.
    """

    def __init__(self, overrides: Optional[Dict[str, object]] = None):
        self.overrides = overrides or {}
        self.calls: List[tuple] = []

    async def extract_concepts(self, source: Source, count: int) -> List[Concept]:
        self.calls.append((source.id, count))
        override = self.overrides.get(source.id)
        if isinstance(override, Exception):
            raise override
        if override is not None:
            return list(override)
        return [
            Concept(
                title=f"{source.title} concept {i + 1}",
                text=f"Idea {i + 1} drawn from {source.title}.",
                short_label=f"{source.id} c{i + 1}",
                importance=round(1.0 - i * 0.1, 2),
            )
            for i in range(count)
        ]


def hashed_vector(text: str, dimension: int = 8) -> List[float]:
    """Deterministic pseudo-embedding of text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(digest[i] / 255.0) + 0.01 for i in range(dimension)]


class FakeEmbeddings(EmbeddingProvider):
    """Hash-based embeddings; texts containing a word in fail_on raise."""

    def __init__(self, fail_on: Sequence[str] = (), error: Optional[Exception] = None):
        self.fail_on = list(fail_on)
        self.error = error
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.error:
            raise self.error
        if any(word in text for word in self.fail_on):
            raise RuntimeError("embedding service unavailable")
        return hashed_vector(text)


class FakeReasoning(ReasoningProvider):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error

    async def expand_reasoning(self, title: str, text: str) -> ReasoningExpansion:
        if self.error:
            raise self.error
        return ReasoningExpansion(expanded_text=f"Why: {text}", meta={"model": "fake"})


@pytest.fixture(autouse=True)
def restore_constants():
    """Undo constants.load_config() side effects between tests."""
    saved = {name: value for name, value in vars(constants).items() if name.isupper()}
    yield
    for name, value in saved.items():
        setattr(constants, name, value)


@pytest.fixture
def mock_env(monkeypatch):
    """Mock environment variables for testing."""
    test_env = {
        "OPENAI_API_KEY": "sk-test-key",
        "EXA_API_KEY": "exa-test-key",
        "EVIGRAPH_SEARCH_BACKEND": "exa",
        "EVIGRAPH_DEBUG": "true",
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    return test_env


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    tracker = ProgressTracker(sweep_interval=60, retention=300, clock=clock)
    yield tracker
    tracker.shutdown()


@pytest.fixture
def sample_sources():
    """Four ranked sources with text."""
    return [
        Source(
            id=f"src-{i}",
            title=f"Source {i}",
            url=f"https://example.com/{i}",
            snippet=f"Snippet {i}",
            score=score,
            full_text=f"Full text of source {i}. It explains topic {i} in depth.",
        )
        for i, score in zip(range(1, 5), (0.9, 0.8, 0.7, 0.6))
    ]


@pytest.fixture
def sample_answer():
    """Three blocks; the bullet cites one unknown source."""
    return Answer(
        text="Auroras are caused by charged particles. The field guides them. Colours vary.",
        blocks=(
            AnswerBlock(id="ans-1", type="paragraph", text="Auroras are caused by charged particles.",
                        source_ids=("src-1", "src-2")),
            AnswerBlock(id="ans-2", type="paragraph", text="The magnetic field guides them.",
                        source_ids=("src-2", "src-3")),
            AnswerBlock(id="ans-3", type="bullet", text="Colours vary with altitude.",
                        source_ids=("src-4", "src-99")),
        ),
    )


@pytest.fixture
def collaborators(sample_sources, sample_answer):
    return Collaborators(
        search=FakeSearch(sample_sources),
        answer=FakeAnswer(sample_answer),
        concepts=FakeConcepts(),
        embeddings=FakeEmbeddings(),
        reasoning=FakeReasoning(),
    )


def make_chat_response(content):
    """Build a mock chat.completions.create return value.

    Args:
        content: String (raw text) or dict/list (auto-serialized to JSON)
    """
    if isinstance(content, (dict, list)):
        content = json.dumps(content)
    mock_msg = MagicMock()
    mock_msg.content = content
    mock_choice = MagicMock()
    mock_choice.message = mock_msg
    mock_resp = MagicMock()
    mock_resp.choices = [mock_choice]
    return mock_resp


def make_embedding_response(vector):
    """Build a mock embeddings.create return value."""
    item = MagicMock()
    item.embedding = list(vector)
    mock_resp = MagicMock()
    mock_resp.data = [item]
    return mock_resp
