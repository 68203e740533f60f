"""Canonical records exchanged with external collaborators.

- Source: a retrieved web source
- AnswerBlock / Answer: the generated, cited answer
- Concept: a supporting idea extracted from one source
- ReasoningExpansion: expanded reasoning text for one answer block

Collaborator payloads are untrusted. The parse_* helpers validate them field
by field and return a ParseResult holding the valid subset plus the number
of items dropped, so one malformed item never aborts a batch.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

BLOCK_TYPES = ("paragraph", "bullet")


@dataclass
class ParseResult(Generic[T]):
    """Valid items parsed from an untrusted payload."""

    items: List[T] = field(default_factory=list)
    dropped: int = 0

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class Source:
    """A retrieved web source.

    Attributes:
        id: Stable source id (src-1, src-2, ...) used for citations
        title: Page title
        url: Page URL
        snippet: Short summary or highlight
        score: Relevance score in [0, 1]
        full_text: Page text when the search backend returns it
        author: Author if known
        published_date: Publication date string if known
    """

    id: str
    title: str
    url: str
    snippet: str = ""
    score: float = 0.0
    full_text: Optional[str] = None
    author: Optional[str] = None
    published_date: Optional[str] = None

    @property
    def content(self) -> str:
        """Best available text for extraction."""
        return self.full_text or self.snippet or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "full_text": self.full_text,
            "score": self.score,
            "author": self.author,
            "publishedDate": self.published_date,
        }


@dataclass(frozen=True)
class AnswerBlock:
    """One paragraph or bullet of the generated answer."""

    id: str
    type: str
    text: str
    source_ids: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "text": self.text, "source_ids": list(self.source_ids)}


@dataclass(frozen=True)
class Answer:
    """Generated answer with its citation blocks."""

    text: str
    blocks: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "blocks": [block.to_dict() for block in self.blocks]}


@dataclass(frozen=True)
class Concept:
    """A supporting concept extracted from a source."""

    title: str
    text: str
    short_label: str
    importance: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"title": self.title, "text": self.text, "short_label": self.short_label}
        if self.importance is not None:
            data["importance"] = self.importance
        return data


@dataclass(frozen=True)
class ReasoningExpansion:
    """Expanded reasoning for one answer block."""

    expanded_text: str
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"expandedText": self.expanded_text, "meta": dict(self.meta)}


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _as_number(value: Any) -> Optional[float]:
    # bool is an int subclass; a JSON true is not an importance score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def parse_concepts(payload: Any) -> ParseResult[Concept]:
    """Parse a concept extraction payload.

    Accepts either a list of concepts or an object with a "concepts" list.
    Each concept needs a non-empty title and text; short_label falls back to
    the title and importance to None when not a number.
    """
    if isinstance(payload, dict):
        payload = payload.get("concepts")
    if not isinstance(payload, list):
        return ParseResult(items=[], dropped=0 if payload is None else 1)

    result: ParseResult[Concept] = ParseResult()
    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            logger.warning("Skipping invalid concept %d: not an object", index)
            result.dropped += 1
            continue

        title, text = raw.get("title"), raw.get("text")
        if not _non_empty_str(title) or not _non_empty_str(text):
            logger.warning("Skipping concept %d with invalid title/text", index)
            result.dropped += 1
            continue

        short_label = raw.get("short_label")
        if not _non_empty_str(short_label):
            short_label = title

        result.items.append(
            Concept(
                title=title.strip(),
                text=text.strip(),
                short_label=short_label.strip(),
                importance=_as_number(raw.get("importance")),
            )
        )
    return result


def parse_answer_blocks(payload: Any, known_source_ids: Sequence[str]) -> ParseResult[AnswerBlock]:
    """Parse answer blocks, dropping malformed ones.

    Citations of ids outside known_source_ids are removed from the block;
    duplicate citations collapse to the first occurrence.
    """
    if not isinstance(payload, list):
        return ParseResult(items=[], dropped=0 if payload is None else 1)

    known = set(known_source_ids)
    seen_ids = set()
    result: ParseResult[AnswerBlock] = ParseResult()

    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            result.dropped += 1
            continue

        block_id = raw.get("id")
        text = raw.get("text")
        if not _non_empty_str(text):
            logger.warning("Skipping answer block %d with empty text", index)
            result.dropped += 1
            continue
        if not _non_empty_str(block_id):
            block_id = f"ans-{index + 1}"
        if block_id in seen_ids:
            logger.warning("Skipping duplicate answer block id %s", block_id)
            result.dropped += 1
            continue
        seen_ids.add(block_id)

        block_type = raw.get("type")
        if block_type not in BLOCK_TYPES:
            block_type = "paragraph"

        cited: List[str] = []
        raw_ids = raw.get("source_ids")
        for source_id in raw_ids if isinstance(raw_ids, list) else []:
            if not isinstance(source_id, str):
                continue
            if source_id in known and source_id not in cited:
                cited.append(source_id)
            elif source_id not in known:
                logger.warning("Block %s cites unknown source %r, dropping citation", block_id, source_id)

        result.items.append(AnswerBlock(id=block_id, type=block_type, text=text.strip(), source_ids=tuple(cited)))

    return result
