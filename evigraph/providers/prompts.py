"""Prompt templates for the LLM-backed collaborators."""

from typing import List

from evigraph.core import constants
from evigraph.core.contracts import Source

ANSWER_SYSTEM_PROMPT = """You are a research assistant that answers questions using only the numbered web sources provided.

Split the answer into short blocks (paragraphs or bullets). Every block must cite the ids of the sources that support it.
Only cite ids that appear in the source list. Do not invent sources.

Return ONLY valid JSON matching this structure:
{
  "text": "The complete answer as plain text",
  "blocks": [
    {"id": "ans-1", "type": "paragraph", "text": "Block text", "source_ids": ["src-1", "src-3"]}
  ]
}"""

CONCEPT_SYSTEM_PROMPT = """You are an expert assistant that identifies key supporting concepts and ideas from source material.
Extract supporting concepts with short titles, explanatory text, and importance scores."""

REASONING_SYSTEM_PROMPT = """You explain the reasoning behind a statement step by step.
Expand on the given text: make implicit assumptions explicit, connect the claims, and note limitations.
Return ONLY valid JSON: {"expandedText": "..."}"""


def truncate_content(content: str, max_chars: int = None) -> str:
    """Truncate source content, preferring to cut at a sentence end."""
    max_chars = max_chars if max_chars is not None else constants.SOURCE_CONTENT_MAX_CHARS
    if len(content) <= max_chars:
        return content
    truncated = content[:max_chars]
    last_period = truncated.rfind(".")
    if last_period > max_chars * 0.7:
        return truncated[: last_period + 1] + " [...]"
    return truncated + "..."


def build_answer_prompt(question: str, sources: List[Source]) -> str:
    """User prompt listing the sources available for citation."""
    lines = [f"Question: {question}", "", "Sources:"]
    for source in sources:
        lines.append(f"[{source.id}] {source.title} ({source.url})")
        lines.append(truncate_content(source.content, 1200))
        lines.append("")
    lines.append("Answer the question in 3-8 blocks, citing source ids for every block.")
    return "\n".join(lines)


def build_concept_prompt(source: Source, concept_count: int) -> str:
    """User prompt asking for concept_count concepts from one source."""
    return f"""Source Title: {source.title}
Source URL: {source.url}

Content:
{truncate_content(source.content)}

Extract {concept_count} supporting concepts from this source that:
- Reveal core ideas, terminology, or themes from the content
- Are distinct and non-overlapping
- Include an importance score between 0 and 1 (higher = more central to the source)

Return ONLY valid JSON matching this structure:
{{
  "concepts": [
    {{
      "title": "Concept name (1-5 words)",
      "text": "2-4 sentence explanation of this concept",
      "short_label": "tag (1-3 words for visualization)",
      "importance": 0.85
    }}
  ]
}}

Provide exactly {concept_count} concepts. Keep text concise and focused."""


def build_reasoning_prompt(title: str, text: str) -> str:
    """User prompt for reasoning expansion."""
    return f"""Title: {title}

Text:
{text}

Expand the reasoning behind this text in 2-4 short paragraphs."""
