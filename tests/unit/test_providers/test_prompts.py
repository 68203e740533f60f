"""Tests for prompt construction."""

from evigraph.core.contracts import Source
from evigraph.providers.prompts import build_answer_prompt, build_concept_prompt, truncate_content


class TestTruncateContent:
    def test_short_content_unchanged(self):
        assert truncate_content("Short text.") == "Short text."

    def test_cuts_at_sentence_end(self):
        content = "A" * 1500 + ". " + "B" * 1000
        result = truncate_content(content)
        assert result == "A" * 1500 + ". [...]"

    def test_falls_back_to_hard_cut(self):
        content = "A" * 500 + ". " + "B" * 3000
        result = truncate_content(content)
        assert result.endswith("...")
        assert not result.endswith(" [...]")
        assert len(result) == 2003

    def test_custom_budget(self):
        assert truncate_content("abcdefghij", 4) == "abcd..."


def test_concept_prompt_asks_for_exact_count():
    source = Source(id="src-1", title="Auroras", url="https://example.com", full_text="Charged particles.")
    prompt = build_concept_prompt(source, 3)
    assert "Extract 3 supporting concepts" in prompt
    assert "Provide exactly 3 concepts" in prompt
    assert "Charged particles." in prompt


def test_answer_prompt_lists_source_ids(sample_sources):
    prompt = build_answer_prompt("Why?", sample_sources)
    for source in sample_sources:
        assert f"[{source.id}]" in prompt
