"""Tests for collaborator payload parsing."""

import math

from evigraph.core.contracts import Concept, Source, parse_answer_blocks, parse_concepts


class TestParseConcepts:
    def test_accepts_wrapped_list(self):
        result = parse_concepts({"concepts": [{"title": "Plasma", "text": "Ionised gas.", "short_label": "plasma",
                                              "importance": 0.8}]})
        assert result.items == [Concept(title="Plasma", text="Ionised gas.", short_label="plasma", importance=0.8)]
        assert result.dropped == 0

    def test_accepts_bare_list(self):
        result = parse_concepts([{"title": "Plasma", "text": "Ionised gas."}])
        assert len(result) == 1

    def test_short_label_defaults_to_title(self):
        result = parse_concepts([{"title": "Solar wind", "text": "Charged particles.", "short_label": "  "}])
        assert result.items[0].short_label == "Solar wind"

    def test_invalid_items_are_dropped_individually(self):
        result = parse_concepts(
            [
                {"title": "Good", "text": "Valid concept."},
                {"title": "", "text": "No title."},
                {"title": "No text"},
                {"title": 42, "text": "Numeric title."},
                "not an object",
            ]
        )
        assert [c.title for c in result.items] == ["Good"]
        assert result.dropped == 4

    def test_importance_must_be_a_real_number(self):
        result = parse_concepts(
            [
                {"title": "A", "text": "a", "importance": "high"},
                {"title": "B", "text": "b", "importance": True},
                {"title": "C", "text": "c", "importance": math.nan},
                {"title": "D", "text": "d", "importance": 1},
            ]
        )
        assert [c.importance for c in result.items] == [None, None, None, 1.0]

    def test_non_list_payload(self):
        assert parse_concepts({"concepts": "nope"}).dropped == 1
        assert parse_concepts(None).items == []
        assert parse_concepts({}).dropped == 0

    def test_to_dict_omits_missing_importance(self):
        assert "importance" not in Concept(title="A", text="a", short_label="a").to_dict()


class TestParseAnswerBlocks:
    def test_unknown_citations_removed(self):
        result = parse_answer_blocks(
            [{"id": "ans-1", "type": "paragraph", "text": "Claim.", "source_ids": ["src-1", "src-9", "src-1"]}],
            ["src-1", "src-2"],
        )
        assert result.items[0].source_ids == ("src-1",)

    def test_missing_id_and_type_defaulted(self):
        result = parse_answer_blocks([{"text": "First."}, {"text": "Second.", "type": "table"}], [])
        assert [b.id for b in result.items] == ["ans-1", "ans-2"]
        assert all(b.type == "paragraph" for b in result.items)

    def test_empty_text_and_duplicates_dropped(self):
        result = parse_answer_blocks(
            [
                {"id": "ans-1", "text": "One."},
                {"id": "ans-1", "text": "Again."},
                {"id": "ans-2", "text": "   "},
                {"id": "ans-3", "text": "Three.", "type": "bullet", "source_ids": [{"id": 1}, "src-1"]},
            ],
            ["src-1"],
        )
        assert [b.id for b in result.items] == ["ans-1", "ans-3"]
        assert result.items[1].type == "bullet"
        assert result.items[1].source_ids == ("src-1",)
        assert result.dropped == 2

    def test_non_list_payload(self):
        assert parse_answer_blocks("blocks", ["src-1"]).dropped == 1


def test_source_content_prefers_full_text():
    assert Source(id="s", title="t", url="u", snippet="short", full_text="long").content == "long"
    assert Source(id="s", title="t", url="u", snippet="short").content == "short"
    assert Source(id="s", title="t", url="u").content == ""
