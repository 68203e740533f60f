"""Tests for evidence graph assembly."""

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from conftest import FakeAnswer, FakeConcepts, FakeEmbeddings, FakeSearch
from evigraph.core.contracts import Answer, AnswerBlock, Source
from evigraph.core.density import DensityLevel, DirectSourceBounds, get_density_config
from evigraph.core.errors import CollaboratorError, InvalidInputError, MalformedResponseError, MissingConfigError
from evigraph.core.graph import AnswerBlockNode, DirectSourceNode, EdgeRelation, NodeType
from evigraph.core.progress import Phase
from evigraph.services.graph_assembler import (
    ANSWER_ROOT_NODE_ID,
    QUESTION_NODE_ID,
    GraphAssembler,
    build_structure,
    select_block_sources,
)

QUESTION = "What causes the northern lights?"


def source(source_id, score):
    return Source(id=source_id, title=source_id, url=f"https://example.com/{source_id}", score=score)


class TestSelectBlockSources:
    def test_unknown_and_repeated_citations_dropped(self):
        sources = {s.id: s for s in (source("src-1", 0.9), source("src-2", 0.5))}
        block = AnswerBlock(id="b", type="paragraph", text="t", source_ids=("src-2", "src-9", "src-2", "src-1"))
        assert select_block_sources(block, sources, DirectSourceBounds(1, 2, 4)) == ["src-2", "src-1"]

    def test_over_cited_block_keeps_best_in_citation_order(self):
        sources = {s.id: s for s in (source("src-1", 0.9), source("src-2", 0.8), source("src-3", 0.7))}
        block = AnswerBlock(id="b", type="paragraph", text="t", source_ids=("src-3", "src-1", "src-2"))
        assert select_block_sources(block, sources, DirectSourceBounds(1, 2, 2)) == ["src-1", "src-2"]

    def test_under_cited_block_keeps_what_it_has(self):
        block = AnswerBlock(id="b", type="paragraph", text="t", source_ids=())
        assert select_block_sources(block, {}, DirectSourceBounds(1, 2, 4)) == []

    @given(
        st.lists(st.floats(min_value=0, max_value=1, allow_nan=False), min_size=1, max_size=10),
        st.lists(st.integers(min_value=0, max_value=14), max_size=20),
        st.integers(min_value=1, max_value=8),
    )
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_selection_bounded(self, scores, citations, max_sources):
        """Property: kept ids are known, unique, in citation order, and at most max."""
        sources = {f"src-{i}": source(f"src-{i}", s) for i, s in enumerate(scores)}
        block = AnswerBlock(id="b", type="paragraph", text="t", source_ids=tuple(f"src-{i}" for i in citations))

        kept = select_block_sources(block, sources, DirectSourceBounds(1, 1, max_sources))

        assert len(kept) <= max_sources
        assert len(set(kept)) == len(kept)
        assert all(source_id in sources for source_id in kept)
        positions = [block.source_ids.index(source_id) for source_id in kept]
        assert positions == sorted(positions)


class TestBuildStructure:
    def test_layers_zero_to_two(self, sample_sources, sample_answer):
        graph, direct, block_index, warnings = build_structure(
            QUESTION, sample_answer, sample_sources, get_density_config("medium")
        )

        assert graph.get_node(QUESTION_NODE_ID).layer == 0
        assert graph.get_node(ANSWER_ROOT_NODE_ID).layer == 0
        assert [n.id for n in graph.nodes_of_type(NodeType.ANSWER_BLOCK)] == ["ans-1", "ans-2", "ans-3"]
        assert [s.id for s in direct] == ["src-1", "src-2", "src-3", "src-4"]
        assert block_index["src-2"] == ("ans-1", "ans-2")
        assert not graph.has_node("src-99")
        assert warnings == []

    def test_edges_and_weights(self, sample_sources, sample_answer):
        graph, _, _, _ = build_structure(QUESTION, sample_answer, sample_sources, get_density_config("medium"))

        answers = {(e.source, e.target) for e in graph.edges_of(EdgeRelation.ANSWERS)}
        assert answers == {
            (QUESTION_NODE_ID, ANSWER_ROOT_NODE_ID),
            ("ans-1", ANSWER_ROOT_NODE_ID),
            ("ans-2", ANSWER_ROOT_NODE_ID),
            ("ans-3", ANSWER_ROOT_NODE_ID),
        }
        supports = {(e.source, e.target): e.weight for e in graph.edges_of(EdgeRelation.SUPPORTS)}
        assert supports == {
            ("ans-1", "src-1"): 0.9,
            ("ans-1", "src-2"): 0.8,
            ("ans-2", "src-2"): 0.8,
            ("ans-2", "src-3"): 0.7,
            ("ans-3", "src-4"): 0.6,
        }

    def test_duplicate_block_dropped(self, sample_sources):
        answer = Answer(
            text="a b",
            blocks=(
                AnswerBlock(id="ans-1", type="paragraph", text="a", source_ids=("src-1",)),
                AnswerBlock(id="ans-1", type="paragraph", text="b", source_ids=("src-2",)),
            ),
        )
        graph, direct, _, warnings = build_structure(QUESTION, answer, sample_sources, get_density_config())

        assert graph.get_node("ans-1").text == "a"
        assert [s.id for s in direct] == ["src-1"]
        assert warnings == ["Dropped duplicate answer block ans-1"]

    def test_long_question_label_truncated(self, sample_sources, sample_answer):
        question = "why " * 50
        graph, _, _, _ = build_structure(question, sample_answer, sample_sources, get_density_config())
        node = graph.get_node(QUESTION_NODE_ID)
        assert len(node.label) <= 80
        assert node.label.endswith("...")
        assert node.text == question


@pytest.mark.asyncio
class TestGraphAssembler:
    async def test_full_build(self, collaborators, tracker):
        tracker.create_job("job-1")
        result = await GraphAssembler(collaborators, tracker).build(QUESTION, job_id="job-1")

        graph = result.graph
        assert result.density_level is DensityLevel.MEDIUM
        assert len(graph.nodes_of_type(NodeType.DIRECT_SOURCE)) == 4
        # medium: three concepts from each of the four sources
        concepts = graph.nodes_of_type(NodeType.SECONDARY_SOURCE)
        assert len(concepts) == 12
        assert len(graph.edges_of(EdgeRelation.UNDERPINS)) == 12
        assert all(node.layer == 3 for node in concepts)
        assert graph.get_node("src-2::concept-1").parent_block_ids == ("ans-1", "ans-2")

        semantic = graph.edges_of(EdgeRelation.SEMANTIC_RELATED)
        limits = result.density_config.semantic_edges
        assert len(semantic) <= limits.max_edges
        assert all(edge.weight >= limits.min_similarity for edge in semantic)
        assert set(result.timings) == {"research", "answer", "extraction", "graph", "total"}

    async def test_search_requested_with_density_count(self, collaborators):
        await GraphAssembler(collaborators).build(QUESTION, density_level="high")
        assert collaborators.search.calls == [(QUESTION, 12)]

    async def test_progress_completes(self, collaborators, tracker):
        tracker.create_job("job-1")
        await GraphAssembler(collaborators, tracker).build(QUESTION, job_id="job-1")

        state = tracker.get_progress("job-1")
        assert state.progress == 100
        assert state.phase is Phase.COMPLETE
        assert state.status == "Ready"

    async def test_untracked_job_is_created(self, collaborators, tracker):
        await GraphAssembler(collaborators, tracker).build(QUESTION, job_id="job-new")
        assert tracker.get_progress("job-new").progress == 100

    async def test_search_failure_degrades(self, collaborators, tracker):
        collaborators.search = FakeSearch(error=CollaboratorError("search is down", collaborator="exa"))
        tracker.create_job("job-1")

        result = await GraphAssembler(collaborators, tracker).build(QUESTION, job_id="job-1")

        graph = result.graph
        assert result.sources == []
        assert collaborators.answer.calls == [(QUESTION, [])]
        assert len(graph.nodes_of_type(NodeType.ANSWER_BLOCK)) == 3
        assert graph.nodes_of_type(NodeType.DIRECT_SOURCE) == []
        assert graph.edges_of(EdgeRelation.SUPPORTS) == []
        assert result.warnings[0] == "Search failed: search is down"
        assert "Search returned no sources" not in result.warnings
        assert tracker.get_progress("job-1").progress == 100

    async def test_search_credentials_abort(self, collaborators, tracker):
        collaborators.search = FakeSearch(error=MissingConfigError("EXA_API_KEY"))
        tracker.create_job("job-1")

        with pytest.raises(MissingConfigError):
            await GraphAssembler(collaborators, tracker).build(QUESTION, job_id="job-1")

        state = tracker.get_progress("job-1")
        assert state.status.startswith("Error:")
        assert state.phase is Phase.RESEARCH
        assert state.progress == 10

    async def test_answer_failure_aborts(self, collaborators, tracker):
        collaborators.answer = FakeAnswer(error=MalformedResponseError("answer", "not JSON"))
        tracker.create_job("job-1")

        with pytest.raises(MalformedResponseError):
            await GraphAssembler(collaborators, tracker).build(QUESTION, job_id="job-1")
        assert tracker.get_progress("job-1").phase is Phase.ANSWER

    async def test_answer_without_blocks(self, collaborators):
        collaborators.answer = FakeAnswer(Answer(text="Nothing.", blocks=()))
        with pytest.raises(MalformedResponseError):
            await GraphAssembler(collaborators).build(QUESTION)

    async def test_extraction_failure_degrades(self, collaborators):
        collaborators.concepts = FakeConcepts({"src-2": RuntimeError("model overloaded")})
        result = await GraphAssembler(collaborators).build(QUESTION)

        assert len(result.graph.nodes_of_type(NodeType.SECONDARY_SOURCE)) == 9
        assert "Concept extraction failed for src-2" in result.warnings
        assert result.graph.has_node("src-2")

    async def test_missing_credentials_abort(self, collaborators):
        collaborators.concepts = FakeConcepts({"src-1": MissingConfigError("OPENAI_API_KEY")})
        with pytest.raises(MissingConfigError):
            await GraphAssembler(collaborators).build(QUESTION)

    async def test_embedding_failure_degrades(self, collaborators):
        collaborators.embeddings = FakeEmbeddings(fail_on=["altitude"])
        result = await GraphAssembler(collaborators).build(QUESTION)

        assert any("no embedding" in warning for warning in result.warnings)
        for edge in result.graph.edges_of(EdgeRelation.SEMANTIC_RELATED):
            assert "ans-3" not in edge.pair

    async def test_auto_density(self, collaborators):
        result = await GraphAssembler(collaborators).build("Why is the sky blue?", density_level="auto")

        assert result.density_level is DensityLevel.LOW
        # low: two concepts from each of the top three sources
        assert len(result.graph.nodes_of_type(NodeType.SECONDARY_SOURCE)) == 6

    async def test_empty_question(self, collaborators):
        with pytest.raises(InvalidInputError):
            await GraphAssembler(collaborators).build("   ")

    async def test_no_sources(self, collaborators):
        collaborators.search = FakeSearch([])
        collaborators.answer = FakeAnswer(
            Answer(text="Unsure.", blocks=(AnswerBlock(id="ans-1", type="paragraph", text="Unsure."),))
        )
        result = await GraphAssembler(collaborators).build(QUESTION)

        assert "Search returned no sources" in result.warnings
        assert result.graph.nodes_of_type(NodeType.DIRECT_SOURCE) == []

    async def test_to_dict(self, collaborators):
        data = (await GraphAssembler(collaborators).build(QUESTION, job_id="job-7")).to_dict()

        assert data["jobId"] == "job-7"
        assert data["densityLevel"] == "medium"
        assert data["densityConfig"]["exaNumResults"] == 10
        assert {"nodes", "edges"} == set(data["evidence_graph"])
        edge = data["evidence_graph"]["edges"][0]
        assert set(edge) == {"from", "to", "relation", "weight"}
        assert data["meta"]["stats"]["nodes_by_type"]["answer_block"] == 3

    async def test_block_named_like_a_source_is_dropped(self, collaborators, sample_answer):
        clashing = AnswerBlock(id="src-1", type="paragraph", text="Solar wind.", source_ids=("src-1", "src-2"))
        collaborators.answer = FakeAnswer(Answer(text="x", blocks=(clashing,) + sample_answer.blocks))

        result = await GraphAssembler(collaborators).build(QUESTION)

        graph = result.graph
        assert isinstance(graph.get_node("src-1"), DirectSourceNode)
        assert "Dropped answer block src-1: reserved id" in result.warnings
        assert [n.id for n in graph.nodes_of_type(NodeType.ANSWER_BLOCK)] == ["ans-1", "ans-2", "ans-3"]
        for edge in graph.edges_of(EdgeRelation.SUPPORTS):
            assert isinstance(graph.get_node(edge.source), AnswerBlockNode)
            assert isinstance(graph.get_node(edge.target), DirectSourceNode)


class TestReservedBlockIds:
    @pytest.mark.parametrize("block_id", ["src-2", "src-1::concept-1", QUESTION_NODE_ID, ANSWER_ROOT_NODE_ID])
    def test_reserved_ids_dropped(self, sample_sources, block_id):
        answer = Answer(
            text="a b",
            blocks=(
                AnswerBlock(id=block_id, type="paragraph", text="a", source_ids=("src-2",)),
                AnswerBlock(id="ans-1", type="paragraph", text="b", source_ids=("src-1",)),
            ),
        )
        graph, direct, _, warnings = build_structure(QUESTION, answer, sample_sources, get_density_config())

        assert [n.id for n in graph.nodes_of_type(NodeType.ANSWER_BLOCK)] == ["ans-1"]
        assert [s.id for s in direct] == ["src-1"]
        assert len(warnings) == 1
        assert all(edge.source != edge.target for edge in graph.edges)
