"""Tests for knowledge-grounded question generation."""

import pytest
import pytest_asyncio

from agents.assessment.agent import RAGQuestionGenerator, validate_grounded_questions
from core.errors import GroundingViolationError, InsufficientContextError, ModelOutputError
from lib.question_bank import Difficulty
from lib.vector_store import InMemoryVectorStore, ScoredChunk, VectorRecord
from tests.conftest import FakeEmbedder, FakeGenAIClient


def grounded(qid="g1", sources=(1,), **extra):
    return {
        "id": qid,
        "question": f"What does {qid} cover?",
        "options": ["A", "B", "C", "D"],
        "correctOptionIndex": 2,
        "sources": list(sources),
        **extra,
    }


@pytest_asyncio.fixture
async def store():
    store = InMemoryVectorStore()
    await store.upsert([
        VectorRecord(
            id="py-0", source_id="doc-py", position=0,
            content="Python generators yield values lazily.",
            embedding=[1.0, 0.0, 0.0], organization_id="org-1",
        ),
        VectorRecord(
            id="cook-0", source_id="doc-cook", position=0,
            content="Cooking pasta takes ten minutes.",
            embedding=[0.0, 1.0, 0.0], organization_id="org-1",
        ),
    ])
    return store


def _generator(store, *responses):
    client = FakeGenAIClient(responses)
    return RAGQuestionGenerator(FakeEmbedder(), store, client=client), client


class TestRAGQuestionGenerator:
    @pytest.mark.asyncio
    async def test_generates_grounded_questions(self, store):
        generator, client = _generator(store, {"questions": [grounded("g1"), grounded("g2")]})

        result = await generator.generate(
            "Python backend developer", "resume", difficulty=Difficulty.HARD, count=2
        )

        assert [q.id for q in result.questions] == ["g1", "g2"]
        assert result.retrieved_chunk_ids == ["py-0"]
        assert result.citations == {"g1": ["py-0"], "g2": ["py-0"]}
        assert result.questions[0].difficulty is Difficulty.HARD
        assert "[SOURCE 1]" in client.models.calls[0]["contents"]
        assert "Cooking pasta" not in client.models.calls[0]["contents"]

    @pytest.mark.asyncio
    async def test_output_truncated_to_count(self, store):
        generator, _ = _generator(
            store, {"questions": [grounded("g1"), grounded("g2"), grounded("g3")]}
        )

        result = await generator.generate("Python", "resume", count=2)

        assert len(result.questions) == 2

    @pytest.mark.asyncio
    async def test_no_relevant_context(self, store):
        generator, client = _generator(store, {"questions": [grounded()]})

        with pytest.raises(InsufficientContextError):
            await generator.generate("Accounting clerk", "resume")
        assert client.models.calls == []

    @pytest.mark.asyncio
    async def test_retrieval_respects_source_and_organization(self, store):
        generator, _ = _generator(store, {"questions": [grounded()]})

        with pytest.raises(InsufficientContextError):
            await generator.generate("Python", "resume", source_ids=["doc-cook"])
        with pytest.raises(InsufficientContextError):
            await generator.generate("Python", "resume", organization_id="org-2")

    @pytest.mark.asyncio
    async def test_invalid_citation_is_retried(self, store):
        generator, client = _generator(
            store,
            {"questions": [grounded(sources=[3])]},
            {"questions": [grounded(sources=[1])]},
        )

        result = await generator.generate("Python", "resume")

        assert result.citations == {"g1": ["py-0"]}
        assert len(client.models.calls) == 2

    @pytest.mark.asyncio
    async def test_grounding_violation_after_retry(self, store):
        generator, client = _generator(store, {"questions": [grounded(sources=[])]})

        with pytest.raises(GroundingViolationError):
            await generator.generate("Python", "resume")
        assert len(client.models.calls) == 2


class TestValidateGroundedQuestions:
    chunks = [
        ScoredChunk(id="c1", source_id="s", content="one", similarity=0.9),
        ScoredChunk(id="c2", source_id="s", content="two", similarity=0.8),
    ]

    def test_citations_map_to_chunk_ids(self):
        questions, citations = validate_grounded_questions(
            {"questions": [grounded("q1", sources=[2, 1, 2])]},
            self.chunks, Difficulty.EASY, 5,
        )
        assert citations == {"q1": ["c1", "c2"]}
        assert questions[0].difficulty is Difficulty.EASY

    def test_missing_ids_are_generated(self):
        item = grounded()
        del item["id"]
        questions, citations = validate_grounded_questions(
            {"questions": [item]}, self.chunks, Difficulty.MEDIUM, 5
        )
        assert questions[0].id
        assert list(citations) == [questions[0].id]

    @pytest.mark.parametrize("sources", [[0], [3], ["1"], [True], []])
    def test_bad_sources(self, sources):
        with pytest.raises(GroundingViolationError):
            validate_grounded_questions(
                {"questions": [grounded(sources=sources)]},
                self.chunks, Difficulty.MEDIUM, 5,
            )

    @pytest.mark.parametrize("data", [
        {},
        {"questions": []},
        {"questions": ["text"]},
        {"questions": [grounded(options=["only"])]},
        {"questions": [grounded("dup"), grounded("dup")]},
    ])
    def test_schema_errors(self, data):
        with pytest.raises(ModelOutputError):
            validate_grounded_questions(data, self.chunks, Difficulty.MEDIUM, 5)
