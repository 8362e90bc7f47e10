"""Assessment agent: questions grounded only in retrieved knowledge-base passages."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Sequence

from pydantic import ValidationError

from agents.assessment.prompts import (
    ASSESSMENT_SYSTEM_PROMPT,
    build_assessment_prompt,
    build_retrieval_query,
)
from agents.base import BaseAgent
from core.config import settings
from core.errors import GroundingViolationError, InsufficientContextError, ModelOutputError
from lib.question_bank import Difficulty, Question, QuestionCategory
from lib.vector_store import ScoredChunk, VectorStore

logger = logging.getLogger(__name__)


@dataclass
class GeneratedAssessment:
    questions: list[Question]
    retrieved_chunk_ids: list[str]
    model: str
    citations: dict[str, list[str]] = field(default_factory=dict)


def validate_grounded_questions(
    data: dict,
    chunks: Sequence[ScoredChunk],
    difficulty: Difficulty,
    count: int,
) -> tuple[list[Question], dict[str, list[str]]]:
    """
    Turn the model output into questions, checking every citation.

    Returns:
        The questions and, per question id, the ids of the chunks it cites

    Raises:
        GroundingViolationError: a question cites nothing or an unknown source
        ModelOutputError: the output does not match the question schema
    """
    items = data.get("questions")
    if not isinstance(items, list) or not items:
        raise ModelOutputError("Assessment response contained no questions")

    questions: list[Question] = []
    citations: dict[str, list[str]] = {}
    for position, item in enumerate(items[:count]):
        if not isinstance(item, dict):
            raise ModelOutputError(f"Question {position} is not an object")

        sources = item.get("sources")
        if not isinstance(sources, list) or not sources:
            raise GroundingViolationError(
                f"Question {position} cites no knowledge-base source"
            )
        invalid = [
            s for s in sources
            if isinstance(s, bool) or not isinstance(s, int) or not 1 <= s <= len(chunks)
        ]
        if invalid:
            raise GroundingViolationError(
                f"Question {position} cites sources outside the retrieved set",
                details={"invalid_sources": invalid, "retrieved": len(chunks)},
            )

        data_item = {k: v for k, v in item.items() if k != "sources"}
        data_item.setdefault("id", None)
        if not data_item["id"]:
            data_item["id"] = str(uuid.uuid4())
        data_item.setdefault("category", QuestionCategory.TECHNICAL.value)
        if data_item.get("difficulty") not in {d.value for d in Difficulty}:
            data_item["difficulty"] = difficulty.value
        try:
            question = Question.model_validate(data_item)
        except ValidationError as e:
            raise ModelOutputError(
                f"Question {position} failed validation",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e

        if question.id in citations:
            raise ModelOutputError(f"Duplicate question id: {question.id}")
        citations[question.id] = sorted({chunks[s - 1].id for s in sources})
        questions.append(question)

    return questions, citations


class RAGQuestionGenerator(BaseAgent):
    """Generates multiple-choice questions from an organization's knowledge base."""

    def __init__(
        self,
        embedder,
        store: VectorStore,
        model: Optional[str] = None,
        client=None,
        top_k: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ):
        super().__init__(
            name="assessment",
            instructions=ASSESSMENT_SYSTEM_PROMPT,
            model=model,
            client=client,
        )
        self.embedder = embedder
        self.store = store
        self.top_k = top_k or settings.rag_top_k
        self.min_similarity = (
            settings.rag_min_similarity if min_similarity is None else min_similarity
        )

    async def retrieve(
        self,
        job_description: str,
        source_ids: Optional[Sequence[str]] = None,
        organization_id: Optional[str] = None,
    ) -> list[ScoredChunk]:
        query = build_retrieval_query(job_description)
        vector = await self.embedder.embed_query(query)
        return await self.store.search(
            vector,
            top_k=self.top_k,
            min_similarity=self.min_similarity,
            source_ids=source_ids,
            organization_id=organization_id,
        )

    async def generate(
        self,
        job_description: str,
        resume_text: str,
        difficulty: Difficulty = Difficulty.MEDIUM,
        source_ids: Optional[Sequence[str]] = None,
        organization_id: Optional[str] = None,
        count: int = 5,
    ) -> GeneratedAssessment:
        """Generate a knowledge-grounded assessment.

        Raises:
            InsufficientContextError: no chunk cleared the similarity threshold
            GroundingViolationError: citations still invalid after one retry
            ModelOutputError: output still unusable after one retry
            UpstreamUnavailableError: embedding, search or model call failed
        """
        chunks = await self.retrieve(job_description, source_ids, organization_id)
        if not chunks:
            raise InsufficientContextError(
                "No knowledge-base passages are relevant enough to ground an assessment",
                details={"min_similarity": self.min_similarity},
            )
        logger.info(
            "Generating %s assessment from %d retrieved chunks", difficulty.value, len(chunks)
        )

        prompt = build_assessment_prompt(
            job_description, resume_text, chunks, difficulty.value, count
        )
        questions, citations = await self.generate_structured(
            prompt,
            lambda data: validate_grounded_questions(data, chunks, difficulty, count),
        )
        return GeneratedAssessment(
            questions=questions,
            retrieved_chunk_ids=[c.id for c in chunks],
            model=self.model,
            citations=citations,
        )
