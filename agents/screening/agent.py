"""Screening agent: scores a resume against a job and drafts the assessment."""

import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agents.base import BaseAgent
from agents.screening.prompts import SCREENING_SYSTEM_PROMPT, build_scoring_prompt
from core.config import settings
from core.errors import ModelOutputError, QuestionBankShapeError
from lib.question_bank import Question, normalize_question_bank

logger = logging.getLogger(__name__)


class ScreeningOutput(BaseModel):
    """Shape the model must return."""

    model_config = ConfigDict(extra="ignore")

    score: int = Field(ge=0, le=100)
    summary: str = Field(min_length=1)
    missing_skills: list[str] = Field(default_factory=list)
    questions: Any
    candidate_name: Optional[str] = None
    candidate_email: Optional[str] = None


class ResumeScore(BaseModel):
    score: int
    model_score: int
    summary: str
    missing_skills: list[str]
    questions: list[Question]
    candidate_name: Optional[str] = None
    candidate_email: Optional[str] = None
    skill_cap_applied: bool = False


def skill_pattern(skill: str) -> re.Pattern:
    """Case-insensitive match of a whole skill, safe for names like ``C++`` or ``Node.js``."""
    return re.compile(rf"(?<![\w]){re.escape(skill.strip())}(?![\w])", re.IGNORECASE)


def find_missing_skills(resume_text: str, required_skills: list[str]) -> list[str]:
    return [
        skill for skill in required_skills
        if skill.strip() and not skill_pattern(skill).search(resume_text)
    ]


def merge_missing_skills(deterministic: list[str], reported: list[str]) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for skill in [*deterministic, *reported]:
        key = skill.strip().lower()
        if key and key not in seen:
            seen.add(key)
            merged.append(skill.strip())
    return merged


def validate_screening_output(data: dict) -> ScreeningOutput:
    try:
        output = ScreeningOutput.model_validate(data)
    except ValidationError as e:
        raise ModelOutputError(
            "Screening response failed validation",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e
    try:
        questions = normalize_question_bank(output.questions)
    except QuestionBankShapeError as e:
        raise ModelOutputError(f"Screening questions unusable: {e.message}") from e
    if not questions:
        raise ModelOutputError("Screening response contained no questions")
    output.questions = questions
    return output


class ResumeScorer(BaseAgent):
    """Agent for screening resumes against a job posting."""

    def __init__(self, model: Optional[str] = None, client=None):
        super().__init__(
            name="screening",
            instructions=SCREENING_SYSTEM_PROMPT,
            model=model,
            client=client,
        )

    async def score(
        self,
        resume_text: str,
        required_skills: list[str],
        job_title: Optional[str] = None,
        job_description: Optional[str] = None,
    ) -> ResumeScore:
        """Score a resume.

        A required skill that never appears in the resume caps the score at
        ``MISSING_SKILL_SCORE_CAP``, whatever the model says.

        Args:
            resume_text: Extracted resume text (truncated to ``RESUME_MAX_CHARS``)
            required_skills: Skills the job requires
            job_title: Optional job title for the prompt
            job_description: Optional job description for the prompt

        Returns:
            ResumeScore with the final score and the normalized question bank

        Raises:
            ModelOutputError: the model output is unusable after one retry
            UpstreamUnavailableError: the model timed out or failed
        """
        resume_text = resume_text[: settings.resume_max_chars]
        prompt = build_scoring_prompt(resume_text, required_skills, job_title, job_description)
        output = await self.generate_structured(prompt, validate_screening_output)

        missing = find_missing_skills(resume_text, required_skills)
        final_score = output.score
        if missing:
            final_score = min(output.score, settings.missing_skill_score_cap)

        if final_score != output.score:
            logger.info(
                "Capped screening score %d -> %d, missing required skills: %s",
                output.score, final_score, ", ".join(missing),
            )

        return ResumeScore(
            score=final_score,
            model_score=output.score,
            summary=output.summary,
            missing_skills=merge_missing_skills(missing, output.missing_skills),
            questions=output.questions,
            candidate_name=output.candidate_name,
            candidate_email=output.candidate_email,
            skill_cap_applied=final_score != output.score,
        )
