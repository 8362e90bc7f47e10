"""Application and assessment-submission schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from api.schemas.common import TimestampMixin
from database.models.applications import ApplicationStatus, RejectionReason
from lib.grading import GradingResult


class ApplicationResponse(TimestampMixin):
    """Recruiter view of an application. Answer keys and resume text are not exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    job_id: Optional[str] = None
    candidate_name: Optional[str] = None
    candidate_email: Optional[str] = None
    status: ApplicationStatus
    screening_score: Optional[int] = None
    ai_reasoning: Optional[str] = None
    missing_skills: Optional[list[str]] = None
    screened_at: Optional[datetime] = None
    assessment_score: Optional[int] = None
    assessment_submitted_at: Optional[datetime] = None
    rejection_reason: Optional[RejectionReason] = None
    rejection_note: Optional[str] = None
    status_changed_at: Optional[datetime] = None


class AssessmentSubmission(BaseModel):
    answers: list[Optional[Any]] = Field(
        description="Option index per question, aptitude first; null when skipped"
    )


class QuestionResultResponse(BaseModel):
    question_id: str
    is_correct: bool
    user_answer_index: Optional[int] = None
    correct_answer_index: int


class GradingResponse(BaseModel):
    score: int = Field(ge=0, le=100)
    correct_count: int
    total_questions: int
    details: list[QuestionResultResponse]

    @classmethod
    def from_result(cls, result: GradingResult) -> "GradingResponse":
        return cls(**result.to_dict())


class SubmissionResponse(BaseModel):
    application: ApplicationResponse
    grading: GradingResponse


class DisqualifyRequest(BaseModel):
    note: Optional[str] = Field(None, max_length=2000)


class RejectRequest(BaseModel):
    reason: RejectionReason
    note: Optional[str] = Field(None, max_length=2000)


class CandidateAssessment(BaseModel):
    """Candidate view of the open assessment: no answer keys."""

    application_id: str
    questions: list[dict[str, Any]]
