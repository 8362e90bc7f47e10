"""
Application Models

A candidate's application to a job posting, carrying the screening result,
the assessment question bank, the submitted answers and the hiring status.
"""

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base


# ==================== Application Enums ===================== #
class ApplicationStatus(str, PyEnum):
    """Hiring pipeline status of an application."""

    NEW = "NEW"
    TEST_PENDING = "TEST_PENDING"
    INTERVIEW = "INTERVIEW"
    OFFER = "OFFER"
    REJECTED = "REJECTED"
    HIRED = "HIRED"

    @classmethod
    def parse(cls, value: str) -> "ApplicationStatus":
        """Accept legacy lower-case values such as ``offer``."""
        return cls(value.strip().upper())

    def is_terminal(self) -> bool:
        return self in APPLICATION_STATUS_TERMINALS

    def can_transition_to(self, new: "ApplicationStatus") -> bool:
        return new in ALLOWED_TRANSITIONS.get(self, frozenset())


class RejectionReason(str, PyEnum):
    """Why an application ended in REJECTED."""

    SCREENING_SCORE = "screening_score"
    ASSESSMENT_SCORE = "assessment_score"
    PROCTORING_VIOLATION = "proctoring_violation"
    INTERVIEW_FEEDBACK = "interview_feedback"
    POSITION_FILLED = "position_filled"
    CANDIDATE_WITHDREW = "candidate_withdrew"
    OTHER = "other"


APPLICATION_STATUS_TERMINALS = frozenset(
    {ApplicationStatus.REJECTED, ApplicationStatus.HIRED}
)

ALLOWED_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.NEW: frozenset(
        {ApplicationStatus.TEST_PENDING, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.TEST_PENDING: frozenset(
        {ApplicationStatus.INTERVIEW, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.INTERVIEW: frozenset(
        {ApplicationStatus.OFFER, ApplicationStatus.HIRED, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.OFFER: frozenset(
        {ApplicationStatus.HIRED, ApplicationStatus.REJECTED}
    ),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.HIRED: frozenset(),
}


# ==================== Application Model ===================== #
class Application(Base):
    """
    Job application. ``candidate_answers`` is written exactly once, by the
    assessment submission, in the same update that moves the status out of
    TEST_PENDING.
    """

    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    job_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("job_postings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Candidate
    candidate_name: Mapped[str | None] = mapped_column(String(255))
    candidate_email: Mapped[str | None] = mapped_column(String(255), index=True)
    resume_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    resume_path: Mapped[str | None] = mapped_column(String(1000))

    # Screening
    screening_score: Mapped[int | None] = mapped_column(Integer)
    ai_reasoning: Mapped[str | None] = mapped_column(Text)
    missing_skills: Mapped[list[str] | None] = mapped_column(JSON)
    screened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Assessment
    question_bank: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    candidate_answers: Mapped[list[int | None] | None] = mapped_column(JSON)
    assessment_score: Mapped[int | None] = mapped_column(Integer)
    grading_details: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    assessment_submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    # Status
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=50),
        nullable=False,
        default=ApplicationStatus.NEW,
        index=True,
    )
    rejection_reason: Mapped[RejectionReason | None] = mapped_column(
        SQLEnum(RejectionReason, native_enum=False, length=50)
    )
    rejection_note: Mapped[str | None] = mapped_column(Text)
    status_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Application {self.id} status={self.status.value}>"
