"""
Assessment Sessions

A record of each knowledge-grounded assessment generated for an application,
including which chunks the questions were drawn from.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base
from lib.question_bank import Difficulty


class AssessmentSession(Base):
    __tablename__ = "assessment_sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    application_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    job_id: Mapped[str | None] = mapped_column(String(36), index=True)
    difficulty: Mapped[Difficulty] = mapped_column(
        SQLEnum(Difficulty, native_enum=False, length=20),
        nullable=False,
        default=Difficulty.MEDIUM,
    )
    question_bank: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    retrieved_chunk_ids: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    llm_model: Mapped[str | None] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
