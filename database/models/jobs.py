"""
Jobs Module

Job postings with the required skills used for resume screening.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base


class JobPosting(Base):
    """
    A job posting. Postings are never edited once applications reference
    them; ``is_active`` is the only field that changes (soft deactivation).
    """

    __tablename__ = "job_postings"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    organization_id: Mapped[str | None] = mapped_column(String(64), index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    required_skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


def normalize_skills(skills: list[str]) -> list[str]:
    """Strip and de-duplicate skills case-insensitively, keeping first spelling and order."""
    seen: set[str] = set()
    result = []
    for skill in skills:
        cleaned = skill.strip()
        key = cleaned.lower()
        if cleaned and key not in seen:
            seen.add(key)
            result.append(cleaned)
    return result
