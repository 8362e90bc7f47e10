"""Assessment session schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from lib.question_bank import Difficulty


class SessionCreate(BaseModel):
    application_id: str
    difficulty: Difficulty = Difficulty.MEDIUM
    source_ids: Optional[list[str]] = Field(
        None, description="Restrict retrieval to these knowledge documents"
    )
    question_count: int = Field(default=5, ge=1, le=20)


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str
    job_id: Optional[str] = None
    difficulty: Difficulty
    question_count: int
    retrieved_chunk_ids: list[str]
    llm_model: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_session(cls, session: Any) -> "SessionResponse":
        return cls(
            id=session.id,
            application_id=session.application_id,
            job_id=session.job_id,
            difficulty=session.difficulty,
            question_count=len(session.question_bank),
            retrieved_chunk_ids=session.retrieved_chunk_ids,
            llm_model=session.llm_model,
            created_at=session.created_at,
        )
