"""Job posting schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from api.schemas.common import TimestampMixin


class JobCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255, description="Job title")
    description: str = Field(default="", description="Job description used for screening")
    required_skills: list[str] = Field(
        default_factory=list, description="Skills every candidate must show"
    )
    organization_id: Optional[str] = Field(None, max_length=64)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class JobResponse(TimestampMixin):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    required_skills: list[str]
    organization_id: Optional[str] = None
    is_active: bool
