"""Common Pydantic schemas shared across the API."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class TimestampMixin(BaseModel):
    """Mixin for timestamp fields."""

    created_at: datetime = Field(description="Timestamp when the resource was created")
    updated_at: datetime = Field(description="Timestamp when the resource was last updated")


class ErrorBody(BaseModel):
    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Sanitized, human readable message")
    path: str
    method: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Error envelope returned for every failed request."""

    error: ErrorBody


class BulkItemResponse(BaseModel):
    """Result for one file of a bulk upload."""

    filename: str
    success: bool
    id: Optional[str] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)


class BulkResponse(BaseModel):
    total: int = Field(ge=0)
    succeeded: int = Field(ge=0)
    failed: int = Field(ge=0)
    items: list[BulkItemResponse]

    @classmethod
    def from_results(cls, results: list) -> "BulkResponse":
        items = [BulkItemResponse(**r.to_dict()) for r in results]
        succeeded = sum(1 for item in items if item.success)
        return cls(
            total=len(items),
            succeeded=succeeded,
            failed=len(items) - succeeded,
            items=items,
        )
