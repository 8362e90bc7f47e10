"""Knowledge-base document schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    filename: str
    file_path: str
    organization_id: Optional[str] = None
    size_bytes: int
    chunk_count: int
    failed_chunk_count: int
    created_at: datetime


class DocumentUploadResponse(BaseModel):
    document: DocumentResponse
    indexed_count: int
    failed_count: int
    failed: dict[str, str]


class DocumentDeleteResponse(BaseModel):
    file_path: str
    deleted_chunks: int
