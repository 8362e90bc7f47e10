"""
Knowledge-base document endpoints.

Uploaded documents are chunked and embedded for assessment generation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from api.dependencies import get_knowledge_base_service
from api.schemas.common import BulkResponse
from api.schemas.knowledge_base import (
    DocumentDeleteResponse,
    DocumentResponse,
    DocumentUploadResponse,
)
from api.services.knowledge_base import KnowledgeBaseService

router = APIRouter()


@router.post(
    "/documents",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Document",
)
async def upload_document(
    file: UploadFile = File(...),
    display_name: Optional[str] = Form(None),
    organization_id: Optional[str] = Form(None),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service),
):
    data = await file.read()
    document, report = await service.upload_document(
        data,
        file.filename or "document",
        display_name=display_name,
        organization_id=organization_id,
    )
    return DocumentUploadResponse(
        document=DocumentResponse.model_validate(document),
        **report.to_dict(),
    )


@router.post(
    "/documents/bulk",
    response_model=BulkResponse,
    summary="Bulk Upload Documents",
    description="Files are processed one at a time, with one result per file.",
)
async def upload_documents_bulk(
    files: list[UploadFile] = File(...),
    organization_id: Optional[str] = Form(None),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service),
):
    items = [(upload.filename or "document", await upload.read()) for upload in files]
    results = await service.upload_documents_bulk(items, organization_id=organization_id)
    return BulkResponse.from_results(results)


@router.get("/documents", response_model=list[DocumentResponse], summary="List Documents")
async def list_documents(
    organization_id: Optional[str] = Query(None),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service),
):
    return await service.list_documents(organization_id)


@router.delete(
    "/documents",
    response_model=DocumentDeleteResponse,
    summary="Delete Document",
    description="Delete a document and all of its chunks by stored file path.",
)
async def delete_document(
    file_path: str = Query(..., description="Storage key returned at upload"),
    organization_id: Optional[str] = Query(None),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service),
):
    deleted = await service.delete_document(file_path, organization_id)
    return DocumentDeleteResponse(file_path=file_path, deleted_chunks=deleted)
