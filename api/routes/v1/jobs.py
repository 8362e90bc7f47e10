"""
Job posting management endpoints.

Provides REST API for creating, viewing and deactivating job postings.
"""

from fastapi import APIRouter, Depends, Path, Query, status

from api.dependencies import get_job_service
from api.schemas.jobs import JobCreate, JobResponse
from api.services.jobs import JobService

router = APIRouter()


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Job",
    description="Create a job posting with the skills used for resume screening.",
)
async def create_job(
    payload: JobCreate,
    service: JobService = Depends(get_job_service),
):
    return await service.create_job(
        title=payload.title,
        description=payload.description,
        required_skills=payload.required_skills,
        organization_id=payload.organization_id,
    )


@router.get("", response_model=list[JobResponse], summary="List Jobs")
async def list_jobs(
    active_only: bool = Query(True, description="Only postings accepting applications"),
    service: JobService = Depends(get_job_service),
):
    return await service.list_jobs(active_only=active_only)


@router.get("/{job_id}", response_model=JobResponse, summary="Get Job Details")
async def get_job(
    job_id: str = Path(..., description="Job ID"),
    service: JobService = Depends(get_job_service),
):
    return await service.get_job(job_id)


@router.post(
    "/{job_id}/deactivate",
    response_model=JobResponse,
    summary="Deactivate Job",
    description="Stop accepting applications. Postings are never deleted.",
)
async def deactivate_job(
    job_id: str = Path(..., description="Job ID"),
    service: JobService = Depends(get_job_service),
):
    return await service.deactivate_job(job_id)
