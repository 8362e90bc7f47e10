"""
Application workflow endpoints.

Resume intake, screening, the candidate's assessment and the recruiter's
offer / hire / reject actions. Every status change goes through the
application state machine.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile, status

from api.dependencies import (
    get_application_service,
    get_assessment_service,
    get_state_machine,
)
from api.schemas.applications import (
    ApplicationResponse,
    AssessmentSubmission,
    CandidateAssessment,
    DisqualifyRequest,
    GradingResponse,
    RejectRequest,
    SubmissionResponse,
)
from api.schemas.common import BulkResponse
from api.services.applications import ApplicationService, ApplicationStateMachine
from api.services.assessments import AssessmentService

router = APIRouter()


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Application",
    description="Upload a resume (PDF, DOCX or text). The resume is screened immediately.",
)
async def create_application(
    resume: UploadFile = File(..., description="Resume file"),
    job_id: Optional[str] = Form(None),
    candidate_name: Optional[str] = Form(None),
    candidate_email: Optional[str] = Form(None),
    screen: bool = Form(True),
    service: ApplicationService = Depends(get_application_service),
):
    data = await resume.read()
    return await service.create_application(
        data,
        resume.filename or "resume",
        job_id=job_id,
        candidate_name=candidate_name,
        candidate_email=candidate_email,
        screen=screen,
    )


@router.post(
    "/bulk",
    response_model=BulkResponse,
    summary="Bulk Submit Applications",
    description="Upload several resumes for one job. Files are processed one at a time.",
)
async def create_applications_bulk(
    resumes: list[UploadFile] = File(...),
    job_id: Optional[str] = Form(None),
    service: ApplicationService = Depends(get_application_service),
):
    files = [(upload.filename or "resume", await upload.read()) for upload in resumes]
    results = await service.create_applications_bulk(files, job_id=job_id)
    return BulkResponse.from_results(results)


@router.get("/{application_id}", response_model=ApplicationResponse, summary="Get Application")
async def get_application(
    application_id: str = Path(..., description="Application ID"),
    state_machine: ApplicationStateMachine = Depends(get_state_machine),
):
    return await state_machine.get_application(application_id)


@router.post(
    "/{application_id}/screen",
    response_model=ApplicationResponse,
    summary="Screen Application",
    description="Score a NEW application's resume against its job.",
)
async def screen_application(
    application_id: str = Path(..., description="Application ID"),
    state_machine: ApplicationStateMachine = Depends(get_state_machine),
):
    return await state_machine.screen_application(application_id)


@router.get(
    "/{application_id}/assessment",
    response_model=CandidateAssessment,
    summary="Get Assessment",
    description="Questions of the open assessment, without answer keys.",
)
async def get_assessment(
    application_id: str = Path(..., description="Application ID"),
    service: AssessmentService = Depends(get_assessment_service),
):
    questions = await service.get_candidate_questions(application_id)
    return CandidateAssessment(application_id=application_id, questions=questions)


@router.post(
    "/{application_id}/assessment/submit",
    response_model=SubmissionResponse,
    summary="Submit Assessment",
    description="Grade the candidate's answers. Accepted once per application.",
)
async def submit_assessment(
    payload: AssessmentSubmission,
    application_id: str = Path(..., description="Application ID"),
    state_machine: ApplicationStateMachine = Depends(get_state_machine),
):
    application, result = await state_machine.submit_assessment(
        application_id, payload.answers
    )
    return SubmissionResponse(
        application=ApplicationResponse.model_validate(application),
        grading=GradingResponse.from_result(result),
    )


@router.post(
    "/{application_id}/assessment/disqualify",
    response_model=ApplicationResponse,
    summary="Disqualify Candidate",
    description="Reject for a proctoring violation. The assessment is not graded.",
)
async def disqualify(
    application_id: str = Path(..., description="Application ID"),
    payload: Optional[DisqualifyRequest] = None,
    state_machine: ApplicationStateMachine = Depends(get_state_machine),
):
    return await state_machine.disqualify(application_id, payload.note if payload else None)


@router.post("/{application_id}/offer", response_model=ApplicationResponse, summary="Send Offer")
async def send_offer(
    application_id: str = Path(..., description="Application ID"),
    state_machine: ApplicationStateMachine = Depends(get_state_machine),
):
    return await state_machine.send_offer(application_id)


@router.post("/{application_id}/hire", response_model=ApplicationResponse, summary="Confirm Hire")
async def confirm_hire(
    application_id: str = Path(..., description="Application ID"),
    state_machine: ApplicationStateMachine = Depends(get_state_machine),
):
    return await state_machine.confirm_hire(application_id)


@router.post("/{application_id}/reject", response_model=ApplicationResponse, summary="Reject")
async def reject(
    payload: RejectRequest,
    application_id: str = Path(..., description="Application ID"),
    state_machine: ApplicationStateMachine = Depends(get_state_machine),
):
    return await state_machine.reject(application_id, payload.reason, payload.note)
