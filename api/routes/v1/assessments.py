"""Knowledge-grounded assessment generation endpoints."""

from fastapi import APIRouter, Depends, status

from api.dependencies import get_assessment_service
from api.schemas.assessments import SessionCreate, SessionResponse
from api.services.assessments import AssessmentService

router = APIRouter()


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate Assessment",
    description=(
        "Generate questions grounded in the knowledge base and make them the "
        "application's assessment. The application must be TEST_PENDING."
    ),
)
async def start_session(
    payload: SessionCreate,
    service: AssessmentService = Depends(get_assessment_service),
):
    session = await service.start_session(
        payload.application_id,
        difficulty=payload.difficulty,
        source_ids=payload.source_ids,
        question_count=payload.question_count,
    )
    return SessionResponse.from_session(session)
