from database.models.jobs import JobPosting
from database.models.applications import (
    ALLOWED_TRANSITIONS,
    Application,
    ApplicationStatus,
    RejectionReason,
)
from database.models.knowledge_base import KnowledgeChunk, KnowledgeDocument
from database.models.assessments import AssessmentSession

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Application",
    "ApplicationStatus",
    "AssessmentSession",
    "JobPosting",
    "KnowledgeChunk",
    "KnowledgeDocument",
    "RejectionReason",
]
