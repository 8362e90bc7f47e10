"""
API Services Layer.

Database-backed operations behind the API endpoints.
"""

from api.services.applications import ApplicationService, ApplicationStateMachine
from api.services.assessments import AssessmentRunner, AssessmentService
from api.services.bulk import BulkItemResult
from api.services.jobs import JobService
from api.services.knowledge_base import KnowledgeBaseService

__all__ = [
    "ApplicationService",
    "ApplicationStateMachine",
    "AssessmentRunner",
    "AssessmentService",
    "BulkItemResult",
    "JobService",
    "KnowledgeBaseService",
]
