"""FastAPI dependencies for dependency injection.

Long-lived clients (model, embedder, storage) are built once per process;
services are assembled per request. Tests swap any of them out with
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agents.assessment.agent import RAGQuestionGenerator
from agents.embedding import EmbeddingClient
from agents.screening.agent import ResumeScorer
from api.services.applications import ApplicationService, ApplicationStateMachine
from api.services.assessments import AssessmentService
from api.services.jobs import JobService
from api.services.knowledge_base import KnowledgeBaseService
from core.config import settings
from core.notifications import NotificationDispatcher, create_default_dispatcher
from core.storage.local import LocalStorage
from database.engine import AsyncSessionLocal
from lib.indexing import EmbeddingIndexer
from lib.vector_store import InMemoryVectorStore, PgVectorStore, VectorStore


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return AsyncSessionLocal


@lru_cache
def get_storage() -> LocalStorage:
    return LocalStorage(settings.storage_dir)


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    return create_default_dispatcher()


@lru_cache
def get_embedder() -> EmbeddingClient:
    return EmbeddingClient()


@lru_cache
def _memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


def get_vector_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> VectorStore:
    """pgvector in production; the in-memory store for local development."""
    if settings.vector_store_backend == "memory":
        return _memory_store()
    return PgVectorStore(session_factory)


def get_job_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> JobService:
    return JobService(session_factory)


@lru_cache
def get_resume_scorer() -> ResumeScorer:
    return ResumeScorer()


def get_state_machine(
    scorer: ResumeScorer = Depends(get_resume_scorer),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ApplicationStateMachine:
    return ApplicationStateMachine(scorer, dispatcher, session_factory)


def get_application_service(
    state_machine: ApplicationStateMachine = Depends(get_state_machine),
    storage: LocalStorage = Depends(get_storage),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ApplicationService:
    return ApplicationService(state_machine, storage, session_factory)


def get_question_generator(
    embedder: EmbeddingClient = Depends(get_embedder),
    store: VectorStore = Depends(get_vector_store),
) -> RAGQuestionGenerator:
    return RAGQuestionGenerator(embedder, store)


def get_assessment_service(
    generator: RAGQuestionGenerator = Depends(get_question_generator),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AssessmentService:
    return AssessmentService(generator, dispatcher, session_factory)


def get_knowledge_base_service(
    embedder: EmbeddingClient = Depends(get_embedder),
    store: VectorStore = Depends(get_vector_store),
    storage: LocalStorage = Depends(get_storage),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> KnowledgeBaseService:
    return KnowledgeBaseService(EmbeddingIndexer(embedder, store), storage, session_factory)
