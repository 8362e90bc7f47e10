"""
Assessment service functions for API endpoints.

``AssessmentService`` generates knowledge-grounded question banks and hands
the candidate a view of them without answer keys. ``AssessmentRunner`` ties a
proctored quiz to the application state machine: finishing the quiz submits
the answers, a disqualification rejects the application.
"""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agents.assessment.agent import RAGQuestionGenerator
from api.services.applications import ApplicationStateMachine
from core.config import settings
from core.errors import ApplicationNotFoundError, InvalidTransitionError
from core.notifications import NotificationDispatcher, TransitionEvent
from database.engine import AsyncSessionLocal
from database.models.applications import Application, ApplicationStatus
from database.models.assessments import AssessmentSession
from database.models.jobs import JobPosting
from lib.grading import GradingResult
from lib.question_bank import Difficulty, Question, dump_question_bank, normalize_question_bank
from lib.quiz import ProctoredQuiz, ProctorMonitor, QuizPhase, ViolationType

logger = logging.getLogger(__name__)

DEFAULT_JOB_DESCRIPTION = "General Software Engineering Role"


def _ensure_open(application: Application) -> None:
    if (
        application.status is not ApplicationStatus.TEST_PENDING
        or application.assessment_submitted_at is not None
    ):
        raise InvalidTransitionError(
            f"Application {application.id} has no open assessment "
            f"(status {application.status.value})",
            details={"current_status": application.status.value},
        )


class AssessmentService:
    def __init__(
        self,
        generator: RAGQuestionGenerator,
        dispatcher: NotificationDispatcher,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    ):
        self.generator = generator
        self.dispatcher = dispatcher
        self.session_factory = session_factory

    async def _load(self, application_id: str) -> tuple[Application, Optional[JobPosting]]:
        async with self.session_factory() as session:
            application = await session.get(Application, application_id)
            if application is None:
                raise ApplicationNotFoundError(f"Application {application_id} not found")
            job = (
                await session.get(JobPosting, application.job_id)
                if application.job_id else None
            )
        return application, job

    async def start_session(
        self,
        application_id: str,
        difficulty: Difficulty = Difficulty.MEDIUM,
        source_ids: Optional[Sequence[str]] = None,
        question_count: int = 5,
    ) -> AssessmentSession:
        """
        Generate a grounded assessment and make it the application's question bank.

        The session row and the new bank are written in one transaction, and
        the bank is replaced only while the application is TEST_PENDING with
        no answers stored.

        Args:
            application_id: Application in TEST_PENDING
            difficulty: Difficulty requested from the generator
            source_ids: Restrict retrieval to these knowledge documents
            question_count: Number of questions to generate

        Returns:
            The persisted AssessmentSession

        Raises:
            InvalidTransitionError: the application has no open assessment
            InsufficientContextError: the knowledge base has nothing relevant
            GroundingViolationError: generated questions cite invalid sources
        """
        application, job = await self._load(application_id)
        _ensure_open(application)

        generated = await self.generator.generate(
            job.description if job and job.description else DEFAULT_JOB_DESCRIPTION,
            application.resume_text,
            difficulty=difficulty,
            source_ids=source_ids,
            organization_id=job.organization_id if job else None,
            count=question_count,
        )
        bank = dump_question_bank(generated.questions)

        session_row = AssessmentSession(
            application_id=application_id,
            job_id=application.job_id,
            difficulty=difficulty,
            question_bank=bank,
            retrieved_chunk_ids=generated.retrieved_chunk_ids,
            llm_model=generated.model,
        )
        async with self.session_factory() as session:
            result = await session.execute(
                update(Application)
                .where(
                    Application.id == application_id,
                    Application.status == ApplicationStatus.TEST_PENDING,
                    Application.assessment_submitted_at.is_(None),
                )
                .values(question_bank=bank)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await session.rollback()
                raise InvalidTransitionError(
                    f"Application {application_id} left TEST_PENDING during generation"
                )
            session.add(session_row)
            await session.commit()
            await session.refresh(session_row)

        logger.info(
            "Assessment session %s: %d %s questions from %d chunks",
            session_row.id, len(bank), difficulty.value, len(generated.retrieved_chunk_ids),
            extra={"application_id": application_id},
        )
        await self.dispatcher.dispatch(
            TransitionEvent(
                application_id=application_id,
                from_status=ApplicationStatus.TEST_PENDING,
                to_status=ApplicationStatus.TEST_PENDING,
                candidate_email=application.candidate_email,
                candidate_name=application.candidate_name,
                job_title=job.title if job else None,
                context={"session_id": session_row.id},
            )
        )
        return session_row

    async def get_candidate_questions(self, application_id: str) -> list[dict[str, Any]]:
        """The open assessment's questions, answer keys removed."""
        application, _ = await self._load(application_id)
        _ensure_open(application)
        return [q.to_public() for q in normalize_question_bank(application.question_bank or [])]


class AssessmentRunner:
    """
    In-process driver for one proctored quiz.

    Use ``AssessmentRunner.start`` to load the application's question bank.
    """

    def __init__(
        self,
        state_machine: ApplicationStateMachine,
        application_id: str,
        questions: Sequence[Question],
        max_strikes: Optional[int] = None,
    ):
        self.state_machine = state_machine
        self.application_id = application_id
        self.quiz = ProctoredQuiz(questions)
        self.monitor = ProctorMonitor(self.quiz, max_strikes or settings.proctor_max_strikes)
        self.result: Optional[GradingResult] = None

    @classmethod
    async def start(
        cls,
        state_machine: ApplicationStateMachine,
        application_id: str,
        max_strikes: Optional[int] = None,
    ) -> "AssessmentRunner":
        application = await state_machine.get_application(application_id)
        _ensure_open(application)
        questions = normalize_question_bank(application.question_bank or [])
        return cls(state_machine, application_id, questions, max_strikes)

    @property
    def phase(self) -> QuizPhase:
        return self.quiz.phase

    def answer(self, index: int, option_index: int) -> None:
        self.quiz.answer(index, option_index)

    async def proceed(self) -> QuizPhase:
        """Advance the quiz; reaching SUBMITTED grades the answers."""
        phase = self.quiz.proceed()
        if phase is QuizPhase.SUBMITTED:
            await self.submit()
        return phase

    async def submit(self) -> GradingResult:
        _, self.result = await self.state_machine.submit_assessment(
            self.application_id, self.quiz.final_answers()
        )
        return self.result

    async def record_violation(self, violation: ViolationType) -> bool:
        """Count a violation; the final strike rejects the application."""
        if not self.monitor.record_violation(violation):
            return False
        await self.state_machine.disqualify(
            self.application_id, self.quiz.disqualification_reason
        )
        return True

    async def disqualify(self, reason: str) -> None:
        self.quiz.disqualify(reason)
        await self.state_machine.disqualify(self.application_id, reason)
