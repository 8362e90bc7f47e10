"""
Application service functions for API endpoints.

``ApplicationStateMachine`` owns every status change. Each transition is a
single compare-and-swap UPDATE guarded on the status the caller saw, so two
concurrent requests can never both move the same application. A transition
event is dispatched only after the UPDATE has committed.

``ApplicationService`` handles intake: resume upload, text extraction and
the first screening pass.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agents.screening.agent import ResumeScorer
from api.services.bulk import BulkItemResult, run_sequentially
from core.config import settings
from core.errors import (
    ApplicationNotFoundError,
    AssessmentAlreadySubmittedError,
    InvalidTransitionError,
    JobClosedError,
    JobNotFoundError,
    ScreeningError,
    UnsupportedFileError,
)
from core.notifications import NotificationDispatcher, TransitionEvent
from core.storage.local import LocalStorage
from database.engine import AsyncSessionLocal
from database.models.applications import (
    Application,
    ApplicationStatus,
    RejectionReason,
)
from database.models.jobs import JobPosting
from lib.document_parser import extract_text
from lib.grading import GradingResult, grade
from lib.question_bank import dump_question_bank, normalize_question_bank

logger = logging.getLogger(__name__)

PROCTORING_NOTE = "Disqualified: suspicious activity detected during proctored assessment"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationStateMachine:
    """
    Moves applications through NEW, TEST_PENDING, INTERVIEW, OFFER and the
    terminal REJECTED / HIRED statuses.

    Args:
        scorer: Resume scorer used by ``screen_application``
        dispatcher: Receives one TransitionEvent per committed transition
        session_factory: Async session factory
    """

    def __init__(
        self,
        scorer: ResumeScorer,
        dispatcher: NotificationDispatcher,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    ):
        self.scorer = scorer
        self.dispatcher = dispatcher
        self.session_factory = session_factory

    async def get_application(self, application_id: str) -> Application:
        async with self.session_factory() as session:
            application = await session.get(Application, application_id)
        if application is None:
            raise ApplicationNotFoundError(f"Application {application_id} not found")
        return application

    async def _compare_and_swap(
        self,
        application_id: str,
        expected: ApplicationStatus,
        target: ApplicationStatus,
        values: dict[str, Any],
        *,
        conditions: Sequence[Any] = (),
        conflict: type[InvalidTransitionError] = InvalidTransitionError,
        reason: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> Application:
        """
        Apply ``values`` and move ``expected`` -> ``target`` in one UPDATE.

        Raises:
            InvalidTransitionError: the move is not in ALLOWED_TRANSITIONS
            conflict: the row no longer matched (status moved, or a condition failed)
            ApplicationNotFoundError: no such application
        """
        if not expected.can_transition_to(target):
            raise InvalidTransitionError(
                f"Cannot move an application from {expected.value} to {target.value}",
                details={"from_status": expected.value, "to_status": target.value},
            )

        values = {**values, "status": target, "status_changed_at": _now()}
        async with self.session_factory() as session:
            result = await session.execute(
                update(Application)
                .where(
                    Application.id == application_id,
                    Application.status == expected,
                    *conditions,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await session.rollback()
                current = await session.get(Application, application_id)
                if current is None:
                    raise ApplicationNotFoundError(f"Application {application_id} not found")
                raise conflict(
                    f"Application {application_id} is {current.status.value}, "
                    f"expected {expected.value}",
                    details={
                        "current_status": current.status.value,
                        "expected_status": expected.value,
                        "target_status": target.value,
                    },
                )
            await session.commit()

            application = await session.get(Application, application_id)
            job = (
                await session.get(JobPosting, application.job_id)
                if application.job_id else None
            )

        logger.info(
            "Application %s: %s -> %s",
            application_id, expected.value, target.value,
            extra={"application_id": application_id},
        )
        await self.dispatcher.dispatch(
            TransitionEvent(
                application_id=application_id,
                from_status=expected,
                to_status=target,
                candidate_email=application.candidate_email,
                candidate_name=application.candidate_name,
                job_title=job.title if job else None,
                reason=reason,
                context=context or {},
            )
        )
        return application

    async def screen_application(self, application_id: str) -> Application:
        """
        Score the resume and decide NEW -> TEST_PENDING or NEW -> REJECTED.

        The question bank drafted by the scorer is stored in the same UPDATE
        that enters TEST_PENDING.

        Raises:
            InvalidTransitionError: the application was already screened
            ModelOutputError: the scorer output was unusable
            UpstreamUnavailableError: the model timed out or failed
        """
        async with self.session_factory() as session:
            application = await session.get(Application, application_id)
            if application is None:
                raise ApplicationNotFoundError(f"Application {application_id} not found")
            job = (
                await session.get(JobPosting, application.job_id)
                if application.job_id else None
            )

        # Checked up front so an already screened resume never costs a model call.
        if application.status is not ApplicationStatus.NEW:
            raise InvalidTransitionError(
                f"Application {application_id} was already screened "
                f"(status {application.status.value})",
                details={"current_status": application.status.value},
            )

        score = await self.scorer.score(
            application.resume_text,
            job.required_skills if job else [],
            job_title=job.title if job else None,
            job_description=job.description if job else None,
        )

        values: dict[str, Any] = {
            "screening_score": score.score,
            "ai_reasoning": score.summary,
            "missing_skills": score.missing_skills,
            "screened_at": _now(),
            "candidate_name": application.candidate_name or score.candidate_name,
            "candidate_email": application.candidate_email or score.candidate_email,
        }
        if score.score >= settings.screening_threshold:
            target, reason = ApplicationStatus.TEST_PENDING, None
            values["question_bank"] = dump_question_bank(score.questions)
        else:
            target, reason = ApplicationStatus.REJECTED, RejectionReason.SCREENING_SCORE
            values["rejection_reason"] = reason

        return await self._compare_and_swap(
            application_id,
            ApplicationStatus.NEW,
            target,
            values,
            reason=reason.value if reason else None,
            context={
                "screening_score": score.score,
                "missing_skills": score.missing_skills,
            },
        )

    async def submit_assessment(
        self,
        application_id: str,
        answers: Sequence[Optional[int]],
    ) -> tuple[Application, GradingResult]:
        """
        Grade the candidate's answers and move TEST_PENDING -> INTERVIEW / REJECTED.

        Args:
            application_id: Application being assessed
            answers: Option index per question (aptitude first), None if skipped

        Returns:
            The updated application and its grading result

        Raises:
            AssessmentAlreadySubmittedError: not TEST_PENDING, or answers already stored
            MalformedAnswersError: answers do not line up with the question bank
            NoQuestionsError: the application has no questions to grade
        """
        application = await self.get_application(application_id)
        if (
            application.status is not ApplicationStatus.TEST_PENDING
            or application.assessment_submitted_at is not None
            or application.candidate_answers
        ):
            raise AssessmentAlreadySubmittedError(
                f"Assessment for application {application_id} cannot be submitted "
                f"(status {application.status.value})",
                details={"current_status": application.status.value},
            )

        questions = normalize_question_bank(application.question_bank or [])
        result = grade(answers, questions)

        values: dict[str, Any] = {
            "candidate_answers": list(answers),
            "assessment_score": result.score,
            "grading_details": result.to_dict(),
            "assessment_submitted_at": _now(),
        }
        if result.score >= settings.assessment_pass_threshold:
            target, reason = ApplicationStatus.INTERVIEW, None
        else:
            target, reason = ApplicationStatus.REJECTED, RejectionReason.ASSESSMENT_SCORE
            values["rejection_reason"] = reason

        application = await self._compare_and_swap(
            application_id,
            ApplicationStatus.TEST_PENDING,
            target,
            values,
            conditions=(Application.assessment_submitted_at.is_(None),),
            conflict=AssessmentAlreadySubmittedError,
            reason=reason.value if reason else None,
            context={
                "assessment_score": result.score,
                "correct_count": result.correct_count,
                "total_questions": result.total_questions,
            },
        )
        return application, result

    async def disqualify(self, application_id: str, note: Optional[str] = None) -> Application:
        """TEST_PENDING -> REJECTED for a proctoring violation; nothing is graded."""
        return await self._compare_and_swap(
            application_id,
            ApplicationStatus.TEST_PENDING,
            ApplicationStatus.REJECTED,
            {
                "rejection_reason": RejectionReason.PROCTORING_VIOLATION,
                "rejection_note": note or PROCTORING_NOTE,
            },
            conditions=(Application.assessment_submitted_at.is_(None),),
            reason=RejectionReason.PROCTORING_VIOLATION.value,
        )

    async def send_offer(self, application_id: str) -> Application:
        return await self._compare_and_swap(
            application_id, ApplicationStatus.INTERVIEW, ApplicationStatus.OFFER, {}
        )

    async def confirm_hire(self, application_id: str) -> Application:
        """INTERVIEW or OFFER -> HIRED. Irreversible."""
        application = await self.get_application(application_id)
        return await self._compare_and_swap(
            application_id, application.status, ApplicationStatus.HIRED, {}
        )

    async def reject(
        self,
        application_id: str,
        reason: RejectionReason,
        note: Optional[str] = None,
    ) -> Application:
        """Reject from any non-terminal status with an explicit reason code."""
        application = await self.get_application(application_id)
        return await self._compare_and_swap(
            application_id,
            application.status,
            ApplicationStatus.REJECTED,
            {"rejection_reason": reason, "rejection_note": note},
            reason=reason.value,
        )


class ApplicationService:
    """Resume intake: store the file, extract its text, create and screen the application."""

    def __init__(
        self,
        state_machine: ApplicationStateMachine,
        storage: LocalStorage,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    ):
        self.state_machine = state_machine
        self.storage = storage
        self.session_factory = session_factory

    async def _check_job(self, job_id: str) -> None:
        async with self.session_factory() as session:
            job = await session.get(JobPosting, job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        if not job.is_active:
            raise JobClosedError(f"Job {job_id} is no longer accepting applications")

    async def create_application(
        self,
        data: bytes,
        filename: str,
        job_id: Optional[str] = None,
        candidate_name: Optional[str] = None,
        candidate_email: Optional[str] = None,
        screen: bool = True,
    ) -> Application:
        """
        Create an application from an uploaded resume.

        Args:
            data: Raw resume bytes (PDF, DOCX or plain text)
            filename: Original filename, selects the parser
            job_id: Job applied for
            candidate_name: Name if known; otherwise taken from the resume
            candidate_email: E-mail if known; otherwise taken from the resume
            screen: Run the resume scorer right away

        Returns:
            The application, already screened when ``screen`` is set

        Raises:
            JobNotFoundError / JobClosedError: the job cannot take applications
            UnsupportedFileError: the resume has no extractable text
            ScreeningError: screening failed; ``details["application_id"]`` names
                the NEW application left behind for a retry
        """
        if job_id:
            await self._check_job(job_id)

        text = await extract_text(data, filename)
        if not text.strip():
            raise UnsupportedFileError(f"No text could be extracted from {filename}")

        resume_path = self.storage.save(data, filename, subfolder="resumes")
        application = Application(
            job_id=job_id,
            candidate_name=candidate_name,
            candidate_email=candidate_email,
            resume_text=text[: settings.resume_max_chars],
            resume_path=resume_path,
            status=ApplicationStatus.NEW,
        )
        async with self.session_factory() as session:
            session.add(application)
            await session.commit()
            await session.refresh(application)

        logger.info(
            "Created application %s for job %s", application.id, job_id,
            extra={"application_id": application.id},
        )
        if not screen:
            return application
        try:
            return await self.state_machine.screen_application(application.id)
        except ScreeningError as exc:
            # The NEW row stays; callers retry with POST /applications/{id}/screen.
            exc.details["application_id"] = application.id
            raise

    async def create_applications_bulk(
        self,
        files: Sequence[tuple[str, bytes]],
        job_id: Optional[str] = None,
    ) -> list[BulkItemResult]:
        """Create and screen one application per file, one file at a time."""
        if job_id:
            await self._check_job(job_id)

        async def handle(item: tuple[str, bytes]) -> BulkItemResult:
            filename, data = item
            application = await self.create_application(data, filename, job_id=job_id)
            return BulkItemResult(
                filename=filename,
                success=True,
                id=application.id,
                data={
                    "status": application.status.value,
                    "screening_score": application.screening_score,
                },
            )

        return await run_sequentially(files, handle, name_of=lambda item: item[0])
