"""
Error taxonomy for the screening engine.

Three families are kept apart so callers (and the HTTP layer) can tell a bad
request from a broken dependency:

- ``ValidationFailure``: the caller asked for something illegal; nothing was
  mutated.
- ``NotFoundError``: the referenced record does not exist.
- ``UpstreamError``: the generative model, the embedding service or the vector
  store failed, timed out, or returned unusable output.
"""

from typing import Any, Dict, Optional


class ScreeningError(Exception):
    """
    Base class for every error raised by the engine.

    Attributes:
        code: Stable machine-readable error code
        message: Human readable message
        details: Optional extra context for debugging
    """

    code = "SCREENING_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ==================== Validation ===================== #
class ValidationFailure(ScreeningError):
    code = "VALIDATION_FAILED"


class MalformedAnswersError(ValidationFailure):
    code = "MALFORMED_ANSWERS"


class NoQuestionsError(ValidationFailure):
    code = "NO_QUESTIONS"


class QuestionBankShapeError(ValidationFailure):
    code = "INVALID_QUESTION_BANK"


class InvalidTransitionError(ValidationFailure):
    code = "INVALID_STATUS_TRANSITION"


class AssessmentAlreadySubmittedError(InvalidTransitionError):
    code = "ALREADY_SUBMITTED"


class IncompletePhaseError(ValidationFailure):
    code = "INCOMPLETE_PHASE"


class InvalidQuizTransitionError(ValidationFailure):
    code = "INVALID_QUIZ_TRANSITION"


class NothingToIndexError(ValidationFailure):
    code = "NOTHING_TO_INDEX"


class UnsupportedFileError(ValidationFailure):
    code = "UNSUPPORTED_FILE"


class JobClosedError(ValidationFailure):
    code = "JOB_CLOSED"


# ==================== Not found ===================== #
class NotFoundError(ScreeningError):
    code = "NOT_FOUND"


class ApplicationNotFoundError(NotFoundError):
    code = "APPLICATION_NOT_FOUND"


class JobNotFoundError(NotFoundError):
    code = "JOB_NOT_FOUND"


class DocumentNotFoundError(NotFoundError):
    """Zero records removed: the document is missing or not ours to delete."""

    code = "DOCUMENT_NOT_DELETED"


# ==================== Upstream ===================== #
class UpstreamError(ScreeningError):
    code = "UPSTREAM_ERROR"


class UpstreamUnavailableError(UpstreamError):
    code = "UPSTREAM_UNAVAILABLE"


class UpstreamTimeoutError(UpstreamUnavailableError):
    code = "UPSTREAM_TIMEOUT"


class ModelOutputError(UpstreamError):
    code = "MODEL_OUTPUT_INVALID"


class InsufficientContextError(UpstreamError):
    code = "INSUFFICIENT_CONTEXT"


class GroundingViolationError(ModelOutputError):
    """A generated question cites no retrieved source, or one that was not retrieved."""

    code = "GROUNDING_VIOLATION"


class VectorStoreError(UpstreamError):
    code = "VECTOR_STORE_ERROR"
