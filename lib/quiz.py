"""Proctored assessment flow as an explicit finite-state machine.

Phases run ``consent -> aptitude -> intermission -> technical -> submitted``.
``rejected`` is reachable from any live phase, and only through
``disqualify``. Answers live in the quiz object until submission; nothing is
persisted in between.
"""

import logging
from enum import Enum
from typing import Optional, Sequence

from core.errors import IncompletePhaseError, InvalidQuizTransitionError
from lib.question_bank import Question, split_by_category

logger = logging.getLogger(__name__)


class QuizPhase(str, Enum):
    CONSENT = "consent"
    APTITUDE = "aptitude"
    INTERMISSION = "intermission"
    TECHNICAL = "technical"
    SUBMITTED = "submitted"
    REJECTED = "rejected"


class QuizAction(str, Enum):
    PROCEED = "proceed"
    DISQUALIFY = "disqualify"


class ViolationType(str, Enum):
    NO_FACE = "no_face"
    MULTIPLE_FACES = "multiple_faces"
    LOOKING_AWAY = "looking_away"
    TAB_SWITCH = "tab_switch"


TERMINAL_PHASES = frozenset({QuizPhase.SUBMITTED, QuizPhase.REJECTED})
ANSWER_PHASES = frozenset({QuizPhase.APTITUDE, QuizPhase.TECHNICAL})

TRANSITIONS: dict[tuple[QuizPhase, QuizAction], QuizPhase] = {
    (QuizPhase.CONSENT, QuizAction.PROCEED): QuizPhase.APTITUDE,
    (QuizPhase.APTITUDE, QuizAction.PROCEED): QuizPhase.INTERMISSION,
    (QuizPhase.INTERMISSION, QuizAction.PROCEED): QuizPhase.TECHNICAL,
    (QuizPhase.TECHNICAL, QuizAction.PROCEED): QuizPhase.SUBMITTED,
    (QuizPhase.CONSENT, QuizAction.DISQUALIFY): QuizPhase.REJECTED,
    (QuizPhase.APTITUDE, QuizAction.DISQUALIFY): QuizPhase.REJECTED,
    (QuizPhase.INTERMISSION, QuizAction.DISQUALIFY): QuizPhase.REJECTED,
    (QuizPhase.TECHNICAL, QuizAction.DISQUALIFY): QuizPhase.REJECTED,
}


def next_phase(phase: QuizPhase, action: QuizAction) -> QuizPhase:
    try:
        return TRANSITIONS[(phase, action)]
    except KeyError:
        raise InvalidQuizTransitionError(
            f"Cannot {action.value} from phase '{phase.value}'"
        ) from None


class ProctoredQuiz:
    """Client-held state of one candidate's run through the assessment."""

    def __init__(self, questions: Sequence[Question]):
        self.aptitude_questions, self.technical_questions = split_by_category(questions)
        self.phase = QuizPhase.CONSENT
        self.disqualification_reason: Optional[str] = None
        self._answers: dict[QuizPhase, list[Optional[int]]] = {
            QuizPhase.APTITUDE: [None] * len(self.aptitude_questions),
            QuizPhase.TECHNICAL: [None] * len(self.technical_questions),
        }

    @property
    def questions(self) -> list[Question]:
        return self.aptitude_questions + self.technical_questions

    @property
    def is_finished(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def current_questions(self) -> list[Question]:
        if self.phase is QuizPhase.APTITUDE:
            return self.aptitude_questions
        if self.phase is QuizPhase.TECHNICAL:
            return self.technical_questions
        return []

    def answer(self, index: int, option_index: int) -> None:
        """Record the answer to question ``index`` of the current phase."""
        if self.phase not in ANSWER_PHASES:
            raise InvalidQuizTransitionError(
                f"Phase '{self.phase.value}' does not accept answers"
            )
        questions = self.current_questions()
        if not 0 <= index < len(questions):
            raise IncompletePhaseError(f"No question {index} in phase '{self.phase.value}'")
        if not 0 <= option_index < len(questions[index].options):
            raise IncompletePhaseError(
                f"Option {option_index} does not exist for question {questions[index].id}"
            )
        self._answers[self.phase][index] = option_index

    def unanswered(self) -> list[int]:
        if self.phase not in ANSWER_PHASES:
            return []
        return [i for i, a in enumerate(self._answers[self.phase]) if a is None]

    def proceed(self) -> QuizPhase:
        """Advance one phase; answer phases must be complete first."""
        missing = self.unanswered()
        if missing:
            raise IncompletePhaseError(
                f"{len(missing)} question(s) in '{self.phase.value}' are unanswered",
                details={"unanswered": missing},
            )
        self.phase = next_phase(self.phase, QuizAction.PROCEED)
        return self.phase

    def disqualify(self, reason: str) -> QuizPhase:
        self.phase = next_phase(self.phase, QuizAction.DISQUALIFY)
        self.disqualification_reason = reason
        logger.info("Quiz disqualified: %s", reason)
        return self.phase

    def final_answers(self) -> list[Optional[int]]:
        """Aptitude answers followed by technical answers, once submitted."""
        if self.phase is not QuizPhase.SUBMITTED:
            raise InvalidQuizTransitionError(
                f"Answers are only available after submission, quiz is '{self.phase.value}'"
            )
        return self._answers[QuizPhase.APTITUDE] + self._answers[QuizPhase.TECHNICAL]


class ProctorMonitor:
    """Counts proctoring violations and disqualifies the quiz at the strike limit."""

    def __init__(self, quiz: ProctoredQuiz, max_strikes: int = 3):
        self.quiz = quiz
        self.max_strikes = max_strikes
        self.strikes: list[ViolationType] = []

    @property
    def remaining(self) -> int:
        return max(self.max_strikes - len(self.strikes), 0)

    def record_violation(self, violation: ViolationType) -> bool:
        """
        Register one violation.

        Returns:
            True when this violation disqualified the quiz
        """
        if self.quiz.is_finished:
            return False
        self.strikes.append(violation)
        logger.warning(
            "Proctoring violation %s (strike %d/%d)",
            violation.value, len(self.strikes), self.max_strikes,
        )
        if len(self.strikes) >= self.max_strikes:
            kinds = ", ".join(sorted({v.value for v in self.strikes}))
            self.quiz.disqualify(f"Suspicious activity during proctored assessment: {kinds}")
            return True
        return False
