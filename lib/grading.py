"""Deterministic grading of multiple-choice answers.

``grade`` is a pure function: no I/O, no randomness, so grading the same
answers against the same questions always yields an equal result.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Sequence

from core.errors import MalformedAnswersError, NoQuestionsError
from lib.question_bank import Question


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    is_correct: bool
    user_answer_index: Optional[int]
    correct_answer_index: int


@dataclass(frozen=True)
class GradingResult:
    score: int
    correct_count: int
    total_questions: int
    details: list[QuestionResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def percentage(correct: int, total: int) -> int:
    """Integer percentage rounded half up (12.5 -> 13, never banker's rounding)."""
    return (200 * correct + total) // (2 * total)


def validate_answers(answers: Sequence[Optional[int]], questions: Sequence[Question]) -> None:
    """Raise MalformedAnswersError unless answers line up with the question bank."""
    if isinstance(answers, (str, bytes)) or not isinstance(answers, Sequence):
        raise MalformedAnswersError("Answers must be an ordered array")
    if len(answers) != len(questions):
        raise MalformedAnswersError(
            f"Expected {len(questions)} answers, got {len(answers)}",
            details={"expected": len(questions), "received": len(answers)},
        )
    for position, (answer, question) in enumerate(zip(answers, questions)):
        if answer is None:
            continue
        if isinstance(answer, bool) or not isinstance(answer, int):
            raise MalformedAnswersError(
                f"Answer {position} must be an option index or null",
                details={"position": position},
            )
        if not 0 <= answer < len(question.options):
            raise MalformedAnswersError(
                f"Answer {position} points outside the {len(question.options)} options",
                details={"position": position, "answer": answer},
            )


def grade(answers: Sequence[Optional[int]], questions: Sequence[Question]) -> GradingResult:
    """
    Grade answers position by position against the question bank.

    Args:
        answers: Option index per question, or None when unanswered
        questions: Normalized question bank, in the order shown to the candidate

    Returns:
        GradingResult with the integer percentage and per-question detail

    Raises:
        NoQuestionsError: the bank is empty
        MalformedAnswersError: answers do not line up with the bank
    """
    if not questions:
        raise NoQuestionsError("Cannot grade an assessment with no questions")
    validate_answers(answers, questions)

    details = []
    correct_count = 0
    for answer, question in zip(answers, questions):
        # An unanswered slot never matches.
        is_correct = answer is not None and answer == question.correct_option_index
        if is_correct:
            correct_count += 1
        details.append(
            QuestionResult(
                question_id=question.id,
                is_correct=is_correct,
                user_answer_index=answer,
                correct_answer_index=question.correct_option_index,
            )
        )

    return GradingResult(
        score=percentage(correct_count, len(questions)),
        correct_count=correct_count,
        total_questions=len(questions),
        details=details,
    )
