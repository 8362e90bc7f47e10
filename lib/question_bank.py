"""Question schema and question-bank normalization.

Question banks reach the engine in three shapes:

* canonical: a flat list of questions carrying ``correctOptionIndex``
* legacy flat: a flat list whose answer key lives in ``correct``
* grouped: ``{"aptitude": [...], "technical": [...]}``

``normalize_question_bank`` turns any of them into one ordered list of
``Question`` objects, aptitude first, keeping each question's id. Anything
else is rejected.
"""

import logging
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.errors import QuestionBankShapeError

logger = logging.getLogger(__name__)


class QuestionCategory(str, Enum):
    APTITUDE = "aptitude"
    TECHNICAL = "technical"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class BankShape(str, Enum):
    CANONICAL = "canonical"
    LEGACY_FLAT = "legacy_flat"
    GROUPED = "grouped"


CATEGORY_ORDER = {QuestionCategory.APTITUDE: 0, QuestionCategory.TECHNICAL: 1}
GROUP_KEYS = frozenset(c.value for c in QuestionCategory)


class Question(BaseModel):
    """A multiple-choice question with exactly one correct option."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correct_option_index: int = Field(alias="correctOptionIndex", ge=0)
    category: QuestionCategory
    difficulty: Difficulty = Difficulty.MEDIUM
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def _check_answer_key(self) -> "Question":
        if self.correct_option_index >= len(self.options):
            raise ValueError(
                f"correctOptionIndex {self.correct_option_index} is outside "
                f"the {len(self.options)} options"
            )
        return self

    def to_public(self) -> dict[str, Any]:
        """Candidate-facing view without the answer key."""
        return self.model_dump(
            by_alias=True,
            exclude={"correct_option_index", "explanation"},
            mode="json",
        )


def detect_shape(raw: Any) -> BankShape:
    """Classify a raw question bank, raising if it matches no known shape."""
    if isinstance(raw, dict):
        keys = set(raw.keys())
        if not keys or not keys <= GROUP_KEYS:
            raise QuestionBankShapeError(
                "Grouped question bank may only contain 'aptitude' and 'technical'",
                details={"keys": sorted(str(k) for k in keys)},
            )
        if not all(isinstance(raw[k], list) for k in keys):
            raise QuestionBankShapeError("Question groups must be lists")
        return BankShape.GROUPED

    if isinstance(raw, list):
        if not all(isinstance(item, dict) for item in raw):
            raise QuestionBankShapeError("Every question must be an object")
        ambiguous = [
            item.get("id") for item in raw
            if "correct" in item and "correctOptionIndex" in item
        ]
        if ambiguous:
            raise QuestionBankShapeError(
                "Questions must use either 'correct' or 'correctOptionIndex', not both",
                details={"question_ids": ambiguous},
            )
        has_legacy = any("correct" in item for item in raw)
        return BankShape.LEGACY_FLAT if has_legacy else BankShape.CANONICAL

    raise QuestionBankShapeError(
        f"Unsupported question bank type: {type(raw).__name__}"
    )


def _build_question(
    item: dict[str, Any],
    position: int,
    forced_category: Optional[QuestionCategory] = None,
) -> Question:
    data = dict(item)
    if "correct" in data:
        data["correctOptionIndex"] = data.pop("correct")
    if not data.get("id"):
        # Legacy banks were stored without ids; position keeps them stable.
        data["id"] = f"q{position + 1}"
    if forced_category is not None:
        declared = data.get("category")
        if declared is not None and declared != forced_category.value:
            raise QuestionBankShapeError(
                f"Question {data['id']} is declared '{declared}' "
                f"inside the '{forced_category.value}' group"
            )
        data["category"] = forced_category.value
    else:
        data.setdefault("category", QuestionCategory.TECHNICAL.value)
    try:
        return Question.model_validate(data)
    except ValidationError as exc:
        raise QuestionBankShapeError(
            f"Question {data['id']} is invalid",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def normalize_question_bank(raw: Any) -> list[Question]:
    """Flatten any supported shape into one ordered list, aptitude first."""
    shape = detect_shape(raw)

    if shape is BankShape.GROUPED:
        questions: list[Question] = []
        position = 0
        for category in (QuestionCategory.APTITUDE, QuestionCategory.TECHNICAL):
            for item in raw.get(category.value, []):
                if not isinstance(item, dict):
                    raise QuestionBankShapeError("Every question must be an object")
                questions.append(_build_question(item, position, category))
                position += 1
    else:
        questions = [_build_question(item, i) for i, item in enumerate(raw)]
        # sorted() is stable, so order inside each category survives.
        questions = sorted(questions, key=lambda q: CATEGORY_ORDER[q.category])

    seen: set[str] = set()
    for q in questions:
        if q.id in seen:
            raise QuestionBankShapeError(f"Duplicate question id: {q.id}")
        seen.add(q.id)

    logger.debug("Normalized %s question bank with %d questions", shape.value, len(questions))
    return questions


def dump_question_bank(questions: Iterable[Question]) -> list[dict[str, Any]]:
    """Serialize questions to the canonical JSON shape."""
    return [q.model_dump(by_alias=True, mode="json", exclude_none=True) for q in questions]


def split_by_category(
    questions: Iterable[Question],
) -> tuple[list[Question], list[Question]]:
    questions = list(questions)
    aptitude = [q for q in questions if q.category is QuestionCategory.APTITUDE]
    technical = [q for q in questions if q.category is QuestionCategory.TECHNICAL]
    return aptitude, technical
