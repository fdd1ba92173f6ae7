"""
Per-answer validation and scoring by question type.

Objective question types (multiple choice, true/false) are scored against
the stored correct answer. Rating-scale answers take the score attached to
the chosen option. Open formats (text, drawing, sequence, matrix) need
manual or external evaluation and score 0 until that happens.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.core.math_utils import to_decimal
from app.models.models import QuestionType


@dataclass(frozen=True)
class AnswerScore:
    """Score assigned to one answer."""

    score: Decimal
    is_correct: bool


_ZERO = AnswerScore(score=Decimal("0"), is_correct=False)


def _option_values(options: Optional[List[Dict[str, Any]]]) -> List[str]:
    return [str(opt.get("value")) for opt in options or [] if isinstance(opt, dict)]


def validate_answer_for_question_type(
    question_type: str,
    answer: Optional[str],
    answer_data: Optional[Dict[str, Any]],
    options: Optional[List[Dict[str, Any]]] = None,
) -> Optional[str]:
    """
    Check that an answer has the shape its question type requires.

    Returns:
        None when valid, otherwise a user-facing reason
    """
    qtype = QuestionType(question_type)

    if qtype == QuestionType.MULTIPLE_CHOICE:
        if not answer:
            return "Answer is required"
        if options and answer not in _option_values(options):
            return "Invalid option selected"
    elif qtype == QuestionType.TRUE_FALSE:
        if answer not in ("true", "false"):
            return "Answer must be 'true' or 'false'"
    elif qtype == QuestionType.TEXT:
        if not answer or not answer.strip():
            return "Text answer is required"
    elif qtype == QuestionType.RATING_SCALE:
        rating = extract_rating(answer, answer_data)
        if rating is None or not 1 <= rating <= 10:
            return "Rating must be between 1 and 10"
    elif qtype == QuestionType.DRAWING:
        if not answer_data or not answer_data.get("drawing_data"):
            return "Drawing data is required"
    elif qtype == QuestionType.SEQUENCE:
        if not answer_data or not isinstance(answer_data.get("sequence"), list):
            return "Sequence data is required"
    elif qtype == QuestionType.MATRIX:
        if not answer_data or not answer_data.get("matrix_selection"):
            return "Matrix selection is required"
    return None


def extract_rating(
    answer: Optional[str], answer_data: Optional[Dict[str, Any]]
) -> Optional[int]:
    """Read an integer rating from the answer text or its structured payload."""
    raw: Any = answer
    if not raw and isinstance(answer_data, dict):
        raw = answer_data.get("value") or answer_data.get("rating")
    if raw is None or raw == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def calculate_answer_score(
    question_type: str,
    answer: Optional[str],
    answer_data: Optional[Dict[str, Any]],
    correct_answer: Optional[str],
    options: Optional[List[Dict[str, Any]]] = None,
) -> AnswerScore:
    """
    Score a single answer.

    Args:
        question_type: QuestionType value of the question
        answer: Raw answer text
        answer_data: Structured answer payload
        correct_answer: Stored correct answer, if the question has one
        options: Question options (``value``/``label``/``score``)

    Returns:
        AnswerScore with a Decimal score and correctness flag
    """
    if not answer and not answer_data:
        return _ZERO

    qtype = QuestionType(question_type)

    if qtype in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE):
        correct = correct_answer is not None and answer == correct_answer
        return AnswerScore(score=Decimal("1") if correct else Decimal("0"), is_correct=correct)

    if qtype == QuestionType.RATING_SCALE:
        if options and answer:
            for option in options:
                if isinstance(option, dict) and str(option.get("value")) == answer:
                    return AnswerScore(
                        score=to_decimal(option.get("score") or 0), is_correct=True
                    )
        return _ZERO

    return _ZERO
