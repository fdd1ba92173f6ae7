"""
Letter grades and pass/fail decisions on the 0-100 scaled score.
"""
from decimal import Decimal
from typing import Optional

from app.core.config import settings
from app.core.math_utils import Number, to_decimal

from ._constants import FAILING_GRADE, GRADE_THRESHOLDS, PASSING_GRADE


def resolve_passing_score(passing_score: Optional[Number]) -> Decimal:
    """Return the test's passing score, or the configured default when unset."""
    if passing_score is None:
        return to_decimal(settings.DEFAULT_PASSING_SCORE)
    return to_decimal(passing_score)


def grade_for_score(scaled_score: Number, passing_score: Optional[Number] = None) -> str:
    """
    Map a scaled score to a letter grade.

    A >= 90, B >= 80, C >= 70, D >= passing score, otherwise E.

    Example:
        >>> grade_for_score(70)
        'C'
        >>> grade_for_score(59.99)
        'E'
    """
    score = to_decimal(scaled_score)
    for grade, threshold in GRADE_THRESHOLDS.items():
        if score >= threshold:
            return grade
    if score >= resolve_passing_score(passing_score):
        return PASSING_GRADE
    return FAILING_GRADE


def is_passing(scaled_score: Number, passing_score: Optional[Number] = None) -> bool:
    """Whether the scaled score reaches the passing score."""
    return to_decimal(scaled_score) >= resolve_passing_score(passing_score)
