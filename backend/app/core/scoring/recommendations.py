"""
Human-readable description and recommendation text for a result.
"""
from decimal import Decimal
from typing import List, Optional, Sequence

from app.core.math_utils import round_half_up
from app.models.models import ModuleType
from app.schemas.traits import TraitMeasurement

from ._constants import (
    EXCELLENT_SCORE_BAND,
    GOOD_SCORE_BAND,
    TRAIT_DEVELOPMENT_THRESHOLD,
    TRAIT_STRENGTH_THRESHOLD,
)

_MODULE_SUFFIXES = {
    ModuleType.INTELLIGENCE.value: (
        "Consider cognitive training to strengthen problem-solving skills."
    ),
    ModuleType.APTITUDE.value: (
        "Focus on skill-specific practice in the relevant areas."
    ),
}


def build_description(
    completion_percentage: Decimal, scaled_score: Decimal, grade: str
) -> str:
    """
    Example:
        >>> build_description(Decimal("100"), Decimal("70"), "C")
        'Test completed with 100% completion rate. Scored 70 out of 100 (C).'
    """
    return (
        f"Test completed with {round_half_up(completion_percentage)}% completion rate. "
        f"Scored {round_half_up(scaled_score)} out of 100 ({grade})."
    )


def build_recommendations(
    scaled_score: Decimal,
    is_passed: bool,
    module_type: str,
    traits: Optional[Sequence[TraitMeasurement]] = None,
) -> str:
    """
    Assemble recommendations from the score band, pass status, module type
    and per-trait callouts.

    Args:
        scaled_score: Scaled score on 0-100
        is_passed: Whether the passing score was reached
        module_type: ModuleType value of the test
        traits: Scored traits, if any

    Returns:
        Space-separated recommendation sentences
    """
    parts: List[str] = []

    if is_passed:
        if scaled_score >= EXCELLENT_SCORE_BAND:
            parts.append(
                "Excellent performance. Consider advanced roles and leadership positions."
            )
        elif scaled_score >= GOOD_SCORE_BAND:
            parts.append(
                "Good performance. Suitable for the target position with minor skill development."
            )
        else:
            parts.append(
                "Average performance. Additional training is recommended to build capability."
            )
    else:
        parts.append(
            "Performance is below the passing threshold. A retest after skill "
            "development is recommended, or consider alternative positions."
        )

    suffix = _MODULE_SUFFIXES.get(str(getattr(module_type, "value", module_type)))
    if suffix:
        parts.append(suffix)

    if traits:
        strengths = [t.name for t in traits if t.score >= TRAIT_STRENGTH_THRESHOLD]
        development = [
            t.name
            for t in traits
            if t.question_count != 0 and t.score <= TRAIT_DEVELOPMENT_THRESHOLD
        ]
        if strengths:
            parts.append(f"Key strengths: {', '.join(strengths)}.")
        if development:
            parts.append(f"Development areas: {', '.join(development)}.")

    return " ".join(parts)
