"""
Result computation for completed attempts.

ScoringEngine is a pure computation: it takes the attempt figures and the
attempt's answers and returns a ScoreOutcome. Loading rows and persisting
the result is handled by app.core.scoring.service.

Algorithm
=========
- completion_percentage = answered / total * 100
- raw score: +1 per correct answer, otherwise the answer's stored partial score
- scaled_score = raw / total * 100
- percentile = min(100, scaled_score)
- grade A >= 90, B >= 80, C >= 70, D >= passing score, otherwise E
- traits from the TraitModel registered for (module_type, category)

Percentile is not norm-referenced. It mirrors the scaled score until a
norming sample exists.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from app.core.math_utils import quantize_score, round_half_up, round_to, to_decimal
from app.models.models import ModuleType, QuestionType

from ._constants import (
    BREAKDOWN_PERCENTILE_MULTIPLIER,
    BREAKDOWN_SCALED_MULTIPLIER,
    CALCULATION_METHOD,
    RATING_MAX,
    RATING_MIN,
)
from ._types import AttemptFacts, CalculationOptions, ScoredAnswer, ScoreOutcome
from .answer_scoring import extract_rating
from .grading import grade_for_score, is_passing
from .recommendations import build_description, build_recommendations
from .trait_models import TraitModelRegistry, get_trait_registry

logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")


def _answer_points(scored: ScoredAnswer) -> Decimal:
    if scored.is_correct:
        return Decimal("1")
    if scored.score is not None:
        return to_decimal(scored.score)
    return Decimal("0")


def calculate_time_efficiency(
    time_spent_seconds: Optional[int], time_limit_minutes: int
) -> int:
    """
    Share of the time limit left unused, as an integer percentage.

    Returns 100 when the test has no limit or no time was recorded.
    """
    if not time_limit_minutes or time_spent_seconds is None:
        return 100
    elapsed_minutes = time_spent_seconds / 60
    return max(0, round_half_up(100 - elapsed_minutes / time_limit_minutes * 100))


def rating_distribution(answers: Sequence[ScoredAnswer]) -> Optional[Dict[str, int]]:
    """Count 1-5 ratings across rating-scale answers, or None if there are none."""
    rated = [
        a for a in answers if a.question_type == QuestionType.RATING_SCALE.value
    ]
    if not rated:
        return None
    counts = {str(value): 0 for value in range(RATING_MIN, RATING_MAX + 1)}
    for scored in rated:
        rating = extract_rating(scored.answer, scored.answer_data)
        if rating is not None and str(rating) in counts:
            counts[str(rating)] += 1
    return counts


class ScoringEngine:
    """Computes every field of a test result from an attempt's answers."""

    def __init__(self, registry: Optional[TraitModelRegistry] = None):
        self._registry = registry

    @property
    def registry(self) -> TraitModelRegistry:
        return self._registry if self._registry is not None else get_trait_registry()

    def _traits_enabled(self, module_type: str, options: CalculationOptions) -> bool:
        if module_type == ModuleType.PERSONALITY.value:
            return options.include_personality_analysis
        if module_type == ModuleType.INTELLIGENCE.value:
            return options.include_intelligence_scoring
        return True

    def score(
        self,
        facts: AttemptFacts,
        answers: Sequence[ScoredAnswer],
        options: Optional[CalculationOptions] = None,
    ) -> ScoreOutcome:
        """
        Score one attempt.

        Args:
            facts: Attempt and test figures
            answers: The attempt's answers joined with their questions
            options: Optional calculation toggles

        Returns:
            ScoreOutcome with Decimal scores quantized to two places
        """
        options = options or CalculationOptions()
        total = facts.total_questions or 0

        completion = (
            Decimal(facts.questions_answered) / Decimal(total) * _HUNDRED
            if total > 0
            else Decimal("0")
        )

        raw = Decimal("0")
        correct_answers = 0
        breakdown: List[Dict[str, Any]] = []
        for scored in answers:
            points = _answer_points(scored)
            if scored.is_correct:
                correct_answers += 1
            raw += points
            breakdown.append(
                {
                    "question_id": scored.question_id,
                    "trait": scored.question_type or facts.category,
                    "raw_score": float(points),
                    "scaled_score": float(points * BREAKDOWN_SCALED_MULTIPLIER),
                    "percentile": float(
                        min(_HUNDRED, points * BREAKDOWN_PERCENTILE_MULTIPLIER)
                    ),
                }
            )

        scaled = raw / Decimal(total) * _HUNDRED if total > 0 else Decimal("0")

        raw_score = quantize_score(raw)
        scaled_score = quantize_score(scaled)
        percentile = min(_HUNDRED, scaled_score)
        completion_percentage = quantize_score(completion)
        # Graded on the unrounded score so 59.996 stays below a 60 pass mark
        grade = grade_for_score(scaled, facts.passing_score)
        passed = is_passing(scaled, facts.passing_score)

        traits = None
        model = self.registry.get(facts.module_type, facts.category)
        if model is not None and self._traits_enabled(facts.module_type, options):
            traits = model.score_traits(answers)

        answered = facts.questions_answered
        detailed_analysis: Dict[str, Any] = {
            "calculation_method": CALCULATION_METHOD,
            "total_questions": total,
            "answered_questions": answered,
            "correct_answers": correct_answers,
            "accuracy_rate": (
                round_to(correct_answers / answered * 100, 2) if answered else 0.0
            ),
            "time_efficiency": calculate_time_efficiency(
                facts.time_spent_seconds, facts.time_limit_minutes
            ),
            "scoring_breakdown": breakdown,
        }
        distribution = rating_distribution(answers)
        if distribution is not None:
            detailed_analysis["rating_distribution"] = distribution

        recommendations = None
        if options.include_recommendations:
            recommendations = build_recommendations(
                scaled_score, passed, facts.module_type, traits
            )

        return ScoreOutcome(
            raw_score=raw_score,
            scaled_score=scaled_score,
            percentile=percentile,
            grade=grade,
            is_passed=passed,
            completion_percentage=completion_percentage,
            correct_answers=correct_answers,
            traits=traits,
            description=build_description(completion_percentage, scaled_score, grade),
            recommendations=recommendations,
            detailed_analysis=detailed_analysis,
        )
