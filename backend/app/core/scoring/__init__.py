"""
Result calculation for completed attempts.

Public API:
    ScoringEngine            pure computation of a ScoreOutcome
    calculate_result         load, score and persist a TestResult
    rescore_answers          recompute stored per-answer scores
    calculate_answer_score   score a single answer by question type
    TraitModelRegistry       (module_type, category) -> TraitModel lookup
"""
from ._types import (
    AttemptFacts,
    CalculationMetadata,
    CalculationOptions,
    ScoredAnswer,
    ScoreOutcome,
)
from .answer_scoring import (
    AnswerScore,
    calculate_answer_score,
    validate_answer_for_question_type,
)
from .engine import ScoringEngine, calculate_time_efficiency
from .exceptions import (
    DataIntegrityError,
    ResultConflictError,
    ScoringError,
    ScoringNotFoundError,
    ScoringPreconditionError,
)
from .grading import grade_for_score, is_passing
from .recommendations import build_description, build_recommendations
from .service import RescoreSummary, calculate_result, rescore_answers
from .trait_models import (
    AccuracyTraitModel,
    RatingScaleTraitModel,
    TraitModel,
    TraitModelRegistry,
    build_default_registry,
    get_trait_registry,
    set_trait_registry,
)

__all__ = [
    "AccuracyTraitModel",
    "AnswerScore",
    "AttemptFacts",
    "CalculationMetadata",
    "CalculationOptions",
    "DataIntegrityError",
    "RatingScaleTraitModel",
    "RescoreSummary",
    "ResultConflictError",
    "ScoredAnswer",
    "ScoreOutcome",
    "ScoringEngine",
    "ScoringError",
    "ScoringNotFoundError",
    "ScoringPreconditionError",
    "TraitModel",
    "TraitModelRegistry",
    "build_default_registry",
    "build_description",
    "build_recommendations",
    "calculate_answer_score",
    "calculate_result",
    "calculate_time_efficiency",
    "get_trait_registry",
    "grade_for_score",
    "is_passing",
    "rescore_answers",
    "set_trait_registry",
    "validate_answer_for_question_type",
]
