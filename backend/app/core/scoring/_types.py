"""
Data structures passed into and out of the scoring engine.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.schemas.traits import TraitMeasurement


@dataclass(frozen=True)
class CalculationOptions:
    """Caller toggles for optional parts of a result calculation."""

    include_personality_analysis: bool = True
    include_intelligence_scoring: bool = True
    include_recommendations: bool = True


@dataclass(frozen=True)
class ScoredAnswer:
    """
    One answer joined with the question fields scoring needs.

    Fields:
        question_id: ID of the answered question
        question_type: QuestionType value of the question
        scoring_key: Question scoring key, e.g. ``{"trait": "openness"}``
        answer: Raw answer text
        answer_data: Structured answer payload
        is_correct: Stored correctness flag
        score: Stored numeric (partial) score
    """

    question_id: int
    question_type: str
    scoring_key: Optional[Dict[str, Any]] = None
    answer: Optional[str] = None
    answer_data: Optional[Dict[str, Any]] = None
    is_correct: Optional[bool] = None
    score: Optional[Decimal] = None

    @property
    def trait_key(self) -> Optional[str]:
        if isinstance(self.scoring_key, dict):
            trait = self.scoring_key.get("trait")
            return str(trait) if trait else None
        return None


@dataclass(frozen=True)
class AttemptFacts:
    """Attempt and test figures the engine scores against."""

    total_questions: int
    questions_answered: int
    time_spent_seconds: Optional[int]
    time_limit_minutes: int
    passing_score: Optional[Decimal]
    module_type: str
    category: str


@dataclass
class ScoreOutcome:
    """Every field of a calculated result, ready to persist."""

    raw_score: Decimal
    scaled_score: Decimal
    percentile: Decimal
    grade: str
    is_passed: bool
    completion_percentage: Decimal
    correct_answers: int
    traits: Optional[List[TraitMeasurement]]
    description: str
    recommendations: Optional[str]
    detailed_analysis: Dict[str, Any] = field(default_factory=dict)

    @property
    def trait_names(self) -> Optional[List[str]]:
        if self.traits is None:
            return None
        return [trait.name for trait in self.traits]


@dataclass(frozen=True)
class CalculationMetadata:
    """Bookkeeping returned alongside a persisted result."""

    processing_time_ms: int
    recalculated: bool
    calculated_at: Any
