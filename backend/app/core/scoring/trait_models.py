"""
Pluggable trait scoring keyed by (module_type, category).

Each psychometric instrument contributes a TraitModel that turns the
answers of one attempt into an ordered trait profile. The engine never
branches on the instrument: it looks the model up in a
TraitModelRegistry, and an attempt whose (module_type, category) has no
registered model simply gets no traits.

Adding an instrument:
    registry = get_trait_registry()
    registry.register("personality", "riasec", RatingScaleTraitModel(RIASEC))
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from app.core.math_utils import round_half_up, round_to
from app.models.models import ModuleType, TestCategory
from app.schemas.traits import TraitMeasurement

from ._constants import RATING_MAX, RATING_MIN
from ._types import ScoredAnswer
from .answer_scoring import extract_rating
from .catalogs import (
    BIG_FIVE_TRAITS,
    DISC_TRAITS,
    EPPS_TRAITS,
    MBTI_TRAITS,
    WAIS_INDICES,
    TraitDefinition,
)

logger = logging.getLogger(__name__)


class TraitModel(Protocol):
    """
    Protocol for per-instrument trait scoring.

    Any class implementing this protocol can be registered for a
    (module_type, category) pair.
    """

    def score_traits(self, answers: Sequence[ScoredAnswer]) -> List[TraitMeasurement]:
        """
        Score every catalog trait from an attempt's answers.

        Args:
            answers: Answers of one attempt, joined with their questions

        Returns:
            Trait measurements in catalog order
        """
        ...


class RatingScaleTraitModel:
    """
    Averages 1-5 ratings per trait and maps the average onto 0-100.

    score = round((average - 1) / 4 * 100), clamped to 0-100. Traits with no
    rated answers still appear, scored 0, so profiles keep the same shape.
    """

    def __init__(
        self, catalog: Sequence[TraitDefinition], category: str = "personality"
    ) -> None:
        self.catalog = tuple(catalog)
        self.category = category

    def score_traits(self, answers: Sequence[ScoredAnswer]) -> List[TraitMeasurement]:
        ratings: Dict[str, List[int]] = defaultdict(list)
        for scored in answers:
            key = scored.trait_key
            if key is None:
                continue
            rating = extract_rating(scored.answer, scored.answer_data)
            if rating is not None and RATING_MIN <= rating <= RATING_MAX:
                ratings[key].append(rating)

        span = RATING_MAX - RATING_MIN
        traits = []
        for definition in self.catalog:
            values = ratings.get(definition.key, [])
            average = sum(values) / len(values) if values else 0.0
            score = (
                round_half_up((average - RATING_MIN) / span * 100) if values else 0
            )
            traits.append(
                TraitMeasurement(
                    name=definition.name,
                    key=definition.key,
                    score=max(0, min(100, score)),
                    category=self.category,
                    description=definition.description,
                    raw_average=round_to(average, 1),
                    question_count=len(values),
                )
            )
        return traits


class AccuracyTraitModel:
    """
    Scores each trait as the percentage of its tagged answers that are correct.

    Used for cognitive batteries whose questions carry an index key
    (e.g. WAIS verbal comprehension) in ``scoring_key.trait``.
    """

    def __init__(
        self, catalog: Sequence[TraitDefinition], category: str = "intelligence"
    ) -> None:
        self.catalog = tuple(catalog)
        self.category = category

    def score_traits(self, answers: Sequence[ScoredAnswer]) -> List[TraitMeasurement]:
        totals: Dict[str, int] = defaultdict(int)
        correct: Dict[str, int] = defaultdict(int)
        for scored in answers:
            key = scored.trait_key
            if key is None:
                continue
            totals[key] += 1
            if scored.is_correct:
                correct[key] += 1

        traits = []
        for definition in self.catalog:
            count = totals.get(definition.key, 0)
            score = round_half_up(correct[definition.key] / count * 100) if count else 0
            traits.append(
                TraitMeasurement(
                    name=definition.name,
                    key=definition.key,
                    score=score,
                    category=self.category,
                    description=definition.description,
                    question_count=count,
                )
            )
        return traits


class TraitModelRegistry:
    """Lookup table from (module_type, category) to a TraitModel."""

    def __init__(self) -> None:
        self._models: Dict[Tuple[str, str], TraitModel] = {}

    @staticmethod
    def _key(module_type: str, category: str) -> Tuple[str, str]:
        return (str(getattr(module_type, "value", module_type)),
                str(getattr(category, "value", category)))

    def register(self, module_type: str, category: str, model: TraitModel) -> None:
        key = self._key(module_type, category)
        if key in self._models:
            logger.info(f"Replacing trait model for {key[0]}/{key[1]}")
        self._models[key] = model

    def get(self, module_type: str, category: str) -> Optional[TraitModel]:
        return self._models.get(self._key(module_type, category))

    def supports(self, module_type: str, category: str) -> bool:
        return self._key(module_type, category) in self._models

    def __len__(self) -> int:
        return len(self._models)


def build_default_registry() -> TraitModelRegistry:
    """Registry with the instruments the platform ships with."""
    registry = TraitModelRegistry()
    personality = ModuleType.PERSONALITY.value
    registry.register(personality, TestCategory.MBTI.value, RatingScaleTraitModel(MBTI_TRAITS))
    registry.register(
        personality, TestCategory.BIG_FIVE.value, RatingScaleTraitModel(BIG_FIVE_TRAITS)
    )
    registry.register(personality, TestCategory.DISC.value, RatingScaleTraitModel(DISC_TRAITS))
    registry.register(personality, TestCategory.EPPS.value, RatingScaleTraitModel(EPPS_TRAITS))
    registry.register(
        ModuleType.INTELLIGENCE.value,
        TestCategory.WAIS.value,
        AccuracyTraitModel(WAIS_INDICES),
    )
    return registry


# Default registry used by the engine
_default_registry = build_default_registry()


def get_trait_registry() -> TraitModelRegistry:
    """Get the current default trait registry."""
    return _default_registry


def set_trait_registry(registry: TraitModelRegistry) -> None:
    """
    Replace the default trait registry.

    Args:
        registry: Registry to use for subsequent calculations
    """
    global _default_registry
    _default_registry = registry
