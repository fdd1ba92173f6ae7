"""
Pydantic schemas for trait measurements stored on test results.
"""
import json
import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class TraitMeasurement(BaseModel):
    """A single named, scored facet of a test result."""

    name: str = Field(..., min_length=1, description="Trait display name")
    score: float = Field(..., ge=0, le=100, description="Trait score (0-100)")
    category: str = Field("Unknown", description="Trait category")
    description: str = Field("", description="Free-text trait description")
    key: Optional[str] = Field(None, description="Stable trait identifier")
    raw_average: Optional[float] = Field(
        None, description="Average raw rating behind the score"
    )
    question_count: Optional[int] = Field(
        None, ge=0, description="Number of answers contributing to the score"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


def parse_trait_measurements(raw: Any) -> List[TraitMeasurement]:
    """
    Parse stored trait data into validated measurements.

    Accepts either a native list or its JSON encoding. Entries that fail
    validation are skipped and logged so that one corrupt record does not
    discard the rest of the list.

    Args:
        raw: A list of trait dicts, a JSON string, or None

    Returns:
        List of valid TraitMeasurement objects, in stored order
    """
    if raw is None:
        return []

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Skipping trait data that is not valid JSON")
            return []

    if not isinstance(raw, list):
        logger.warning(
            f"Skipping trait data of unexpected type {type(raw).__name__}"
        )
        return []

    measurements: List[TraitMeasurement] = []
    for index, entry in enumerate(raw):
        if isinstance(entry, TraitMeasurement):
            measurements.append(entry)
            continue
        try:
            measurements.append(TraitMeasurement.model_validate(entry))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed trait entry at index {index}: "
                f"{e.error_count()} validation error(s)"
            )
    return measurements


def dump_trait_measurements(traits: List[TraitMeasurement]) -> List[dict]:
    """Serialize measurements to plain dicts, omitting unset optional fields."""
    return [trait.model_dump(exclude_none=True) for trait in traits]
