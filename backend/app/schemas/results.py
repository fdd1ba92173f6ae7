"""
Pydantic schemas for test result endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.traits import TraitMeasurement


class TestResultResponse(BaseModel):
    """Schema for a calculated test result."""

    id: int = Field(..., description="Result ID")
    attempt_id: int = Field(..., description="Attempt the result was calculated from")
    user_id: int = Field(..., description="Participant ID")
    test_id: int = Field(..., description="Test ID")
    raw_score: float = Field(..., description="Raw score (correct answers plus partial scores)")
    scaled_score: float = Field(..., ge=0, description="Score scaled to 0-100")
    percentile: float = Field(
        ..., ge=0, le=100, description="Percentile (currently the capped scaled score)"
    )
    grade: str = Field(..., description="Letter grade A-E")
    is_passed: bool = Field(..., description="Whether the passing score was reached")
    completion_percentage: float = Field(
        ..., ge=0, le=100, description="Percent of questions answered"
    )
    traits: Optional[List[TraitMeasurement]] = Field(
        None, description="Ordered trait profile, for instruments that report traits"
    )
    trait_names: Optional[List[str]] = Field(None, description="Trait names in order")
    description: Optional[str] = Field(None, description="Result summary sentence")
    recommendations: Optional[str] = Field(None, description="Recommendation text")
    detailed_analysis: Optional[Dict[str, Any]] = Field(
        None, description="Accuracy, time efficiency and per-answer breakdown"
    )
    calculated_at: datetime = Field(..., description="Calculation timestamp")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class CalculationOptionsSchema(BaseModel):
    """Toggles for optional parts of a calculation."""

    include_personality_analysis: bool = Field(
        True, description="Score personality traits"
    )
    include_intelligence_scoring: bool = Field(
        True, description="Score intelligence indices"
    )
    include_recommendations: bool = Field(
        True, description="Generate recommendation text"
    )


class CalculateResultRequest(BaseModel):
    """Schema for requesting a result calculation."""

    attempt_id: Optional[int] = Field(None, gt=0, description="Attempt to score")
    result_id: Optional[int] = Field(
        None, gt=0, description="Existing result whose attempt should be rescored"
    )
    force_recalculate: bool = Field(
        False, description="Overwrite an existing result in place"
    )
    calculation_options: CalculationOptionsSchema = Field(
        default_factory=CalculationOptionsSchema,
        description="Calculation toggles",
    )


class CalculationMetadataResponse(BaseModel):
    processing_time_ms: int = Field(..., ge=0, description="Calculation time in ms")
    recalculated: bool = Field(..., description="True if an existing result was updated")
    calculated_at: datetime = Field(..., description="Calculation timestamp")


class CalculateResultResponse(BaseModel):
    """Schema for the calculate-result response."""

    message: str = Field(..., description="Outcome message")
    result: TestResultResponse = Field(..., description="Persisted result")
    metadata: CalculationMetadataResponse = Field(..., description="Calculation metadata")


class AnswerRescoreUpdate(BaseModel):
    question_id: int
    old_score: Optional[float] = None
    new_score: float
    old_is_correct: Optional[bool] = None
    new_is_correct: bool


class RescoreAnswersResponse(BaseModel):
    """Schema for the answer rescoring response."""

    attempt_id: int = Field(..., description="Attempt ID")
    total_answers: int = Field(..., description="Answers examined")
    updated_count: int = Field(..., description="Answers whose score changed")
    skipped_count: int = Field(..., description="Answers left unchanged")
    updates: List[AnswerRescoreUpdate] = Field(
        default_factory=list, description="Per-answer changes"
    )


class ReportContentResponse(BaseModel):
    summary: str = Field(..., description="Plain-text summary")
    detailed_analysis: Optional[str] = Field(None, description="Detailed analysis text")
    recommendations: List[str] = Field(
        default_factory=list, description="Recommendation lines"
    )
    trait_explanations: Optional[List[Dict[str, Any]]] = Field(
        None, description="Explanation and interpretation per trait"
    )
    charts_data: Optional[Dict[str, Any]] = Field(None, description="Chart series")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class ResultReportResponse(BaseModel):
    """Schema for a result report."""

    result: TestResultResponse = Field(..., description="Result the report covers")
    content: ReportContentResponse = Field(..., description="Report sections")
    generated_at: datetime = Field(..., description="Report generation timestamp")
