"""
Pydantic schemas for the trait analytics endpoint.

Statistics are rounded here, at the response boundary: summary and
distribution figures to two decimals, correlation coefficients to three.
"""
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.core.math_utils import round_to
from app.core.trait_analytics import TraitAnalyticsReport


class TraitSummaryResponse(BaseModel):
    total_trait_measurements: int = Field(
        ..., description="Results with traits in the window"
    )
    unique_traits: int = Field(..., description="Distinct trait names")
    most_common_traits: List[str] = Field(..., description="Five most frequent traits")
    average_trait_score: float = Field(..., description="Mean of all trait scores")
    trait_diversity_index: float = Field(
        ..., ge=0, le=1, description="Simpson diversity over trait occurrences"
    )


class TraitDistributionResponse(BaseModel):
    trait_name: str
    trait_category: str
    total_measurements: int
    average_score: float
    min_score: float
    max_score: float
    standard_deviation: float
    percentile_25: float
    percentile_50: float
    percentile_75: float
    score_distribution: Dict[str, int] = Field(
        ..., description="Counts per band: 0-20, 21-40, 41-60, 61-80, 81-100"
    )


class TraitCorrelationResponse(BaseModel):
    trait_1: str
    trait_2: str
    correlation_coefficient: float = Field(..., ge=-1, le=1)
    significance_level: float = Field(
        ..., description="Heuristic flag: 0.05 when |r| > 0.3, else 0.1"
    )
    sample_size: int


class DemographicBreakdownResponse(BaseModel):
    by_gender: Dict[str, Dict[str, int]]
    by_education: Dict[str, Dict[str, int]]
    by_age_group: Dict[str, Dict[str, int]]


class TrendPointResponse(BaseModel):
    date: date
    total_measurements: int
    average_score: float
    unique_traits: int


class TraitAnalyticsMetadata(BaseModel):
    total_records: int
    period_start: datetime
    period_end: datetime
    generated_at: datetime


class TraitAnalyticsResponse(BaseModel):
    """Schema for trait analytics."""

    trait_summary: TraitSummaryResponse
    trait_distribution: Optional[List[TraitDistributionResponse]] = None
    correlations: Optional[List[TraitCorrelationResponse]] = None
    demographic_breakdown: Optional[DemographicBreakdownResponse] = None
    trends: List[TrendPointResponse]
    metadata: TraitAnalyticsMetadata

    @classmethod
    def from_report(cls, report: TraitAnalyticsReport) -> "TraitAnalyticsResponse":
        summary = report.trait_summary
        response = cls(
            trait_summary=TraitSummaryResponse(
                total_trait_measurements=summary.total_trait_measurements,
                unique_traits=summary.unique_traits,
                most_common_traits=summary.most_common_traits,
                average_trait_score=round_to(summary.average_trait_score, 2),
                trait_diversity_index=round_to(summary.trait_diversity_index, 2),
            ),
            trends=[
                TrendPointResponse(
                    date=point.date,
                    total_measurements=point.total_measurements,
                    average_score=round_to(point.average_score, 2),
                    unique_traits=point.unique_traits,
                )
                for point in report.trends
            ],
            metadata=TraitAnalyticsMetadata(
                total_records=report.metadata.total_records,
                period_start=report.metadata.period_start,
                period_end=report.metadata.period_end,
                generated_at=report.metadata.generated_at,
            ),
        )

        if report.trait_distribution is not None:
            response.trait_distribution = [
                TraitDistributionResponse(
                    trait_name=d.trait_name,
                    trait_category=d.trait_category,
                    total_measurements=d.total_measurements,
                    average_score=round_to(d.average_score, 2),
                    min_score=d.min_score,
                    max_score=d.max_score,
                    standard_deviation=round_to(d.standard_deviation, 2),
                    percentile_25=d.percentile_25,
                    percentile_50=d.percentile_50,
                    percentile_75=d.percentile_75,
                    score_distribution=d.score_distribution,
                )
                for d in report.trait_distribution
            ]
        if report.correlations is not None:
            response.correlations = [
                TraitCorrelationResponse(
                    trait_1=c.trait_1,
                    trait_2=c.trait_2,
                    correlation_coefficient=round_to(c.correlation_coefficient, 3),
                    significance_level=c.significance_level,
                    sample_size=c.sample_size,
                )
                for c in report.correlations
            ]
        if report.demographic_breakdown is not None:
            breakdown = report.demographic_breakdown
            response.demographic_breakdown = DemographicBreakdownResponse(
                by_gender=breakdown.by_gender,
                by_education=breakdown.by_education,
                by_age_group=breakdown.by_age_group,
            )
        return response
