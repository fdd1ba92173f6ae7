"""
Data structures for trait analytics.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional


@dataclass
class TraitResultRow:
    """One result with traits, joined with its test and participant."""

    result_id: int
    traits: Any
    calculated_at: Optional[datetime] = None
    test_id: Optional[int] = None
    user_id: Optional[int] = None
    test_category: Optional[str] = None
    gender: Optional[str] = None
    education: Optional[str] = None
    birth_date: Optional[date] = None


@dataclass(frozen=True)
class FlatTrait:
    """A single trait measurement tagged with its result and demographics."""

    result_id: int
    name: str
    score: float
    category: str
    test_category: str
    gender: Optional[str]
    education: Optional[str]
    age_group: str
    calculated_at: Optional[datetime] = None


@dataclass
class TraitSummary:
    total_trait_measurements: int
    unique_traits: int
    most_common_traits: List[str]
    average_trait_score: float
    trait_diversity_index: float


@dataclass
class TraitDistribution:
    """Score statistics for one trait."""

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
    score_distribution: Dict[str, int]


@dataclass
class TraitCorrelation:
    trait_1: str
    trait_2: str
    correlation_coefficient: float
    significance_level: float
    sample_size: int


@dataclass
class DemographicBreakdown:
    """Trait occurrence counts keyed by demographic group, then trait name."""

    by_gender: Dict[str, Dict[str, int]] = field(default_factory=dict)
    by_education: Dict[str, Dict[str, int]] = field(default_factory=dict)
    by_age_group: Dict[str, Dict[str, int]] = field(default_factory=dict)


@dataclass
class TrendPoint:
    date: date
    total_measurements: int
    average_score: float
    unique_traits: int


@dataclass
class AnalyticsMetadata:
    total_records: int
    period_start: datetime
    period_end: datetime
    generated_at: datetime


@dataclass
class TraitAnalyticsReport:
    """Everything returned by a trait analytics request."""

    trait_summary: TraitSummary
    trends: List[TrendPoint]
    metadata: AnalyticsMetadata
    trait_distribution: Optional[List[TraitDistribution]] = None
    correlations: Optional[List[TraitCorrelation]] = None
    demographic_breakdown: Optional[DemographicBreakdown] = None
