"""
Aggregate statistics over the trait profiles of many results.
"""
from ._data_loader import load_trait_rows
from ._types import (
    AnalyticsMetadata,
    DemographicBreakdown,
    FlatTrait,
    TraitAnalyticsReport,
    TraitCorrelation,
    TraitDistribution,
    TraitResultRow,
    TraitSummary,
    TrendPoint,
)
from .date_ranges import AnalyticsPeriod, analytics_date_range
from .engine import (
    TraitAnalyticsEngine,
    age_group,
    correlations,
    demographic_breakdown,
    distributions,
    diversity_index,
    flatten_traits,
    pearson_r,
    summarize,
    trends,
)

__all__ = [
    "AnalyticsMetadata",
    "AnalyticsPeriod",
    "DemographicBreakdown",
    "FlatTrait",
    "TraitAnalyticsEngine",
    "TraitAnalyticsReport",
    "TraitCorrelation",
    "TraitDistribution",
    "TraitResultRow",
    "TraitSummary",
    "TrendPoint",
    "age_group",
    "analytics_date_range",
    "correlations",
    "demographic_breakdown",
    "distributions",
    "diversity_index",
    "flatten_traits",
    "load_trait_rows",
    "pearson_r",
    "summarize",
    "trends",
]
