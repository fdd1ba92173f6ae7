"""
Trait analytics over many scored results.

Statistics
==========
- Summary: distinct traits, five most frequent, mean score and Simpson's
  diversity index ``1 - sum(p_i^2)`` over trait-name occurrence shares
- Distribution (top 20 traits by volume): count, mean, min, max,
  population standard deviation, nearest-rank quartiles
  ``sorted[floor(n * q)]`` and a fixed five-band histogram
- Correlation: Pearson r between the first 10 distinct traits, for pairs
  reported together by at least 5 results; significance is a heuristic
  flag (0.05 if |r| > 0.3, else 0.1), not a p-value
- Demographics: trait occurrence counts by gender, education and age group
- Trends: up to 30 equal-width buckets over the requested window

All values are left unrounded here; response schemas round them.
"""
import logging
import math
from collections import Counter, OrderedDict, defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from app.core.attempt_lifecycle import SystemTimeSource, TimeSource
from app.core.config import settings
from app.core.datetime_utils import ensure_timezone_aware
from app.schemas.traits import parse_trait_measurements

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

logger = logging.getLogger(__name__)

UNKNOWN_AGE_GROUP = "Unknown"
MOST_COMMON_LIMIT = 5
DISTRIBUTION_TRAIT_LIMIT = 20
CORRELATION_TRAIT_LIMIT = 10
CORRELATION_RESULT_LIMIT = 10
STRONG_CORRELATION_THRESHOLD = 0.3

# Upper bound of each histogram band, inclusive
SCORE_BANDS: Tuple[Tuple[str, float], ...] = (
    ("0-20", 20),
    ("21-40", 40),
    ("41-60", 60),
    ("61-80", 80),
    ("81-100", math.inf),
)


def age_group(birth_date: Optional[date], today: date) -> str:
    """
    Bucket a participant by age in whole calendar years (year difference).

    Example:
        >>> age_group(date(2000, 12, 31), date(2025, 1, 1))
        '20-25'
    """
    if birth_date is None:
        return UNKNOWN_AGE_GROUP
    age = today.year - birth_date.year
    if age < 20:
        return "Under 20"
    if age <= 25:
        return "20-25"
    if age <= 30:
        return "26-30"
    if age <= 35:
        return "31-35"
    if age <= 40:
        return "36-40"
    if age <= 50:
        return "41-50"
    return "Over 50"


def flatten_traits(
    rows: Iterable[TraitResultRow],
    trait_name: Optional[str] = None,
    today: Optional[date] = None,
) -> List[FlatTrait]:
    """
    Flatten result trait lists into one record per trait measurement.

    Stored traits may be a list or its JSON encoding; malformed entries are
    skipped with a warning and the rest of the result is kept.

    Args:
        rows: Results with their test category and participant demographics
        trait_name: Keep only measurements of this trait
        today: Reference date for age groups

    Returns:
        Flat trait records in result order
    """
    today = today or date.today()
    flat: List[FlatTrait] = []
    for row in rows:
        group = age_group(row.birth_date, today)
        for trait in parse_trait_measurements(row.traits):
            if trait_name and trait.name != trait_name:
                continue
            flat.append(
                FlatTrait(
                    result_id=row.result_id,
                    name=trait.name,
                    score=float(trait.score),
                    category=trait.category or "Unknown",
                    test_category=row.test_category or "Unknown",
                    gender=row.gender,
                    education=row.education,
                    age_group=group,
                    calculated_at=row.calculated_at,
                )
            )
    return flat


def diversity_index(counts: Iterable[int]) -> float:
    """Simpson's diversity index ``1 - sum(p_i^2)``; 0 for an empty population."""
    values = np.array(list(counts), dtype=float)
    total = values.sum()
    if total == 0:
        return 0.0
    proportions = values / total
    return float(1 - np.sum(proportions**2))


def summarize(
    flat: Sequence[FlatTrait], total_trait_measurements: Optional[int] = None
) -> TraitSummary:
    """
    Summary statistics over all flattened measurements.

    ``total_trait_measurements`` is the number of results with traits in the
    window; it defaults to the number of distinct results in ``flat``.
    """
    counts = Counter(t.name for t in flat)
    if total_trait_measurements is None:
        total_trait_measurements = len({t.result_id for t in flat})

    return TraitSummary(
        total_trait_measurements=total_trait_measurements,
        unique_traits=len(counts),
        most_common_traits=[name for name, _ in counts.most_common(MOST_COMMON_LIMIT)],
        average_trait_score=(
            float(np.mean([t.score for t in flat])) if flat else 0.0
        ),
        trait_diversity_index=diversity_index(counts.values()),
    )


def score_histogram(scores: Iterable[float]) -> Dict[str, int]:
    histogram = {label: 0 for label, _ in SCORE_BANDS}
    for score in scores:
        for label, upper in SCORE_BANDS:
            if score <= upper:
                histogram[label] += 1
                break
    return histogram


def nearest_rank(sorted_scores: Sequence[float], quantile: float) -> float:
    """Nearest-rank percentile ``sorted[floor(n * q)]`` (no interpolation)."""
    index = min(int(math.floor(len(sorted_scores) * quantile)), len(sorted_scores) - 1)
    return sorted_scores[index]


def distributions(
    flat: Sequence[FlatTrait], limit: int = DISTRIBUTION_TRAIT_LIMIT
) -> List[TraitDistribution]:
    """Per-trait score statistics for the ``limit`` most measured traits."""
    scores_by_trait: Dict[str, List[float]] = OrderedDict()
    category_by_trait: Dict[str, str] = {}
    for trait in flat:
        scores_by_trait.setdefault(trait.name, []).append(trait.score)
        category_by_trait.setdefault(trait.name, trait.category)

    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(scores_by_trait.items(), key=lambda item: len(item[1]), reverse=True)

    result = []
    for name, scores in ranked[:limit]:
        values = np.array(sorted(scores), dtype=float)
        result.append(
            TraitDistribution(
                trait_name=name,
                trait_category=category_by_trait[name],
                total_measurements=len(values),
                average_score=float(values.mean()),
                min_score=float(values.min()),
                max_score=float(values.max()),
                standard_deviation=float(values.std()),
                percentile_25=float(nearest_rank(values, 0.25)),
                percentile_50=float(nearest_rank(values, 0.5)),
                percentile_75=float(nearest_rank(values, 0.75)),
                score_distribution=score_histogram(values.tolist()),
            )
        )
    return result


def pearson_r(x: Sequence[float], y: Sequence[float]) -> Optional[float]:
    """
    Pearson correlation via the sum-of-products formula.

    Returns None when either series is empty or has no variance.
    """
    if len(x) != len(y):
        raise ValueError("x and y must have the same length")
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if len(xs) == 0 or np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return None
    n = len(xs)

    numerator = n * np.sum(xs * ys) - np.sum(xs) * np.sum(ys)
    variance_term = (n * np.sum(xs**2) - np.sum(xs) ** 2) * (
        n * np.sum(ys**2) - np.sum(ys) ** 2
    )
    if variance_term <= 0:
        return None
    denominator = math.sqrt(variance_term)
    if denominator == 0:
        return None
    return float(numerator / denominator)


def correlations(
    flat: Sequence[FlatTrait],
    min_sample: Optional[int] = None,
    max_traits: int = CORRELATION_TRAIT_LIMIT,
    limit: int = CORRELATION_RESULT_LIMIT,
) -> List[TraitCorrelation]:
    """
    Pairwise Pearson correlations between the first ``max_traits`` traits.

    Scores are paired by result; a result reporting the same trait twice
    contributes its first measurement.
    """
    if min_sample is None:
        min_sample = settings.TRAIT_CORRELATION_MIN_SAMPLE

    names: List[str] = []
    by_result: Dict[int, Dict[str, float]] = OrderedDict()
    for trait in flat:
        if trait.name not in names:
            names.append(trait.name)
        by_result.setdefault(trait.result_id, {}).setdefault(trait.name, trait.score)
    names = names[:max_traits]

    pairs: List[TraitCorrelation] = []
    for i, first in enumerate(names):
        for second in names[i + 1 :]:
            paired = [
                (scores[first], scores[second])
                for scores in by_result.values()
                if first in scores and second in scores
            ]
            if len(paired) < min_sample:
                continue
            r = pearson_r([p[0] for p in paired], [p[1] for p in paired])
            if r is None:
                continue
            pairs.append(
                TraitCorrelation(
                    trait_1=first,
                    trait_2=second,
                    correlation_coefficient=r,
                    significance_level=(
                        0.05 if abs(r) > STRONG_CORRELATION_THRESHOLD else 0.1
                    ),
                    sample_size=len(paired),
                )
            )

    pairs.sort(key=lambda pair: abs(pair.correlation_coefficient), reverse=True)
    return pairs[:limit]


def demographic_breakdown(flat: Sequence[FlatTrait]) -> DemographicBreakdown:
    """Count trait occurrences per gender, education and known age group."""
    by_gender: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    by_education: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    by_age: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    for trait in flat:
        if trait.gender:
            by_gender[trait.gender][trait.name] += 1
        if trait.education:
            by_education[trait.education][trait.name] += 1
        if trait.age_group != UNKNOWN_AGE_GROUP:
            by_age[trait.age_group][trait.name] += 1

    def _plain(nested: Dict[str, Dict[str, int]]) -> Dict[str, Dict[str, int]]:
        return {group: dict(counts) for group, counts in nested.items()}

    return DemographicBreakdown(
        by_gender=_plain(by_gender),
        by_education=_plain(by_education),
        by_age_group=_plain(by_age),
    )


def trends(
    flat: Sequence[FlatTrait],
    start: datetime,
    end: datetime,
    max_points: Optional[int] = None,
) -> List[TrendPoint]:
    """
    Bucket measurements into ``min(ceil(days), max_points)`` equal-width
    intervals over [start, end].

    Buckets are half-open except the last, which includes ``end``.
    Measurements without a calculation time are not bucketed.
    """
    if max_points is None:
        max_points = settings.TRAIT_ANALYTICS_MAX_TREND_POINTS

    start = ensure_timezone_aware(start)
    end = ensure_timezone_aware(end)
    span = end - start
    days = span.total_seconds() / 86400
    if days <= 0:
        return []

    n_buckets = min(math.ceil(days), max_points)
    width = span / n_buckets
    buckets: List[List[FlatTrait]] = [[] for _ in range(n_buckets)]

    for trait in flat:
        if trait.calculated_at is None:
            continue
        moment = ensure_timezone_aware(trait.calculated_at)
        if moment < start or moment > end:
            continue
        index = min(int((moment - start) / width), n_buckets - 1)
        buckets[index].append(trait)

    points = []
    for index, members in enumerate(buckets):
        points.append(
            TrendPoint(
                date=(start + width * index).date(),
                total_measurements=len(members),
                average_score=(
                    float(np.mean([t.score for t in members])) if members else 0.0
                ),
                unique_traits=len({t.name for t in members}),
            )
        )
    return points


class TraitAnalyticsEngine:
    """Assembles a TraitAnalyticsReport from fetched result rows."""

    def __init__(
        self,
        time_source: Optional[TimeSource] = None,
        max_trend_points: Optional[int] = None,
        correlation_min_sample: Optional[int] = None,
    ):
        self.time_source = time_source or SystemTimeSource()
        self.max_trend_points = (
            max_trend_points
            if max_trend_points is not None
            else settings.TRAIT_ANALYTICS_MAX_TREND_POINTS
        )
        self.correlation_min_sample = (
            correlation_min_sample
            if correlation_min_sample is not None
            else settings.TRAIT_CORRELATION_MIN_SAMPLE
        )

    def analyze(
        self,
        rows: Sequence[TraitResultRow],
        period_start: datetime,
        period_end: datetime,
        *,
        trait_name: Optional[str] = None,
        total_records: Optional[int] = None,
        include_distribution: bool = True,
        include_correlations: bool = False,
        include_demographics: bool = False,
    ) -> TraitAnalyticsReport:
        """
        Compute every requested section in one pass over ``rows``.

        Args:
            rows: Results with traits inside the window
            period_start: Window start
            period_end: Window end
            trait_name: Restrict measurements to one trait
            total_records: Results with traits in the window before any fetch
                limit; defaults to ``len(rows)``
            include_distribution: Add per-trait distributions
            include_correlations: Add pairwise correlations
            include_demographics: Add the demographic breakdown

        Returns:
            TraitAnalyticsReport with summary and trends always present
        """
        now = self.time_source.now()
        if total_records is None:
            total_records = len(rows)

        flat = flatten_traits(rows, trait_name=trait_name, today=now.date())

        report = TraitAnalyticsReport(
            trait_summary=summarize(flat, total_trait_measurements=total_records),
            trends=trends(flat, period_start, period_end, self.max_trend_points),
            metadata=AnalyticsMetadata(
                total_records=total_records,
                period_start=period_start,
                period_end=period_end,
                generated_at=now,
            ),
        )
        if include_distribution:
            report.trait_distribution = distributions(flat)
        if include_correlations and flat:
            report.correlations = correlations(
                flat, min_sample=self.correlation_min_sample
            )
        if include_demographics and flat:
            report.demographic_breakdown = demographic_breakdown(flat)

        logger.info(
            f"Trait analytics: {len(rows)} results, {len(flat)} measurements, "
            f"{report.trait_summary.unique_traits} distinct traits"
        )
        return report
