"""
Analytics admin endpoints.

Aggregate trait statistics across calculated results.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.analytics import AnalyticsTracker
from app.core.datetime_utils import ensure_timezone_aware, utc_now
from app.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_server_error,
)
from app.core.trait_analytics import (
    AnalyticsPeriod,
    TraitAnalyticsEngine,
    analytics_date_range,
    load_trait_rows,
)
from app.models import get_db
from app.schemas.trait_analytics import TraitAnalyticsResponse

from ._dependencies import logger, verify_admin_token

router = APIRouter()


@router.get("/analytics/traits", response_model=TraitAnalyticsResponse)
async def get_trait_analytics(
    period: AnalyticsPeriod = Query(
        AnalyticsPeriod.MONTH, description="Named reporting period"
    ),
    date_from: Optional[datetime] = Query(
        None, description="Window start; overrides the period when set"
    ),
    date_to: Optional[datetime] = Query(
        None, description="Window end; overrides the period when set"
    ),
    test_id: Optional[int] = Query(None, gt=0, description="Restrict to one test"),
    trait_name: Optional[str] = Query(
        None, min_length=1, max_length=100, description="Restrict to one trait"
    ),
    include_distribution: bool = Query(True, description="Add per-trait distributions"),
    include_correlations: bool = Query(
        False, description="Add pairwise trait correlations"
    ),
    include_demographics: bool = Query(
        False, description="Add breakdowns by gender, education and age group"
    ),
    db: AsyncSession = Depends(get_db),
    _: bool = Depends(verify_admin_token),
):
    r"""
    Get aggregate trait analytics for results calculated in a time window.

    At most TRAIT_ANALYTICS_MAX_RESULTS of the most recent results are
    aggregated; ``metadata.total_records`` reports how many matched before
    that limit.

    Requires X-Admin-Token header with valid admin token.

    Example:
        ```
        curl "https://api.example.com/v1/admin/analytics/traits?period=quarter" \
          -H "X-Admin-Token: your-admin-token"
        ```
    """
    start, end = analytics_date_range(period, utc_now())
    if date_from is not None:
        start = ensure_timezone_aware(date_from)
    if date_to is not None:
        end = ensure_timezone_aware(date_to)
    if start > end:
        raise_bad_request(ErrorMessages.INVALID_DATE_RANGE)

    try:
        rows, total = await load_trait_rows(db, start, end, test_id=test_id)
        report = TraitAnalyticsEngine().analyze(
            rows,
            start,
            end,
            trait_name=trait_name,
            total_records=total,
            include_distribution=include_distribution,
            include_correlations=include_correlations,
            include_demographics=include_demographics,
        )
    except Exception as e:
        logger.error(f"Failed to generate trait analytics: {e}", exc_info=True)
        raise_server_error(ErrorMessages.TRAIT_ANALYTICS_FAILED)

    logger.info(
        f"Trait analytics generated for {start.isoformat()} - {end.isoformat()}: "
        f"{total} results"
    )
    AnalyticsTracker.track_trait_analytics(total_records=total, test_id=test_id)
    return TraitAnalyticsResponse.from_report(report)
