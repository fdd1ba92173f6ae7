"""
Database access for trait analytics.
"""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models import Test, TestResult, User

from ._types import TraitResultRow


def _value(member):
    return getattr(member, "value", member)


def _window_filters(start: datetime, end: datetime, test_id: Optional[int]):
    filters = [
        TestResult.calculated_at >= start,
        TestResult.calculated_at <= end,
        TestResult.traits.isnot(None),
    ]
    if test_id is not None:
        filters.append(TestResult.test_id == test_id)
    return filters


async def load_trait_rows(
    db: AsyncSession,
    start: datetime,
    end: datetime,
    test_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> Tuple[List[TraitResultRow], int]:
    """
    Fetch the most recent results with traits inside a window.

    Args:
        db: Async database session
        start: Window start (inclusive)
        end: Window end (inclusive)
        test_id: Restrict to one test
        limit: Maximum rows to fetch (defaults to TRAIT_ANALYTICS_MAX_RESULTS)

    Returns:
        Tuple of (rows, total number of matching results before the limit)
    """
    if limit is None:
        limit = settings.TRAIT_ANALYTICS_MAX_RESULTS
    filters = _window_filters(start, end, test_id)

    total = (
        await db.execute(select(func.count(TestResult.id)).where(*filters))
    ).scalar_one()

    stmt = (
        select(
            TestResult.id,
            TestResult.test_id,
            TestResult.user_id,
            TestResult.traits,
            TestResult.calculated_at,
            Test.category,
            User.gender,
            User.education,
            User.birth_date,
        )
        .outerjoin(Test, TestResult.test_id == Test.id)
        .outerjoin(User, TestResult.user_id == User.id)
        .where(*filters)
        .order_by(TestResult.calculated_at.desc(), TestResult.id.desc())
        .limit(limit)
    )
    rows = [
        TraitResultRow(
            result_id=row.id,
            traits=row.traits,
            calculated_at=row.calculated_at,
            test_id=row.test_id,
            user_id=row.user_id,
            test_category=_value(row.category),
            gender=_value(row.gender),
            education=_value(row.education),
            birth_date=row.birth_date,
        )
        for row in (await db.execute(stmt)).all()
    ]
    return rows, total
