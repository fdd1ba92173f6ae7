"""
Named reporting periods for analytics endpoints.
"""
import calendar
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Tuple

from app.core.datetime_utils import ensure_timezone_aware

# Lower bound used for the all_time period
ALL_TIME_START = datetime(2020, 1, 1, tzinfo=timezone.utc)


class AnalyticsPeriod(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    ALL_TIME = "all_time"


def _months_back(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def analytics_date_range(
    period: AnalyticsPeriod, now: datetime
) -> Tuple[datetime, datetime]:
    """
    Resolve a named period to a (start, end) window ending at ``now``.

    ``today`` spans the whole current UTC day. Month arithmetic clamps to
    the last day of shorter months (31 March minus one month is 28/29 Feb).

    Example:
        >>> start, end = analytics_date_range(AnalyticsPeriod.WEEK, now)
        >>> end - start
        datetime.timedelta(days=7)
    """
    now = ensure_timezone_aware(now).astimezone(timezone.utc)
    period = AnalyticsPeriod(period)

    if period == AnalyticsPeriod.TODAY:
        day = now.date()
        return (
            datetime.combine(day, time.min, tzinfo=timezone.utc),
            datetime.combine(day, time.max, tzinfo=timezone.utc),
        )
    if period == AnalyticsPeriod.WEEK:
        return now - timedelta(days=7), now
    if period == AnalyticsPeriod.MONTH:
        return _months_back(now, 1), now
    if period == AnalyticsPeriod.QUARTER:
        return _months_back(now, 3), now
    if period == AnalyticsPeriod.YEAR:
        return _months_back(now, 12), now
    return ALL_TIME_START, now
