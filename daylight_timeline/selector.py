"""Nearest-sample lookups over daily series."""

import bisect
import datetime
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from .data.series import DailySample

MONTH_HORIZON_DAYS = 30

DateLike = Union[datetime.date, datetime.datetime]


@dataclass(frozen=True)
class MonthlyProjection:
    """Daylight change from a sample to the one up to 30 days later."""

    total_change_minutes: float
    days_ahead: int
    partial: bool  # Fewer than 30 days were left in the series


def _as_datetime(value: DateLike) -> datetime.datetime:
    """Naive datetime; a plain date is taken at midnight."""
    if isinstance(value, datetime.datetime):
        return value.replace(tzinfo=None)
    return datetime.datetime.combine(value, datetime.time())


def _as_date(value: DateLike) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    return value


def nearest(
    series: Optional[Sequence[DailySample]], target: DateLike
) -> Optional[DailySample]:
    """
    Find the sample closest in time to a target.

    Each sample sits at midnight of its date. Ties go to the earlier
    sample; targets outside the series snap to the first or last sample.

    Returns:
        The nearest sample, or None for an empty series
    """
    if not series:
        return None

    positions = [_as_datetime(s.date) for s in series]
    when = _as_datetime(target)
    i = bisect.bisect_right(positions, when)

    if i == 0:
        return series[0]
    if i == len(series):
        return series[-1]

    before, after = series[i - 1], series[i]
    if when - positions[i - 1] <= positions[i] - when:
        return before
    return after


def index_of(series: Sequence[DailySample], date: DateLike) -> int:
    """Index of the sample for a calendar day, or -1."""
    day = _as_date(date)
    dates = [s.date for s in series]
    i = bisect.bisect_left(dates, day)
    if i < len(dates) and dates[i] == day:
        return i
    return -1


def cross_series_lookup(
    series_set: Iterable[Sequence[DailySample]], date: DateLike
) -> list[Optional[DailySample]]:
    """Sample for the exact calendar day in each series (None where absent)."""
    result = []
    for series in series_set:
        i = index_of(series, date) if series else -1
        result.append(series[i] if i >= 0 else None)
    return result


def monthly_projection(
    series: Sequence[DailySample], index: int, horizon: int = MONTH_HORIZON_DAYS
) -> Optional[MonthlyProjection]:
    """
    Daylight change over the next month from a sample.

    Near the end of the series the comparison uses the last sample, so
    days_ahead may be less than the horizon and partial is set.
    """
    if not series or not 0 <= index < len(series):
        return None

    future_index = min(index + horizon, len(series) - 1)
    current = series[index]
    future = series[future_index]
    days_ahead = future_index - index
    return MonthlyProjection(
        total_change_minutes=(future.daylight_hours - current.daylight_hours) * 60,
        days_ahead=days_ahead,
        partial=days_ahead < horizon,
    )
