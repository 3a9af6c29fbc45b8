"""Dashboard time-range filters (WTD, MTD, QTD, YTD, rolling windows)."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from config import TIME_RANGES
from models import DayRecord

_ROLLING_DAYS = {
    "last-month": 28,
    "last-12-weeks": 84,
    "last-24-weeks": 168,
}


def time_range_start(time_range: str, today: date) -> Optional[date]:
    """First date included by ``time_range``; None means no lower bound."""
    if time_range == "wtd":
        return today - timedelta(days=today.weekday())
    if time_range == "mtd":
        return today.replace(day=1)
    if time_range == "qtd":
        return date(today.year, (today.month - 1) // 3 * 3 + 1, 1)
    if time_range == "ytd":
        return date(today.year, 1, 1)
    if time_range in _ROLLING_DAYS:
        return today - timedelta(days=_ROLLING_DAYS[time_range])
    return None


def filter_days_by_time_range(
    days: list[DayRecord], time_range: str, today: Optional[date] = None,
) -> list[DayRecord]:
    """Keep days between the range start and ``today`` (inclusive)."""
    if today is None:
        today = date.today()
    start = time_range_start(time_range, today)
    if start is None:
        return days
    lo, hi = start.isoformat(), today.isoformat()
    return [d for d in days if lo <= d.date <= hi]


def describe_time_range(time_range: str) -> str:
    return TIME_RANGES.get(time_range, TIME_RANGES["all"])
