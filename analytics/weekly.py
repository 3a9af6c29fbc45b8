"""Bucket DayRecords into Monday-start weeks and calendar months."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta

from models import DayRecord, Headline, MonthLog, WeekLog


def week_start_for(date_str: str) -> str:
    """Monday on or before ``date_str`` (naive calendar arithmetic)."""
    d = date.fromisoformat(date_str)
    return (d - timedelta(days=d.weekday())).isoformat()


def week_end_for(week_start: str) -> str:
    return (date.fromisoformat(week_start) + timedelta(days=6)).isoformat()


def sum_headlines(days: list[DayRecord]) -> Headline:
    """Sum day headlines, treating missing numbers as zero."""
    total = Headline(total_pnl=0.0, total_trades=0, wins=0, losses=0)
    for d in days:
        h = d.analysis.headline
        total.total_pnl += h.total_pnl or 0
        total.total_trades += h.total_trades or 0
        total.wins += h.wins or 0
        total.losses += h.losses or 0
    return total


def group_logs_by_week(days: list[DayRecord]) -> list[WeekLog]:
    """Group days into weeks, newest week first, newest day first in each."""
    by_week: dict[str, list[DayRecord]] = defaultdict(list)
    for day in days:
        by_week[week_start_for(day.date)].append(day)

    weeks = []
    for start, week_days in by_week.items():
        week_days.sort(key=lambda d: d.date, reverse=True)
        weeks.append(WeekLog(
            week_start=start,
            week_end=week_end_for(start),
            days=week_days,
            week_headline=sum_headlines(week_days),
        ))
    weeks.sort(key=lambda w: w.week_start, reverse=True)
    return weeks


def group_logs_by_month(days: list[DayRecord]) -> list[MonthLog]:
    """Group days by YYYY-MM, newest month first, newest day first in each."""
    by_month: dict[str, list[DayRecord]] = defaultdict(list)
    for day in days:
        by_month[day.date[:7]].append(day)

    months = []
    for month, month_days in by_month.items():
        month_days.sort(key=lambda d: d.date, reverse=True)
        months.append(MonthLog(month=month, days=month_days, month_headline=sum_headlines(month_days)))
    months.sort(key=lambda m: m.month, reverse=True)
    return months
