"""Tests for week/month bucketing of stored days."""

from __future__ import annotations

from analytics.quarters import group_weeks_by_quarter, quarter_key
from analytics.weekly import (
    group_logs_by_month, group_logs_by_week, sum_headlines, week_end_for, week_start_for,
)
from models import AnalysisRecord, DayRecord, Headline


def _day(date: str, pnl=0.0, trades=0, wins=0, losses=0) -> DayRecord:
    return DayRecord(
        date=date,
        analysis=AnalysisRecord(headline=Headline(pnl, trades, wins, losses)),
    )


class TestWeekBounds:
    def test_monday_is_its_own_start(self):
        assert week_start_for("2024-02-12") == "2024-02-12"

    def test_sunday_belongs_to_previous_monday(self):
        assert week_start_for("2024-02-18") == "2024-02-12"

    def test_week_spanning_year_end(self):
        assert week_start_for("2024-01-02") == "2024-01-01"
        assert week_start_for("2023-12-31") == "2023-12-25"

    def test_week_end(self):
        assert week_end_for("2024-02-12") == "2024-02-18"


class TestGroupLogsByWeek:
    def test_empty(self):
        assert group_logs_by_week([]) == []

    def test_groups_and_sums(self):
        days = [
            _day("2024-02-12", 100, 5, 3, 2),
            _day("2024-02-14", -40, 2, 0, 2),
            _day("2024-02-20", 25, 1, 1, 0),
        ]
        weeks = group_logs_by_week(days)
        assert [w.week_start for w in weeks] == ["2024-02-19", "2024-02-12"]

        older = weeks[1]
        assert [d.date for d in older.days] == ["2024-02-14", "2024-02-12"]
        assert older.week_end == "2024-02-18"
        h = older.week_headline
        assert (h.total_pnl, h.total_trades, h.wins, h.losses) == (60, 7, 3, 4)

    def test_missing_numbers_are_zero(self):
        day = DayRecord(date="2024-02-12", analysis=AnalysisRecord(headline=Headline(None, None, None, None)))
        h = sum_headlines([day, _day("2024-02-13", 10, 1, 1, 0)])
        assert (h.total_pnl, h.total_trades, h.wins, h.losses) == (10, 1, 1, 0)

    def test_feeds_quarter_rollup(self):
        days = [_day("2024-03-29", 100), _day("2024-04-02", -50), _day("2024-04-03", 20)]
        quarters = group_weeks_by_quarter(group_logs_by_week(days))
        assert [(quarter_key(q), q.quarter_headline.total_pnl) for q in quarters] == [
            ("Q2 2024", -30), ("Q1 2024", 100),
        ]


class TestGroupLogsByMonth:
    def test_groups_newest_first(self):
        days = [_day("2024-01-31", 10), _day("2024-02-01", 20), _day("2024-02-15", 30)]
        months = group_logs_by_month(days)
        assert [m.month for m in months] == ["2024-02", "2024-01"]
        assert [d.date for d in months[0].days] == ["2024-02-15", "2024-02-01"]
        assert months[0].month_headline.total_pnl == 50
