"""Tests for diffing, merging and comparison stats over re-run logs."""

from __future__ import annotations

import pytest

from analytics.compare import (
    calculate_comparison_stats, compare_trading_logs, has_differences, merge_trading_logs,
    notes_summary, pnl_distribution, tag_summary, unverified,
)
from models import AnalysisRecord, CompareDay, DayRecord, Headline, SessionStats, TagAssignment, Trade


def _trade(trade_id: int, pnl: float, exit_reason="TP") -> Trade:
    return Trade(
        id=trade_id,
        timestamp=f"2025-03-10T09:3{trade_id}:00",
        direction="LONG",
        entry_price=21450.0,
        exit_price=21450.0 + pnl / 20,
        pnl=pnl,
        exit_reason=exit_reason,
    )


def _analysis(trades, pnl=None) -> AnalysisRecord:
    total = sum(t.pnl for t in trades) if pnl is None else pnl
    wins = sum(1 for t in trades if t.pnl > 0)
    losses = sum(1 for t in trades if t.pnl < 0)
    return AnalysisRecord(headline=Headline(total, len(trades), wins, losses, 0, 0), trades=trades)


def _base(d: str, pnl=0.0, trades=0, wins=0, losses=0, big_wins=0, big_losses=0) -> DayRecord:
    return DayRecord(date=d, analysis=AnalysisRecord(
        headline=Headline(pnl, trades, wins, losses, big_wins, big_losses)))


def _compare(d: str, pnl=0.0, trades=0, wins=0, losses=0, **meta) -> CompareDay:
    return CompareDay(
        date=d,
        analysis=AnalysisRecord(headline=Headline(pnl, trades, wins, losses, 0, 0)),
        **meta,
    )


class TestCompareTradingLogs:
    def test_added_removed_modified(self):
        base = _analysis([_trade(1, 20), _trade(2, -40, "SL")])
        compare = _analysis([_trade(1, 30), _trade(3, 10)])
        diff = compare_trading_logs(base, compare)

        assert [t["id"] for t in diff["trades"]["added"]] == [3]
        assert [t["id"] for t in diff["trades"]["removed"]] == [2]
        (modified,) = diff["trades"]["modified"]
        assert modified["trade"]["id"] == 1
        fields = {c["field"]: (c["oldValue"], c["newValue"]) for c in modified["changes"]}
        assert fields["pnl"] == (20, 30)
        assert "direction" not in fields

    def test_headline_changes_in_field_order(self):
        diff = compare_trading_logs(_analysis([_trade(1, 20)]), _analysis([_trade(1, 20)], pnl=50))
        assert diff["dailyStats"] == [{"field": "totalPnl", "oldValue": 20, "newValue": 50}]

    def test_identical_logs_have_no_differences(self):
        a = _analysis([_trade(1, 20)])
        diff = compare_trading_logs(a, _analysis([_trade(1, 20)]))
        assert not has_differences(diff)
        assert diff == {"trades": {"added": [], "removed": [], "modified": []}, "dailyStats": []}

    def test_difference_detected(self):
        diff = compare_trading_logs(AnalysisRecord(), _analysis([_trade(1, 5)]))
        assert has_differences(diff)


class TestMergeTradingLogs:
    @pytest.fixture()
    def pair(self):
        base = _analysis([_trade(1, 20), _trade(2, -40)])
        base.sessions["morning"] = SessionStats(20, 1, 20)
        compare = _analysis([_trade(1, 35), _trade(3, 15)])
        compare.sessions["morning"] = SessionStats(50, 2, 25)
        return base, compare

    def test_merge_all_takes_compare(self, pair):
        base, compare = pair
        merged = merge_trading_logs(base, compare, merge_all=True)
        assert merged == compare
        assert merged is not compare

    def test_chosen_trades_replace_or_append(self, pair):
        base, compare = pair
        merged = merge_trading_logs(base, compare, merge_trade_ids=[1, 3, 99])
        assert [(t.id, t.pnl) for t in merged.trades] == [(1, 35), (2, -40), (3, 15)]
        assert merged.headline == base.headline

    def test_daily_stats_only(self, pair):
        base, compare = pair
        merged = merge_trading_logs(base, compare, merge_daily_stats=True)
        assert merged.headline == compare.headline
        assert merged.sessions["morning"].pnl == 50
        assert [t.id for t in merged.trades] == [1, 2]

    def test_inputs_untouched(self, pair):
        base, compare = pair
        merged = merge_trading_logs(base, compare, merge_trade_ids=[1], merge_daily_stats=True)
        merged.trades[0].pnl = 999
        assert base.trades[0].pnl == 20
        assert compare.trades[0].pnl == 35


class TestPnlDistribution:
    @pytest.mark.parametrize("pnl,band", [
        (401, "bigWins"),
        (400, "highProfitDays"),
        (100.01, "highProfitDays"),
        (100, "lowProfitDays"),
        (0.5, "lowProfitDays"),
        (0, "lowLossDays"),
        (-100, "lowLossDays"),
        (-100.5, "highLossDays"),
        (-400, "highLossDays"),
        (-400.01, "bigLosses"),
    ])
    def test_bands(self, pnl, band):
        dist = pnl_distribution([_base("2025-03-10", pnl)])
        assert dist[band] == 1
        assert sum(dist.values()) == 1


class TestComparisonStats:
    def test_diffs_over_compared_weeks(self):
        compare = [
            _compare("2025-03-10", 300, 6, 4, 2),
            _compare("2025-03-12", -50, 4, 1, 3),
            _compare("2025-03-17", 120, 2, 2, 0),
        ]
        base = [
            _base("2025-03-10", 200, 5, 3, 2),
            _base("2025-03-12", -80, 4, 1, 3),
            _base("2025-03-17", 100, 2, 1, 1),
            _base("2025-04-07", 999, 9, 9, 0),  # week never compared
        ]
        stats = calculate_comparison_stats(compare, base)

        assert stats["totalWeeks"] == 2
        assert stats["totalComparePnl"] == 370
        assert stats["totalBasePnl"] == 220
        assert stats["totalPnlDiff"] == 150
        assert stats["totalTradesDiff"] == 1
        assert stats["totalWinsDiff"] == 2
        assert stats["avgPnlDiffPerWeek"] == 75
        assert stats["compareWinRate"] == pytest.approx(7 / 12 * 100, abs=0.01)
        assert stats["baseWinRate"] == pytest.approx(5 / 11 * 100, abs=0.01)
        assert stats["compareGreenRed"] == {"greenDays": 2, "redDays": 1}
        assert stats["compareWinDrawLoss"]["breakdown"] == "7-0-5"
        assert stats["baseWinDrawLoss"]["breakdown"] == "5-0-6"

    def test_empty(self):
        stats = calculate_comparison_stats([], [])
        assert stats["totalWeeks"] == 0
        assert stats["avgPnlDiffPerWeek"] == 0
        assert stats["compareWinRate"] == 0
        assert stats["compareAvgPnlPerTrade"] == 0


class TestReviewSummaries:
    @pytest.fixture()
    def days(self):
        compare = [
            _compare("2025-03-12", 60, notes="late fill",
                     tag_assignments=[TagAssignment("late-entry", "negative", "t1")]),
            _compare("2025-03-10", 150, notes="  ", verified=True, verified_by="admin@test.local",
                     tag_assignments=[TagAssignment("trend-day", "positive", "t2")]),
            _compare("2025-03-11", 10, notes="quiet"),
        ]
        base = [_base("2025-03-10", 100), _base("2025-03-12", 80)]
        return compare, base

    def test_notes_skip_blank_and_sort_oldest_first(self, days):
        rows = notes_summary(*days)
        assert [r["date"] for r in rows] == ["2025-03-11", "2025-03-12"]
        late = rows[1]
        assert (late["comparePnl"], late["basePnl"], late["pnlDifference"]) == (60, 80, -20)
        assert late["notes"] == "late fill"

    def test_missing_base_counts_as_zero(self, days):
        quiet = notes_summary(*days)[0]
        assert quiet["basePnl"] == 0
        assert quiet["pnlDifference"] == 10

    def test_tags(self, days):
        rows = tag_summary(*days)
        assert [r["date"] for r in rows] == ["2025-03-10", "2025-03-12"]
        assert rows[0]["verified"] is True
        assert rows[0]["tagAssignments"] == [{"tagId": "trend-day", "impact": "positive", "assignedAt": "t2"}]

    @pytest.mark.parametrize("tag_filter,expected", [
        ("late-entry", ["2025-03-12"]),
        ("all", ["2025-03-10", "2025-03-12"]),
        (None, ["2025-03-10", "2025-03-12"]),
        ("nope", []),
    ])
    def test_tag_filter(self, days, tag_filter, expected):
        assert [r["date"] for r in tag_summary(*days, tag_filter=tag_filter)] == expected

    def test_unverified(self, days):
        assert [d.date for d in unverified(days[0])] == ["2025-03-12", "2025-03-11"]
