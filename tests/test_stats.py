"""Tests for dashboard statistics and time-range filters."""

from __future__ import annotations

from datetime import date

import pytest

from analytics.stats import WEEKDAYS, calculate_stats, daily_frame
from analytics.time_range import describe_time_range, filter_days_by_time_range, time_range_start
from models import AnalysisRecord, DayRecord, Headline, SessionStats


def _day(d: str, pnl=0.0, trades=0, wins=0, losses=0, big_wins=0, big_losses=0) -> DayRecord:
    return DayRecord(
        date=d,
        analysis=AnalysisRecord(headline=Headline(pnl, trades, wins, losses, big_wins, big_losses)),
    )


@pytest.fixture()
def sample_days():
    # Mon +100, Tue -150, Wed flat, next Mon +80; handed over newest first like the store.
    return [
        _day("2024-02-19", 80, 4, 3, 1),
        _day("2024-02-14", 0, 0, 0, 0),
        _day("2024-02-13", -150, 6, 1, 5, 0, 1),
        _day("2024-02-12", 100, 5, 3, 2, 1, 0),
    ]


class TestDailyFrame:
    def test_sorted_with_drawdown(self, sample_days):
        df = daily_frame(sample_days)
        assert df["date"].tolist() == ["2024-02-12", "2024-02-13", "2024-02-14", "2024-02-19"]
        assert df["cumulative_pnl"].tolist() == [100, -50, -50, 30]
        assert df["drawdown"].tolist() == [0, -150, -150, -70]
        assert df["weekday"].tolist() == ["Monday", "Tuesday", "Wednesday", "Monday"]

    def test_drawdown_when_first_day_is_red(self):
        df = daily_frame([_day("2024-02-12", -20), _day("2024-02-13", 5)])
        assert df["drawdown"].tolist() == [-20, -15]

    def test_empty(self):
        df = daily_frame([])
        assert df.empty
        assert "drawdown" in df.columns


class TestCalculateStats:
    def test_totals(self, sample_days):
        stats = calculate_stats(sample_days)
        assert stats["totalDays"] == 4
        assert stats["totalPnl"] == 30
        assert stats["totalTrades"] == 15
        assert (stats["wins"], stats["losses"]) == (7, 8)
        assert stats["winRate"] == pytest.approx(7 / 15 * 100)
        assert stats["averagePnl"] == pytest.approx(7.5)
        assert (stats["greenDays"], stats["redDays"], stats["flatDays"]) == (2, 1, 1)
        assert (stats["bigWins"], stats["bigLosses"]) == (1, 1)
        assert stats["maxDrawdown"] == -150

    def test_best_and_worst_day(self, sample_days):
        stats = calculate_stats(sample_days)
        assert stats["bestDay"] == {"date": "2024-02-12", "pnl": 100.0, "trades": 5}
        assert stats["worstDay"]["date"] == "2024-02-13"

    def test_day_of_week(self, sample_days):
        dow = calculate_stats(sample_days)["dayOfWeekStats"]
        assert list(dow) == WEEKDAYS
        assert dow["Monday"]["totalDays"] == 2
        assert dow["Monday"]["totalPnl"] == 180
        assert dow["Monday"]["averagePnl"] == 90
        assert dow["Monday"]["greenDays"] == 2
        assert dow["Friday"]["totalDays"] == 0
        assert dow["Friday"]["winRate"] == 0.0

    def test_empty_is_zeroed(self):
        stats = calculate_stats([])
        assert stats["totalDays"] == 0
        assert stats["totalPnl"] == 0.0
        assert stats["winRate"] == 0.0
        assert stats["bestDay"]["date"] == ""
        assert stats["dayOfWeekStats"]["Monday"]["totalTrades"] == 0
        assert stats["sessionStats"]["morning"] == {
            "totalDays": 0, "totalTrades": 0, "totalPnl": 0.0, "averageTrades": 0.0,
            "averagePnl": 0.0, "winRate": 0.0, "greenDays": 0, "redDays": 0,
        }
        assert stats["maxWinDays"] == [] and stats["maxLossDays"] == []
        assert stats["winDrawLossBreakdown"]["breakdown"] == "0-0-0"
        assert stats["pnlBreakdown"]["highLossDays"] == 0
        assert (stats["averageWin"], stats["averageLoss"], stats["netWinRate"]) == (0.0, 0.0, 0.0)


def _session_day(d: str, pnl: float, trades: int, sessions: dict) -> DayRecord:
    analysis = AnalysisRecord(headline=Headline(pnl, trades, 0, 0))
    for name, (s_pnl, s_trades) in sessions.items():
        analysis.sessions[name] = SessionStats(pnl=s_pnl, trades=s_trades)
    return DayRecord(date=d, analysis=analysis)


class TestExtendedStats:
    def test_average_win_and_loss(self, sample_days):
        stats = calculate_stats(sample_days)
        assert stats["averageWin"] == pytest.approx(round(30 / 7, 2))
        assert stats["averageLoss"] == 0.0

    def test_average_loss_when_net_negative(self):
        stats = calculate_stats([_day("2024-02-12", -90, 4, 1, 3)])
        assert stats["averageLoss"] == -30.0
        assert stats["averageWin"] == 0.0

    def test_draws_and_net_win_rate(self):
        # 10 trades, 5 wins, 3 losses -> 2 draws
        stats = calculate_stats([_day("2024-02-12", 50, 10, 5, 3)])
        assert stats["winDrawLossBreakdown"] == {"wins": 5, "draws": 2, "losses": 3, "breakdown": "5-2-3"}
        assert stats["netWinRate"] == 70.0
        assert stats["dayOfWeekStats"]["Monday"]["draws"] == 2

    def test_draws_never_negative(self):
        stats = calculate_stats([_day("2024-02-12", 50, 1, 3, 3)])
        assert stats["winDrawLossBreakdown"]["draws"] == 0

    def test_day_counts(self, sample_days):
        stats = calculate_stats(sample_days)
        assert (stats["profitableDays"], stats["losingDays"], stats["breakEvenDays"]) == (2, 1, 1)

    def test_pnl_breakdown_bands(self):
        days = [_day(f"2024-02-{i:02d}", pnl) for i, pnl in
                enumerate([100.01, 100, 0.5, -0.5, -100, -100.01, 0], start=5)]
        assert calculate_stats(days)["pnlBreakdown"] == {
            "highProfitDays": 1, "lowProfitDays": 2, "lowLossDays": 2, "highLossDays": 1,
        }

    def test_max_win_and_loss_days(self):
        days = [
            _day("2024-02-12", 450, 5),
            _day("2024-02-13", 900, 8),
            _day("2024-02-14", 400, 3),
            _day("2024-02-15", -401, 6),
            _day("2024-02-16", -1200, 9),
        ]
        stats = calculate_stats(days)
        assert stats["maxWinDays"] == [
            {"date": "2024-02-13", "pnl": 900.0, "trades": 8},
            {"date": "2024-02-12", "pnl": 450.0, "trades": 5},
        ]
        assert [d["date"] for d in stats["maxLossDays"]] == ["2024-02-16", "2024-02-15"]

    def test_session_stats(self):
        days = [
            _session_day("2024-02-12", 90, 4, {"morning": (120, 3), "afternoon": (-30, 1)}),
            _session_day("2024-02-13", -20, 2, {"morning": (-20, 2)}),
            _session_day("2024-02-14", 0, 0, {}),
        ]
        sessions = calculate_stats(days)["sessionStats"]
        assert list(sessions) == ["morning", "main", "midday", "afternoon", "end"]
        assert sessions["morning"] == {
            "totalDays": 2, "totalTrades": 5, "totalPnl": 100.0, "averageTrades": 2.5,
            "averagePnl": 50.0, "winRate": 50.0, "greenDays": 1, "redDays": 1,
        }
        assert sessions["afternoon"]["redDays"] == 1
        assert sessions["afternoon"]["winRate"] == 0.0
        assert sessions["main"]["totalDays"] == 0
        assert sessions["main"]["averagePnl"] == 0.0


class TestTimeRange:
    TODAY = date(2024, 5, 15)  # a Wednesday

    @pytest.mark.parametrize("time_range,expected", [
        ("wtd", date(2024, 5, 13)),
        ("mtd", date(2024, 5, 1)),
        ("qtd", date(2024, 4, 1)),
        ("ytd", date(2024, 1, 1)),
        ("last-month", date(2024, 4, 17)),
        ("last-12-weeks", date(2024, 2, 21)),
        ("all", None),
    ])
    def test_range_start(self, time_range, expected):
        assert time_range_start(time_range, self.TODAY) == expected

    def test_filter_inclusive_and_excludes_future(self):
        days = [_day(d) for d in ["2024-05-16", "2024-05-15", "2024-05-13", "2024-05-12", "2024-04-30"]]
        kept = filter_days_by_time_range(days, "wtd", today=self.TODAY)
        assert [d.date for d in kept] == ["2024-05-15", "2024-05-13"]

    def test_all_keeps_everything(self):
        days = [_day("2020-01-01"), _day("2030-01-01")]
        assert filter_days_by_time_range(days, "all", today=self.TODAY) == days

    def test_describe(self):
        assert describe_time_range("ytd") == "Year to Date"
        assert describe_time_range("nonsense") == describe_time_range("all")
