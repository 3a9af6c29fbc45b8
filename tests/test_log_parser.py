"""Tests for the daily algo-log parser."""

from __future__ import annotations

from datetime import date

import pytest

from parsers import LogParseError, build_day_record, extract_log_date, parse_trading_log
from parsers.base import parse_log_timestamp, parse_money

SAMPLE_LOG = """\
Levels Algo v2 - session log 2025-03-10
2025-03-10 9:31:05 AM [TRADE FILL (ID: 1)] LONG FILLED: 21450.25
2025-03-10 9:40:12 AM [TRADE CLOSE - TP (ID: 1)] TRADE CLOSED: LONG at Price: 21460.25
2025-03-10 9:40:12 AM [PNL UPDATE - GAIN (ID: 1)] CURRENT TRADE PnL: $200.00
2025-03-10 9:40:12 AM [PNL UPDATE - GAIN (ID: 1)] COMPLETED TRADE PnL: $200.00
2025-03-10 10:05:00 AM [TRADE FILL (ID: 2)] SHORT FILLED: 21470.00
2025-03-10 10:12:30 AM [TRADE CLOSE - SL (ID: 2)] TRADE CLOSED: SHORT at Price: 21475.00
2025-03-10 10:12:30 AM [PNL UPDATE - LOSS (ID: 2)] COMPLETED TRADE PnL: $-100.00 Chase Trade
2025-03-10 1:15:00 PM [TRADE FILL (ID: 3)] LONG FILLED: 21480.50
2025-03-10 1:20:00 PM [TRADE CLOSE (ID: 3)] TRADE CLOSED: LONG at Price: 21481.00
2025-03-10 1:20:00 PM [PNL UPDATE - GAIN (ID: 3)] COMPLETED TRADE PnL: $10.00
"""

EOD_LINES = """\
2025-03-10 4:00:00 PM END OF DAY STATS - PnL: $450.00 | TOTAL TRADES: 10 | WINS: 6 (60%) | LOSSES: 4 (40%)
2025-03-10 4:00:00 PM Morning Session - PnL: $120.00 | Trades: 3 | Avg PnL per Trade: $40.00
2025-03-10 4:00:00 PM Afternoon Session - PnL: $-30.00 | Trades: 2 | Avg PnL per Trade: $-15.00
"""


class TestHelpers:
    def test_parse_log_timestamp(self):
        assert parse_log_timestamp("2025-03-10 9:31:05 AM") == "2025-03-10T09:31:05"
        assert parse_log_timestamp("2025-03-10 1:20:00 PM") == "2025-03-10T13:20:00"

    @pytest.mark.parametrize("raw,expected", [
        ("$1,296.75", 1296.75),
        ("-10.50", -10.50),
        ("$-10.50", -10.50),
        ("(1,234.56)", -1234.56),
        ("", 0.0),
    ])
    def test_parse_money(self, raw, expected):
        assert parse_money(raw) == pytest.approx(expected)

    def test_extract_log_date_first_match(self):
        assert extract_log_date("x 2024-02-12 y 2024-03-01") == "2024-02-12"

    def test_extract_log_date_fallback(self):
        assert extract_log_date("no dates here", today=date(2024, 5, 1)) == "2024-05-01"

    def test_extract_log_date_skips_impossible_dates(self):
        assert extract_log_date("2024-02-30 note\n2025-03-10 9:31:05 AM x") == "2025-03-10"

    def test_extract_log_date_only_impossible_dates_falls_back(self):
        assert extract_log_date("2024-02-30 and 2023-13-01", today=date(2024, 5, 1)) == "2024-05-01"


class TestParseTradingLog:
    def test_trades_extracted(self):
        record = parse_trading_log(SAMPLE_LOG)
        assert [t.id for t in record.trades] == [1, 2, 3]

        first = record.trades[0]
        assert first.direction == "LONG"
        assert first.entry_price == 21450.25
        assert first.exit_price == 21460.25
        assert first.pnl == 200.0
        assert first.exit_reason == "TP"
        assert first.timestamp == "2025-03-10T09:31:05"
        assert first.is_chase_trade is False

        second = record.trades[1]
        assert second.direction == "SHORT"
        assert second.exit_reason == "SL"
        assert second.pnl == -100.0
        assert second.is_chase_trade is True

        assert record.trades[2].exit_reason == "MANUAL"

    def test_headline_derived_without_eod(self):
        h = parse_trading_log(SAMPLE_LOG).headline
        assert h.total_trades == 3
        assert h.wins == 2
        assert h.losses == 1
        assert h.total_pnl == 110.0
        assert h.big_wins == 1
        assert h.big_losses == 1

    def test_eod_stats_override_derived(self):
        h = parse_trading_log(SAMPLE_LOG + EOD_LINES).headline
        assert h.total_pnl == 450.0
        assert (h.total_trades, h.wins, h.losses) == (10, 6, 4)

    def test_sessions(self):
        sessions = parse_trading_log(SAMPLE_LOG + EOD_LINES).sessions
        assert set(sessions) == {"morning", "main", "midday", "afternoon", "end"}
        assert sessions["morning"].pnl == 120.0
        assert sessions["morning"].trades == 3
        assert sessions["morning"].avg_pnl_per_trade == 40.0
        assert sessions["afternoon"].pnl == -30.0
        assert sessions["main"].trades == 0

    def test_incomplete_trade_skipped(self):
        text = (
            "2025-03-10 9:31:05 AM [TRADE FILL (ID: 7)] LONG FILLED: 100.00\n"
            "2025-03-10 9:35:00 AM [PNL UPDATE - GAIN (ID: 7)] COMPLETED TRADE PnL: $5.00\n"
        )
        record = parse_trading_log(text)
        assert record.trades == []
        assert record.headline.total_trades == 0

    def test_empty_raises(self):
        with pytest.raises(LogParseError):
            parse_trading_log("   \n")

    def test_no_timestamped_lines_raises(self):
        with pytest.raises(LogParseError):
            parse_trading_log("just some text\nwith no log lines\n")

    def test_impossible_timestamp_line_skipped(self):
        text = (
            "2024-02-30 9:31:05 AM [TRADE FILL (ID: 9)] LONG FILLED: 100.00\n" + SAMPLE_LOG
        )
        record = parse_trading_log(text)
        assert [t.id for t in record.trades] == [1, 2, 3]

    def test_only_impossible_timestamps_raises(self):
        with pytest.raises(LogParseError):
            parse_trading_log("2024-02-30 9:31:05 AM [TRADE FILL (ID: 1)] LONG FILLED: 1.00\n")

    def test_to_dict_shape(self):
        d = parse_trading_log(SAMPLE_LOG).to_dict()
        assert set(d) == {"headline", "sessions", "tradeList"}
        assert d["headline"]["bigWins"] == 1
        assert d["tradeList"][0]["entryPrice"] == 21450.25


class TestBuildDayRecord:
    def test_dated_from_log(self):
        record = build_day_record(SAMPLE_LOG)
        assert record.date == "2025-03-10"
        assert record.analysis.headline.total_trades == 3

    def test_impossible_leading_date_not_used(self):
        record = build_day_record("2024-02-30 note\n2025-03-10 9:31:05 AM x")
        assert record.date == "2025-03-10"

    def test_round_trips_through_dict(self):
        from models import DayRecord

        record = build_day_record(SAMPLE_LOG + EOD_LINES)
        again = DayRecord.from_dict(record.to_dict())
        assert again.analysis.headline == record.analysis.headline
        assert again.analysis.trades == record.analysis.trades
