"""Parser for the levels-algo daily trading log.

The algo prints one timestamped line per event. Lines we care about:

    2025-03-10 9:31:05 AM [TRADE FILL (ID: 1)] LONG FILLED: 21450.25
    2025-03-10 9:40:12 AM [TRADE CLOSE - TP (ID: 1)] TRADE CLOSED: ... at Price: 21460.25
    2025-03-10 9:40:12 AM [PNL UPDATE - GAIN (ID: 1)] CURRENT TRADE PnL: $20.00
    2025-03-10 9:40:12 AM [PNL UPDATE - GAIN (ID: 1)] COMPLETED TRADE PnL: $20.00
    2025-03-10 4:00:00 PM END OF DAY STATS - PnL: $450.00 | TOTAL TRADES: 10 | WINS: 6 (60%) | LOSSES: 4 (40%)
    2025-03-10 4:00:00 PM Morning Session - PnL: $120.00 | Trades: 3 | Avg PnL per Trade: $40.00

Everything else is ignored.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional

from config import BIG_TRADE_PNL
from models import AnalysisRecord, DayRecord, Headline, SessionStats, Trade
from parsers.base import (
    TIMESTAMP_RE, LogParseError, extract_log_date, parse_log_timestamp, parse_money,
)

logger = logging.getLogger(__name__)

FILL_RE = re.compile(r"\[TRADE FILL \(ID: (\d+)\)\] (LONG|SHORT) FILLED: ([\d.]+)")
CLOSE_RE = re.compile(r"\[TRADE CLOSE(?: - (TP|SL))? \(ID: (\d+)\)\] TRADE CLOSED:.*at Price: ([\d.]+)")
PNL_RE = re.compile(r"\[PNL UPDATE - (?:GAIN|LOSS|NIL) \(ID: (\d+)\)\] CURRENT TRADE PnL: \$([\d.,-]+)")
COMPLETED_RE = re.compile(r"\[PNL UPDATE - (?:GAIN|LOSS|NIL) \(ID: (\d+)\)\] COMPLETED TRADE PnL: \$([\d.,-]+)")
EOD_PNL_RE = re.compile(r"END OF DAY STATS - PnL: \$([\d.,-]+)")
EOD_COUNTS_RE = re.compile(r"TOTAL TRADES: (\d+) \| WINS: (\d+) \((\d+)%\) \| LOSSES: (\d+) \((\d+)%\)")
SESSION_RE = re.compile(
    r"(Morning|Main|Midday|Afternoon|End) Session - PnL: \$([\d.,-]+) \| Trades: (\d+)"
    r" \| Avg PnL per Trade: \$([\d.,-]+)"
)


def _finish_trade(current: dict) -> Optional[Trade]:
    """Build a Trade from the accumulated fields, or None if incomplete."""
    required = ("id", "timestamp", "direction", "entry_price", "exit_price", "pnl")
    if any(current.get(k) is None for k in required):
        return None
    return Trade(
        id=current["id"],
        timestamp=current["timestamp"],
        direction=current["direction"],
        entry_price=current["entry_price"],
        exit_price=current["exit_price"],
        pnl=current["pnl"],
        exit_reason=current.get("exit_reason", "MANUAL"),
        is_chase_trade=current.get("is_chase_trade", False),
    )


def parse_trading_log(text: str) -> AnalysisRecord:
    """Parse one day's raw log text into an AnalysisRecord.

    End-of-day totals printed by the algo win; when absent they are derived
    from the completed trades. Raises LogParseError when the text has no
    timestamped lines at all.
    """
    if not text or not text.strip():
        raise LogParseError("Log data is empty.")

    trades: list[Trade] = []
    sessions = AnalysisRecord().sessions
    current: dict = {}
    eod_pnl: Optional[float] = None
    eod_counts: Optional[tuple[int, int, int]] = None
    timestamped_lines = 0

    for line in text.splitlines():
        ts_match = TIMESTAMP_RE.search(line)
        if not ts_match:
            continue
        try:
            timestamp = parse_log_timestamp(ts_match.group(1))
        except ValueError:
            logger.warning("Skipping line with impossible timestamp %r", ts_match.group(1))
            continue
        timestamped_lines += 1

        m = FILL_RE.search(line)
        if m:
            if current:
                logger.debug("Discarding unfinished trade %s", current.get("id"))
            current = {
                "id": int(m.group(1)),
                "timestamp": timestamp,
                "direction": m.group(2),
                "entry_price": float(m.group(3)),
            }
            continue

        m = CLOSE_RE.search(line)
        if m and current.get("id") == int(m.group(2)):
            current["exit_price"] = float(m.group(3))
            current["exit_reason"] = m.group(1) or "MANUAL"
            continue

        m = PNL_RE.search(line)
        if m and current.get("id") == int(m.group(1)):
            current["pnl"] = parse_money(m.group(2))
            continue

        m = COMPLETED_RE.search(line)
        if m and current.get("id") == int(m.group(1)):
            current["pnl"] = parse_money(m.group(2))
            current["is_chase_trade"] = "Chase Trade" in line
            trade = _finish_trade(current)
            if trade:
                trades.append(trade)
            else:
                logger.warning("Skipping incomplete trade %s", current.get("id"))
            current = {}
            continue

        if "END OF DAY STATS" in line:
            pm = EOD_PNL_RE.search(line)
            if pm:
                eod_pnl = parse_money(pm.group(1))
            cm = EOD_COUNTS_RE.search(line)
            if cm:
                eod_counts = (int(cm.group(1)), int(cm.group(2)), int(cm.group(4)))
            continue

        m = SESSION_RE.search(line)
        if m:
            sessions[m.group(1).lower()] = SessionStats(
                pnl=parse_money(m.group(2)),
                trades=int(m.group(3)),
                avg_pnl_per_trade=parse_money(m.group(4)),
            )

    if timestamped_lines == 0:
        raise LogParseError("No timestamped log lines found.")

    if eod_counts:
        total_trades, wins, losses = eod_counts
    else:
        total_trades = len(trades)
        wins = sum(1 for t in trades if t.pnl > 0)
        losses = sum(1 for t in trades if t.pnl < 0)

    total_pnl = eod_pnl if eod_pnl is not None else sum(t.pnl for t in trades)

    headline = Headline(
        total_pnl=round(total_pnl, 2),
        total_trades=total_trades,
        wins=wins,
        losses=losses,
        big_wins=sum(1 for t in trades if t.pnl >= BIG_TRADE_PNL),
        big_losses=sum(1 for t in trades if t.pnl <= -BIG_TRADE_PNL),
    )
    logger.info("Parsed %d trades (%d timestamped lines)", len(trades), timestamped_lines)
    return AnalysisRecord(headline=headline, sessions=sessions, trades=trades)


def build_day_record(text: str, today: Optional[date] = None) -> DayRecord:
    """Parse ``text`` and date it by the first YYYY-MM-DD in the log (UTC today if none)."""
    analysis = parse_trading_log(text)
    return DayRecord(date=extract_log_date(text, today), analysis=analysis)
