"""Diff and merge a re-run (compare) log against the stored (base) day.

A compare log is the same trading day run again through a changed algo.
``compare_trading_logs`` reports what moved, ``merge_trading_logs`` folds
chosen parts back into the base day, and ``calculate_comparison_stats``
totals the difference over every compared week.
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from typing import Iterable, Optional

from analytics.display import win_rate
from analytics.weekly import week_start_for
from config import BIG_DAY_PNL, DAY_PNL_BAND
from models import AnalysisRecord, CompareDay, DayRecord

logger = logging.getLogger(__name__)


def _field_changes(old: dict, new: dict, fields: Iterable[str]) -> list[dict]:
    return [
        {"field": f, "oldValue": old.get(f), "newValue": new.get(f)}
        for f in fields
        if old.get(f) != new.get(f)
    ]


def compare_trading_logs(base: AnalysisRecord, compare: AnalysisRecord) -> dict:
    """Trade-by-trade and headline differences, keyed by trade id.

    Returns ``{"trades": {"added", "removed", "modified"}, "dailyStats"}``
    in the camelCase JSON shape. A modified entry carries the compare
    trade plus one ``{field, oldValue, newValue}`` per changed field.
    """
    base_trades = {t.id: t.to_dict() for t in base.trades}
    compare_trades = {t.id: t.to_dict() for t in compare.trades}

    added, modified = [], []
    for trade_id, new in compare_trades.items():
        old = base_trades.get(trade_id)
        if old is None:
            added.append(new)
            continue
        changes = _field_changes(old, new, new.keys())
        if changes:
            modified.append({"trade": new, "changes": changes})
    removed = [old for trade_id, old in base_trades.items() if trade_id not in compare_trades]

    base_head = base.headline.to_dict()
    compare_head = compare.headline.to_dict()
    fields = list(base_head) + [f for f in compare_head if f not in base_head]
    return {
        "trades": {"added": added, "removed": removed, "modified": modified},
        "dailyStats": _field_changes(base_head, compare_head, fields),
    }


def has_differences(diff: dict) -> bool:
    trades = diff["trades"]
    return bool(trades["added"] or trades["removed"] or trades["modified"] or diff["dailyStats"])


def merge_trading_logs(
    base: AnalysisRecord,
    compare: AnalysisRecord,
    merge_all: bool = False,
    merge_trade_ids: Optional[Iterable[int]] = None,
    merge_daily_stats: bool = False,
) -> AnalysisRecord:
    """Return a new AnalysisRecord; neither input is modified.

    ``merge_all`` takes the compare log wholesale. Otherwise each id in
    ``merge_trade_ids`` found in the compare log replaces the base trade
    with that id (or is appended), and ``merge_daily_stats`` takes the
    compare headline and sessions.
    """
    if merge_all:
        return copy.deepcopy(compare)

    merged = copy.deepcopy(base)
    if merge_trade_ids:
        compare_trades = {t.id: t for t in compare.trades}
        for trade_id in merge_trade_ids:
            trade = compare_trades.get(trade_id)
            if trade is None:
                logger.debug("Trade %s not in compare log; nothing to merge", trade_id)
                continue
            for i, existing in enumerate(merged.trades):
                if existing.id == trade_id:
                    merged.trades[i] = copy.deepcopy(trade)
                    break
            else:
                merged.trades.append(copy.deepcopy(trade))

    if merge_daily_stats:
        merged.headline = copy.deepcopy(compare.headline)
        merged.sessions = copy.deepcopy(compare.sessions)
    return merged


# ---------------------------------------------------------------------------
# Comparison stats
# ---------------------------------------------------------------------------

def _totals(days) -> dict:
    out = {"totalPnl": 0.0, "totalTrades": 0, "wins": 0, "losses": 0, "bigWins": 0, "bigLosses": 0}
    for d in days:
        h = d.analysis.headline
        out["totalPnl"] += h.total_pnl or 0
        out["totalTrades"] += h.total_trades or 0
        out["wins"] += h.wins or 0
        out["losses"] += h.losses or 0
        out["bigWins"] += h.big_wins or 0
        out["bigLosses"] += h.big_losses or 0
    return out


def _win_draw_loss(days) -> dict:
    t = _totals(days)
    draws = max(t["totalTrades"] - t["wins"] - t["losses"], 0)
    return {
        "wins": t["wins"], "draws": draws, "losses": t["losses"],
        "breakdown": f"{t['wins']}-{draws}-{t['losses']}",
    }


def _green_red(days) -> dict:
    green = sum(1 for d in days if (d.analysis.headline.total_pnl or 0) > 0)
    return {"greenDays": green, "redDays": len(days) - green}


def pnl_distribution(days) -> dict:
    """Count days per P&L band; big days sit outside +/-BIG_DAY_PNL."""
    out = {"highProfitDays": 0, "lowProfitDays": 0, "lowLossDays": 0,
           "highLossDays": 0, "bigWins": 0, "bigLosses": 0}
    for d in days:
        pnl = round(d.analysis.headline.total_pnl or 0, 2)
        if pnl > BIG_DAY_PNL:
            out["bigWins"] += 1
        elif pnl > DAY_PNL_BAND:
            out["highProfitDays"] += 1
        elif pnl > 0:
            out["lowProfitDays"] += 1
        elif pnl >= -DAY_PNL_BAND:
            out["lowLossDays"] += 1
        elif pnl >= -BIG_DAY_PNL:
            out["highLossDays"] += 1
        else:
            out["bigLosses"] += 1
    return out


def calculate_comparison_stats(compare_days: list, base_days: list) -> dict:
    """Compare-minus-base totals over the Monday weeks that hold compare days.

    Base days outside those weeks are ignored. Win rates are wins over
    decided trades on each side.
    """
    compare_weeks: dict[str, list] = defaultdict(list)
    for d in compare_days:
        compare_weeks[week_start_for(d.date)].append(d)
    base_in_weeks = [d for d in base_days if week_start_for(d.date) in compare_weeks]

    c = _totals(compare_days)
    b = _totals(base_in_weeks)
    weeks = len(compare_weeks)
    compare_avg = c["totalPnl"] / c["totalTrades"] if c["totalTrades"] else 0.0
    base_avg = b["totalPnl"] / b["totalTrades"] if b["totalTrades"] else 0.0
    compare_rate = win_rate(c["wins"], c["losses"])
    base_rate = win_rate(b["wins"], b["losses"])
    pnl_diff = c["totalPnl"] - b["totalPnl"]
    trades_diff = c["totalTrades"] - b["totalTrades"]

    return {
        "totalPnlDiff": round(pnl_diff, 2),
        "totalTradesDiff": trades_diff,
        "totalWinsDiff": c["wins"] - b["wins"],
        "totalLossesDiff": c["losses"] - b["losses"],
        "totalBigWinsDiff": c["bigWins"] - b["bigWins"],
        "totalBigLossesDiff": c["bigLosses"] - b["bigLosses"],
        "totalWeeks": weeks,
        "totalCompareTrades": c["totalTrades"],
        "totalBaseTrades": b["totalTrades"],
        "totalComparePnl": round(c["totalPnl"], 2),
        "totalBasePnl": round(b["totalPnl"], 2),
        "avgPnlDiffPerWeek": round(pnl_diff / weeks, 2) if weeks else 0.0,
        "avgTradesDiffPerWeek": round(trades_diff / weeks, 2) if weeks else 0.0,
        "compareWinRate": round(compare_rate, 2),
        "baseWinRate": round(base_rate, 2),
        "winRateDiff": round(compare_rate - base_rate, 2),
        "compareAvgPnlPerTrade": round(compare_avg, 2),
        "baseAvgPnlPerTrade": round(base_avg, 2),
        "pnlDiffPerTrade": round(compare_avg - base_avg, 2),
        "compareWinDrawLoss": _win_draw_loss(compare_days),
        "baseWinDrawLoss": _win_draw_loss(base_in_weeks),
        "compareGreenRed": _green_red(compare_days),
        "baseGreenRed": _green_red(base_in_weeks),
        "comparePnlDistribution": pnl_distribution(compare_days),
        "basePnlDistribution": pnl_distribution(base_in_weeks),
    }


# ---------------------------------------------------------------------------
# Per-day review lists
# ---------------------------------------------------------------------------

def unverified(compare_days: list[CompareDay]) -> list[CompareDay]:
    return [d for d in compare_days if not d.verified]


def _review_row(day: CompareDay, base_by_date: dict[str, DayRecord]) -> dict:
    base = base_by_date.get(day.date)
    compare_pnl = day.analysis.headline.total_pnl or 0
    base_pnl = (base.analysis.headline.total_pnl or 0) if base else 0
    return {
        "date": day.date,
        "comparePnl": compare_pnl,
        "basePnl": base_pnl,
        "pnlDifference": round(compare_pnl - base_pnl, 2),
        "verified": day.verified,
        "verifiedAt": day.verified_at,
        "verifiedBy": day.verified_by,
    }


def notes_summary(compare_days: list[CompareDay], base_days: list[DayRecord]) -> list[dict]:
    """Compared days with review notes, oldest first."""
    base_by_date = {d.date: d for d in base_days}
    rows = []
    for day in compare_days:
        if not day.notes.strip():
            continue
        rows.append({**_review_row(day, base_by_date), "notes": day.notes})
    return sorted(rows, key=lambda r: r["date"])


def tag_summary(
    compare_days: list[CompareDay],
    base_days: list[DayRecord],
    tag_filter: Optional[str] = None,
) -> list[dict]:
    """Compared days carrying tags, oldest first; ``tag_filter`` keeps one tag id."""
    base_by_date = {d.date: d for d in base_days}
    rows = []
    for day in compare_days:
        if not day.tag_assignments:
            continue
        if tag_filter and tag_filter != "all" and not any(a.tag_id == tag_filter for a in day.tag_assignments):
            continue
        rows.append({
            **_review_row(day, base_by_date),
            "tagAssignments": [a.to_dict() for a in day.tag_assignments],
        })
    return sorted(rows, key=lambda r: r["date"])
