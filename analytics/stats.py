"""Aggregate trading statistics across stored days (dashboard + API)."""

from __future__ import annotations

import pandas as pd

from analytics.display import win_rate
from config import BIG_DAY_PNL, DAY_PNL_BAND, SESSION_NAMES
from models import DayRecord

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def daily_frame(days: list[DayRecord]) -> pd.DataFrame:
    """One row per day, oldest first, with cumulative P&L and drawdown."""
    df = pd.DataFrame([{
        "date": d.date,
        "pnl": float(d.analysis.headline.total_pnl or 0),
        "trades": int(d.analysis.headline.total_trades or 0),
        "wins": int(d.analysis.headline.wins or 0),
        "losses": int(d.analysis.headline.losses or 0),
        "big_wins": int(d.analysis.headline.big_wins or 0),
        "big_losses": int(d.analysis.headline.big_losses or 0),
    } for d in days], columns=["date", "pnl", "trades", "wins", "losses", "big_wins", "big_losses"])
    if df.empty:
        return df.assign(cumulative_pnl=[], drawdown=[], weekday=[])

    df = df.sort_values("date").reset_index(drop=True)
    df["cumulative_pnl"] = df["pnl"].cumsum()
    peak = df["cumulative_pnl"].cummax().clip(lower=0)
    df["drawdown"] = df["cumulative_pnl"] - peak
    df["weekday"] = pd.to_datetime(df["date"]).dt.day_name()
    return df


def session_frame(days: list[DayRecord]) -> pd.DataFrame:
    """One row per (day, session) with that session's P&L and trade count."""
    return pd.DataFrame([{
        "date": d.date,
        "session": name,
        "pnl": round(float(s.pnl or 0), 2),
        "trades": int(s.trades or 0),
    } for d in days for name, s in d.analysis.sessions.items()],
        columns=["date", "session", "pnl", "trades"])


def _day_summary(row) -> dict:
    return {"date": row["date"], "pnl": float(row["pnl"]), "trades": int(row["trades"])}


def _draws(trades: int, wins: int, losses: int) -> int:
    return max(trades - wins - losses, 0)


def _pct(part, whole) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _weekday_stats(df: pd.DataFrame) -> dict:
    out = {}
    for name in WEEKDAYS:
        part = df[df["weekday"] == name] if not df.empty else df
        n = len(part)
        trades = int(part["trades"].sum())
        wins = int(part["wins"].sum())
        losses = int(part["losses"].sum())
        draws = _draws(trades, wins, losses)
        out[name] = {
            "totalDays": n,
            "totalTrades": trades,
            "totalPnl": float(part["pnl"].sum()),
            "averageTrades": round(trades / n, 2) if n else 0.0,
            "averagePnl": float(part["pnl"].mean()) if n else 0.0,
            "wins": wins,
            "losses": losses,
            "draws": draws,
            "winRate": win_rate(wins, losses),
            "netWinRate": _pct(wins + draws, trades),
            "greenDays": int((part["pnl"] > 0).sum()),
            "redDays": int((part["pnl"] < 0).sum()),
        }
    return out


def _session_stats(days: list[DayRecord]) -> dict:
    """Per-session totals; only days where the session traded count as session days."""
    sf = session_frame(days)
    out = {}
    for name in SESSION_NAMES:
        part = sf[sf["session"] == name]
        active = part[part["trades"] > 0]
        n = len(active)
        green = int((active["pnl"] > 0).sum())
        total_trades = int(part["trades"].sum())
        total_pnl = round(float(part["pnl"].sum()), 2)
        out[name] = {
            "totalDays": n,
            "totalTrades": total_trades,
            "totalPnl": total_pnl,
            "averageTrades": round(total_trades / n, 2) if n else 0.0,
            "averagePnl": round(total_pnl / n, 2) if n else 0.0,
            "winRate": _pct(green, n),
            "greenDays": green,
            "redDays": n - green,
        }
    return out


def _extreme_days(df: pd.DataFrame) -> tuple[list[dict], list[dict]]:
    """Days beyond +/-BIG_DAY_PNL: biggest win first, biggest loss first."""
    rounded = df["pnl"].round(2)
    wins = df[rounded > BIG_DAY_PNL].sort_values("pnl", ascending=False, kind="stable")
    losses = df[rounded < -BIG_DAY_PNL].sort_values("pnl", kind="stable")
    return (
        [_day_summary(r) for _, r in wins.iterrows()],
        [_day_summary(r) for _, r in losses.iterrows()],
    )


def _pnl_breakdown(df: pd.DataFrame) -> dict:
    pnl = df["pnl"].round(2)
    return {
        "highProfitDays": int((pnl > DAY_PNL_BAND).sum()),
        "lowProfitDays": int(((pnl > 0) & (pnl <= DAY_PNL_BAND)).sum()),
        "lowLossDays": int(((pnl < 0) & (pnl >= -DAY_PNL_BAND)).sum()),
        "highLossDays": int((pnl < -DAY_PNL_BAND).sum()),
    }


def calculate_stats(days: list[DayRecord]) -> dict:
    """Summary stats for a set of days. Empty input yields zeroed stats.

    ``winRate`` is wins over decided trades; ``netWinRate`` counts draws
    (trades neither won nor lost) as wins over all trades.
    ``averageWin`` / ``averageLoss`` spread the net P&L over winning or
    losing trades and are 0 unless the net P&L has the matching sign.
    """
    df = daily_frame(days)
    if df.empty:
        empty_day = {"date": "", "pnl": 0.0, "trades": 0}
        return {
            "totalDays": 0, "totalPnl": 0.0, "totalTrades": 0,
            "wins": 0, "losses": 0, "winRate": 0.0, "netWinRate": 0.0,
            "averagePnl": 0.0, "averageTrades": 0.0,
            "averageWin": 0.0, "averageLoss": 0.0,
            "bestDay": empty_day, "worstDay": dict(empty_day),
            "greenDays": 0, "redDays": 0, "flatDays": 0,
            "profitableDays": 0, "losingDays": 0, "breakEvenDays": 0,
            "winDrawLossBreakdown": {"wins": 0, "draws": 0, "losses": 0, "breakdown": "0-0-0"},
            "bigWins": 0, "bigLosses": 0, "maxDrawdown": 0.0,
            "maxWinDays": [], "maxLossDays": [],
            "pnlBreakdown": {"highProfitDays": 0, "lowProfitDays": 0, "lowLossDays": 0, "highLossDays": 0},
            "dayOfWeekStats": _weekday_stats(df),
            "sessionStats": _session_stats([]),
        }

    total_pnl = float(df["pnl"].sum())
    total_trades = int(df["trades"].sum())
    wins = int(df["wins"].sum())
    losses = int(df["losses"].sum())
    draws = _draws(total_trades, wins, losses)
    green = int((df["pnl"] > 0).sum())
    red = int((df["pnl"] < 0).sum())
    flat = int((df["pnl"] == 0).sum())
    max_win_days, max_loss_days = _extreme_days(df)
    return {
        "totalDays": len(df),
        "totalPnl": total_pnl,
        "totalTrades": total_trades,
        "wins": wins,
        "losses": losses,
        "winRate": win_rate(wins, losses),
        "netWinRate": _pct(wins + draws, total_trades),
        "averagePnl": float(df["pnl"].mean()),
        "averageTrades": float(df["trades"].mean()),
        "averageWin": round(total_pnl / wins, 2) if wins and total_pnl > 0 else 0.0,
        "averageLoss": round(total_pnl / losses, 2) if losses and total_pnl < 0 else 0.0,
        "bestDay": _day_summary(df.loc[df["pnl"].idxmax()]),
        "worstDay": _day_summary(df.loc[df["pnl"].idxmin()]),
        "greenDays": green,
        "redDays": red,
        "flatDays": flat,
        "profitableDays": green,
        "losingDays": red,
        "breakEvenDays": flat,
        "winDrawLossBreakdown": {
            "wins": wins, "draws": draws, "losses": losses,
            "breakdown": f"{wins}-{draws}-{losses}",
        },
        "bigWins": int(df["big_wins"].sum()),
        "bigLosses": int(df["big_losses"].sum()),
        "maxDrawdown": float(df["drawdown"].min()),
        "maxWinDays": max_win_days,
        "maxLossDays": max_loss_days,
        "pnlBreakdown": _pnl_breakdown(df),
        "dayOfWeekStats": _weekday_stats(df),
        "sessionStats": _session_stats(days),
    }
