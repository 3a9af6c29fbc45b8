"""Data models for trading-log analytics.

Every model serializes to the camelCase JSON shape the API and backups use
(``to_dict``) and can be rebuilt from it (``from_dict``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from config import SESSION_NAMES


@dataclass
class Headline:
    """Numeric rollup at day, week, month or quarter granularity.

    Fields are Optional because stored/imported summaries may omit them;
    aggregation treats a missing number as zero.
    """
    total_pnl: Optional[float] = 0.0
    total_trades: Optional[int] = 0
    wins: Optional[int] = 0
    losses: Optional[int] = 0
    big_wins: Optional[int] = None  # day level only
    big_losses: Optional[int] = None  # day level only

    def to_dict(self) -> dict:
        d = {
            "totalPnl": self.total_pnl,
            "totalTrades": self.total_trades,
            "wins": self.wins,
            "losses": self.losses,
        }
        if self.big_wins is not None:
            d["bigWins"] = self.big_wins
        if self.big_losses is not None:
            d["bigLosses"] = self.big_losses
        return d

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "Headline":
        d = d or {}
        return cls(
            total_pnl=d.get("totalPnl"),
            total_trades=d.get("totalTrades"),
            wins=d.get("wins"),
            losses=d.get("losses"),
            big_wins=d.get("bigWins"),
            big_losses=d.get("bigLosses"),
        )


@dataclass
class Trade:
    """One filled and closed trade from an algo log."""
    id: int
    timestamp: str  # ISO-8601, naive local time as printed in the log
    direction: str  # "LONG" or "SHORT"
    entry_price: float
    exit_price: float
    pnl: float
    exit_reason: str = "MANUAL"  # "TP", "SL", "MANUAL"
    is_chase_trade: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "direction": self.direction,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "pnl": self.pnl,
            "exitReason": self.exit_reason,
            "isChaseTrade": self.is_chase_trade,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Trade":
        return cls(
            id=int(d["id"]),
            timestamp=str(d.get("timestamp", "")),
            direction=d.get("direction", "LONG"),
            entry_price=float(d.get("entryPrice") or 0),
            exit_price=float(d.get("exitPrice") or 0),
            pnl=float(d.get("pnl") or 0),
            exit_reason=d.get("exitReason", "MANUAL"),
            is_chase_trade=bool(d.get("isChaseTrade", False)),
        )


@dataclass
class SessionStats:
    """P&L for one intraday session (morning, main, midday, afternoon, end)."""
    pnl: float = 0.0
    trades: int = 0
    avg_pnl_per_trade: float = 0.0

    def to_dict(self) -> dict:
        return {"pnl": self.pnl, "trades": self.trades, "avgPnlPerTrade": self.avg_pnl_per_trade}

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "SessionStats":
        d = d or {}
        return cls(
            pnl=float(d.get("pnl") or 0),
            trades=int(d.get("trades") or 0),
            avg_pnl_per_trade=float(d.get("avgPnlPerTrade") or 0),
        )


def _empty_sessions() -> dict[str, SessionStats]:
    return {name: SessionStats() for name in SESSION_NAMES}


@dataclass
class AnalysisRecord:
    """Structured result of parsing one day's trading log."""
    headline: Headline = field(default_factory=Headline)
    sessions: dict[str, SessionStats] = field(default_factory=_empty_sessions)
    trades: list[Trade] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "headline": self.headline.to_dict(),
            "sessions": {name: s.to_dict() for name, s in self.sessions.items()},
            "tradeList": [t.to_dict() for t in self.trades],
        }

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "AnalysisRecord":
        d = d or {}
        sessions = _empty_sessions()
        for name, s in (d.get("sessions") or {}).items():
            sessions[name] = SessionStats.from_dict(s)
        return cls(
            headline=Headline.from_dict(d.get("headline")),
            sessions=sessions,
            trades=[Trade.from_dict(t) for t in d.get("tradeList") or []],
        )


@dataclass
class DayRecord:
    """One calendar day's trading analysis plus upload metadata."""
    date: str  # YYYY-MM-DD
    analysis: AnalysisRecord
    added_at: str = ""  # ISO-8601 timestamp

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "analysis": self.analysis.to_dict(),
            "metadata": {"addedAt": self.added_at},
        }

    @classmethod
    def from_dict(cls, d: dict) -> "DayRecord":
        return cls(
            date=d["date"],
            analysis=AnalysisRecord.from_dict(d.get("analysis")),
            added_at=(d.get("metadata") or {}).get("addedAt", ""),
        )


@dataclass
class WeekLog:
    """One Monday-to-Sunday week of DayRecords with a summed headline."""
    week_start: str  # YYYY-MM-DD (Monday)
    days: list[DayRecord] = field(default_factory=list)
    week_headline: Headline = field(default_factory=Headline)
    week_end: str = ""  # YYYY-MM-DD (Sunday)

    def to_dict(self) -> dict:
        return {
            "weekStart": self.week_start,
            "weekEnd": self.week_end,
            "days": [d.to_dict() for d in self.days],
            "weekHeadline": self.week_headline.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "WeekLog":
        return cls(
            week_start=d.get("weekStart", ""),
            week_end=d.get("weekEnd", ""),
            days=[DayRecord.from_dict(x) for x in d.get("days") or []],
            week_headline=Headline.from_dict(d.get("weekHeadline")),
        )


@dataclass
class MonthLog:
    """One calendar month of DayRecords with a summed headline."""
    month: str  # YYYY-MM
    days: list[DayRecord] = field(default_factory=list)
    month_headline: Headline = field(default_factory=Headline)

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "days": [d.to_dict() for d in self.days],
            "monthHeadline": self.month_headline.to_dict(),
        }


@dataclass
class QuarterData:
    """One quarter's weeks with a summed headline."""
    quarter: str  # "Q1".."Q4"
    year: int
    weeks: list[WeekLog] = field(default_factory=list)
    quarter_headline: Headline = field(default_factory=Headline)

    def to_dict(self) -> dict:
        return {
            "quarter": self.quarter,
            "year": self.year,
            "weeks": [w.to_dict() for w in self.weeks],
            "quarterHeadline": self.quarter_headline.to_dict(),
        }


@dataclass
class Note:
    """Free-text journal note for one trading day."""
    date: str
    notes: str
    last_modified: str

    def to_dict(self) -> dict:
        return {"date": self.date, "notes": self.notes, "lastModified": self.last_modified}


@dataclass
class TagAssignment:
    """A tag pinned to a compared day, marked as helping or hurting the result."""
    tag_id: str
    impact: str  # "positive" or "negative"
    assigned_at: str = ""

    def to_dict(self) -> dict:
        return {"tagId": self.tag_id, "impact": self.impact, "assignedAt": self.assigned_at}

    @classmethod
    def from_dict(cls, d: dict) -> "TagAssignment":
        return cls(
            tag_id=str(d["tagId"]),
            impact=str(d["impact"]),
            assigned_at=d.get("assignedAt") or "",
        )


@dataclass
class CompareDay:
    """A re-run of a stored day, kept beside the base day until merged."""
    date: str
    analysis: AnalysisRecord
    added_at: str = ""
    notes: str = ""
    verified: bool = False
    verified_at: str = ""
    verified_by: str = ""
    tag_assignments: list[TagAssignment] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "analysis": self.analysis.to_dict(),
            "metadata": {
                "addedAt": self.added_at,
                "notes": self.notes,
                "verified": self.verified,
                "verifiedAt": self.verified_at,
                "verifiedBy": self.verified_by,
                "tagAssignments": [a.to_dict() for a in self.tag_assignments],
            },
        }


@dataclass
class Tag:
    """A reusable label for explaining why a compared day differs."""
    id: str
    name: str
    color: str
    description: str = ""
    created_at: str = ""
    last_used: str = ""
    usage_count: int = 0
    positive_count: int = 0
    negative_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "description": self.description,
            "createdAt": self.created_at,
            "lastUsed": self.last_used,
            "usageCount": self.usage_count,
            "positiveCount": self.positive_count,
            "negativeCount": self.negative_count,
        }


@dataclass
class BacktestQueueItem:
    """A stored day waiting to be re-run through the algo."""
    date: str
    status: str = "pending"  # "pending" or "completed"
    priority: str = "medium"  # "low", "medium", "high"
    added_at: str = ""
    added_by: str = ""
    completed_at: str = ""
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "status": self.status,
            "priority": self.priority,
            "addedAt": self.added_at,
            "addedBy": self.added_by,
            "completedAt": self.completed_at,
            "notes": self.notes,
        }


@dataclass
class ReplacedCompare:
    """The previous compare log for a date, kept when a newer one is uploaded."""
    date: str
    analysis: AnalysisRecord
    added_at: str = ""
    notes: str = ""
    replaced_at: str = ""
    replaced_reason: str = ""

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "analysis": self.analysis.to_dict(),
            "metadata": {
                "addedAt": self.added_at,
                "notes": self.notes,
                "replacedAt": self.replaced_at,
                "replacedReason": self.replaced_reason,
            },
        }
