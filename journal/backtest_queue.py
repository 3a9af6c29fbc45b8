"""Queue of stored days waiting to be re-run through the algo."""

from __future__ import annotations

import logging
import re
import sqlite3
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Optional

from config import BACKTEST_PRIORITIES, BACKTEST_STATUSES
from db import get_db, validate_date
from models import BacktestQueueItem

logger = logging.getLogger(__name__)

MONTH_RE = re.compile(r"^\d{4}-\d{2}$", re.ASCII)
YEAR_RE = re.compile(r"^\d{4}$", re.ASCII)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_priority(priority: str):
    if priority not in BACKTEST_PRIORITIES:
        raise ValueError(f"Invalid priority: {priority}. Use low, medium or high")


def _row_to_item(row: sqlite3.Row) -> BacktestQueueItem:
    return BacktestQueueItem(
        date=row["date"],
        status=row["status"],
        priority=row["priority"],
        added_at=row["added_at"],
        added_by=row["added_by"],
        completed_at=row["completed_at"],
        notes=row["notes"],
    )


def get_queue(status: Optional[str] = None) -> list[BacktestQueueItem]:
    """Queue items, high priority first, then oldest date first."""
    with get_db() as conn:
        if status:
            rows = conn.execute("SELECT * FROM backtest_queue WHERE status=?", (status,)).fetchall()
        else:
            rows = conn.execute("SELECT * FROM backtest_queue").fetchall()
    items = [_row_to_item(r) for r in rows]
    items.sort(key=lambda i: (-BACKTEST_PRIORITIES.get(i.priority, 0), i.date))
    return items


def add_to_queue(dates: Iterable[str], priority: str = "medium", added_by: str = "") -> int:
    """Queue ``dates`` as pending; a date already queued gets the new priority.

    Every date is validated before anything is written. Returns dates queued.
    """
    dates = list(dates)
    for d in dates:
        validate_date(d)
    _check_priority(priority)
    now = _now()
    with get_db() as conn:
        for d in dates:
            conn.execute(
                """INSERT INTO backtest_queue (date, status, priority, added_at, added_by)
                   VALUES (?, 'pending', ?, ?, ?)
                   ON CONFLICT(date) DO UPDATE SET
                       priority=excluded.priority, added_at=excluded.added_at,
                       added_by=CASE WHEN excluded.added_by != '' THEN excluded.added_by
                                     ELSE backtest_queue.added_by END""",
                (d, priority, now, added_by or ""),
            )
    logger.info("Queued %d day(s) for backtest at %s priority", len(dates), priority)
    return len(dates)


def update_status(date: str, status: str):
    """Set pending/completed. Unknown dates are ignored."""
    if status not in BACKTEST_STATUSES:
        raise ValueError(f"Invalid status: {status}. Use pending or completed")
    completed_at = _now() if status == "completed" else ""
    with get_db() as conn:
        conn.execute(
            "UPDATE backtest_queue SET status=?, completed_at=? WHERE date=?",
            (status, completed_at, date),
        )


def update_priority(date: str, priority: str):
    _check_priority(priority)
    with get_db() as conn:
        conn.execute("UPDATE backtest_queue SET priority=? WHERE date=?", (priority, date))


def set_notes(date: str, notes: str):
    with get_db() as conn:
        conn.execute("UPDATE backtest_queue SET notes=? WHERE date=?", (notes, date))


def remove_from_queue(dates: Iterable[str]) -> int:
    with get_db() as conn:
        removed = 0
        for d in dates:
            removed += conn.execute("DELETE FROM backtest_queue WHERE date=?", (d,)).rowcount
    return removed


def clear_completed() -> int:
    with get_db() as conn:
        count = conn.execute("DELETE FROM backtest_queue WHERE status='completed'").rowcount
    logger.info("Cleared %d completed backtest(s)", count)
    return count


def queue_stats() -> dict:
    items = get_queue()
    by_priority = {p: 0 for p in ("low", "medium", "high")}
    for i in items:
        by_priority[i.priority] = by_priority.get(i.priority, 0) + 1
    return {
        "total": len(items),
        "pending": sum(1 for i in items if i.status == "pending"),
        "completed": sum(1 for i in items if i.status == "completed"),
        "byPriority": by_priority,
    }


def available_dates(
    base_dates: Iterable[str],
    compared_dates: Iterable[str],
    month: Optional[str] = None,
    year: Optional[str] = None,
) -> dict:
    """Stored days that can be (re-)backtested, optionally narrowed to a month or year.

    ``month`` is YYYY-MM and wins over ``year`` (YYYY); malformed filters
    are ignored.
    """
    base = set(base_dates)
    compared = set(compared_dates)
    available = sorted(base)
    if month and MONTH_RE.match(month):
        filtered = [d for d in available if d.startswith(month)]
    elif year and YEAR_RE.match(year):
        filtered = [d for d in available if d.startswith(year)]
    else:
        filtered = available

    grouped: dict[str, list[str]] = defaultdict(list)
    for d in filtered:
        grouped[d[:7]].append(d)

    return {
        "availableDates": filtered,
        "groupedByMonth": dict(grouped),
        "stats": {
            "totalAvailable": len(available),
            "filteredCount": len(filtered),
            "totalBaseDays": len(base),
            "totalComparedDays": len(compared),
            "monthsWithAvailableDates": len(grouped),
            "availableForNewBacktest": sum(1 for d in available if d not in compared),
            "availableForRetest": sum(1 for d in available if d in compared),
        },
    }
