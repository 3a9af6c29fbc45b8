"""Compare logs: re-runs of stored days, reviewed and then merged into the base."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Iterable, Optional

from analytics.compare import merge_trading_logs
from analytics.weekly import week_start_for
from config import TAG_IMPACTS
from db import get_db, validate_date, write_day
from journal.tag_store import recount_tags
from models import AnalysisRecord, CompareDay, DayRecord, ReplacedCompare, TagAssignment

logger = logging.getLogger(__name__)

_COMPARE_COLUMNS = (
    "date, analysis, added_at, notes, verified, verified_at, verified_by, tag_assignments"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_compare(row: sqlite3.Row) -> CompareDay:
    return CompareDay(
        date=row["date"],
        analysis=AnalysisRecord.from_dict(json.loads(row["analysis"])),
        added_at=row["added_at"],
        notes=row["notes"],
        verified=bool(row["verified"]),
        verified_at=row["verified_at"],
        verified_by=row["verified_by"],
        tag_assignments=[TagAssignment.from_dict(a) for a in json.loads(row["tag_assignments"] or "[]")],
    )


def _fetch(conn: sqlite3.Connection, date: str) -> Optional[CompareDay]:
    row = conn.execute(
        f"SELECT {_COMPARE_COLUMNS} FROM compare_logs WHERE date=?", (date,)
    ).fetchone()
    return _row_to_compare(row) if row else None


def _week_dates(conn: sqlite3.Connection, date: str) -> list[str]:
    start = week_start_for(date)
    rows = conn.execute("SELECT date FROM compare_logs ORDER BY date").fetchall()
    return [r["date"] for r in rows if week_start_for(r["date"]) == start]


# ---------------------------------------------------------------------------
# Upload / read
# ---------------------------------------------------------------------------

def add_compare_log(entry: DayRecord) -> tuple[CompareDay, bool]:
    """Store a compare log for ``entry.date``.

    A second upload for the same date moves the earlier analysis to the
    replaced archive, clears verification and keeps notes and tags.
    Returns (stored day, whether an earlier log was replaced).
    """
    validate_date(entry.date)
    now = _now()
    payload = json.dumps(entry.analysis.to_dict())
    with get_db() as conn:
        previous = conn.execute(
            "SELECT analysis, added_at, notes FROM compare_logs WHERE date=?", (entry.date,)
        ).fetchone()
        if previous:
            conn.execute(
                """INSERT INTO replaced_compare_logs
                   (date, analysis, added_at, notes, replaced_at, replaced_reason)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(date) DO UPDATE SET
                       analysis=excluded.analysis, added_at=excluded.added_at,
                       notes=excluded.notes, replaced_at=excluded.replaced_at,
                       replaced_reason=excluded.replaced_reason""",
                (entry.date, previous["analysis"], previous["added_at"], previous["notes"],
                 now, "New compare log uploaded"),
            )
            conn.execute(
                """UPDATE compare_logs SET analysis=?, added_at=?, verified=0,
                       verified_at='', verified_by='' WHERE date=?""",
                (payload, now, entry.date),
            )
        else:
            conn.execute(
                "INSERT INTO compare_logs (date, analysis, added_at) VALUES (?, ?, ?)",
                (entry.date, payload, now),
            )
        stored = _fetch(conn, entry.date)
    logger.info("Stored compare log %s%s", entry.date, " (replaced earlier run)" if previous else "")
    return stored, previous is not None


def get_compare_days() -> list[CompareDay]:
    """All compare logs, newest date first."""
    with get_db() as conn:
        rows = conn.execute(
            f"SELECT {_COMPARE_COLUMNS} FROM compare_logs ORDER BY date DESC"
        ).fetchall()
    return [_row_to_compare(r) for r in rows]


def get_compare_day(date: str) -> Optional[CompareDay]:
    with get_db() as conn:
        return _fetch(conn, date)


def get_latest_compare() -> Optional[CompareDay]:
    """The most recently uploaded compare log."""
    with get_db() as conn:
        row = conn.execute(
            f"SELECT {_COMPARE_COLUMNS} FROM compare_logs ORDER BY added_at DESC, date DESC LIMIT 1"
        ).fetchone()
    return _row_to_compare(row) if row else None


def delete_compare_day(date: str) -> bool:
    with get_db() as conn:
        cur = conn.execute("DELETE FROM compare_logs WHERE date=?", (date,))
        if cur.rowcount:
            recount_tags(conn)
        return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Review: verification, notes, tags
# ---------------------------------------------------------------------------

def set_compare_verified(date: str, verified: bool, verified_by: str = "") -> Optional[CompareDay]:
    """Mark a compared day reviewed (or not). None when no compare log exists."""
    with get_db() as conn:
        cur = conn.execute(
            "UPDATE compare_logs SET verified=?, verified_at=?, verified_by=? WHERE date=?",
            (int(verified), _now() if verified else "", verified_by if verified else "", date),
        )
        if cur.rowcount == 0:
            return None
        return _fetch(conn, date)


def verify_week(date: str, verified_by: str = "") -> int:
    """Verify every compare log in the Monday week holding ``date``. Returns the count."""
    validate_date(date)
    now = _now()
    with get_db() as conn:
        dates = _week_dates(conn, date)
        conn.executemany(
            "UPDATE compare_logs SET verified=1, verified_at=?, verified_by=? WHERE date=?",
            [(now, verified_by, d) for d in dates],
        )
    return len(dates)


def add_compare_notes(date: str, notes: str) -> Optional[CompareDay]:
    with get_db() as conn:
        cur = conn.execute("UPDATE compare_logs SET notes=? WHERE date=?", (notes, date))
        if cur.rowcount == 0:
            return None
        return _fetch(conn, date)


def _write_assignments(conn: sqlite3.Connection, date: str, assignments: list[TagAssignment]):
    conn.execute(
        "UPDATE compare_logs SET tag_assignments=? WHERE date=?",
        (json.dumps([a.to_dict() for a in assignments]), date),
    )
    recount_tags(conn)


def _check_impact(impact: str):
    if impact not in TAG_IMPACTS:
        raise ValueError('Impact must be either "positive" or "negative"')


def _check_tags_exist(conn: sqlite3.Connection, tag_ids: Iterable[str]):
    for tag_id in tag_ids:
        if not conn.execute("SELECT 1 FROM tags WHERE id=?", (tag_id,)).fetchone():
            raise ValueError(f"Unknown tag: {tag_id}")


def assign_compare_tag(date: str, tag_id: str, impact: str) -> Optional[CompareDay]:
    """Pin ``tag_id`` to a compared day; re-assigning a tag changes its impact."""
    _check_impact(impact)
    with get_db() as conn:
        day = _fetch(conn, date)
        if day is None:
            return None
        _check_tags_exist(conn, [tag_id])
        kept = [a for a in day.tag_assignments if a.tag_id != tag_id]
        kept.append(TagAssignment(tag_id=tag_id, impact=impact, assigned_at=_now()))
        _write_assignments(conn, date, kept)
        return _fetch(conn, date)


def remove_compare_tag(date: str, tag_id: str) -> Optional[CompareDay]:
    with get_db() as conn:
        day = _fetch(conn, date)
        if day is None:
            return None
        _write_assignments(conn, date, [a for a in day.tag_assignments if a.tag_id != tag_id])
        return _fetch(conn, date)


def update_compare_tags(date: str, assignments: list[dict]) -> Optional[CompareDay]:
    """Replace a compared day's tags with ``[{tagId, impact, assignedAt?}, ...]``."""
    if not isinstance(assignments, list):
        raise ValueError("TagAssignments array is required")
    parsed = []
    for item in assignments:
        try:
            a = TagAssignment.from_dict(item)
        except (KeyError, TypeError) as e:
            raise ValueError("Each tag assignment needs tagId and impact") from e
        _check_impact(a.impact)
        a.assigned_at = a.assigned_at or _now()
        parsed.append(a)

    with get_db() as conn:
        if _fetch(conn, date) is None:
            return None
        _check_tags_exist(conn, {a.tag_id for a in parsed})
        _write_assignments(conn, date, parsed)
        return _fetch(conn, date)


# ---------------------------------------------------------------------------
# Merge into the base day
# ---------------------------------------------------------------------------

def _merge_one(
    conn: sqlite3.Connection,
    day: CompareDay,
    merge_all: bool,
    merge_trade_ids: Optional[list[int]],
    merge_daily_stats: bool,
    user_id: Optional[int],
) -> DayRecord:
    row = conn.execute("SELECT analysis FROM daily_logs WHERE date=?", (day.date,)).fetchone()
    base = AnalysisRecord.from_dict(json.loads(row["analysis"])) if row else AnalysisRecord()
    # no base day yet: the compare log becomes the base
    analysis = merge_trading_logs(
        base, day.analysis,
        merge_all=merge_all or row is None,
        merge_trade_ids=merge_trade_ids,
        merge_daily_stats=merge_daily_stats,
    )
    merged = DayRecord(date=day.date, analysis=analysis, added_at=_now())
    write_day(conn, merged, user_id)
    if merge_all:
        conn.execute("DELETE FROM compare_logs WHERE date=?", (day.date,))
    return merged


def merge_compare_to_base(
    date: str,
    merge_all: bool = True,
    merge_trade_ids: Optional[list[int]] = None,
    merge_daily_stats: bool = False,
    user_id: Optional[int] = None,
) -> Optional[DayRecord]:
    """Fold a compare log into the stored day for ``date``.

    A full merge replaces the base analysis and retires the compare log. A
    partial merge (chosen trade ids and/or the headline) leaves the compare
    log in place for further review. None when no compare log exists.
    """
    with get_db() as conn:
        day = _fetch(conn, date)
        if day is None:
            return None
        merged = _merge_one(conn, day, merge_all, merge_trade_ids, merge_daily_stats, user_id)
        if merge_all:
            recount_tags(conn)
    logger.info("Merged compare log %s into base (%s)", date, "full" if merge_all else "partial")
    return merged


def merge_week_to_base(date: str, user_id: Optional[int] = None) -> int:
    """Fully merge every compare log in the Monday week holding ``date``. Returns the count."""
    validate_date(date)
    with get_db() as conn:
        dates = _week_dates(conn, date)
        for d in dates:
            _merge_one(conn, _fetch(conn, d), True, None, False, user_id)
        if dates:
            recount_tags(conn)
    logger.info("Merged %d compare logs for week of %s", len(dates), week_start_for(date))
    return len(dates)


# ---------------------------------------------------------------------------
# Replaced compare logs
# ---------------------------------------------------------------------------

def _row_to_replaced(row: sqlite3.Row) -> ReplacedCompare:
    return ReplacedCompare(
        date=row["date"],
        analysis=AnalysisRecord.from_dict(json.loads(row["analysis"])),
        added_at=row["added_at"],
        notes=row["notes"],
        replaced_at=row["replaced_at"],
        replaced_reason=row["replaced_reason"],
    )


def get_replaced_compares() -> list[ReplacedCompare]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM replaced_compare_logs ORDER BY date DESC").fetchall()
    return [_row_to_replaced(r) for r in rows]


def get_replaced_compare(date: str) -> Optional[ReplacedCompare]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM replaced_compare_logs WHERE date=?", (date,)).fetchone()
    return _row_to_replaced(row) if row else None


def delete_replaced_compare(date: str) -> bool:
    with get_db() as conn:
        cur = conn.execute("DELETE FROM replaced_compare_logs WHERE date=?", (date,))
        return cur.rowcount > 0
