"""SQLite schema and CRUD for daily logs, base data, notes and users."""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
from contextlib import contextmanager
from datetime import date as _date, datetime, timezone
from typing import Optional

import pandas as pd

import config
from models import DayRecord, Note

logger = logging.getLogger(__name__)

DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)


class StoreError(RuntimeError):
    """The database could not be opened, read or written."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_date(date: str) -> str:
    """Return ``date`` if it is a real YYYY-MM-DD calendar day, else raise ValueError."""
    if not isinstance(date, str) or not DATE_ONLY_RE.match(date):
        raise ValueError("Invalid date format. Use YYYY-MM-DD")
    try:
        _date.fromisoformat(date)
    except ValueError as e:
        raise ValueError(f"Invalid date: {date}") from e
    return date


def get_connection() -> sqlite3.Connection:
    db_dir = os.path.dirname(config.DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    conn = sqlite3.connect(config.DB_PATH)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_db():
    """Connection that commits on success and rolls back on any error.

    sqlite3 errors raised while the block runs come out as StoreError;
    everything else propagates unchanged.
    """
    try:
        conn = get_connection()
    except (sqlite3.Error, OSError) as e:
        raise StoreError(f"Database unavailable: {e}") from e
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StoreError(f"Database error: {e}") from e
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Create all tables if they don't exist, then seed the admin account."""
    with get_db() as conn:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                display_name TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS session_tokens (
                token TEXT PRIMARY KEY,
                user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                expires_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS daily_logs (
                date TEXT PRIMARY KEY,
                analysis TEXT NOT NULL,
                total_pnl REAL,
                total_trades INTEGER,
                wins INTEGER,
                losses INTEGER,
                added_at TEXT NOT NULL,
                added_by INTEGER REFERENCES users(id) ON DELETE SET NULL
            );

            CREATE TABLE IF NOT EXISTS base_data (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                payload TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS notes (
                date TEXT PRIMARY KEY,
                notes TEXT NOT NULL,
                last_modified TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS compare_logs (
                date TEXT PRIMARY KEY,
                analysis TEXT NOT NULL,
                added_at TEXT NOT NULL,
                notes TEXT NOT NULL DEFAULT '',
                verified INTEGER NOT NULL DEFAULT 0,
                verified_at TEXT NOT NULL DEFAULT '',
                verified_by TEXT NOT NULL DEFAULT '',
                tag_assignments TEXT NOT NULL DEFAULT '[]'
            );

            CREATE TABLE IF NOT EXISTS replaced_compare_logs (
                date TEXT PRIMARY KEY,
                analysis TEXT NOT NULL,
                added_at TEXT NOT NULL DEFAULT '',
                notes TEXT NOT NULL DEFAULT '',
                replaced_at TEXT NOT NULL,
                replaced_reason TEXT NOT NULL DEFAULT ''
            );

            CREATE TABLE IF NOT EXISTS tags (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                description TEXT NOT NULL DEFAULT '',
                color TEXT NOT NULL,
                created_at TEXT NOT NULL,
                last_used TEXT NOT NULL DEFAULT '',
                usage_count INTEGER NOT NULL DEFAULT 0,
                positive_count INTEGER NOT NULL DEFAULT 0,
                negative_count INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS backtest_queue (
                date TEXT PRIMARY KEY,
                status TEXT NOT NULL DEFAULT 'pending',
                priority TEXT NOT NULL DEFAULT 'medium',
                added_at TEXT NOT NULL,
                added_by TEXT NOT NULL DEFAULT '',
                completed_at TEXT NOT NULL DEFAULT '',
                notes TEXT NOT NULL DEFAULT ''
            );

            CREATE INDEX IF NOT EXISTS idx_session_tokens_user ON session_tokens(user_id);
        """)
    _seed_admin()


def _seed_admin():
    """Create the default admin from config when no users exist yet."""
    import bcrypt

    with get_db() as conn:
        has_users = conn.execute("SELECT 1 FROM users LIMIT 1").fetchone()
        if has_users:
            return
        pw_hash = bcrypt.hashpw(
            config.DEFAULT_ADMIN_PASSWORD.encode("utf-8"), bcrypt.gensalt()
        ).decode("utf-8")
        conn.execute(
            "INSERT INTO users (email, password_hash, display_name) VALUES (?, ?, ?)",
            (config.DEFAULT_ADMIN_EMAIL, pw_hash, "Admin"),
        )
    logger.info("Created default admin account %s", config.DEFAULT_ADMIN_EMAIL)


# ---------------------------------------------------------------------------
# Daily logs
# ---------------------------------------------------------------------------

def write_day(conn: sqlite3.Connection, entry: DayRecord, user_id: Optional[int] = None):
    """Upsert ``entry`` on an open connection, leaving the commit to the caller."""
    h = entry.analysis.headline
    conn.execute(
        """INSERT INTO daily_logs
           (date, analysis, total_pnl, total_trades, wins, losses, added_at, added_by)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)
           ON CONFLICT(date) DO UPDATE SET
               analysis=excluded.analysis, total_pnl=excluded.total_pnl,
               total_trades=excluded.total_trades, wins=excluded.wins,
               losses=excluded.losses, added_at=excluded.added_at,
               added_by=excluded.added_by""",
        (entry.date, json.dumps(entry.analysis.to_dict()), h.total_pnl,
         h.total_trades, h.wins, h.losses, entry.added_at, user_id),
    )


def add_daily_log(entry: DayRecord, user_id: Optional[int] = None) -> DayRecord:
    """Store one day's analysis; a later call for the same date overwrites."""
    validate_date(entry.date)
    if not entry.added_at:
        entry.added_at = _now()
    with get_db() as conn:
        write_day(conn, entry, user_id)
    logger.info("Stored daily log %s", entry.date)
    return entry


def record_upload(entry: DayRecord, user_id: Optional[int] = None) -> DayRecord:
    """Store a freshly parsed day and make it the current base data."""
    add_daily_log(entry, user_id)
    set_base_data(entry.to_dict())
    return entry


def _row_to_day(row: sqlite3.Row) -> DayRecord:
    return DayRecord.from_dict({
        "date": row["date"],
        "analysis": json.loads(row["analysis"]),
        "metadata": {"addedAt": row["added_at"]},
    })


def get_all_days() -> list[DayRecord]:
    """All stored days, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT date, analysis, added_at FROM daily_logs ORDER BY date DESC"
        ).fetchall()
    return [_row_to_day(r) for r in rows]


def get_day(date: str) -> Optional[DayRecord]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT date, analysis, added_at FROM daily_logs WHERE date=?", (date,)
        ).fetchone()
    return _row_to_day(row) if row else None


def delete_daily_log(date: str) -> bool:
    with get_db() as conn:
        cur = conn.execute("DELETE FROM daily_logs WHERE date=?", (date,))
        return cur.rowcount > 0


def clear_all_days() -> int:
    """Delete every stored day and the base data. Returns days removed."""
    with get_db() as conn:
        cur = conn.execute("DELETE FROM daily_logs")
        conn.execute("DELETE FROM base_data")
        count = cur.rowcount
    logger.warning("Cleared %d daily logs", count)
    return count


def get_daily_log_summary() -> pd.DataFrame:
    """Upload history: one row per stored day with its headline numbers."""
    with get_db() as conn:
        return pd.read_sql_query(
            """SELECT d.date, d.total_pnl, d.total_trades, d.wins, d.losses,
                      d.added_at, u.email AS added_by
               FROM daily_logs d LEFT JOIN users u ON d.added_by = u.id
               ORDER BY d.date DESC""",
            conn,
        )


# ---------------------------------------------------------------------------
# Base data (latest parsed log, consumed as-is)
# ---------------------------------------------------------------------------

def set_base_data(payload: dict):
    with get_db() as conn:
        conn.execute(
            """INSERT INTO base_data (id, payload, updated_at) VALUES (1, ?, ?)
               ON CONFLICT(id) DO UPDATE SET payload=excluded.payload,
                                             updated_at=excluded.updated_at""",
            (json.dumps(payload), _now()),
        )


def get_base_data() -> Optional[dict]:
    with get_db() as conn:
        row = conn.execute("SELECT payload FROM base_data WHERE id=1").fetchone()
    return json.loads(row["payload"]) if row else None


def clear_base_data():
    with get_db() as conn:
        conn.execute("DELETE FROM base_data")


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

def _write_note(conn: sqlite3.Connection, note: Note):
    conn.execute(
        """INSERT INTO notes (date, notes, last_modified) VALUES (?, ?, ?)
           ON CONFLICT(date) DO UPDATE SET notes=excluded.notes,
                                           last_modified=excluded.last_modified""",
        (note.date, note.notes, note.last_modified),
    )


def upsert_note(date: str, notes: str) -> Note:
    validate_date(date)
    note = Note(date=date, notes=notes, last_modified=_now())
    with get_db() as conn:
        _write_note(conn, note)
    return note


def get_note(date: str) -> Note:
    """The note for ``date``; an empty note when none was saved."""
    validate_date(date)
    with get_db() as conn:
        row = conn.execute(
            "SELECT date, notes, last_modified FROM notes WHERE date=?", (date,)
        ).fetchone()
    if row:
        return Note(row["date"], row["notes"], row["last_modified"])
    return Note(date=date, notes="", last_modified=_now())


def get_notes_in_range(start_date: str, end_date: str) -> list[Note]:
    """Notes with start_date <= date <= end_date, newest first."""
    validate_date(start_date)
    validate_date(end_date)
    with get_db() as conn:
        rows = conn.execute(
            """SELECT date, notes, last_modified FROM notes
               WHERE date >= ? AND date <= ? ORDER BY date DESC""",
            (start_date, end_date),
        ).fetchall()
    return [Note(r["date"], r["notes"], r["last_modified"]) for r in rows]


def get_notes_map(days: list[DayRecord]) -> dict[str, str]:
    """{date: notes} for every saved note inside the span of ``days``."""
    if not days:
        return {}
    dates = sorted(d.date for d in days)
    return {n.date: n.notes for n in get_notes_in_range(dates[0], dates[-1])}


def delete_note(date: str) -> bool:
    validate_date(date)
    with get_db() as conn:
        cur = conn.execute("DELETE FROM notes WHERE date=?", (date,))
        return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Backup export / import
# ---------------------------------------------------------------------------

def export_backup() -> dict:
    with get_db() as conn:
        notes = conn.execute("SELECT date, notes, last_modified FROM notes ORDER BY date").fetchall()
    return {
        "days": [d.to_dict() for d in get_all_days()],
        "notes": [Note(r["date"], r["notes"], r["last_modified"]).to_dict() for r in notes],
        "exportedAt": _now(),
    }


def import_backup(payload: dict, user_id: Optional[int] = None) -> tuple[int, int]:
    """Validate and upsert a backup produced by export_backup.

    Returns (days imported, notes imported). Any invalid entry raises
    ValueError before anything is written, and the writes share one
    transaction.
    """
    if not isinstance(payload, dict):
        raise ValueError("Backup must be a JSON object")
    days = payload.get("days") or []
    notes = payload.get("notes") or []
    if not isinstance(days, list) or not isinstance(notes, list):
        raise ValueError("Backup 'days' and 'notes' must be arrays")

    records = []
    for i, item in enumerate(days):
        if not isinstance(item, dict) or not item.get("date") or not item.get("analysis"):
            raise ValueError("Each day must have date and analysis properties")
        validate_date(item["date"])
        try:
            rec = DayRecord.from_dict(item)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Day {i} ({item['date']}) is malformed: {e!r}") from e
        if not rec.added_at:
            rec.added_at = _now()
        records.append(rec)

    imported_notes = []
    for item in notes:
        if not isinstance(item, dict) or not item.get("date") or not isinstance(item.get("notes"), str):
            raise ValueError("Each note must have date and notes properties")
        validate_date(item["date"])
        imported_notes.append(Note(date=item["date"], notes=item["notes"], last_modified=_now()))

    with get_db() as conn:
        for rec in records:
            write_day(conn, rec, user_id)
        for note in imported_notes:
            _write_note(conn, note)
    logger.info("Imported backup: %d days, %d notes", len(records), len(imported_notes))
    return len(records), len(imported_notes)
