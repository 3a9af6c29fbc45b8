"""Common log-text extraction and parsing utilities."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

# First calendar date anywhere in a log, e.g. "2025-03-10"
DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})", re.ASCII)

# Per-line timestamp, e.g. "2025-03-10 9:31:05 AM"
TIMESTAMP_RE = re.compile(r"(\d{4}-\d{2}-\d{2} \d{1,2}:\d{2}:\d{2} [AP]M)", re.ASCII)


class LogParseError(ValueError):
    """Raised when log text contains nothing that can be parsed."""


def read_log_file(path: str) -> str:
    """Read a log file as text, replacing undecodable bytes."""
    return Path(path).read_text(encoding="utf-8", errors="replace")


def extract_log_date(text: str, today: Optional[date] = None) -> str:
    """Return the first real calendar date (YYYY-MM-DD) found in ``text``.

    Look-alikes such as "2024-02-30" are passed over. Falls back to ``today``
    (default: the current UTC date) when the text carries no usable date.
    """
    for m in DATE_RE.finditer(text or ""):
        try:
            return date.fromisoformat(m.group(1)).isoformat()
        except ValueError:
            continue
    if today is None:
        today = datetime.now(timezone.utc).date()
    return today.isoformat()


def parse_log_timestamp(s: str) -> str:
    """Convert '2025-03-10 9:31:05 AM' to naive ISO '2025-03-10T09:31:05'."""
    return datetime.strptime(s.strip(), "%Y-%m-%d %I:%M:%S %p").isoformat()


def parse_money(s: str) -> float:
    """Parse a money string like '$1,296.75', '-10.50' or '$-10.50' to float."""
    if not s or s.strip() in ("...", ""):
        return 0.0
    s = s.strip().replace("$", "").replace(",", "")
    # Handle parenthetical negatives: (1,234.56) -> -1234.56
    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1]
    return float(s)
