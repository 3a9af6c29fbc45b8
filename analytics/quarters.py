"""Roll week-level summaries up into calendar quarters.

Quarter and year are read straight from the ``weekStart`` string's numeric
components. Never build a timezone-aware date for this: a UTC shift on
"2024-04-01" would land the week in Q1.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from config import QUARTERS
from models import Headline, QuarterData, WeekLog

logger = logging.getLogger(__name__)

# ASCII digits only; str.isdigit() also accepts "²"
WEEK_START_RE = re.compile(r"(\d+)-(\d+)(?:-|$)", re.ASCII)


class MalformedWeekError(ValueError):
    """A weekStart that is not of the form YYYY-MM-..."""


def quarter_from_date(date_str: str) -> tuple[str, int]:
    """Return ("Q1".."Q4", year) for a 'YYYY-MM-DD' string.

    >>> quarter_from_date("2024-02-12")
    ('Q1', 2024)
    """
    m = WEEK_START_RE.match(date_str if isinstance(date_str, str) else "")
    if not m:
        raise MalformedWeekError(f"Malformed week start: {date_str!r}")
    year = int(m.group(1))
    month = int(m.group(2))
    if not 1 <= month <= 12:
        raise MalformedWeekError(f"Month out of range in week start: {date_str!r}")
    return QUARTERS[(month - 1) // 3], year


def _add(total, value):
    return total + (value or 0)


def group_weeks_by_quarter(weeks: Iterable[WeekLog], strict: bool = False) -> list[QuarterData]:
    """Group weeks into (quarter, year) buckets with summed headlines.

    Weeks keep their input order inside a bucket and totals accumulate in that
    order. Buckets come back newest year first, then Q4 before Q1. Weeks with
    a malformed weekStart are skipped with a warning, or raise
    MalformedWeekError when ``strict`` is set. Duplicate weekStart values are
    not merged.
    """
    buckets: dict[tuple[str, int], QuarterData] = {}

    for week in weeks:
        try:
            quarter, year = quarter_from_date(week.week_start)
        except MalformedWeekError:
            if strict:
                raise
            logger.warning("Skipping week with malformed weekStart %r", week.week_start)
            continue

        bucket = buckets.get((quarter, year))
        if bucket is None:
            bucket = QuarterData(
                quarter=quarter,
                year=year,
                quarter_headline=Headline(total_pnl=0.0, total_trades=0, wins=0, losses=0),
            )
            buckets[(quarter, year)] = bucket

        bucket.weeks.append(week)
        src = week.week_headline or Headline(None, None, None, None)
        dst = bucket.quarter_headline
        dst.total_pnl = _add(dst.total_pnl, src.total_pnl)
        dst.total_trades = _add(dst.total_trades, src.total_trades)
        dst.wins = _add(dst.wins, src.wins)
        dst.losses = _add(dst.losses, src.losses)

    return sorted(
        buckets.values(),
        key=lambda q: (q.year, QUARTERS.index(q.quarter)),
        reverse=True,
    )


def quarters_to_dicts(quarters: list[QuarterData]) -> list[dict]:
    """JSON shape: [{quarter, year, weeks, quarterHeadline}, ...]."""
    return [q.to_dict() for q in quarters]


def quarter_key(q: QuarterData) -> str:
    """Stable id for a quarter bucket, e.g. "Q2 2024"; used for open/closed state."""
    return f"{q.quarter} {q.year}"
