"""Display-only numbers and classes, recomputed on every render."""

from __future__ import annotations

from typing import Optional

from config import PNL_MEDIUM, PNL_SMALL, WIN_RATE_GOOD_PCT, WIN_RATE_NEUTRAL_PCT


def win_rate(wins: Optional[int], losses: Optional[int]) -> float:
    """wins / (wins + losses) * 100, or 0.0 when there are no decided trades."""
    wins = wins or 0
    decided = wins + (losses or 0)
    if decided == 0:
        return 0.0
    return wins / decided * 100


def format_currency(value: Optional[float]) -> str:
    """USD with an explicit sign: +$1,234.50 / -$50.00 / +$0.00."""
    value = value or 0.0
    sign = "-" if value < 0 else "+"
    return f"{sign}${abs(value):,.2f}"


def win_rate_class(wins: Optional[int], losses: Optional[int]) -> str:
    rate = win_rate(wins, losses)
    if rate >= WIN_RATE_GOOD_PCT:
        return "good"
    if rate >= WIN_RATE_NEUTRAL_PCT:
        return "neutral"
    return "poor"


def pnl_class(value: Optional[float]) -> str:
    return "positive" if (value or 0) >= 0 else "negative"


def pnl_intensity(value: Optional[float]) -> str:
    """Graded shade for day cards: light / medium / strong."""
    size = abs(value or 0)
    if size < PNL_SMALL:
        return "light"
    if size < PNL_MEDIUM:
        return "medium"
    return "strong"
