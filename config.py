"""Constants, thresholds and environment-driven settings."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _get_secret(key: str, default: str = "") -> str:
    """Read from env vars first (.env / local), then Streamlit secrets (Cloud)."""
    val = os.environ.get(key, "")
    if val:
        return val
    try:
        import streamlit as st
        return st.secrets.get(key, default)
    except Exception:
        return default


DB_PATH = _get_secret(
    "TRADELOG_DB_PATH",
    os.path.join(os.path.dirname(__file__), "data", "tradelog.db"),
)

# Default admin credentials (created on first run when no users exist)
DEFAULT_ADMIN_EMAIL = _get_secret("ADMIN_EMAIL", "admin@tradelog.local")
DEFAULT_ADMIN_PASSWORD = _get_secret("ADMIN_PASSWORD", "changeme123")

SESSION_EXPIRY_DAYS = int(_get_secret("SESSION_EXPIRY_DAYS", "30"))
MIN_PASSWORD_LENGTH = 6

# ---------------------------------------------------------------------------
# Page access
# ---------------------------------------------------------------------------

# Pages anyone may open; everything else needs a logged-in user.
PUBLIC_PAGES = {"home", "monthly"}

# ---------------------------------------------------------------------------
# Display thresholds
# ---------------------------------------------------------------------------

WIN_RATE_GOOD_PCT = 60.0
WIN_RATE_NEUTRAL_PCT = 40.0

# Day-card P&L shading ($)
PNL_SMALL = 100.0
PNL_MEDIUM = 300.0

# A single trade at or beyond this P&L counts as a big win / big loss ($)
BIG_TRADE_PNL = 100.0

# A day beyond +/- this P&L is a max win / max loss day ($)
BIG_DAY_PNL = 400.0
# Day P&L split between "high" and "low" profit/loss days ($)
DAY_PNL_BAND = 100.0

# ---------------------------------------------------------------------------
# Log parsing
# ---------------------------------------------------------------------------

SESSION_NAMES = ["morning", "main", "midday", "afternoon", "end"]

QUARTERS = ["Q1", "Q2", "Q3", "Q4"]

# ---------------------------------------------------------------------------
# Time ranges (dashboard filter)
# ---------------------------------------------------------------------------

TIME_RANGES = {
    "all": "All Data",
    "wtd": "Week to Date",
    "mtd": "Month to Date",
    "qtd": "Quarter to Date",
    "ytd": "Year to Date",
    "last-month": "Last Month (4 weeks)",
    "last-12-weeks": "Last 12 Weeks",
    "last-24-weeks": "Last 24 Weeks",
}

# ---------------------------------------------------------------------------
# Compare logs, tags, backtest queue
# ---------------------------------------------------------------------------

TAG_IMPACTS = ("positive", "negative")

TAG_COLORS = [
    "#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6",
    "#06b6d4", "#84cc16", "#f97316", "#ec4899", "#6b7280",
]

# Queue order: high first
BACKTEST_PRIORITIES = {"high": 3, "medium": 2, "low": 1}
BACKTEST_STATUSES = ("pending", "completed")
