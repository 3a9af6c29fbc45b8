"""Shared look and feel for TradeLog pages: colors, CSS, small HTML widgets."""

from __future__ import annotations

import streamlit as st

from analytics.display import pnl_class, pnl_intensity, win_rate_class

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COLORS = {
    "green": "#2ecc71",
    "green_light": "#58d68d",
    "green_dark": "#1e8449",
    "red": "#e74c3c",
    "red_light": "#f1948a",
    "red_dark": "#a93226",
    "yellow": "#f1c40f",
    "blue": "#3498db",
    "border": "#1e3a5f",
    "card": "#16213e",
    "text_muted": "#888",
}

WIN_RATE_COLORS = {
    "good": COLORS["green"],
    "neutral": COLORS["yellow"],
    "poor": COLORS["red"],
}

_PNL_SHADES = {
    ("positive", "light"): COLORS["green_light"],
    ("positive", "medium"): COLORS["green"],
    ("positive", "strong"): COLORS["green_dark"],
    ("negative", "light"): COLORS["red_light"],
    ("negative", "medium"): COLORS["red"],
    ("negative", "strong"): COLORS["red_dark"],
}

CHART_HEIGHTS = {
    "standard": 380,
    "compact": 300,
}


def pnl_color(value: float) -> str:
    return COLORS["green"] if pnl_class(value) == "positive" else COLORS["red"]


def pnl_shade(value: float) -> str:
    """Graded green/red for day cards."""
    return _PNL_SHADES[(pnl_class(value), pnl_intensity(value))]


def win_rate_color(wins: int, losses: int) -> str:
    return WIN_RATE_COLORS[win_rate_class(wins, losses)]


# ---------------------------------------------------------------------------
# CSS injection
# ---------------------------------------------------------------------------

def inject_custom_css():
    st.markdown("""
    <style>
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
    .block-container {padding-top: 1.5rem !important;}

    [data-testid="stMetric"] {
        background: #16213e;
        border: 1px solid #1e3a5f;
        border-radius: 8px;
        padding: 12px 16px;
    }
    [data-testid="stExpander"] {
        border: 1px solid #1e3a5f;
        border-radius: 8px;
    }
    .tl-badge {
        display: inline-block;
        padding: 2px 8px;
        margin-right: 6px;
        border-radius: 10px;
        font-size: 0.8rem;
        border: 1px solid #1e3a5f;
    }
    .tl-card {
        border-left: 3px solid #1e3a5f;
        background: #16213e;
        border-radius: 0 8px 8px 0;
        padding: 10px 14px;
        margin-bottom: 8px;
    }
    </style>
    """, unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# Helper components
# ---------------------------------------------------------------------------

def page_header(title: str, subtitle: str = ""):
    st.title(title)
    if subtitle:
        st.caption(subtitle)


def badge(text: str, color: str = "") -> str:
    """Inline HTML badge; returned as a string so callers can compose a row."""
    style = f" style='color:{color};border-color:{color}'" if color else ""
    return f"<span class='tl-badge'{style}>{text}</span>"


def colored_metric(label: str, value: str, color: str = COLORS["blue"], delta: str = ""):
    """KPI card with left accent border."""
    delta_html = f"<div style='color:#888;font-size:0.75rem'>{delta}</div>" if delta else ""
    st.markdown(f"""
    <div class='tl-card' style='border-left-color:{color}'>
        <div style='text-transform:uppercase;font-size:0.7rem;color:#888'>{label}</div>
        <div style='font-size:1.3rem;font-weight:600;color:{color}'>{value}</div>
        {delta_html}
    </div>
    """, unsafe_allow_html=True)


def empty_state(message: str):
    st.markdown(
        f"<div class='tl-card' style='text-align:center;color:#888'>{message}</div>",
        unsafe_allow_html=True,
    )


def toast_and_rerun(message: str, icon: str = "✅"):
    """Toast ``message`` and rerun the script; the toast stays on screen across the rerun."""
    st.toast(message, icon=icon)
    st.rerun()


def plotly_layout(height_key: str = "standard", **overrides) -> dict:
    """Consistent Plotly layout dict for dark-themed charts."""
    layout = {
        "height": CHART_HEIGHTS.get(height_key, CHART_HEIGHTS["standard"]),
        "paper_bgcolor": "rgba(0,0,0,0)",
        "plot_bgcolor": "rgba(0,0,0,0)",
        "xaxis": {"gridcolor": COLORS["border"]},
        "yaxis": {"gridcolor": COLORS["border"]},
        "legend": {"orientation": "h", "y": 1.08},
        "margin": {"l": 40, "r": 20, "t": 40, "b": 30},
    }
    layout.update(overrides)
    return layout
