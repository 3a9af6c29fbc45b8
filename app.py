"""TradeLog home: quarterly view of the levels-algo trading journal."""

from __future__ import annotations

import logging

import streamlit as st

from analytics.display import format_currency, win_rate
from analytics.quarters import group_weeks_by_quarter
from analytics.weekly import group_logs_by_week
from auth import require_auth
from components import render_quarterly_log
from db import StoreError, get_all_days, get_notes_map, init_db, upsert_note
from ui_theme import empty_state, inject_custom_css, page_header, pnl_color, colored_metric
from view_state import AccordionState

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

st.set_page_config(
    page_title="TradeLog",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

init_db()
inject_custom_css()
user = require_auth("home")

page_header("Trading Levels Algo", "Backtested results, grouped by quarter and week")

try:
    days = get_all_days()
except StoreError as e:
    st.error(f"Failed to load trading logs: {e}")
    st.stop()

if not days:
    empty_state("No trading logs found. Start by uploading a log on the <b>Upload Log</b> page.")
    st.stop()

weeks = group_logs_by_week(days)
quarters = group_weeks_by_quarter(weeks)

# ── Headline KPIs ─────────────────────────────────────────────────────────
total_pnl = sum(q.quarter_headline.total_pnl for q in quarters)
wins = sum(q.quarter_headline.wins for q in quarters)
losses = sum(q.quarter_headline.losses for q in quarters)
trades = sum(q.quarter_headline.total_trades for q in quarters)

c1, c2, c3, c4 = st.columns(4)
with c1:
    colored_metric("Total P&L", format_currency(total_pnl), pnl_color(total_pnl))
with c2:
    colored_metric("Win Rate", f"{win_rate(wins, losses):.1f}%", delta=f"{wins}W / {losses}L")
with c3:
    colored_metric("Trades", f"{trades:,}")
with c4:
    colored_metric("Days Logged", f"{len(days):,}", delta=f"{len(weeks)} weeks")

st.divider()

# ── Quarterly accordion ───────────────────────────────────────────────────
quarter_state = AccordionState.from_session(st.session_state, "home_quarters")
week_state = AccordionState.from_session(
    st.session_state, "home_weeks", open_key=weeks[0].week_start,
)
for date, notes in get_notes_map(days).items():
    week_state.notes.setdefault(date, notes)


def _save_note(date: str, notes: str):
    try:
        upsert_note(date, notes)
        st.toast(f"Notes saved for {date}")
    except (StoreError, ValueError) as e:
        st.toast(f"Failed to save notes: {e}")


render_quarterly_log(
    quarters, quarter_state, week_state,
    on_notes_change=_save_note if user else None,
)
