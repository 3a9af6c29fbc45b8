"""Monthly Log - trading days grouped by calendar month."""

import streamlit as st

from analytics.weekly import group_logs_by_month
from auth import require_auth
from components import render_monthly_log
from db import StoreError, get_all_days, get_notes_map, init_db, upsert_note
from ui_theme import empty_state, inject_custom_css, page_header
from view_state import AccordionState

st.set_page_config(page_title="Monthly Log | TradeLog", page_icon="📈", layout="wide")
init_db()
inject_custom_css()
user = require_auth("monthly")

page_header("Monthly Log", "Backtested days grouped by month")

try:
    days = get_all_days()
except StoreError as e:
    st.error(f"Failed to load trading logs: {e}")
    st.stop()

if not days:
    empty_state("No trading logs found.")
    st.stop()

months = group_logs_by_month(days)
state = AccordionState.from_session(st.session_state, "monthly_log", open_key=months[0].month)
for date, notes in get_notes_map(days).items():
    state.notes.setdefault(date, notes)


def _save_note(date: str, notes: str):
    try:
        upsert_note(date, notes)
        st.toast(f"Notes saved for {date}")
    except (StoreError, ValueError) as e:
        st.toast(f"Failed to save notes: {e}")


render_monthly_log(months, state, on_notes_change=_save_note if user else None)
