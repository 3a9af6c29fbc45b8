"""Backtest Queue - pick stored days to re-run and track which are done."""

import pandas as pd
import streamlit as st

from auth import require_auth
from config import BACKTEST_PRIORITIES, BACKTEST_STATUSES
from db import StoreError, get_all_days, init_db
from journal import backtest_queue
from journal.compare_store import get_compare_days
from ui_theme import empty_state, inject_custom_css, page_header, toast_and_rerun

st.set_page_config(page_title="Backtest Queue | TradeLog", page_icon="📈", layout="wide")
init_db()
inject_custom_css()
user = require_auth("backtest")

page_header("Backtest Queue", "Days waiting to be re-run through the algo")

try:
    stats = backtest_queue.queue_stats()
    items = backtest_queue.get_queue()
    base_dates = [d.date for d in get_all_days()]
    compared_dates = [d.date for d in get_compare_days()]
except StoreError as e:
    st.error(f"Failed to load backtest queue: {e}")
    st.stop()

c1, c2, c3, c4 = st.columns(4)
c1.metric("Queued", stats["total"])
c2.metric("Pending", stats["pending"])
c3.metric("Completed", stats["completed"])
c4.metric("High priority", stats["byPriority"]["high"])

# --- Add days ---
st.subheader("Add days")
f1, f2 = st.columns(2)
month = f1.text_input("Month (YYYY-MM)", placeholder="2025-03")
year = f2.text_input("Year (YYYY)", placeholder="2025")
available = backtest_queue.available_dates(base_dates, compared_dates, month or None, year or None)
st.caption(
    f"{available['stats']['filteredCount']} of {available['stats']['totalAvailable']} stored days shown. "
    f"{available['stats']['availableForNewBacktest']} never compared, "
    f"{available['stats']['availableForRetest']} already compared."
)

queued = {i.date for i in items}
choices = [d for d in available["availableDates"] if d not in queued]
picked = st.multiselect(
    "Days", choices,
    format_func=lambda d: f"{d}  (retest)" if d in compared_dates else d,
)
priority = st.radio("Priority", list(BACKTEST_PRIORITIES), index=1, horizontal=True)
if st.button("Add to queue", type="primary", disabled=not picked):
    n = backtest_queue.add_to_queue(picked, priority, user["email"])
    toast_and_rerun(f"Queued {n} days")

st.divider()

# --- Queue ---
st.subheader("Queue")
status_filter = st.radio("Show", ["all", *BACKTEST_STATUSES], horizontal=True)
shown = [i for i in items if status_filter == "all" or i.status == status_filter]
if not shown:
    empty_state("Queue is empty.")
    st.stop()

st.dataframe(
    pd.DataFrame([i.to_dict() for i in shown]).rename(columns={
        "date": "Date", "status": "Status", "priority": "Priority", "addedAt": "Added",
        "addedBy": "By", "completedAt": "Completed", "notes": "Notes",
    }),
    use_container_width=True, hide_index=True,
)

with st.expander("Update a queued day", expanded=True):
    target = st.selectbox("Day", [i.date for i in shown])
    item = next(i for i in shown if i.date == target)
    u1, u2, u3 = st.columns(3)
    if item.status == "pending":
        if u1.button("Mark completed"):
            backtest_queue.update_status(target, "completed")
            toast_and_rerun(f"{target} completed")
    elif u1.button("Mark pending"):
        backtest_queue.update_status(target, "pending")
        toast_and_rerun(f"{target} back to pending")
    new_priority = u2.selectbox("Priority", list(BACKTEST_PRIORITIES),
                                index=list(BACKTEST_PRIORITIES).index(item.priority),
                                key=f"queue_priority_{target}")
    if new_priority != item.priority:
        backtest_queue.update_priority(target, new_priority)
        toast_and_rerun(f"{target} set to {new_priority}")
    if u3.button("Remove from queue"):
        backtest_queue.remove_from_queue([target])
        toast_and_rerun(f"Removed {target}")

    notes = st.text_input("Notes", value=item.notes, key=f"queue_notes_{target}")
    if st.button("Save notes", disabled=notes == item.notes):
        backtest_queue.set_notes(target, notes)
        toast_and_rerun("Notes saved")

if stats["completed"] and st.button("Clear completed"):
    n = backtest_queue.clear_completed()
    toast_and_rerun(f"Cleared {n} completed items from queue")
