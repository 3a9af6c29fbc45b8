"""Admin - stored days, JSON backup download/restore, reset."""

import json
from datetime import date

import streamlit as st

from auth import require_auth
from db import (
    StoreError, clear_all_days, delete_daily_log, export_backup,
    get_daily_log_summary, import_backup, init_db,
)
from ui_theme import empty_state, inject_custom_css, page_header, toast_and_rerun

st.set_page_config(page_title="Admin | TradeLog", page_icon="📈", layout="wide")
init_db()
inject_custom_css()
user = require_auth("admin")

page_header("Admin", "Backups and housekeeping")

# --- Stored days ---
st.subheader("Stored Days")
summary = get_daily_log_summary()
if summary.empty:
    empty_state("No days stored yet.")
else:
    st.dataframe(
        summary.rename(columns={
            "date": "Date", "total_pnl": "P&L", "total_trades": "Trades",
            "wins": "Wins", "losses": "Losses", "added_at": "Added", "added_by": "By",
        }).style.format({"P&L": "${:,.2f}"}),
        use_container_width=True, hide_index=True,
    )

    with st.expander("Delete a day"):
        selected = st.selectbox("Day", summary["date"].tolist())
        if st.button("Delete", type="secondary"):
            delete_daily_log(selected)
            toast_and_rerun(f"Deleted {selected}.")

st.divider()

# --- Backup ---
st.subheader("Backup")
st.download_button(
    "Download backup (JSON)",
    data=json.dumps(export_backup(), indent=2),
    file_name=f"tradelog-backup-{date.today().isoformat()}.json",
    mime="application/json",
)

restore = st.file_uploader("Restore from backup", type=["json"])
if restore and st.button("Restore", type="primary"):
    try:
        n_days, n_notes = import_backup(json.loads(restore.getvalue()), user["id"])
    except (ValueError, StoreError) as e:
        st.error(f"Restore failed: {e}")
    else:
        st.success(f"Restored {n_days} days and {n_notes} notes.")

st.divider()

# --- Reset ---
with st.expander("Danger zone"):
    confirm = st.checkbox("I understand this deletes every stored day")
    if st.button("Clear all days", disabled=not confirm):
        removed = clear_all_days()
        toast_and_rerun(f"Removed {removed} days.")
