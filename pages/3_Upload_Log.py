"""Upload Log - paste or upload a daily algo log, preview, confirm import."""

from datetime import date

import pandas as pd
import streamlit as st

from analytics.display import format_currency, win_rate
from auth import require_auth
from db import StoreError, get_day, init_db, record_upload
from parsers import LogParseError, build_day_record
from ui_theme import inject_custom_css, page_header

st.set_page_config(page_title="Upload Log | TradeLog", page_icon="📈", layout="wide")
init_db()
inject_custom_css()
user = require_auth("upload")

page_header("Upload Trading Log", "One day per log. Uploading a day again replaces it.")

source = st.radio("Source", ["Paste text", "Upload file"], horizontal=True)

log_text = ""
if source == "Paste text":
    log_text = st.text_area(
        "Log data", height=240, placeholder="Paste your trading log data here...",
    )
else:
    uploaded = st.file_uploader("Choose a log file", type=["txt", "log"])
    if uploaded:
        log_text = uploaded.getvalue().decode("utf-8", errors="replace")

if not log_text.strip():
    st.info("Paste a log or choose a file to get started.")
    st.stop()

try:
    record = build_day_record(log_text)
except LogParseError as e:
    st.toast(f"Could not parse log: {e}")
    st.error(f"Could not parse log: {e}")
    st.stop()

# --- Preview ---
h = record.analysis.headline
trade_date = st.date_input("Trading date", value=date.fromisoformat(record.date))
record.date = trade_date.isoformat()

col1, col2, col3, col4 = st.columns(4)
col1.metric("Total P&L", format_currency(h.total_pnl))
col2.metric("Trades", h.total_trades)
col3.metric("Win Rate", f"{win_rate(h.wins, h.losses):.1f}%", f"{h.wins}W / {h.losses}L")
col4.metric("Big Wins / Losses", f"{h.big_wins} / {h.big_losses}")

st.subheader("Sessions")
sessions_df = pd.DataFrame([
    {"Session": name.title(), "P&L": s.pnl, "Trades": s.trades, "Avg P&L / Trade": s.avg_pnl_per_trade}
    for name, s in record.analysis.sessions.items()
])
st.dataframe(
    sessions_df.style.format({"P&L": "${:,.2f}", "Avg P&L / Trade": "${:,.2f}"}),
    use_container_width=True, hide_index=True,
)

if record.analysis.trades:
    st.subheader(f"Trades ({len(record.analysis.trades)})")
    trades_df = pd.DataFrame([t.to_dict() for t in record.analysis.trades])
    st.dataframe(
        trades_df.style.format({"entryPrice": "{:,.2f}", "exitPrice": "{:,.2f}", "pnl": "${:,.2f}"}),
        use_container_width=True, hide_index=True, height=320,
    )

existing = get_day(record.date)
if existing:
    st.warning(
        f"{record.date} is already stored "
        f"({format_currency(existing.analysis.headline.total_pnl)}). Importing will replace it."
    )

if st.button("Confirm Import", type="primary"):
    try:
        record_upload(record, user["id"])
    except StoreError as e:
        st.toast(f"Failed to save log: {e}")
        st.error(f"Failed to save log: {e}")
    else:
        st.toast("Trading log data has been processed successfully.")
        st.success(f"Imported {record.date}: {h.total_trades} trades, {format_currency(h.total_pnl)}.")
