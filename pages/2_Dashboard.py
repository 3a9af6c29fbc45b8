"""Dashboard - headline stats, P&L trend, drawdown and weekday breakdown."""

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from analytics.display import format_currency
from analytics.stats import calculate_stats, daily_frame
from analytics.time_range import describe_time_range, filter_days_by_time_range
from auth import require_auth
from config import TIME_RANGES
from db import StoreError, get_all_days, init_db
from ui_theme import COLORS, empty_state, inject_custom_css, page_header, plotly_layout, pnl_color

st.set_page_config(page_title="Dashboard | TradeLog", page_icon="📈", layout="wide")
init_db()
inject_custom_css()
user = require_auth("dashboard")

page_header("Dashboard", "Is the algo holding up?")

with st.sidebar:
    st.subheader("Filters")
    time_range = st.selectbox(
        "Time Range", list(TIME_RANGES), format_func=describe_time_range,
    )

try:
    all_days = get_all_days()
except StoreError as e:
    st.error(f"Failed to load trading logs: {e}")
    st.stop()

days = filter_days_by_time_range(all_days, time_range)
if not days:
    empty_state(f"No trading days in range: {describe_time_range(time_range)}.")
    st.stop()

stats = calculate_stats(days)

# --- KPIs ---
col1, col2, col3, col4 = st.columns(4)
col1.metric("Total P&L", format_currency(stats["totalPnl"]))
col2.metric("Win Rate", f"{stats['winRate']:.1f}%", f"{stats['wins']}W / {stats['losses']}L")
col3.metric("Trades", f"{stats['totalTrades']:,}", f"{stats['averageTrades']:.1f} / day")
col4.metric("Max Drawdown", format_currency(stats["maxDrawdown"]))

col5, col6, col7, col8 = st.columns(4)
col5.metric("Avg P&L / Day", format_currency(stats["averagePnl"]))
col6.metric("Green / Red Days", f"{stats['greenDays']} / {stats['redDays']}")
col7.metric("Best Day", format_currency(stats["bestDay"]["pnl"]), stats["bestDay"]["date"])
col8.metric("Worst Day", format_currency(stats["worstDay"]["pnl"]), stats["worstDay"]["date"])

col9, col10, col11, col12 = st.columns(4)
col9.metric("Avg Win", format_currency(stats["averageWin"]))
col10.metric("Avg Loss", format_currency(stats["averageLoss"]))
col11.metric("W-D-L", stats["winDrawLossBreakdown"]["breakdown"], f"{stats['netWinRate']:.1f}% net")
col12.metric("Big Days", f"{len(stats['maxWinDays'])} / {len(stats['maxLossDays'])}", "wins / losses")

st.divider()

df = daily_frame(days)

# --- P&L trend with cumulative ---
st.subheader("P&L Trend")
fig = go.Figure()
fig.add_trace(go.Bar(
    x=df["date"], y=df["pnl"], name="Daily P&L",
    marker_color=[pnl_color(v) for v in df["pnl"]],
))
fig.add_trace(go.Scatter(
    x=df["date"], y=df["cumulative_pnl"], name="Cumulative",
    mode="lines+markers", yaxis="y2", line=dict(color=COLORS["blue"], width=3),
))
fig.update_layout(**plotly_layout(
    yaxis=dict(title="Daily P&L ($)", gridcolor=COLORS["border"]),
    yaxis2=dict(title="Cumulative P&L ($)", overlaying="y", side="right"),
))
st.plotly_chart(fig, use_container_width=True)

# --- Drawdown ---
st.subheader("Drawdown")
fig = go.Figure(go.Scatter(
    x=df["date"], y=df["drawdown"], fill="tozeroy",
    line=dict(color=COLORS["red"]), name="Drawdown",
))
fig.update_layout(**plotly_layout("compact", yaxis_title="Drawdown ($)"))
st.plotly_chart(fig, use_container_width=True)

# --- Weekday breakdown ---
st.subheader("By Day of Week")
weekday = pd.DataFrame.from_dict(stats["dayOfWeekStats"], orient="index")
weekday = weekday[weekday["totalDays"] > 0]
st.dataframe(
    weekday.rename(columns={
        "totalDays": "Days", "totalTrades": "Trades", "totalPnl": "P&L",
        "averagePnl": "Avg P&L", "wins": "Wins", "losses": "Losses",
        "winRate": "Win Rate", "greenDays": "Green", "redDays": "Red",
    }).style.format({"P&L": "${:,.2f}", "Avg P&L": "${:,.2f}", "Win Rate": "{:.1f}%"}),
    use_container_width=True,
)

# --- Sessions ---
st.subheader("By Session")
sessions = pd.DataFrame.from_dict(stats["sessionStats"], orient="index")
sessions.index = sessions.index.str.title()
st.dataframe(
    sessions.rename(columns={
        "totalDays": "Days", "totalTrades": "Trades", "totalPnl": "P&L",
        "averageTrades": "Avg Trades", "averagePnl": "Avg P&L",
        "winRate": "Green %", "greenDays": "Green", "redDays": "Red",
    }).style.format({"P&L": "${:,.2f}", "Avg P&L": "${:,.2f}", "Green %": "{:.1f}%"}),
    use_container_width=True,
)

# --- Big days ---
big_wins, big_losses = stats["maxWinDays"], stats["maxLossDays"]
if big_wins or big_losses:
    st.subheader("Big Days")
    w, l = st.columns(2)
    with w:
        st.caption("Biggest wins")
        st.dataframe(pd.DataFrame(big_wins), use_container_width=True, hide_index=True)
    with l:
        st.caption("Biggest losses")
        st.dataframe(pd.DataFrame(big_losses), use_container_width=True, hide_index=True)
