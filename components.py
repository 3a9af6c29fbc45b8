"""Quarterly / weekly / daily log accordions.

Each accordion keeps its open section in an AccordionState owned by the
calling page. Notes edits are reported upward through ``on_notes_change``;
persisting them is the caller's business.
"""

from __future__ import annotations

from typing import Callable, Optional

import streamlit as st

from analytics.display import format_currency, win_rate
from analytics.quarters import quarter_key
from models import DayRecord, MonthLog, QuarterData, WeekLog
from ui_theme import COLORS, badge, pnl_color, pnl_shade, win_rate_color
from view_state import AccordionState

NotesCallback = Optional[Callable[[str, str], None]]


def _headline_badges(h, n_children: int = 0, child_label: str = "") -> str:
    parts = [
        badge(format_currency(h.total_pnl), pnl_color(h.total_pnl or 0)),
        badge(f"{h.wins or 0}W / {h.losses or 0}L"),
        badge(f"{h.total_trades or 0} trades"),
        badge(f"{win_rate(h.wins, h.losses):.1f}% WR", win_rate_color(h.wins, h.losses)),
    ]
    if child_label:
        parts.append(badge(f"{n_children} {child_label}"))
    return " ".join(parts)


def _section_header(title: str, badges_html: str, key: str, state: AccordionState, button_key: str):
    col_title, col_btn = st.columns([6, 1])
    with col_title:
        st.markdown(f"**{title}**<br>{badges_html}", unsafe_allow_html=True)
    with col_btn:
        label = "Hide" if state.is_open(key) else "Show"
        if st.button(label, key=button_key, use_container_width=True):
            state.toggle(key)
            st.rerun()


def render_day_card(day: DayRecord, state: AccordionState, on_notes_change: NotesCallback = None):
    h = day.analysis.headline
    color = pnl_shade(h.total_pnl or 0)
    st.markdown(f"""
    <div class='tl-card' style='border-left-color:{color}'>
        <div style='font-weight:600'>{day.date}</div>
        <div>Total Trades: {h.total_trades or 0}</div>
        <div>Win Rate: {h.wins or 0} / {h.total_trades or 0} ({win_rate(h.wins, h.losses):.1f}%)</div>
        <div>Total PnL: <span style='color:{color};font-weight:600'>{format_currency(h.total_pnl)}</span></div>
        <div style='color:{COLORS["text_muted"]}'>Big Wins: {h.big_wins or 0} | Big Losses: {h.big_losses or 0}</div>
    </div>
    """, unsafe_allow_html=True)

    current = state.note_for(day.date)
    text = st.text_area(
        "Notes", value=current, key=f"note_{day.date}", height=80,
        disabled=on_notes_change is None, label_visibility="collapsed",
        placeholder="Notes for this day...",
    )
    if on_notes_change is not None and text != current:
        state.set_note(day.date, text)
        on_notes_change(day.date, text)


def render_days_grid(days: list[DayRecord], state: AccordionState, on_notes_change: NotesCallback = None):
    cols = st.columns(3)
    for i, day in enumerate(days):
        with cols[i % 3]:
            render_day_card(day, state, on_notes_change)


def render_weekly_log(weeks: list[WeekLog], state: AccordionState, on_notes_change: NotesCallback = None):
    for week in weeks:
        _section_header(
            f"Week of {week.week_start} - {week.week_end}",
            _headline_badges(week.week_headline, len(week.days), "days"),
            week.week_start, state, f"week_{week.week_start}",
        )
        if state.is_open(week.week_start):
            render_days_grid(week.days, state, on_notes_change)
        st.divider()


def render_quarterly_log(
    quarters: list[QuarterData],
    quarter_state: AccordionState,
    week_state: AccordionState,
    on_notes_change: NotesCallback = None,
):
    """One section per quarter; the open quarter shows its weekly accordion."""
    for q in quarters:
        key = quarter_key(q)
        _section_header(
            key,
            _headline_badges(q.quarter_headline, len(q.weeks), "weeks"),
            key, quarter_state, f"quarter_{key}",
        )
        if quarter_state.is_open(key):
            with st.container(border=True):
                render_weekly_log(q.weeks, week_state, on_notes_change)


def render_monthly_log(months: list[MonthLog], state: AccordionState, on_notes_change: NotesCallback = None):
    for m in months:
        _section_header(
            m.month,
            _headline_badges(m.month_headline, len(m.days), "days"),
            m.month, state, f"month_{m.month}",
        )
        if state.is_open(m.month):
            render_days_grid(m.days, state, on_notes_change)
        st.divider()
