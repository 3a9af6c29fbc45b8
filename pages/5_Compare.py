"""Compare - upload a re-run of a stored day, review the difference, merge it in."""

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from analytics.compare import (
    calculate_comparison_stats, compare_trading_logs, has_differences, notes_summary,
    tag_summary, unverified,
)
from analytics.display import format_currency
from auth import require_auth
from config import TAG_IMPACTS
from db import StoreError, get_all_days, get_day, init_db
from journal.compare_store import (
    add_compare_log, add_compare_notes, assign_compare_tag, delete_compare_day,
    delete_replaced_compare, get_compare_days, get_replaced_compares, merge_compare_to_base,
    merge_week_to_base, remove_compare_tag, set_compare_verified, verify_week,
)
from journal.tag_store import delete_tag, get_tags, recalculate_tag_usage, save_tag
from models import AnalysisRecord
from parsers import LogParseError, build_day_record
from ui_theme import (
    COLORS, badge, colored_metric, empty_state, inject_custom_css, page_header, plotly_layout,
    pnl_color, toast_and_rerun,
)

st.set_page_config(page_title="Compare | TradeLog", page_icon="📈", layout="wide")
init_db()
inject_custom_css()
user = require_auth("compare")

page_header("Compare Runs", "Re-run a stored day through the algo and review what changed")

# --- Upload a compare log ---
with st.expander("Upload compare log", expanded=False):
    compare_text = st.text_area("Compare log data", height=180, key="compare_log_text",
                                placeholder="Paste the re-run log here...")
    if st.button("Upload compare log", type="primary", disabled=not compare_text.strip()):
        try:
            record = build_day_record(compare_text)
            _, replaced = add_compare_log(record)
        except LogParseError as e:
            st.error(f"Could not parse log: {e}")
        except (ValueError, StoreError) as e:
            st.error(f"Failed to save compare log: {e}")
        else:
            suffix = " (replaced the earlier run)" if replaced else ""
            toast_and_rerun(f"Compare log stored for {record.date}{suffix}")

try:
    compare_days = get_compare_days()
    base_days = get_all_days()
    tags = get_tags()
except StoreError as e:
    st.error(f"Failed to load compare data: {e}")
    st.stop()

tag_names = {t.id: t.name for t in tags}
tag_colors = {t.id: t.color for t in tags}

tab_review, tab_stats, tab_notes, tab_tags, tab_replaced = st.tabs(
    ["Review", "Stats", "Notes", "Tags", "Replaced"]
)

# --- Review one compared day ---
with tab_review:
    if not compare_days:
        empty_state("No compare logs yet. Upload a re-run above.")
    else:
        pending = len(unverified(compare_days))
        st.caption(f"{len(compare_days)} compared days, {pending} awaiting review")
        labels = {
            d.date: f"{d.date}  {'✓' if d.verified else '•'}  {format_currency(d.analysis.headline.total_pnl)}"
            for d in compare_days
        }
        selected = st.selectbox("Compared day", list(labels), format_func=labels.get)
        day = next(d for d in compare_days if d.date == selected)
        base = get_day(selected)
        base_analysis = base.analysis if base else AnalysisRecord()
        diff = compare_trading_logs(base_analysis, day.analysis)

        bh, ch = base_analysis.headline, day.analysis.headline
        c1, c2, c3 = st.columns(3)
        with c1:
            colored_metric("Base P&L", format_currency(bh.total_pnl), pnl_color(bh.total_pnl or 0),
                           delta=f"{bh.total_trades or 0} trades")
        with c2:
            colored_metric("Compare P&L", format_currency(ch.total_pnl), pnl_color(ch.total_pnl or 0),
                           delta=f"{ch.total_trades or 0} trades")
        with c3:
            delta = (ch.total_pnl or 0) - (bh.total_pnl or 0)
            colored_metric("Difference", format_currency(delta), pnl_color(delta))

        if base is None:
            st.info("No base day stored for this date; merging will create it.")
        if not has_differences(diff):
            st.success("The re-run matches the stored day.")
        else:
            trades = diff["trades"]
            if diff["dailyStats"]:
                st.markdown("**Headline changes**")
                st.dataframe(pd.DataFrame(diff["dailyStats"]), use_container_width=True, hide_index=True)
            for label, rows in (("Added trades", trades["added"]), ("Removed trades", trades["removed"])):
                if rows:
                    st.markdown(f"**{label}**")
                    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
            if trades["modified"]:
                st.markdown("**Modified trades**")
                st.dataframe(pd.DataFrame([
                    {"id": m["trade"]["id"], **{c["field"]: f"{c['oldValue']} → {c['newValue']}" for c in m["changes"]}}
                    for m in trades["modified"]
                ]), use_container_width=True, hide_index=True)

        st.divider()
        review_col, tag_col = st.columns(2)

        with review_col:
            st.markdown("**Review**")
            if day.verified:
                st.caption(f"Verified by {day.verified_by or 'unknown'} at {day.verified_at[:16]}")
            verify_label = "Mark unverified" if day.verified else "Mark verified"
            if st.button(verify_label, key="verify_day"):
                set_compare_verified(selected, not day.verified, user["email"])
                toast_and_rerun(f"{selected} {'unverified' if day.verified else 'verified'}")
            if st.button("Verify whole week", key="verify_week"):
                n = verify_week(selected, user["email"])
                toast_and_rerun(f"Verified {n} compared days")

            notes = st.text_area("Review notes", value=day.notes, key=f"compare_notes_{selected}")
            if st.button("Save notes", disabled=notes == day.notes):
                add_compare_notes(selected, notes)
                toast_and_rerun("Notes saved")

        with tag_col:
            st.markdown("**Tags**")
            if day.tag_assignments:
                st.markdown(" ".join(
                    badge(f"{tag_names.get(a.tag_id, a.tag_id)} ({a.impact})",
                          tag_colors.get(a.tag_id, COLORS["blue"]))
                    for a in day.tag_assignments
                ), unsafe_allow_html=True)
            if tags:
                tag_id = st.selectbox("Tag", list(tag_names), format_func=tag_names.get, key="assign_tag")
                impact = st.radio("Impact", TAG_IMPACTS, horizontal=True, key="assign_impact")
                a1, a2 = st.columns(2)
                if a1.button("Assign tag"):
                    assign_compare_tag(selected, tag_id, impact)
                    toast_and_rerun(f"Tagged {selected} as {tag_names[tag_id]}")
                if a2.button("Remove tag", disabled=not any(a.tag_id == tag_id for a in day.tag_assignments)):
                    remove_compare_tag(selected, tag_id)
                    toast_and_rerun(f"Removed {tag_names[tag_id]} from {selected}")
            else:
                st.caption("Create tags in the Tags tab first.")

        st.divider()
        st.markdown("**Merge into base**")
        trade_ids = [t.id for t in day.analysis.trades]
        chosen = st.multiselect("Trades to merge", trade_ids, key="merge_trades")
        take_headline = st.checkbox("Take the compare headline and sessions", key="merge_headline")
        m1, m2, m3, m4 = st.columns(4)
        if m1.button("Merge all", type="primary"):
            merge_compare_to_base(selected, user_id=user["id"])
            toast_and_rerun(f"Merged {selected} into base")
        if m2.button("Merge selected", disabled=not (chosen or take_headline)):
            merge_compare_to_base(selected, merge_all=False, merge_trade_ids=chosen,
                                  merge_daily_stats=take_headline, user_id=user["id"])
            toast_and_rerun(f"Merged selection for {selected}")
        if m3.button("Merge week"):
            n = merge_week_to_base(selected, user_id=user["id"])
            toast_and_rerun(f"Merged {n} compared days")
        if m4.button("Delete compare log"):
            delete_compare_day(selected)
            toast_and_rerun(f"Deleted compare log {selected}")

# --- Stats across compared weeks ---
with tab_stats:
    only_unverified = st.toggle("Unverified only", key="stats_unverified")
    scope = unverified(compare_days) if only_unverified else compare_days
    if not scope:
        empty_state("Nothing to compare yet.")
    else:
        dates = {d.date for d in scope}
        stats = calculate_comparison_stats(scope, [d for d in base_days if d.date in dates])
        s1, s2, s3, s4 = st.columns(4)
        with s1:
            colored_metric("P&L difference", format_currency(stats["totalPnlDiff"]), pnl_color(stats["totalPnlDiff"]),
                           delta=f"{stats['totalWeeks']} weeks")
        with s2:
            colored_metric("Avg per week", format_currency(stats["avgPnlDiffPerWeek"]),
                           pnl_color(stats["avgPnlDiffPerWeek"]))
        with s3:
            colored_metric("Win rate", f"{stats['compareWinRate']:.1f}%",
                           pnl_color(stats["winRateDiff"]), delta=f"base {stats['baseWinRate']:.1f}%")
        with s4:
            colored_metric("Per trade", format_currency(stats["pnlDiffPerTrade"]), pnl_color(stats["pnlDiffPerTrade"]))

        st.caption(
            f"Compare W-D-L {stats['compareWinDrawLoss']['breakdown']} vs base "
            f"{stats['baseWinDrawLoss']['breakdown']}"
        )
        bands = list(stats["comparePnlDistribution"])
        fig = go.Figure()
        fig.add_trace(go.Bar(x=bands, y=[stats["basePnlDistribution"][b] for b in bands], name="Base",
                             marker_color=COLORS["border"]))
        fig.add_trace(go.Bar(x=bands, y=[stats["comparePnlDistribution"][b] for b in bands], name="Compare",
                             marker_color=COLORS["blue"]))
        fig.update_layout(**plotly_layout("compact", barmode="group", yaxis_title="Days"))
        st.plotly_chart(fig, use_container_width=True)

# --- Notes and tags across compared days ---
with tab_notes:
    rows = notes_summary(compare_days, base_days)
    if rows:
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    else:
        empty_state("No review notes yet.")

with tab_tags:
    tag_filter = st.selectbox("Filter", ["all"] + list(tag_names),
                              format_func=lambda t: "All tags" if t == "all" else tag_names[t])
    rows = tag_summary(compare_days, base_days, tag_filter)
    if rows:
        st.dataframe(pd.DataFrame([
            {**r, "tagAssignments": ", ".join(
                f"{tag_names.get(a['tagId'], a['tagId'])} ({a['impact']})" for a in r["tagAssignments"])}
            for r in rows
        ]), use_container_width=True, hide_index=True)
    else:
        empty_state("No tagged days.")

    st.divider()
    st.markdown("**Manage tags**")
    if tags:
        st.dataframe(pd.DataFrame([t.to_dict() for t in tags]), use_container_width=True, hide_index=True)
    with st.form("new_tag", clear_on_submit=True):
        name = st.text_input("Name")
        description = st.text_input("Description")
        if st.form_submit_button("Create tag"):
            try:
                tag = save_tag(name, description)
            except ValueError as e:
                st.error(str(e))
            else:
                toast_and_rerun(f"Created tag {tag.name}")
    if tags:
        t1, t2 = st.columns(2)
        doomed = t1.selectbox("Delete tag", list(tag_names), format_func=tag_names.get, key="delete_tag")
        if t1.button("Delete"):
            delete_tag(doomed)
            toast_and_rerun(f"Deleted tag {tag_names[doomed]}")
        if t2.button("Recalculate usage counts"):
            recalculate_tag_usage()
            toast_and_rerun("Tag usage recounted")

# --- Earlier runs that were replaced ---
with tab_replaced:
    replaced = get_replaced_compares()
    if not replaced:
        empty_state("No replaced compare logs.")
    for item in replaced:
        h = item.analysis.headline
        with st.expander(f"{item.date}  {format_currency(h.total_pnl)}  (replaced {item.replaced_at[:10]})"):
            st.caption(item.replaced_reason)
            st.dataframe(pd.DataFrame([t.to_dict() for t in item.analysis.trades]),
                         use_container_width=True, hide_index=True)
            if st.button("Delete", key=f"delete_replaced_{item.date}"):
                delete_replaced_compare(item.date)
                toast_and_rerun(f"Deleted replaced log {item.date}")
