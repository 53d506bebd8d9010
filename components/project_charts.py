"""Altair charts for the awarded/current split and projects per plan year."""

import altair as alt
import pandas as pd
import streamlit as st

from utils.aggregation import AggregateResult
from utils.formatters import format_number, format_percentage, share_of

STATUS_COLORS = alt.Scale(domain=["Awarded", "Current"], range=["#0000ff", "#008000"])


def build_status_frame(awarded: int, current: int) -> pd.DataFrame:
    """One row per status with count, percentage and a ``label`` for tooltips."""
    total = awarded + current
    rows = []
    for status, count in (("Awarded", awarded), ("Current", current)):
        pct = share_of(count, total)
        rows.append({
            "status": status,
            "count": count,
            "percentage": pct if pct is not None else 0.0,
            "label": f"{status}: {format_number(count)} ({format_percentage(pct)})",
        })
    return pd.DataFrame(rows)


def build_year_frame(years: list[tuple[int, int]]) -> pd.DataFrame:
    """Plan-year series as a frame, ascending by year."""
    df = pd.DataFrame(years, columns=["year", "count"])
    return df.sort_values("year").reset_index(drop=True)


def create_status_chart(df: pd.DataFrame) -> alt.Chart:
    return alt.Chart(df).mark_arc(innerRadius=0).encode(
        theta=alt.Theta("count:Q"),
        color=alt.Color("status:N", title=None, scale=STATUS_COLORS),
        tooltip=[
            alt.Tooltip("status:N", title="Status"),
            alt.Tooltip("count:Q", title="Projects", format=","),
            alt.Tooltip("percentage:Q", title="Share", format=".1f"),
        ],
    ).properties(
        title="Awarded vs Current Projects",
        height=280,
    ).configure_title(
        fontSize=14,
        anchor="start",
    ).configure_legend(
        orient="bottom",
        labelFontSize=11,
    )


def create_year_chart(df: pd.DataFrame) -> alt.Chart:
    return alt.Chart(df).mark_bar(color="#3c5e49").encode(
        y=alt.Y("year:O", title="Plan Year", sort="ascending"),
        x=alt.X("count:Q", title="Projects", axis=alt.Axis(format=",d")),
        tooltip=[
            alt.Tooltip("year:O", title="Plan Year"),
            alt.Tooltip("count:Q", title="Projects", format=","),
        ],
    ).properties(
        title="Projects by Plan Year",
        height=max(160, 28 * len(df)),
    ).configure_axis(
        labelFontSize=11,
        titleFontSize=12,
    ).configure_title(
        fontSize=14,
        anchor="start",
    )


def render_charts(result: AggregateResult, panel_title: str):
    """Draw the projects panel: headline counts plus both charts."""
    st.subheader(panel_title)

    total_col, awarded_col, current_col = st.columns(3)
    total_col.metric("Total Projects", format_number(result.total))
    awarded_col.metric("Awarded", format_number(result.awarded))
    current_col.metric("Current", format_number(result.current))

    pie_col, bar_col = st.columns(2)
    with pie_col:
        if result.total == 0:
            st.info("No project data available for this selection.")
        else:
            st.altair_chart(create_status_chart(build_status_frame(result.awarded, result.current)), width="stretch")
    with bar_col:
        if not result.years:
            st.info("No yearly data available for this selection.")
        else:
            st.altair_chart(create_year_chart(build_year_frame(result.years)), width="stretch")
