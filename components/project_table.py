"""Projects table with local pagination and CSV/JSON/XLSX export."""

import math
import re
from io import BytesIO

import pandas as pd
import streamlit as st

from utils.fields import AWARDED_COLUMN, COLUMN_TITLES, format_status
from utils.formatters import format_cell_value, format_column_name, format_number

PAGE_SIZES = [10, 25, 50, 100, "All"]
DEFAULT_PAGE_SIZE = 25
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def column_title(column: str) -> str:
    return COLUMN_TITLES.get(column, format_column_name(column))


def build_table_frame(rows: pd.DataFrame) -> pd.DataFrame:
    """
    Display copy of the project rows.

    The awarded flag renders as Awarded/Current/Unknown, other cells as text
    with blanks for missing values, and columns get their display titles.
    """
    if rows is None or rows.empty:
        return pd.DataFrame(columns=[column_title(c) for c in (rows.columns if rows is not None else [])])

    table = pd.DataFrame(index=rows.index)
    for column in rows.columns:
        if column == AWARDED_COLUMN:
            table[column_title(column)] = rows[column].map(format_status)
        else:
            table[column_title(column)] = rows[column].map(format_cell_value)
    return table.reset_index(drop=True)


def page_count(total_rows: int, page_size) -> int:
    if page_size == "All" or total_rows == 0:
        return 1
    return math.ceil(total_rows / int(page_size))


def paginate(df: pd.DataFrame, page_size, page: int) -> pd.DataFrame:
    """
    Slice one page out of ``df``.

    Args:
        df: Full table
        page_size: Rows per page, or ``"All"``
        page: 1-based page number, clamped into range

    Returns:
        DataFrame with the rows of that page
    """
    if page_size == "All":
        return df
    pages = page_count(len(df), page_size)
    page = min(max(int(page), 1), pages)
    start = (page - 1) * int(page_size)
    return df.iloc[start:start + int(page_size)]


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")


def to_json_bytes(df: pd.DataFrame) -> bytes:
    return df.to_json(orient="records", indent=2).encode("utf-8")


def to_xlsx_bytes(df: pd.DataFrame, sheet_name: str = "Projects") -> bytes:
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
    buffer.seek(0)
    return buffer.getvalue()


def export_file_stem(title: str) -> str:
    """``Highway Projects Data in Fayette County`` -> ``highway_projects_data_in_fayette_county``."""
    stem = re.sub(r"[^a-z0-9]+", "_", title.lower()).strip("_")
    return stem or "highway_projects"


def render_table(rows: pd.DataFrame, title: str, row_limit: int, key: str = "projects_table"):
    """Draw the table section: title, count caption, pager, grid and export buttons."""
    st.subheader(title)

    table = build_table_frame(rows)
    if table.empty:
        st.info("No project records match this selection.")
        return

    caption = f"{format_number(len(table))} project records"
    if len(table) >= row_limit:
        caption += f" (first {format_number(row_limit)} shown)"
    st.caption(caption)

    size_col, page_col = st.columns([1, 1])
    with size_col:
        page_size = st.selectbox(
            "Rows per page",
            PAGE_SIZES,
            index=PAGE_SIZES.index(DEFAULT_PAGE_SIZE),
            key=f"{key}_page_size",
        )
    with page_col:
        pages = page_count(len(table), page_size)
        page = st.number_input("Page", min_value=1, max_value=pages, value=1, step=1, key=f"{key}_page")

    st.dataframe(paginate(table, page_size, page), hide_index=True, width="stretch")

    stem = export_file_stem(title)
    csv_col, json_col, xlsx_col = st.columns(3)
    with csv_col:
        st.download_button("📥 CSV", data=to_csv_bytes(table), file_name=f"{stem}.csv", mime="text/csv")
    with json_col:
        st.download_button(
            "📥 JSON", data=to_json_bytes(table), file_name=f"{stem}.json", mime="application/json"
        )
    with xlsx_col:
        st.download_button("📥 Excel", data=to_xlsx_bytes(table), file_name=f"{stem}.xlsx", mime=XLSX_MIME)
