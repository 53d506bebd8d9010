import json
from io import BytesIO

import pandas as pd
from openpyxl import load_workbook

from components.project_table import (
    build_table_frame,
    export_file_stem,
    page_count,
    paginate,
    to_csv_bytes,
    to_json_bytes,
    to_xlsx_bytes,
)


def _rows():
    return pd.DataFrame({
        "DISTRICT": ["District 07", "District 05"],
        "COUNTY": ["Fayette", "Jefferson"],
        "RSY_YEAR": [2023, 2024],
        "AWARDED": ["YES", None],
        "BRIDGE_ID": [None, "056B00001N"],
        "EXTRA_NOTES": ["a", "b"],
    })


def test_build_table_frame_titles_and_status():
    table = build_table_frame(_rows())

    assert list(table.columns) == ["District", "County", "Plan Year", "Status", "Bridge ID", "Extra Notes"]
    assert list(table["Status"]) == ["Awarded", "Unknown"]
    assert list(table["Plan Year"]) == ["2023", "2024"]
    assert list(table["Bridge ID"]) == ["", "056B00001N"]


def test_build_table_frame_empty():
    assert build_table_frame(pd.DataFrame()).empty
    assert build_table_frame(None).empty


def test_paginate():
    df = pd.DataFrame({"n": range(23)})

    assert page_count(len(df), 10) == 3
    assert list(paginate(df, 10, 3)["n"]) == [20, 21, 22]
    assert list(paginate(df, 10, 99)["n"]) == [20, 21, 22]
    assert list(paginate(df, 10, 0)["n"]) == list(range(10))
    assert len(paginate(df, "All", 1)) == 23
    assert page_count(0, 25) == 1


def test_exports_include_all_columns():
    table = build_table_frame(_rows())

    csv_text = to_csv_bytes(table).decode("utf-8")
    assert csv_text.splitlines()[0] == "District,County,Plan Year,Status,Bridge ID,Extra Notes"

    records = json.loads(to_json_bytes(table))
    assert records[0]["County"] == "Fayette"
    assert records[1]["Status"] == "Unknown"

    workbook = load_workbook(BytesIO(to_xlsx_bytes(table)))
    sheet = workbook["Projects"]
    assert [cell.value for cell in sheet[1]] == list(table.columns)
    assert sheet.max_row == 3


def test_export_file_stem():
    assert export_file_stem("Highway Projects Data in Fayette County") == "highway_projects_data_in_fayette_county"
    assert export_file_stem("Highway Projects Data (Bridge Replacement)") == "highway_projects_data_bridge_replacement"
    assert export_file_stem("!!!") == "highway_projects"
