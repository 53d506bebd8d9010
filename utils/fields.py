"""
Canonical field names for query results and GeoJSON feature properties.

The snapshot's pre-aggregated views and the fallback queries do not agree on
column spelling (``YEAR`` vs ``RSY_YEAR`` vs ``year``), and the published
GeoJSON files use long service-prefixed property names. Everything passes
through this module right after it is read so callers only ever see the
canonical names below.
"""

import logging
import re

import pandas as pd

logger = logging.getLogger(__name__)

# Canonical query-result fields
YEAR = "year"
COUNT = "count"
AWARDED = "awarded"
CURRENT = "current"

RESULT_ALIASES = {
    YEAR: ("RSY_YEAR", "YEAR", "Year", "year", "RSY_Year", "rsy_year"),
    COUNT: (
        "total_projects", "record_count", "RECORD_COUNT", "count", "Count",
        "COUNT", "project_count", "projects", "ProjectCount", "projectcount",
    ),
    AWARDED: ("Awarded", "awarded", "AWARDED"),
    CURRENT: ("Current", "current", "CURRENT"),
}

# Base-table columns of Basic_Project_Info
DISTRICT_COLUMN = "DISTRICT"
COUNTY_COLUMN = "COUNTY"
YEAR_COLUMN = "RSY_YEAR"
TYPE_WORK_COLUMN = "TYPE_WORK"
AWARDED_COLUMN = "AWARDED"

AWARDED_VALUES = ("YES", "Y", "1", "TRUE")
NOT_AWARDED_VALUES = ("NO", "N", "0", "FALSE")

# Canonical GeoJSON project-line properties
_PLAN = "KYTCDynamic_HighwaysDBOTED_CHIPS_ACTIVEPLAN"
FEATURE_ALIASES = {
    "project_id": (f"{_PLAN}DIST_ITEM", "KYTCDynamic_HighwaysDBOProject_Locations_LineIdentifier", "ITEM_NO"),
    "description": (f"{_PLAN}SYP_RPT_DESC", "DESCRIPTION"),
    "location": (f"{_PLAN}LOCUNIQUE", "ROUTE"),
    "county": (f"{_PLAN}COUNTYNAME", "COUNTY"),
    "plan_year": (f"{_PLAN}PLANYEAR", "RSY_YEAR"),
    "type_work": (f"{_PLAN}SYP_RPT_TYPEWORK", "TYPE_WORK", "type_work", "project_type", "PROJECT_TYPE"),
    "route_unique_id": (f"{_PLAN}RT_NE_UNIQUE", "RT_NE_UNIQUE"),
    "begin_mp": (f"{_PLAN}BMP", "BMP"),
    "end_mp": (f"{_PLAN}EMP", "EMP"),
}

COUNTY_NAME_PROPERTIES = ("COUNTY", "NAME", "COUNTY_NAME")
DISTRICT_NUMBER_PROPERTIES = ("DISTNBR", "DISTRICT", "NUMBER")

# Column display configuration for the projects table
COLUMN_TITLES = {
    "DISTRICT": "District",
    "COUNTY": "County",
    "SYP_NO": "SYP No",
    "ROUTE": "Route",
    "TYPE_WORK": "Type Work",
    "BMP": "BMP",
    "EMP": "EMP",
    "DESCRIPTION": "Description",
    "BRIDGE_ID": "Bridge ID",
    "RSY_YEAR": "Plan Year",
    "AWARDED": "Status",
}


def _is_missing(value) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def pick(mapping: dict, aliases):
    """Return the first non-missing value among ``aliases`` in ``mapping``."""
    for name in aliases:
        if name in mapping and not _is_missing(mapping[name]) and mapping[name] != "":
            return mapping[name]
    return None


def canonicalize_record(record: dict) -> dict:
    """Map any accepted spelling of the aggregate fields to its canonical name."""
    return {field: pick(record, aliases) for field, aliases in RESULT_ALIASES.items()}


def canonicalize_frame(df: pd.DataFrame) -> list[dict]:
    """Canonicalize every row of a query result."""
    if df is None or df.empty:
        return []
    return [canonicalize_record(row) for row in df.to_dict("records")]


def to_int(value, default: int | None = 0) -> int | None:
    """Coerce numpy/str/float values to a Python int."""
    if _is_missing(value) or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def canonicalize_feature_properties(properties: dict | None) -> dict:
    """Return the canonical project-line properties of one GeoJSON feature."""
    properties = properties or {}
    return {field: pick(properties, aliases) for field, aliases in FEATURE_ALIASES.items()}


def is_awarded(value) -> bool:
    """True for the same flag values ``AWARDED_PREDICATE`` matches in SQL."""
    if _is_missing(value):
        return False
    return str(value).strip().upper() in AWARDED_VALUES


def format_status(value) -> str:
    if is_awarded(value):
        return "Awarded"
    if _is_missing(value):
        return "Unknown"
    if str(value).strip().upper() in NOT_AWARDED_VALUES:
        return "Current"
    return "Unknown"


def district_label(number: int) -> str:
    """District value as stored in the snapshot, e.g. ``District 07``."""
    return f"District {int(number):02d}"


def parse_district_number(value) -> int | None:
    """Extract a district number from ``7``, ``"07"``, ``"District 07"`` and similar."""
    if _is_missing(value):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    match = re.search(r"(\d+)", str(value))
    return int(match.group(1)) if match else None


def normalize_district_key(value) -> str | None:
    number = parse_district_number(value)
    return str(number) if number is not None else None
