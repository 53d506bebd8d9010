"""Shared formatting helper functions for display values."""

import pandas as pd


def format_percentage(value, decimals=1) -> str:
    """Format a numeric value as percentage."""
    if value is None or pd.isna(value):
        return "N/A"
    try:
        return f"{value:.{decimals}f}%"
    except (ValueError, TypeError):
        return "N/A"


def format_number(value, decimals=0) -> str:
    """Format a numeric value with commas."""
    if value is None or pd.isna(value):
        return "N/A"
    try:
        if decimals == 0:
            return f"{value:,.0f}"
        else:
            return f"{value:,.{decimals}f}"
    except (ValueError, TypeError):
        return "N/A"


def share_of(part, total) -> float | None:
    """Percentage of ``part`` in ``total``; None when the total is zero."""
    if not total:
        return None
    return part / total * 100


def format_column_name(name: str) -> str:
    """``TYPE_WORK`` -> ``Type Work``."""
    return " ".join(word.capitalize() for word in str(name).replace("_", " ").split())


def format_cell_value(value) -> str:
    """Display text for one table cell; missing values render blank."""
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_milepoint(value) -> str:
    """Milepoints to three decimals, as posted on route logs."""
    if value is None or pd.isna(value):
        return "N/A"
    try:
        return f"{float(value):.3f}"
    except (ValueError, TypeError):
        return "N/A"
