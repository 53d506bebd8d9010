"""Titles, map styling and the view model the dashboard page renders."""

import copy
import html
import logging
from dataclasses import dataclass, field
from typing import Callable

from utils.aggregation import AggregateResult
from utils.fields import canonicalize_feature_properties
from utils.filters import FilterKind, FilterState
from utils.spatial import BoundingBox

logger = logging.getLogger(__name__)

PANEL_TITLE = "Projects"
TABLE_TITLE = "Highway Projects Data"

FULL_OPACITY = 0.8
DIMMED_OPACITY = 0.3


def _location_suffix(district=None, county=None) -> str:
    suffix = ""
    if district:
        suffix += f" in District {district}"
    if county:
        suffix += f" in {county} County"
    return suffix


def compose_panel_title(district=None, county=None) -> str:
    """Projects panel title. Project type is left out of this one."""
    return PANEL_TITLE + _location_suffix(district, county)


def compose_table_title(district=None, county=None, project_type=None) -> str:
    title = TABLE_TITLE + _location_suffix(district, county)
    if project_type:
        title += f" ({project_type})"
    return title


def titles_for(state: FilterState, lookup_display_name: Callable[[str], str]) -> tuple[str, str]:
    """
    Derive (panel title, table title) for a filter state.

    Args:
        state: Active filter
        lookup_display_name: Resolves a project-type category to its label

    Returns:
        Tuple of (panel title, table title)
    """
    display_name = None
    if state.kind is FilterKind.PROJECT_TYPE:
        display_name = lookup_display_name(state.value) or state.value
    return (
        compose_panel_title(state.district_number, state.county_name),
        compose_table_title(state.district_number, state.county_name, display_name),
    )


def style_project_features(
    feature_collection: dict | None,
    state: FilterState,
    categories: dict[str, str],
) -> dict:
    """
    Restyle project lines for the active filter.

    A project-type filter keeps every line on the map and dims the ones whose
    work type does not map to the selected category. Other filters leave all
    lines at full opacity.

    Args:
        feature_collection: Project lines (GeoJSON FeatureCollection)
        state: Active filter
        categories: Crosswalk mapping raw work type -> category

    Returns:
        New FeatureCollection with a ``lineOpacity`` property on each feature
    """
    styled = {"type": "FeatureCollection", "features": []}
    if not feature_collection:
        return styled

    selected = state.project_type_category
    matches = 0
    for feature in feature_collection.get("features", []):
        feature = copy.copy(feature)
        props = dict(feature.get("properties") or {})
        opacity = FULL_OPACITY
        if selected is not None:
            raw_type = canonicalize_feature_properties(props)["type_work"]
            if raw_type is not None and categories.get(str(raw_type)) == selected:
                matches += 1
            else:
                opacity = DIMMED_OPACITY
        props["lineOpacity"] = opacity
        feature["properties"] = props
        styled["features"].append(feature)

    if selected is not None:
        logger.debug("Project type %s: %d of %d lines highlighted", selected, matches, len(styled["features"]))
    return styled


def project_popup_html(props: dict, status: str) -> str:
    """Hover popup markup for one project line. Property values are HTML-escaped."""

    def text(name, default="N/A"):
        value = props.get(name)
        return html.escape(str(value)) if value not in (None, "") else default

    return (
        f"<b>{text('project_id', 'Project')}</b> ({html.escape(status)})<br/>"
        f"{text('description', '')}<br/>"
        '<hr style="margin: 5px 0; border: none; border-top: 1px solid rgba(255,255,255,0.3);"/>'
        f"<b>County:</b> {text('county')}<br/>"
        f"<b>Plan Year:</b> {text('plan_year')}<br/>"
        f"<b>Type of Work:</b> {text('type_work')}<br/>"
        f"<b>Location:</b> {text('location')}"
    )


@dataclass
class DashboardView:
    """Everything the page needs to draw the map, charts, table and titles."""

    panel_title: str = PANEL_TITLE
    table_title: str = TABLE_TITLE
    viewport: BoundingBox | None = None
    result: AggregateResult = field(default_factory=AggregateResult)
    status_message: str = ""
    status_is_error: bool = False

    def update_titles(self, panel_title: str, table_title: str) -> None:
        self.panel_title = panel_title
        self.table_title = table_title

    def pan_to(self, bounds: BoundingBox | None) -> None:
        """Request a pan/zoom. None means the default statewide extent."""
        self.viewport = bounds

    def apply(self, result: AggregateResult) -> None:
        """Replace the displayed aggregates; nothing from the previous filter survives."""
        self.result = result

    def set_status(self, message: str, error: bool = False) -> None:
        self.status_message = message
        self.status_is_error = error
