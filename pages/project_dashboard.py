import logging

import streamlit as st
from streamlit_searchbox import st_searchbox

from components.project_charts import render_charts
from components.project_map import build_map_payload, render_project_map
from components.project_table import render_table
from components.route_info_dialog import render_route_lookup_button
from utils.errors import InvalidFilterValue
from utils.filters import FilterKind
from utils.search import rank_options
from utils.state import (
    ensure_snapshot_loaded,
    get_route_client,
    get_session,
    get_settings,
    load_layers,
    load_snapshot,
)

logger = logging.getLogger(__name__)

settings = get_settings()
layers, layer_errors = load_layers(settings)
session = get_session(layers)
ensure_snapshot_loaded(session)


def apply_filter(transition, value):
    """Run a filter transition, turning rejected input into a sidebar warning."""
    try:
        transition(value)
    except InvalidFilterValue as e:
        logger.warning("Rejected filter value %r: %s", value, e)
        st.session_state.filter_warning = str(e)


def on_district_change():
    number = st.session_state.district_select
    if number is None:
        session.clear_current(FilterKind.DISTRICT)
    else:
        apply_filter(session.select_district, number)


def on_reload():
    load_snapshot(session)


def county_options() -> list[tuple[str, str]]:
    names = session.store.list_counties() if session.store.ready else sorted(session.county_index.keys())
    return [(name, name) for name in names]


def project_type_options() -> list[tuple[str, str]]:
    return [(display, category) for category, display in session.store.list_project_types()]


def search_counties(searchterm: str) -> list[tuple[str, str]]:
    return rank_options(searchterm, county_options())


def search_project_types(searchterm: str) -> list[tuple[str, str]]:
    return rank_options(searchterm, project_type_options())


# Keep widgets in line with the single active filter
state = session.state
district_options = [None] + session.store.list_districts()
st.session_state.district_select = (
    state.district_number if state.district_number in district_options else None
)
if state.kind is not FilterKind.COUNTY:
    st.session_state.pop("county_search", None)
if state.kind is not FilterKind.PROJECT_TYPE:
    st.session_state.pop("project_type_search", None)


# ── sidebar: data and filters ──────────────────────────────────────────────
with st.sidebar:
    st.header("Project Database")
    if session.view.status_message:
        if session.view.status_is_error:
            st.error(session.view.status_message)
        else:
            st.success(session.view.status_message)
    st.button(
        "🔄 Reload project database",
        on_click=on_reload,
        disabled=session.loading,
        width="stretch",
    )
    for message in layer_errors:
        st.warning(message)

    st.header("Filters")
    st.info(f"Showing: {state.describe()}")
    if warning := st.session_state.pop("filter_warning", None):
        st.warning(warning)

    county = st_searchbox(
        search_counties,
        key="county_search",
        label="County",
        placeholder="Type county name...",
        default_options=county_options(),
        debounce=150,
        clear_on_submit=False,
    )
    if county and (state.kind is not FilterKind.COUNTY or state.value != county):
        apply_filter(session.select_county, county)
        st.rerun()
    st.button(
        "✕ Clear county",
        on_click=session.clear_current,
        args=(FilterKind.COUNTY,),
        disabled=state.kind is not FilterKind.COUNTY,
    )

    st.selectbox(
        "District",
        district_options,
        format_func=lambda n: "All districts" if n is None else f"District {n}",
        key="district_select",
        on_change=on_district_change,
    )

    project_type = st_searchbox(
        search_project_types,
        key="project_type_search",
        label="Project Type",
        placeholder="Type project type...",
        default_options=project_type_options(),
        debounce=150,
        clear_on_submit=False,
    )
    if project_type and (state.kind is not FilterKind.PROJECT_TYPE or state.value != project_type):
        apply_filter(session.select_project_type, project_type)
        st.rerun()
    st.button(
        "✕ Clear project type",
        on_click=session.clear_current,
        args=(FilterKind.PROJECT_TYPE,),
        disabled=state.kind is not FilterKind.PROJECT_TYPE,
    )

    st.divider()
    st.button("Clear all filters", on_click=session.clear_all, type="primary", width="stretch")


# ── main: map, route lookup, charts, table ─────────────────────────────────
st.title("Kentucky Highway Plan Projects")

view = session.view
payload = build_map_payload(
    awarded=session.styled_projects(layers["awarded"]),
    current=session.styled_projects(layers["current"]),
    counties=layers["counties"],
    districts=layers["districts"],
    center=settings.map_center,
    zoom=settings.map_zoom,
    bounds=view.viewport,
    selected_boundary=session.selected_boundary(),
)
component_value = render_project_map(payload)
if component_value and component_value.get("selected_project"):
    st.session_state.selected_project = component_value["selected_project"]

render_route_lookup_button(
    st.session_state.get("selected_project"),
    get_route_client(settings.route_api_url, settings.route_api_timeout, settings.route_api_request_id),
)

st.divider()
render_charts(view.result, view.panel_title)

st.divider()
render_table(view.result.rows, view.table_title, settings.row_limit)
