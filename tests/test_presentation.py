import pytest

from utils.filters import FilterState
from utils.presentation import (
    DIMMED_OPACITY,
    FULL_OPACITY,
    DashboardView,
    compose_panel_title,
    compose_table_title,
    project_popup_html,
    style_project_features,
    titles_for,
)
from utils.aggregation import AggregateResult
from utils.spatial import BoundingBox

CATEGORIES = {"RESURFACING": "PAVING", "BRIDGE REPLACEMENT": "BRIDGES"}


def test_default_titles():
    assert compose_panel_title() == "Projects"
    assert compose_table_title() == "Highway Projects Data"


def test_titles_accept_all_parts_at_once():
    assert compose_panel_title(district=7, county="Fayette") == "Projects in District 7 in Fayette County"
    assert (
        compose_table_title(district=7, county="Fayette", project_type="Bridge Replacement")
        == "Highway Projects Data in District 7 in Fayette County (Bridge Replacement)"
    )


@pytest.mark.parametrize(
    "state, panel, table",
    [
        (FilterState.none(), "Projects", "Highway Projects Data"),
        (FilterState.county("Fayette"), "Projects in Fayette County", "Highway Projects Data in Fayette County"),
        (FilterState.district(7), "Projects in District 7", "Highway Projects Data in District 7"),
        (FilterState.project_type("PAVING"), "Projects", "Highway Projects Data (Pavement Resurfacing)"),
    ],
)
def test_titles_for_state(state, panel, table):
    names = {"PAVING": "Pavement Resurfacing"}

    assert titles_for(state, lambda key: names.get(key, key)) == (panel, table)


def test_unknown_category_title_uses_raw_key():
    state = FilterState.project_type("Unknown Category Display Name")

    _, table = titles_for(state, lambda key: key)

    assert table == "Highway Projects Data (Unknown Category Display Name)"


def test_project_type_dims_non_matching_lines(project_lines):
    styled = style_project_features(project_lines, FilterState.project_type("PAVING"), CATEGORIES)

    opacities = [f["properties"]["lineOpacity"] for f in styled["features"]]

    # crosswalk codes match case-sensitively, so "resurfacing" is dimmed
    assert opacities == [FULL_OPACITY, DIMMED_OPACITY, DIMMED_OPACITY]
    assert len(styled["features"]) == len(project_lines["features"])


def test_other_filters_keep_full_opacity(project_lines):
    for state in (FilterState.none(), FilterState.county("Fayette"), FilterState.district(7)):
        styled = style_project_features(project_lines, state, CATEGORIES)
        assert {f["properties"]["lineOpacity"] for f in styled["features"]} == {FULL_OPACITY}


def test_styling_does_not_mutate_input(project_lines):
    style_project_features(project_lines, FilterState.project_type("PAVING"), CATEGORIES)

    assert all("lineOpacity" not in f["properties"] for f in project_lines["features"])


def test_styling_empty_collection():
    assert style_project_features(None, FilterState.none(), {}) == {"type": "FeatureCollection", "features": []}


def test_view_apply_replaces_result():
    view = DashboardView()
    view.apply(AggregateResult(awarded=5, current=2, years=[(2024, 7)]))
    view.apply(AggregateResult())

    assert view.result.is_empty


def test_view_pan_and_status():
    view = DashboardView()
    box = BoundingBox(-85, 37, -84, 38)

    view.pan_to(box)
    view.set_status("Error: bad snapshot", error=True)

    assert view.viewport == box
    assert view.status_is_error
    view.pan_to(None)
    assert view.viewport is None


def test_popup_html_escapes_property_values():
    html = project_popup_html(
        {
            "project_id": "07-101",
            "description": '<img src=x onerror="alert(1)"> & widen',
            "county": "<b>Fayette</b>",
            "plan_year": 2025,
        },
        "Awarded",
    )

    assert "<img" not in html
    assert "&lt;img src=x onerror=&quot;alert(1)&quot;&gt; &amp; widen" in html
    assert "&lt;b&gt;Fayette&lt;/b&gt;" in html
    assert "<b>07-101</b> (Awarded)" in html
    assert "<b>Plan Year:</b> 2025" in html
    assert "<b>Type of Work:</b> N/A" in html


def test_popup_html_defaults_for_missing_values():
    html = project_popup_html({}, "Current")

    assert html.startswith("<b>Project</b> (Current)")
    assert "<b>Location:</b> N/A" in html
