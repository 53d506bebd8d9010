from __future__ import annotations

import gc
import os

import pytest

from utils.db import DatasetStore
from utils.errors import InvalidFilterValue, LoadError
from utils.filters import FilterKind, FilterState
from utils.session import DashboardSession
from utils.spatial import BoundingBox

HOME = BoundingBox(-89.6, 36.5, -81.9, 39.2)


@pytest.fixture
def session(snapshot_bytes, county_index, district_index):
    session = DashboardSession(DatasetStore(), county_index, district_index, home_bounds=HOME)
    assert session.load_snapshot(lambda: snapshot_bytes)
    yield session
    session.store.close()


def test_initial_load_shows_statewide_totals(session):
    view = session.view

    assert view.status_message == "Database loaded: 3 project records"
    assert not view.status_is_error
    assert (view.result.awarded, view.result.current) == (2, 1)
    assert view.viewport == HOME
    assert view.panel_title == "Projects"


def test_select_county_end_to_end(session, county_index):
    session.select_county("Fayette")
    view = session.view

    assert (view.result.awarded, view.result.current) == (1, 1)
    assert view.result.year_data == {2023: 1, 2025: 1}
    assert len(view.result.rows) == 2
    assert view.panel_title == "Projects in Fayette County"
    assert view.table_title == "Highway Projects Data in Fayette County"
    assert view.viewport == county_index.bounds_for("Fayette")


def test_unknown_project_type_end_to_end(session):
    session.select_project_type("Unknown Category Display Name")
    view = session.view

    assert (view.result.awarded, view.result.current) == (0, 0)
    assert view.result.years == []
    assert view.result.rows.empty
    assert view.result.is_empty
    assert view.table_title.endswith(" (Unknown Category Display Name)")


def test_project_type_does_not_pan(session):
    session.select_district(7)
    district_view = session.view.viewport

    session.select_project_type("PAVING")

    assert session.view.viewport == district_view
    assert session.view.table_title == "Highway Projects Data (Pavement Resurfacing)"
    assert session.view.panel_title == "Projects"


@pytest.mark.parametrize("number", range(1, 13))
def test_district_counts_match_row_count(session, number):
    session.select_district(number)
    result = session.view.result

    assert result.awarded + result.current == len(session.store.query_rows(FilterState.district(number)))


def test_mutual_exclusivity(session):
    session.select_county("Fayette")
    session.select_district(7)

    assert session.state == FilterState.district(7)
    assert session.view.panel_title == "Projects in District 7"


def test_clear_all_restores_titles_and_extent(session):
    session.select_county("Jefferson")

    session.clear_all()

    assert session.state.is_none
    assert session.view.panel_title == "Projects"
    assert session.view.table_title == "Highway Projects Data"
    assert session.view.viewport == HOME
    assert session.view.result.total == 3


def test_clear_current_of_inactive_kind_is_noop(session):
    session.select_county("Fayette")
    before = session.view.result

    session.clear_current(FilterKind.DISTRICT)

    assert session.state == FilterState.county("Fayette")
    assert session.view.result is before


@pytest.mark.parametrize("number", [0, 13])
def test_out_of_range_district_is_rejected(session, number):
    session.select_county("Fayette")

    with pytest.raises(InvalidFilterValue):
        session.select_district(number)

    assert session.state == FilterState.county("Fayette")
    assert session.view.panel_title == "Projects in Fayette County"


def test_unknown_county_still_filters_without_panning(session):
    session.select_county("Fayette")
    fayette_view = session.view.viewport

    session.select_county("Atlantis")

    assert session.view.viewport == fayette_view
    assert session.view.panel_title == "Projects in Atlantis County"
    assert session.view.result.is_empty


def test_refresh_twice_gives_identical_results(session):
    session.select_district(5)

    first = session.refresh()
    second = session.refresh()

    assert first.same_as(second)


def test_project_categories_and_styling(session, project_lines):
    session.select_project_type("BRIDGES")

    styled = session.styled_projects(project_lines)

    assert [f["properties"]["lineOpacity"] for f in styled["features"]] == [0.3, 0.8, 0.3]


def test_selected_boundary_follows_filter(session, county_index):
    assert session.selected_boundary() is None

    session.select_county("fayette")
    assert session.selected_boundary() == county_index.find("Fayette").as_feature_collection()
    assert [f["properties"]["NAME"] for f in session.selected_boundary()["features"]] == ["Fayette"]

    session.select_district(7)
    assert len(session.selected_boundary()["features"]) == 2

    session.select_county("Atlantis")
    assert session.selected_boundary() is None

    session.select_project_type("PAVING")
    assert session.selected_boundary() is None


class TestLoading:
    def test_failed_load_sets_error_status(self, county_index, district_index):
        session = DashboardSession(DatasetStore(), county_index, district_index)

        def fetch():
            raise LoadError("Failed to read data/HighwayPlan_data.db")

        assert not session.load_snapshot(fetch)
        assert session.view.status_is_error
        assert "HighwayPlan_data.db" in session.view.status_message
        assert not session.loading
        assert session.load_attempted
        assert session.view.result.is_empty

    def test_filters_work_before_load(self, county_index, district_index):
        session = DashboardSession(DatasetStore(), county_index, district_index)

        session.select_county("Fayette")

        assert session.view.result.is_empty
        assert session.view.panel_title == "Projects in Fayette County"

    def test_reload_keeps_current_filter(self, session, snapshot_bytes):
        session.select_county("Jefferson")

        assert session.load_snapshot(lambda: snapshot_bytes)

        assert session.state == FilterState.county("Jefferson")
        assert (session.view.result.awarded, session.view.result.current) == (1, 0)

    def test_failed_reload_keeps_previous_data(self, session):
        assert not session.load_snapshot(lambda: b"not a database")

        assert session.view.status_is_error
        assert session.store.ready
        session.select_county("Fayette")
        assert session.view.result.total == 2

    def test_load_while_loading_is_refused(self, session, snapshot_bytes):
        session.loading = True

        assert not session.load_snapshot(lambda: snapshot_bytes)
        assert session.loading

    def test_dropped_session_removes_snapshot_file(self, snapshot_bytes, county_index, district_index):
        session = DashboardSession(DatasetStore(), county_index, district_index)
        assert session.load_snapshot(lambda: snapshot_bytes)
        path = session.store._snapshot_path
        assert os.path.exists(path)

        del session
        gc.collect()

        assert not os.path.exists(path)
