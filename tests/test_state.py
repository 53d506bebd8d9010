from utils.config import DashboardSettings
from utils.spatial import BoundingBox
from utils.state import build_indexes, layer_indexes, project_extent


def test_build_indexes_groups_boundary_layers(counties_geojson, districts_geojson):
    county_index, district_index = build_indexes(counties_geojson, districts_geojson)

    assert sorted(county_index.keys()) == ["Fayette", "Jefferson", "Jessamine"]
    assert sorted(district_index.keys()) == ["5", "7"]


def test_missing_layer_gives_empty_index(districts_geojson):
    county_index, district_index = build_indexes(None, districts_geojson)

    assert len(county_index) == 0
    assert len(district_index) == 2


def test_failed_boundary_layer_is_not_cached(tmp_path, counties_geojson, districts_geojson):
    settings = DashboardSettings(data_dir=str(tmp_path))
    layers = {"awarded": None, "current": None, "counties": None, "districts": districts_geojson}

    county_index, _ = layer_indexes(layers, settings)
    assert len(county_index) == 0

    # The layer loads on a later run with the same asset locations
    layers["counties"] = counties_geojson
    county_index, district_index = layer_indexes(layers, settings)
    assert "Fayette" in county_index
    assert "7" in district_index

    assert layer_indexes(layers, settings)[0] is county_index


def test_project_extent(tmp_path, project_lines):
    settings = DashboardSettings(data_dir=str(tmp_path))

    assert project_extent({"awarded": None}, settings) is None

    extent = project_extent({"awarded": project_lines}, settings)
    assert extent == BoundingBox(-85.7, 38.0, -84.4, 38.25)
