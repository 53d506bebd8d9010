from __future__ import annotations

import duckdb
import pytest

from utils.db import DatasetStore
from utils.fields import normalize_district_key
from utils.spatial import SpatialLayerIndex

PROJECT_COLUMNS = (
    "DISTRICT", "COUNTY", "RSY_YEAR", "TYPE_WORK", "AWARDED",
    "DESCRIPTION", "SYP_NO", "BMP", "EMP", "BRIDGE_ID", "ROUTE",
)

# Two Fayette projects (one awarded, one current) and one awarded Jefferson project
PROJECTS = [
    ("District 07", "Fayette", 2023, "RESURFACING", "YES", "Resurface US 27", "07-101", 1.2, 3.4, None, "US-27"),
    ("District 07", "Fayette", 2025, "BRIDGE REPLACEMENT", "NO", "Replace bridge on KY 4", "07-202", 0.5, 0.7, "034B00012N", "KY-4"),
    ("District 05", "Jefferson", 2024, "RESURFACING", "YES", "Resurface I-64", "05-303", 10.0, 12.5, None, "I-64"),
]

CROSSWALK = [
    ("RESURFACING", "PAVING", "Pavement Resurfacing"),
    ("BRIDGE REPLACEMENT", "BRIDGES", "Bridge Replacement"),
]

VIEWS = {
    "ProjectsAwarded": """
        SELECT COUNT(*) FILTER (WHERE AWARDED = 'YES') AS Awarded,
               COUNT(*) FILTER (WHERE AWARDED <> 'YES') AS Current
        FROM Basic_Project_Info
    """,
    "ProjectsAwarded_ByCounty": """
        SELECT COUNTY,
               COUNT(*) FILTER (WHERE AWARDED = 'YES') AS Awarded,
               COUNT(*) FILTER (WHERE AWARDED <> 'YES') AS Current
        FROM Basic_Project_Info GROUP BY COUNTY
    """,
    "ProjectsAwarded_ByDistrict": """
        SELECT DISTRICT,
               COUNT(*) FILTER (WHERE AWARDED = 'YES') AS Awarded,
               COUNT(*) FILTER (WHERE AWARDED <> 'YES') AS Current
        FROM Basic_Project_Info GROUP BY DISTRICT
    """,
    "ProjectCount_Year": """
        SELECT RSY_YEAR AS YEAR, COUNT(*) AS record_count
        FROM Basic_Project_Info GROUP BY RSY_YEAR
    """,
    "ProjectYears_ByCounty": """
        SELECT COUNTY, RSY_YEAR, COUNT(*) AS total_projects
        FROM Basic_Project_Info GROUP BY COUNTY, RSY_YEAR
    """,
    "ProjectYears_ByDistrict": """
        SELECT DISTRICT, RSY_YEAR, COUNT(*) AS total_projects
        FROM Basic_Project_Info GROUP BY DISTRICT, RSY_YEAR
    """,
}

# Views over the crosswalk join, created only when the snapshot has a crosswalk
PROJECT_TYPE_VIEWS = {
    "ProjectsAwarded_ByProjectType": """
        SELECT c.dropdown_category,
               COUNT(*) FILTER (WHERE b.AWARDED = 'YES') AS Awarded,
               COUNT(*) FILTER (WHERE b.AWARDED <> 'YES') AS Current
        FROM Basic_Project_Info b
        JOIN crosswalk c ON b.TYPE_WORK = c.raw_project_type
        GROUP BY c.dropdown_category
    """,
    "ProjectYears_ByProjectType": """
        SELECT c.dropdown_category, b.RSY_YEAR, COUNT(*) AS total_projects
        FROM Basic_Project_Info b
        JOIN crosswalk c ON b.TYPE_WORK = c.raw_project_type
        GROUP BY c.dropdown_category, b.RSY_YEAR
    """,
}


def build_snapshot(path, projects=PROJECTS, crosswalk=CROSSWALK, views=True, districts=True) -> bytes:
    """Write a DuckDB snapshot to ``path`` and return its bytes."""
    conn = duckdb.connect(str(path))
    conn.execute("""
        CREATE TABLE Basic_Project_Info (
            DISTRICT VARCHAR, COUNTY VARCHAR, RSY_YEAR INTEGER, TYPE_WORK VARCHAR,
            AWARDED VARCHAR, DESCRIPTION VARCHAR, SYP_NO VARCHAR, BMP DOUBLE,
            EMP DOUBLE, BRIDGE_ID VARCHAR, ROUTE VARCHAR
        )
    """)
    if projects:
        placeholders = ", ".join("?" for _ in PROJECT_COLUMNS)
        conn.executemany(f"INSERT INTO Basic_Project_Info VALUES ({placeholders})", list(projects))

    if crosswalk is not None:
        conn.execute("""
            CREATE TABLE crosswalk (
                raw_project_type VARCHAR, dropdown_category VARCHAR, dropdown_display_name VARCHAR
            )
        """)
        if crosswalk:
            conn.executemany("INSERT INTO crosswalk VALUES (?, ?, ?)", list(crosswalk))

    if views:
        for name, query in VIEWS.items():
            conn.execute(f"CREATE VIEW {name} AS {query}")
        if crosswalk is not None:
            for name, query in PROJECT_TYPE_VIEWS.items():
                conn.execute(f"CREATE VIEW {name} AS {query}")

    if districts:
        conn.execute("CREATE TABLE KYTC_Districts (Name VARCHAR)")
        conn.executemany(
            "INSERT INTO KYTC_Districts VALUES (?)",
            [(f"District {n:02d}",) for n in range(1, 13)],
        )

    conn.close()
    return path.read_bytes()


def _box(west, south, east, north):
    return {
        "type": "Polygon",
        "coordinates": [[[west, south], [east, south], [east, north], [west, north], [west, south]]],
    }


def _feature(geometry, **properties):
    return {"type": "Feature", "geometry": geometry, "properties": properties}


@pytest.fixture
def snapshot_bytes(tmp_path) -> bytes:
    return build_snapshot(tmp_path / "snapshot.duckdb")


@pytest.fixture
def fallback_snapshot_bytes(tmp_path) -> bytes:
    """Snapshot without any pre-aggregated views."""
    return build_snapshot(tmp_path / "no_views.duckdb", views=False)


@pytest.fixture
def store(snapshot_bytes):
    store = DatasetStore()
    store.load_snapshot(snapshot_bytes)
    yield store
    store.close()


@pytest.fixture
def fallback_store(fallback_snapshot_bytes):
    store = DatasetStore()
    store.load_snapshot(fallback_snapshot_bytes)
    yield store
    store.close()


@pytest.fixture
def counties_geojson() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            _feature(_box(-84.66, 37.85, -84.28, 38.21), NAME="Fayette"),
            _feature(_box(-85.95, 37.99, -85.40, 38.38), NAME="Jefferson"),
            _feature(_box(-84.90, 37.60, -84.50, 37.90), NAME="Jessamine"),
        ],
    }


@pytest.fixture
def districts_geojson() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            # District 7 split in two polygons
            _feature(_box(-85.00, 37.50, -84.40, 38.00), DISTNBR=7),
            _feature(_box(-84.40, 37.80, -83.90, 38.50), DISTNBR=7),
            _feature(_box(-86.20, 37.70, -85.20, 38.60), DISTNBR="5"),
        ],
    }


@pytest.fixture
def county_index(counties_geojson) -> SpatialLayerIndex:
    return SpatialLayerIndex.build(counties_geojson, ("COUNTY", "NAME"), name="counties")


@pytest.fixture
def district_index(districts_geojson) -> SpatialLayerIndex:
    return SpatialLayerIndex.build(
        districts_geojson, "DISTNBR", key_func=normalize_district_key, name="districts"
    )


@pytest.fixture
def project_lines() -> dict:
    plan = "KYTCDynamic_HighwaysDBOTED_CHIPS_ACTIVEPLAN"
    return {
        "type": "FeatureCollection",
        "features": [
            _feature(
                {"type": "LineString", "coordinates": [[-84.5, 38.0], [-84.4, 38.1]]},
                **{
                    f"{plan}DIST_ITEM": "07-101",
                    f"{plan}SYP_RPT_TYPEWORK": "RESURFACING",
                    f"{plan}RT_NE_UNIQUE": "034-US-0027 -000",
                    f"{plan}BMP": 1.2,
                    f"{plan}EMP": 3.4,
                },
            ),
            _feature(
                {"type": "LineString", "coordinates": [[-84.45, 38.05], [-84.44, 38.06]]},
                **{
                    f"{plan}DIST_ITEM": "07-202",
                    f"{plan}SYP_RPT_TYPEWORK": "BRIDGE REPLACEMENT",
                },
            ),
            _feature(
                {"type": "LineString", "coordinates": [[-85.7, 38.2], [-85.6, 38.25]]},
                **{f"{plan}DIST_ITEM": "05-303", f"{plan}SYP_RPT_TYPEWORK": "resurfacing"},
            ),
        ],
    }
