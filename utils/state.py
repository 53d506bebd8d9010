"""Streamlit wiring: cached settings and layers, and the per-session dashboard."""

import logging

import streamlit as st

from utils.assets import fetch_bytes, load_geojson
from utils.config import DashboardSettings, load_settings
from utils.db import DatasetStore
from utils.errors import LoadError
from utils.fields import COUNTY_NAME_PROPERTIES, DISTRICT_NUMBER_PROPERTIES, normalize_district_key
from utils.route_api import RouteLookupClient
from utils.session import DashboardSession
from utils.spatial import BoundingBox, SpatialLayerIndex, feature_bounds

logger = logging.getLogger(__name__)

SESSION_KEY = "dashboard_session"
LAYER_NAMES = ("awarded", "current", "counties", "districts")


@st.cache_resource
def get_settings() -> DashboardSettings:
    return load_settings()


@st.cache_data(ttl=3600)  # Static assets, shared across sessions
def load_layer(location: str) -> dict:
    return load_geojson(location)


def load_layers(settings: DashboardSettings) -> tuple[dict[str, dict | None], list[str]]:
    """
    Load the four GeoJSON layers.

    Returns:
        Tuple of (layers by name, error messages). A layer that failed to
        load is None; the rest of the dashboard keeps working without it.
    """
    files = {
        "awarded": settings.awarded_projects_file,
        "current": settings.current_projects_file,
        "counties": settings.counties_file,
        "districts": settings.districts_file,
    }
    layers = {}
    errors = []
    for name in LAYER_NAMES:
        try:
            layers[name] = load_layer(settings.asset_path(files[name]))
        except LoadError as e:
            logger.error("Layer %s unavailable: %s", name, e)
            layers[name] = None
            errors.append(str(e))
    return layers, errors


def build_indexes(counties: dict | None, districts: dict | None) -> tuple[SpatialLayerIndex, SpatialLayerIndex]:
    """Build the county and district indexes; a missing layer gives an empty index."""
    county_index = SpatialLayerIndex.build(counties or {}, COUNTY_NAME_PROPERTIES, name="counties")
    district_index = SpatialLayerIndex.build(
        districts or {}, DISTRICT_NUMBER_PROPERTIES, key_func=normalize_district_key, name="districts"
    )
    return county_index, district_index


@st.cache_resource(ttl=3600)
def _cached_indexes(_counties: dict, _districts: dict, cache_key: tuple):
    # The underscore-prefixed layers are not hashed; cache_key identifies them
    return build_indexes(_counties, _districts)


def layer_indexes(
    layers: dict[str, dict | None], settings: DashboardSettings
) -> tuple[SpatialLayerIndex, SpatialLayerIndex]:
    """
    County and district indexes, shared across sessions once both layers loaded.

    When either layer failed to load the indexes are built for this session
    only, so the next session retries instead of reusing an empty index.
    """
    if layers["counties"] is None or layers["districts"] is None:
        return build_indexes(layers["counties"], layers["districts"])
    cache_key = (settings.asset_path(settings.counties_file), settings.asset_path(settings.districts_file))
    return _cached_indexes(layers["counties"], layers["districts"], cache_key)


@st.cache_resource(ttl=3600)
def _cached_extent(_awarded: dict, cache_key: str) -> BoundingBox | None:
    boxes = (feature_bounds(f) for f in _awarded.get("features", []))
    return BoundingBox.union(b for b in boxes if b is not None)


def project_extent(layers: dict[str, dict | None], settings: DashboardSettings) -> BoundingBox | None:
    """Extent of all awarded project lines: the view a cleared filter returns to."""
    if layers["awarded"] is None:
        return None
    return _cached_extent(layers["awarded"], settings.asset_path(settings.awarded_projects_file))


@st.cache_resource
def get_route_client(base_url: str, timeout: int, request_id: str) -> RouteLookupClient:
    return RouteLookupClient(base_url=base_url, timeout=timeout, request_id=request_id)


def get_session(layers: dict[str, dict | None]) -> DashboardSession:
    """Return this browser session's dashboard, creating it on first use."""
    if SESSION_KEY not in st.session_state:
        settings = get_settings()
        county_index, district_index = layer_indexes(layers, settings)
        st.session_state[SESSION_KEY] = DashboardSession(
            DatasetStore(min_plan_year=settings.min_plan_year),
            county_index=county_index,
            district_index=district_index,
            settings=settings,
            home_bounds=project_extent(layers, settings),
        )
    return st.session_state[SESSION_KEY]


def load_snapshot(session: DashboardSession) -> bool:
    settings = session.settings
    return session.load_snapshot(lambda: fetch_bytes(settings.snapshot_location))


def ensure_snapshot_loaded(session: DashboardSession) -> None:
    """Run the one automatic snapshot load of a session."""
    if not session.load_attempted:
        with st.spinner("Loading project database..."):
            load_snapshot(session)
