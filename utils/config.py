"""Dashboard settings read from Streamlit secrets and the environment."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import streamlit as st
from streamlit.errors import StreamlitAPIException

logger = logging.getLogger(__name__)

ENV_PREFIX = "KYHP_"

ROUTE_INFO_URL = (
    "https://kytc-api-v100-lts-qrntk7e3ra-uc.a.run.app"
    "/api/route/GetRouteInfoByRouteAndTwoMilepoints"
)
ROUTE_REQUEST_ID = "PLBNw5AuokKnX%2BUrNZcvTQ%3D%3D"


@dataclass
class DashboardSettings:
    """Static configuration for one dashboard deployment."""

    data_dir: str = "data"
    snapshot_file: str = "HighwayPlan_data.db"
    current_projects_file: str = "Current_Highway_Plans.geojson"
    awarded_projects_file: str = "Awarded_Highway_Plans.geojson"
    counties_file: str = "KY_Counties.geojson"
    districts_file: str = "KYTC_Districts.geojson"

    row_limit: int = 1000
    min_plan_year: int | None = None

    map_center: list[float] = field(default_factory=lambda: [37.8, -85.0])
    map_zoom: int = 7

    route_api_url: str = ROUTE_INFO_URL
    route_api_timeout: int = 30
    route_api_request_id: str = ROUTE_REQUEST_ID

    log_level: str = "INFO"

    def asset_path(self, name: str) -> str:
        """Resolve an asset file name against ``data_dir`` (URLs pass through)."""
        if name.startswith(("http://", "https://")):
            return name
        if self.data_dir.startswith(("http://", "https://")):
            return f"{self.data_dir.rstrip('/')}/{name}"
        return str(Path(self.data_dir) / name)

    @property
    def snapshot_location(self) -> str:
        return self.asset_path(self.snapshot_file)

    @classmethod
    def from_mapping(cls, values) -> "DashboardSettings":
        """Build settings from a mapping, ignoring unknown keys and coercing types."""
        settings = cls()
        for f in fields(cls):
            if f.name not in values or values[f.name] is None:
                continue
            raw = values[f.name]
            current = getattr(settings, f.name)
            try:
                if f.name == "min_plan_year":
                    value = int(raw) if str(raw).strip() else None
                elif f.name == "map_center":
                    if isinstance(raw, str):
                        raw = raw.split(",")
                    value = [float(v) for v in raw]
                elif isinstance(current, int):
                    value = int(raw)
                else:
                    value = str(raw)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid setting %s=%r", f.name, raw)
                continue
            setattr(settings, f.name, value)
        return settings


def _read_secrets() -> dict:
    """Return the ``[dashboard]`` secrets table, or an empty dict without a secrets file."""
    try:
        section = st.secrets.get("dashboard", {})
    except (FileNotFoundError, StreamlitAPIException):
        return {}
    return dict(section) if section else {}


def _read_env() -> dict:
    values = {}
    for f in fields(DashboardSettings):
        env_name = f"{ENV_PREFIX}{f.name.upper()}"
        if env_name in os.environ:
            values[f.name] = os.environ[env_name]
    return values


def load_settings() -> DashboardSettings:
    """
    Load settings: defaults, then ``st.secrets["dashboard"]``, then ``KYHP_*`` env vars.

    Returns:
        DashboardSettings: Effective settings
    """
    values = _read_secrets()
    values.update(_read_env())
    return DashboardSettings.from_mapping(values)
