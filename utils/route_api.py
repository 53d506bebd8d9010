"""Client for the KYTC route information lookup of a selected project line."""

import html
import logging
from dataclasses import dataclass, field

import requests

from utils.config import ROUTE_INFO_URL, ROUTE_REQUEST_ID
from utils.errors import RemoteAPIError
from utils.fields import canonicalize_feature_properties

logger = logging.getLogger(__name__)

RETURN_KEYS = (
    "County_Name, Route_Unique_Identifier, Route, Road_Name, Bridge_Identifier, "
    "Direction, Surface_Type, Traffic_Last_Count, Type_Operation"
)
MISSING = "N/A"


@dataclass(frozen=True)
class RouteSegmentRequest:
    """Route identifier and milepoint range of one project line."""

    route_unique_id: str
    begin_mp: float
    end_mp: float

    @classmethod
    def from_feature_properties(cls, properties: dict | None) -> "RouteSegmentRequest":
        """
        Read the route id and milepoints from a project line's properties.

        Raises:
            RemoteAPIError: The feature carries no route id or milepoints
        """
        props = canonicalize_feature_properties(properties)
        route_id = props["route_unique_id"]
        if route_id is None or props["begin_mp"] is None or props["end_mp"] is None:
            raise RemoteAPIError("Selected project line has no route identifier or milepoints")
        try:
            return cls(str(route_id), float(props["begin_mp"]), float(props["end_mp"]))
        except (TypeError, ValueError) as e:
            raise RemoteAPIError(f"Selected project line has invalid milepoints: {e}") from e


@dataclass
class RouteSummary:
    county: str = MISSING
    route: str = MISSING
    road_name: str = MISSING
    direction: str = MISSING
    surface_type: str = MISSING
    traffic_count: int | None = None
    operation_type: str = MISSING
    bridges: list[str] = field(default_factory=list)
    segment_count: int = 0
    license_url: str | None = None

    @property
    def traffic_display(self) -> str:
        return f"{self.traffic_count:,}" if self.traffic_count else MISSING


def _text(value) -> str:
    if value is None or value == "":
        return MISSING
    return str(value)


def summarize_route_info(payload: dict) -> RouteSummary:
    """
    Build a summary from a route lookup response.

    The first ``Route_Info`` record supplies the descriptive fields; bridge
    identifiers are collected from every record without duplicates.

    Raises:
        RemoteAPIError: The response carries no route records
    """
    records = payload.get("Route_Info") if isinstance(payload, dict) else None
    if not isinstance(records, list) or not records:
        raise RemoteAPIError("No route information available for this segment")

    first = records[0] or {}
    bridges = []
    for record in records:
        ids = (record or {}).get("Bridge_Identifier")
        if not isinstance(ids, list):
            continue
        for bridge in ids:
            if bridge and bridge not in bridges:
                bridges.append(bridge)

    traffic = first.get("Traffic_Last_Count")
    try:
        traffic = int(traffic) if traffic not in (None, "") else None
    except (TypeError, ValueError):
        traffic = None

    return RouteSummary(
        county=_text(first.get("County_Name")),
        route=_text(first.get("Route")),
        road_name=_text(first.get("Road_Name")),
        direction=_text(first.get("Direction")),
        surface_type=_text(first.get("Surface_Type")),
        traffic_count=traffic,
        operation_type=_text(first.get("Type_Operation")),
        bridges=[str(b) for b in bridges],
        segment_count=len(records),
        license_url=payload.get("Data_License_Use") or None,
    )


def _summary_rows(summary: RouteSummary) -> list[tuple[str, str]]:
    rows = [
        ("County", summary.county),
        ("Route", summary.route),
        ("Road Name", summary.road_name),
        ("Direction", summary.direction),
        ("Surface Type", summary.surface_type),
        ("Traffic Count", summary.traffic_display),
        ("Operation Type", summary.operation_type),
    ]
    if summary.bridges:
        rows.append(("Bridges on Route", ", ".join(summary.bridges)))
    rows.append(("Total Route Segments", str(summary.segment_count)))
    return rows


def format_route_text(summary: RouteSummary) -> str:
    """Plain-text rendering for copying to the clipboard."""
    lines = ["KYTC Route Information", "========================", ""]
    lines.extend(f"{label}: {value}" for label, value in _summary_rows(summary))
    lines.append("")
    if summary.license_url:
        lines.append(f"Data License: {summary.license_url}")
    return "\n".join(lines) + "\n"


def render_route_html(summary: RouteSummary) -> str:
    """Standalone printable HTML page for a route summary."""
    rows = "\n".join(
        f'<div class="info-row"><div class="info-label">{html.escape(label)}:</div>'
        f'<div class="info-value">{html.escape(value)}</div></div>'
        for label, value in _summary_rows(summary)
    )
    license_block = ""
    if summary.license_url:
        url = html.escape(summary.license_url, quote=True)
        license_block = (
            '<div class="info-row"><div class="info-label">Data License:</div>'
            f'<div class="info-value"><a href="{url}" target="_blank">{url}</a></div></div>'
        )
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>KYTC Route Information</title>
<style>
  body {{ font-family: Arial, sans-serif; margin: 20px; color: #333; }}
  h1 {{ color: #3c5e49; border-bottom: 2px solid #3c5e49; padding-bottom: 10px; }}
  .info-row {{ display: flex; margin: 8px 0; }}
  .info-label {{ font-weight: bold; width: 180px; }}
  .info-value {{ flex: 1; }}
  @media print {{ body {{ margin: 0; }} }}
</style>
</head>
<body>
<h1>KYTC Route Information</h1>
{rows}
{license_block}
<script>window.onload = function() {{ window.print(); }};</script>
</body>
</html>
"""


class RouteLookupClient:
    """Issues the route-and-milepoints lookup against the KYTC spatial API."""

    def __init__(
        self,
        base_url: str = ROUTE_INFO_URL,
        timeout: int = 30,
        session: requests.Session | None = None,
        request_id: str = ROUTE_REQUEST_ID,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.request_id = request_id

    def build_params(self, request: RouteSegmentRequest) -> dict[str, str]:
        return {
            "route_unique_id": request.route_unique_id,
            "begin_mp": str(request.begin_mp),
            "end_mp": str(request.end_mp),
            "return_m": "False",
            "return_full_geom": "False",
            "return_points": "False",
            "return_keys": RETURN_KEYS,
            "return_format": "json",
            "request_id": self.request_id,
            "output_epsg": "4326",
        }

    def lookup(self, request: RouteSegmentRequest) -> dict:
        """
        Fetch route information for a segment.

        Args:
            request: Route id and milepoint range

        Returns:
            dict: Decoded JSON response

        Raises:
            RemoteAPIError: Network failure, non-2xx status or a non-JSON body
        """
        logger.info(
            "Route lookup %s from %s to %s", request.route_unique_id, request.begin_mp, request.end_mp
        )
        try:
            response = self.session.get(self.base_url, params=self.build_params(request), timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteAPIError(f"Route lookup failed: {e}") from e

        if not response.ok:
            logger.error("Route lookup HTTP %s: %s", response.status_code, response.text[:500])
            raise RemoteAPIError(f"Route lookup failed with HTTP status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise RemoteAPIError("Route lookup returned a non-JSON response") from e

    def summarize(self, request: RouteSegmentRequest) -> RouteSummary:
        return summarize_route_info(self.lookup(request))
