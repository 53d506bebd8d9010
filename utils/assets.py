"""Fetching of the static snapshot and GeoJSON assets."""

import json
import logging
from pathlib import Path

import requests

from utils.errors import LoadError

logger = logging.getLogger(__name__)


def fetch_bytes(location: str, timeout: int = 60, session: requests.Session | None = None) -> bytes:
    """
    Read an asset from a local path or an http(s) URL.

    Args:
        location: File path or URL
        timeout: Request timeout in seconds (URLs only)
        session: Optional requests session

    Returns:
        bytes: Asset contents

    Raises:
        LoadError: Asset missing or the request failed
    """
    if location.startswith(("http://", "https://")):
        http = session or requests
        try:
            resp = http.get(location, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise LoadError(f"Failed to fetch {location}: {e}") from e
        return resp.content

    try:
        return Path(location).read_bytes()
    except OSError as e:
        raise LoadError(f"Failed to read {location}: {e}") from e


def load_geojson(location: str, timeout: int = 60, session: requests.Session | None = None) -> dict:
    """Fetch and parse a GeoJSON FeatureCollection."""
    raw = fetch_bytes(location, timeout=timeout, session=session)
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise LoadError(f"{location} is not valid JSON: {e}") from e

    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        raise LoadError(f"{location} is not a GeoJSON FeatureCollection")
    if not isinstance(data.get("features"), list):
        raise LoadError(f"{location} has no feature list")

    logger.info("Loaded %d features from %s", len(data["features"]), location)
    return data
