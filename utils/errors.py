"""Error types shared by the dashboard core."""

from dataclasses import dataclass


class DashboardError(Exception):
    """Base class for dashboard failures."""


class LoadError(DashboardError):
    """A snapshot or geographic asset could not be fetched or parsed."""


class InvalidFilterValue(DashboardError, ValueError):
    """A filter selection was rejected before reaching any query."""


class SpatialKeyNotFound(DashboardError, KeyError):
    """No feature group matched a key, even after the fuzzy lookup tiers."""

    def __init__(self, key, layer: str = ""):
        self.key = key
        self.layer = layer
        super().__init__(key)

    def __str__(self) -> str:
        where = f" in {self.layer}" if self.layer else ""
        return f"No feature group found for {self.key!r}{where}"


class RemoteAPIError(DashboardError):
    """The route lookup call failed or returned no usable record."""


@dataclass(frozen=True)
class QueryFallbackUsed:
    """Record of a pre-aggregated view being replaced by a base-table query."""

    query: str
    view: str
    reason: str
