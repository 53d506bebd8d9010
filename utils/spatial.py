"""Spatial layer index: feature groups by county name or district number."""

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable, Iterable

from shapely.errors import GEOSException
from shapely.geometry import shape

from utils.errors import SpatialKeyNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundingBox:
    west: float
    south: float
    east: float
    north: float

    @classmethod
    def from_bounds(cls, bounds) -> "BoundingBox":
        """Build from a shapely ``(minx, miny, maxx, maxy)`` tuple."""
        minx, miny, maxx, maxy = bounds
        return cls(float(minx), float(miny), float(maxx), float(maxy))

    @staticmethod
    def union(boxes: Iterable["BoundingBox"]) -> "BoundingBox | None":
        boxes = list(boxes)
        if not boxes:
            return None
        return BoundingBox(
            min(b.west for b in boxes),
            min(b.south for b in boxes),
            max(b.east for b in boxes),
            max(b.north for b in boxes),
        )

    def to_maplibre(self) -> list[list[float]]:
        """``[[west, south], [east, north]]`` as expected by ``map.fitBounds``."""
        return [[self.west, self.south], [self.east, self.north]]


def feature_bounds(feature: dict) -> BoundingBox | None:
    """Bounding box of one GeoJSON feature, or None if it has no usable geometry."""
    geometry = feature.get("geometry")
    if not geometry:
        return None
    try:
        geom = shape(geometry)
    except (GEOSException, ValueError, TypeError, KeyError, AttributeError) as e:
        logger.warning("Skipping feature with invalid geometry: %s", e)
        return None
    if geom.is_empty:
        return None
    return BoundingBox.from_bounds(geom.bounds)


@dataclass
class FeatureGroup:
    """Features sharing one key attribute value."""

    key: str
    features: list[dict] = field(default_factory=list)
    _boxes: list[BoundingBox] = field(default_factory=list, repr=False)

    @cached_property
    def bounds(self) -> BoundingBox | None:
        return BoundingBox.union(self._boxes)

    def as_feature_collection(self) -> dict:
        return {"type": "FeatureCollection", "features": list(self.features)}


def _key_variants(key: str) -> list[str]:
    variants = []
    for candidate in (key, key.upper(), key.lower(), key.title(), key.capitalize()):
        if candidate not in variants:
            variants.append(candidate)
    return variants


class SpatialLayerIndex:
    """
    Lookup of feature groups by key with a forgiving match.

    Keys are stored exactly as they appear in the source file. Lookups try
    the exact key, then upper/lower/title-cased variants, then substring
    containment in either direction as a last resort.
    """

    def __init__(self, groups: dict[str, FeatureGroup] | None = None, name: str = ""):
        self.groups = dict(groups or {})
        self.name = name

    @classmethod
    def build(
        cls,
        feature_collection: dict,
        group_by: str | Iterable[str],
        key_func: Callable[[object], str | None] | None = None,
        name: str = "",
    ) -> "SpatialLayerIndex":
        """
        Group a FeatureCollection by an attribute.

        Args:
            feature_collection: GeoJSON FeatureCollection
            group_by: Property name, or candidate names tried in order
            key_func: Optional normalizer applied to the attribute value
            name: Layer name used in log messages

        Returns:
            SpatialLayerIndex with one FeatureGroup per key
        """
        attributes = (group_by,) if isinstance(group_by, str) else tuple(group_by)
        groups: dict[str, FeatureGroup] = {}
        skipped = 0

        for feature in (feature_collection or {}).get("features", []):
            props = feature.get("properties") or {}
            raw = next(
                (props[a] for a in attributes if props.get(a) not in (None, "")),
                None,
            )
            if raw is None:
                skipped += 1
                continue
            if key_func is not None:
                key = key_func(raw)
            elif isinstance(raw, float) and raw.is_integer():
                key = str(int(raw))
            else:
                key = str(raw)
            if not key:
                skipped += 1
                continue

            box = feature_bounds(feature)
            if box is None:
                skipped += 1
                continue

            group = groups.setdefault(key, FeatureGroup(key=key))
            group.features.append(feature)
            group._boxes.append(box)

        if skipped:
            logger.info("%s: skipped %d features without key or geometry", name or "layer", skipped)
        logger.info("%s: indexed %d feature groups", name or "layer", len(groups))
        return cls(groups, name=name)

    def __len__(self) -> int:
        return len(self.groups)

    def __contains__(self, key) -> bool:
        try:
            self.find(key)
        except SpatialKeyNotFound:
            return False
        return True

    def keys(self) -> list[str]:
        return list(self.groups)

    def find(self, key) -> FeatureGroup:
        """
        Resolve a key to its FeatureGroup.

        Raises:
            SpatialKeyNotFound: No exact, case-variant or substring match
        """
        if key is None:
            raise SpatialKeyNotFound(key, self.name)
        key = str(key)
        if not key.strip():
            raise SpatialKeyNotFound(key, self.name)

        for candidate in _key_variants(key):
            if candidate in self.groups:
                return self.groups[candidate]

        # Last resort: substring containment either way
        needle = key.strip().lower()
        for stored, group in self.groups.items():
            hay = stored.lower()
            if needle in hay or hay in needle:
                logger.info("%s: %r matched stored key %r by substring", self.name or "layer", key, stored)
                return group

        raise SpatialKeyNotFound(key, self.name)

    def bounds_for(self, key) -> BoundingBox:
        return self.find(key).bounds
