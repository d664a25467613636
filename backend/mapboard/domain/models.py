from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple, Union

CATEGORIES: Tuple[str, ...] = ("publication", "event", "vendor", "service", "waste", "trending")
ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float


@dataclass(frozen=True)
class Feature:
    id: object
    category: str
    title: str
    lat: float
    lon: float
    description: str = ""
    link: Optional[str] = None
    date: Optional[str] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.lat, self.lon)


@dataclass(frozen=True)
class DroppedFeature:
    """Diagnostic for a feature rejected at load time."""

    feature_id: object
    reason: str


@dataclass(frozen=True)
class FilterState:
    selected_category: str = ALL_CATEGORIES
    search_query: str = ""
    visible_categories: FrozenSet[str] = field(default_factory=lambda: frozenset(CATEGORIES))


@dataclass(frozen=True)
class CircleRegion:
    center: GeoPoint
    radius_km: float


@dataclass(frozen=True)
class PolygonRegion:
    vertices: Tuple[GeoPoint, ...]


DrawnRegion = Union[CircleRegion, PolygonRegion]
