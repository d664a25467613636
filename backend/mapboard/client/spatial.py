from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pyproj import Geod
from shapely.geometry import MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.prepared import prep
from shapely.validation import explain_validity, make_valid

from mapboard.client.feature_store import FeatureStore
from mapboard.domain.models import CircleRegion, DrawnRegion, Feature, GeoPoint, PolygonRegion

logger = logging.getLogger(__name__)

GEOD = Geod(ellps="WGS84")
BUFFER_SEGMENTS = 64
# Radius of the "vendors near events" analysis.
DEFAULT_PROXIMITY_KM = 50.0


@dataclass(frozen=True)
class AnalysisResult:
    kind: str
    matches: Tuple[Feature, ...]
    summary: Dict[str, Any] = field(default_factory=dict)
    region: Optional[BaseGeometry] = None

    @property
    def ids(self) -> List[Any]:
        return [feature.id for feature in self.matches]


@dataclass(frozen=True)
class NearestResult:
    feature: Feature
    distance_km: float


@dataclass(frozen=True)
class ProximityPair:
    source: Feature
    buffer: Polygon
    targets: Tuple[Feature, ...]


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    _, _, meters = GEOD.inv(a.lon, a.lat, b.lon, b.lat)
    return meters / 1000.0


def geodesic_buffer(center: GeoPoint, radius_km: float, segments: int = BUFFER_SEGMENTS) -> Polygon:
    """Polygon approximating every point within ``radius_km`` of ``center`` on the ellipsoid.

    Vertex longitudes are unwrapped to stay within 180 degrees of the center,
    so a buffer straddling the antimeridian may extend past +/-180.
    """
    azimuths = [idx * 360.0 / segments for idx in range(segments)]
    lons, lats, _ = GEOD.fwd(
        [center.lon] * segments,
        [center.lat] * segments,
        azimuths,
        [radius_km * 1000.0] * segments,
    )
    return Polygon([(unwrap_lon(lon, center.lon), lat) for lon, lat in zip(lons, lats)])


def unwrap_lon(lon: float, reference: float) -> float:
    while lon - reference > 180.0:
        lon -= 360.0
    while lon - reference < -180.0:
        lon += 360.0
    return lon


def area_km2(geometry: BaseGeometry) -> float:
    total = 0.0
    for part in getattr(geometry, "geoms", [geometry]):
        if isinstance(part, (Polygon, MultiPolygon)):
            area, _ = GEOD.geometry_area_perimeter(part)
            total += abs(area)
    return total / 1_000_000.0


def _inside(geometry: BaseGeometry, features: Iterable[Feature]) -> Tuple[Feature, ...]:
    prepared = prep(geometry)
    # regions unwrapped across the antimeridian need the point's +/-360 copies
    return tuple(
        f
        for f in features
        if any(prepared.covers(Point(f.lon + shift, f.lat)) for shift in (0.0, 360.0, -360.0))
    )


def _valid_point(point: GeoPoint) -> bool:
    return math.isfinite(point.lat) and math.isfinite(point.lon)


class SpatialQueryEngine:
    """One-shot analyses over the loaded features.

    Radius, polygon and proximity queries scan the whole store. The nearest
    query scans whatever candidates the caller passes, defaulting to the store.
    """

    def __init__(self, store: FeatureStore, *, buffer_segments: int = BUFFER_SEGMENTS):
        self.store = store
        self.buffer_segments = buffer_segments

    def radius_query(self, center: GeoPoint, radius_km: float) -> AnalysisResult:
        if not (radius_km > 0) or not math.isfinite(radius_km) or not _valid_point(center):
            return AnalysisResult(
                kind="radius",
                matches=(),
                summary={"center": center, "radius_km": radius_km, "count": 0, "distances_km": {}},
            )
        buffer = geodesic_buffer(center, radius_km, self.buffer_segments)
        matches = _inside(buffer, self.store.all())
        distances = {f.id: round(distance_km(center, f.point), 3) for f in matches}
        return AnalysisResult(
            kind="radius",
            matches=matches,
            summary={
                "center": center,
                "radius_km": radius_km,
                "count": len(matches),
                "distances_km": distances,
                "max_distance_km": max(distances.values()) if distances else None,
            },
            region=buffer,
        )

    def polygon_query(self, vertices: Sequence[GeoPoint]) -> AnalysisResult:
        ring = [(v.lon, v.lat) for v in vertices if _valid_point(v)]
        if len(set(ring)) < 3:
            return AnalysisResult(kind="polygon", matches=(), summary={"count": 0, "area_km2": 0.0})
        polygon: BaseGeometry = Polygon(ring)
        repaired = False
        if not polygon.is_valid:
            logger.warning("Drawn polygon is invalid (%s); repairing", explain_validity(polygon))
            polygon = make_valid(polygon)
            repaired = True
        matches = _inside(polygon, self.store.all())
        return AnalysisResult(
            kind="polygon",
            matches=matches,
            summary={"count": len(matches), "area_km2": round(area_km2(polygon), 3), "repaired": repaired},
            region=polygon,
        )

    def nearest(self, point: GeoPoint, candidates: Optional[Iterable[Feature]] = None) -> Optional[NearestResult]:
        if not _valid_point(point):
            return None
        pool = self.store.all() if candidates is None else candidates
        best: Optional[NearestResult] = None
        for feature in pool:
            dist = distance_km(point, feature.point)
            # strict comparison keeps the first feature on ties
            if best is None or dist < best.distance_km:
                best = NearestResult(feature=feature, distance_km=dist)
        return best

    def proximity_query(
        self,
        source_category: str = "event",
        target_category: str = "vendor",
        radius_km: float = DEFAULT_PROXIMITY_KM,
    ) -> List[ProximityPair]:
        if not (radius_km > 0) or not math.isfinite(radius_km):
            return []
        features = self.store.all()
        targets = [f for f in features if f.category == target_category]
        pairs: List[ProximityPair] = []
        for source in features:
            if source.category != source_category:
                continue
            buffer = geodesic_buffer(source.point, radius_km, self.buffer_segments)
            pairs.append(ProximityPair(source=source, buffer=buffer, targets=_inside(buffer, targets)))
        return pairs

    def region_query(self, region: DrawnRegion) -> AnalysisResult:
        if isinstance(region, CircleRegion):
            return self.radius_query(region.center, region.radius_km)
        if isinstance(region, PolygonRegion):
            return self.polygon_query(region.vertices)
        raise TypeError(f"Unsupported region type: {type(region).__name__}")
