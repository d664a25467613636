from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Union

from .models import DroppedFeature, Feature

PROPERTY_KEYS = ("id", "category", "title", "description", "link", "date")


def record_to_geojson(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {key: record.get(key) for key in PROPERTY_KEYS},
        "geometry": {
            "type": "Point",
            "coordinates": [record.get("longitude"), record.get("latitude")],
        },
    }


def records_to_collection(records: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": [record_to_geojson(r) for r in records]}


def feature_to_geojson(feature: Feature) -> Dict[str, Any]:
    return record_to_geojson(
        {
            "id": feature.id,
            "category": feature.category,
            "title": feature.title,
            "description": feature.description,
            "link": feature.link,
            "date": feature.date,
            "latitude": feature.lat,
            "longitude": feature.lon,
        }
    )


def geojson_to_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a GeoJSON feature into an events table row (seed files)."""
    props = raw.get("properties") or {}
    coords = (raw.get("geometry") or {}).get("coordinates") or [None, None]
    return {
        "id": props.get("id"),
        "category": props.get("category"),
        "title": props.get("title"),
        "description": props.get("description"),
        "link": props.get("link"),
        "date": props.get("date"),
        "latitude": coords[1] if len(coords) > 1 else None,
        "longitude": coords[0] if coords else None,
    }


def parse_feature(raw: Any) -> Union[Feature, DroppedFeature]:
    if not isinstance(raw, dict):
        return DroppedFeature(feature_id=None, reason="feature is not an object")
    props = raw.get("properties") or {}
    feature_id = props.get("id")
    geometry = raw.get("geometry")
    if not isinstance(geometry, dict) or geometry.get("type") != "Point":
        return DroppedFeature(feature_id=feature_id, reason="missing point geometry")
    coords = geometry.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return DroppedFeature(feature_id=feature_id, reason="missing coordinates")
    lon = finite_or_none(coords[0])
    lat = finite_or_none(coords[1])
    if lat is None or lon is None:
        return DroppedFeature(feature_id=feature_id, reason="non-finite coordinates")
    return Feature(
        id=feature_id,
        category=str(props.get("category") or ""),
        title=str(props.get("title") or ""),
        description=str(props.get("description") or ""),
        link=props.get("link") or None,
        date=props.get("date") or None,
        lat=lat,
        lon=lon,
    )


def parse_features(raw_features: Iterable[Any]) -> tuple[List[Feature], List[DroppedFeature]]:
    features: List[Feature] = []
    dropped: List[DroppedFeature] = []
    for raw in raw_features:
        parsed = parse_feature(raw)
        if isinstance(parsed, DroppedFeature):
            dropped.append(parsed)
        else:
            features.append(parsed)
    return features, dropped


def finite_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
