from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from mapboard.client.errors import ShareError

# Default view centred on Nigeria.
DEFAULT_LAT = 9.0820
DEFAULT_LNG = 8.6753
DEFAULT_ZOOM = 6
MIN_ZOOM = 0
MAX_ZOOM = 19


@dataclass(frozen=True)
class MapView:
    lat: float = DEFAULT_LAT
    lng: float = DEFAULT_LNG
    zoom: int = DEFAULT_ZOOM
    feature_id: Optional[str] = None


def build_share_url(base_url: str, view: MapView) -> str:
    if not base_url:
        raise ShareError("A base URL is required to build a share link")
    parts = urlsplit(base_url)
    if not parts.scheme or not parts.netloc:
        raise ShareError(f"Cannot share from a relative URL: {base_url}")
    params = {"lat": f"{view.lat:.5f}", "lng": f"{view.lng:.5f}", "zoom": str(view.zoom)}
    if view.feature_id is not None:
        params["feature"] = str(view.feature_id)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), ""))


def parse_share_url(url: str) -> MapView:
    """Read ``lat``/``lng``/``zoom``/``feature`` back; bad values fall back to the default view."""
    query = parse_qs(urlsplit(url).query)
    lat = _float_param(query, "lat", -90.0, 90.0)
    lng = _float_param(query, "lng", -180.0, 180.0)
    if lat is None or lng is None:
        lat, lng = DEFAULT_LAT, DEFAULT_LNG
    zoom = _float_param(query, "zoom", MIN_ZOOM, MAX_ZOOM)
    feature = (query.get("feature") or [None])[0] or None
    return MapView(
        lat=lat,
        lng=lng,
        zoom=int(zoom) if zoom is not None else DEFAULT_ZOOM,
        feature_id=feature,
    )


def _float_param(query: dict[str, list[str]], key: str, low: float, high: float) -> Optional[float]:
    raw: Any = (query.get(key) or [None])[0]
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or not (low <= value <= high):
        return None
    return value
