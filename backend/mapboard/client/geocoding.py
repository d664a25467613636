from __future__ import annotations

import logging
from typing import Optional

import httpx

from mapboard.config import DEFAULT_NOMINATIM_URL
from mapboard.domain.geojson import finite_or_none
from mapboard.domain.models import GeoPoint

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "CommunityMapBoard/0.1 (location search)"


class NominatimGeocoder:
    """Location-name lookup against an OSM Nominatim endpoint.

    Any miss or failure returns ``None``; callers degrade to unfiltered results.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_NOMINATIM_URL,
        *,
        timeout: float = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    async def geocode(self, name: str) -> Optional[GeoPoint]:
        name = (name or "").strip()
        if not name:
            return None
        params = {"q": name, "format": "json", "limit": 1}
        headers = {"User-Agent": self.user_agent}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.base_url, params=params, headers=headers)
                resp.raise_for_status()
                results = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geocoding failed for %r: %s", name, exc)
            return None
        if not isinstance(results, list) or not results:
            logger.info("No geocoding result for %r", name)
            return None
        first = results[0] if isinstance(results[0], dict) else {}
        lat = finite_or_none(first.get("lat"))
        lon = finite_or_none(first.get("lon"))
        if lat is None or lon is None:
            return None
        return GeoPoint(lat=lat, lon=lon)
