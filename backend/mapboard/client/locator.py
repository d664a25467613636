from __future__ import annotations

import logging
from typing import Optional

import httpx

from mapboard.config import DEFAULT_IP_LOCATOR_URL
from mapboard.domain.geojson import finite_or_none
from mapboard.domain.models import GeoPoint

logger = logging.getLogger(__name__)


class IpLocator:
    """Approximate user position from the caller's IP (ipapi.co style JSON).

    Returns ``None`` on any failure; the board then keeps its default view.
    """

    def __init__(
        self,
        url: str = DEFAULT_IP_LOCATOR_URL,
        *,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def locate(self) -> Optional[GeoPoint]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("IP location lookup failed: %s", exc)
            return None
        if not isinstance(data, dict):
            return None
        if data.get("error"):
            logger.warning("IP location lookup refused: %s", data.get("reason"))
            return None
        lat = finite_or_none(data.get("latitude"))
        lon = finite_or_none(data.get("longitude"))
        if lat is None or lon is None:
            return None
        return GeoPoint(lat=lat, lon=lon)
