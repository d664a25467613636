from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Set

from mapboard.client.api_client import EventApiClient
from mapboard.client.debounce import Debouncer
from mapboard.client.deeplink import MapView, build_share_url, parse_share_url
from mapboard.client.errors import FetchError, MalformedCollectionError, ShareError
from mapboard.client.feature_store import FeatureStore
from mapboard.client.geocoding import NominatimGeocoder
from mapboard.client.locator import IpLocator
from mapboard.client.notify import BannerNotifier
from mapboard.client.session import ANALYSES_COMPLETED, FILTERS_TOGGLED, POPUPS_OPENED, SessionStore
from mapboard.client.spatial import (
    DEFAULT_PROXIMITY_KM,
    AnalysisResult,
    NearestResult,
    ProximityPair,
    SpatialQueryEngine,
)
from mapboard.client.visibility import FilterController, compute_visible
from mapboard.config import Settings
from mapboard.domain.models import DrawnRegion, Feature, FilterState, GeoPoint
from mapboard.render.map_adapter import MapRenderer

logger = logging.getLogger(__name__)

USER_LOCATION_ZOOM = 10


class MapBoard:
    """Wires the feature store, filters, spatial engine and session to a renderer.

    Every user interaction arrives as a method call; the board updates the
    owning component and asks the renderer to redraw. All methods run on one
    asyncio loop, the only suspension points being network calls.

    Debounced search schedules its redraw on ``loop`` when one is given and on
    the running loop otherwise, so without ``loop`` :meth:`search` must be
    called from inside a coroutine.
    """

    def __init__(
        self,
        api: EventApiClient,
        renderer: Optional[MapRenderer],
        session: SessionStore,
        *,
        notifier: Optional[BannerNotifier] = None,
        geocoder: Optional[NominatimGeocoder] = None,
        locator: Optional[IpLocator] = None,
        debounce_s: float = 0.3,
        share_base_url: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if renderer is None:
            raise ValueError("A map renderer (map container) is required")
        self.api = api
        self.renderer = renderer
        self.session = session
        self.notifier = notifier or BannerNotifier()
        self.geocoder = geocoder
        self.locator = locator
        self.share_base_url = share_base_url
        self.store = FeatureStore()
        self.engine = SpatialQueryEngine(self.store)
        self.filters = FilterController(self._on_filter_change, debouncer=Debouncer(debounce_s, loop=loop))
        self.view = MapView()
        self.last_analysis: Any = None
        self.reload_count = 0
        self._reload_lock = asyncio.Lock()
        self._reload_requested = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        renderer: Optional[MapRenderer],
        *,
        share_base_url: Optional[str] = None,
    ) -> "MapBoard":
        session = SessionStore(settings.session_path).load()
        locator = None
        if settings.ip_locator_url:
            locator = IpLocator(settings.ip_locator_url, timeout=settings.geocoder_timeout_s)
        return cls(
            EventApiClient(settings.api_url),
            renderer,
            session,
            notifier=BannerNotifier(settings.banner_timeout_s),
            geocoder=NominatimGeocoder(settings.nominatim_url, timeout=settings.geocoder_timeout_s),
            locator=locator,
            debounce_s=settings.search_debounce_ms / 1000.0,
            share_base_url=share_base_url,
        )

    async def start(self, url: Optional[str] = None) -> None:
        self.renderer.set_theme(self.session.theme)
        if self.locator is not None:
            await self.locate_user()
        await self.reload()
        if url:
            self.apply_deep_link(url)

    async def locate_user(self) -> Optional[GeoPoint]:
        """Center on the caller's approximate position; the default view stays on failure."""
        point = await self.locator.locate() if self.locator else None
        if point is None:
            return None
        self.view = MapView(lat=point.lat, lng=point.lon, zoom=USER_LOCATION_ZOOM)
        self.renderer.set_view(self.view)
        self.renderer.mark_user_location(point)
        return point

    # loading

    async def reload(self) -> bool:
        """Fetch and replace the collection; on failure keep the last good data.

        Only one fetch runs at a time. Requests that arrive while it is in
        flight are answered by a single follow-up fetch before returning.
        """
        async with self._reload_lock:
            ok = await self._fetch_and_load()
            while self._reload_requested:
                self._reload_requested = False
                ok = await self._fetch_and_load()
            return ok

    async def _fetch_and_load(self) -> bool:
        self.reload_count += 1
        try:
            raw = await self.api.fetch_collection()
            self.store.load(raw)
        except (FetchError, MalformedCollectionError) as exc:
            self.notifier.show(f"Could not load events: {exc}")
            return False
        self.redraw()
        return True

    async def on_new_event(self, payload: Any = None) -> None:
        """Live-update hook; notifications arriving mid-reload collapse into one follow-up reload."""
        if self._reload_lock.locked():
            self._reload_requested = True
            return
        await self.reload()

    # filtering

    def visible(self) -> List[Feature]:
        return compute_visible(self.store.all(), self.filters.state)

    def bookmarked_ids(self) -> Set[Any]:
        return {b["id"] for b in self.session.bookmarks()}

    def redraw(self) -> None:
        self.renderer.draw(self.visible(), self.bookmarked_ids())

    def select_category(self, category: str) -> None:
        self.filters.set_category(category)

    def toggle_category(self, category: str) -> bool:
        enabled = self.filters.toggle_category(category)
        self.session.record(FILTERS_TOGGLED)
        return enabled

    def search(self, text: str) -> None:
        """Debounced; needs a running loop unless the board was built with ``loop``."""
        self.filters.set_search(text)

    def _on_filter_change(self, state: FilterState) -> None:
        self.redraw()

    async def filter_near_location(self, name: str, radius_km: float) -> List[Feature]:
        """Visible features within ``radius_km`` of a named place; unfiltered if the place is unknown."""
        visible = self.visible()
        point = await self.geocoder.geocode(name) if self.geocoder else None
        if point is None:
            self.notifier.show(f"Location not found: {name}", level="info")
            return visible
        inside = {f.id for f in self.engine.radius_query(point, radius_km).matches}
        return [f for f in visible if f.id in inside]

    # analyses

    def analyze_region(self, region: DrawnRegion) -> AnalysisResult:
        return self._run_analysis(lambda: self.engine.region_query(region))

    def analyze_radius(self, center: GeoPoint, radius_km: float) -> AnalysisResult:
        return self._run_analysis(lambda: self.engine.radius_query(center, radius_km))

    def analyze_polygon(self, vertices: List[GeoPoint]) -> AnalysisResult:
        return self._run_analysis(lambda: self.engine.polygon_query(vertices))

    def analyze_nearest(self, point: GeoPoint) -> Optional[NearestResult]:
        return self._run_analysis(lambda: self.engine.nearest(point, self.visible()))

    def analyze_proximity(
        self,
        source_category: str = "event",
        target_category: str = "vendor",
        radius_km: float = DEFAULT_PROXIMITY_KM,
    ) -> List[ProximityPair]:
        return self._run_analysis(
            lambda: self.engine.proximity_query(source_category, target_category, radius_km)
        )

    def _run_analysis(self, query):
        self.renderer.clear_highlight()
        result = query()
        self.last_analysis = result
        if result is not None:
            self.renderer.highlight(result)
        self.session.record(ANALYSES_COMPLETED)
        return result

    # popups, bookmarks, sharing, theme

    def open_popup(self, feature_id: Any) -> Optional[Feature]:
        feature = self.store.get(feature_id)
        if feature is None:
            return None
        self.renderer.open_popup(feature)
        self.session.record(POPUPS_OPENED)
        return feature

    def toggle_bookmark(self, feature_id: Any) -> bool:
        feature = self.store.get(feature_id)
        if feature is None:
            raise KeyError(f"Feature {feature_id!r} is not loaded")
        bookmarked = self.session.toggle_bookmark(feature)
        self.redraw()
        return bookmarked

    def share_link(self, feature_id: Any = None) -> Optional[str]:
        view = MapView(lat=self.view.lat, lng=self.view.lng, zoom=self.view.zoom, feature_id=feature_id)
        try:
            return build_share_url(self.share_base_url or "", view)
        except ShareError as exc:
            self.notifier.show(f"Could not create share link: {exc}")
            return None

    def apply_deep_link(self, url: str) -> MapView:
        self.view = parse_share_url(url)
        self.renderer.set_view(self.view)
        if self.view.feature_id is not None:
            self.open_popup(self.view.feature_id)
        return self.view

    def toggle_theme(self) -> str:
        theme = "light" if self.session.theme == "dark" else "dark"
        self.session.set_theme(theme)
        self.renderer.set_theme(theme)
        return theme
