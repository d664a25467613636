"""
Folium rendering for the map board.

The board never talks to folium directly: it hands features, highlights and
view changes to a renderer, and ``FoliumRenderer`` turns the accumulated state
into a ``folium.Map`` (clustered circle markers, optional heatmap layer,
analysis highlight layer) that can be saved as a standalone HTML page.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

import folium
from folium.plugins import HeatMap, MarkerCluster
from shapely.geometry import mapping

from mapboard.client.deeplink import MapView
from mapboard.client.spatial import AnalysisResult, NearestResult, ProximityPair
from mapboard.domain.models import Feature, GeoPoint

logger = logging.getLogger(__name__)

CATEGORY_STYLES: Dict[str, Dict[str, Any]] = {
    "publication": {"color": "#ff7800", "radius": 8},
    "event": {"color": "#00ff00", "radius": 10},
    "vendor": {"color": "#0000ff", "radius": 8},
    "service": {"color": "#ff00ff", "radius": 8},
    "waste": {"color": "#FF00FF", "radius": 8},
    "trending": {"color": "#000000", "radius": 8},
}
DEFAULT_STYLE = {"color": "#808080", "radius": 8}
HIGHLIGHT_COLOR = "#ff0000"
BOOKMARK_COLOR = "#ffd700"

THEMES = {
    "light": {
        "tiles": "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        "attr": '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
    },
    "dark": {
        "tiles": "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png",
        "attr": (
            '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors '
            '&amp; &copy; <a href="https://carto.com/attributions">CARTO</a>'
        ),
    },
}


class MapRenderer(Protocol):
    def draw(self, features: Sequence[Feature], bookmarked: Set[Any]) -> None: ...

    def highlight(self, result: Any) -> None: ...

    def clear_highlight(self) -> None: ...

    def set_theme(self, theme: str) -> None: ...

    def set_view(self, view: MapView) -> None: ...

    def open_popup(self, feature: Feature) -> None: ...

    def mark_user_location(self, point: GeoPoint) -> None: ...


@dataclass(frozen=True)
class MarkerSpec:
    feature_id: Any
    location: Tuple[float, float]
    color: str
    radius: int
    border: str
    weight: int
    popup_html: str
    popup_open: bool = False


def marker_location(feature: Feature) -> Tuple[float, float]:
    """Leaflet/folium order is (lat, lon); GeoJSON stored (lon, lat)."""
    return (feature.lat, feature.lon)


def popup_html(feature: Feature) -> str:
    parts = [f"<b>{html.escape(feature.title)}</b>"]
    if feature.description:
        parts.append(html.escape(feature.description))
    if feature.link and feature.link.startswith(("http://", "https://")):
        parts.append(f'<a href="{html.escape(feature.link, quote=True)}" target="_blank">Read More</a>')
    if feature.date:
        parts.append(f"Date: {html.escape(str(feature.date))}")
    return "<br>".join(parts)


class FoliumRenderer:
    def __init__(self, *, theme: str = "light", clustered: bool = True, heatmap: bool = False):
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.theme = theme
        self.clustered = clustered
        self.heatmap = heatmap
        self.view = MapView()
        self.features: List[Feature] = []
        self.bookmarked: Set[Any] = set()
        self.highlighted: Any = None
        self.open_feature_id: Any = None
        self.user_location: Optional[GeoPoint] = None
        self.redraws = 0

    # renderer protocol

    def draw(self, features: Sequence[Feature], bookmarked: Set[Any]) -> None:
        self.features = list(features)
        self.bookmarked = set(bookmarked)
        self.redraws += 1

    def highlight(self, result: Any) -> None:
        self.highlighted = result

    def clear_highlight(self) -> None:
        self.highlighted = None

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.theme = theme

    def set_view(self, view: MapView) -> None:
        self.view = view
        self.open_feature_id = view.feature_id

    def open_popup(self, feature: Feature) -> None:
        self.open_feature_id = feature.id

    def mark_user_location(self, point: GeoPoint) -> None:
        self.user_location = point

    # folium output

    def marker_specs(self) -> List[MarkerSpec]:
        specs = []
        for feature in self.features:
            style = CATEGORY_STYLES.get(feature.category, DEFAULT_STYLE)
            bookmarked = feature.id in self.bookmarked
            specs.append(
                MarkerSpec(
                    feature_id=feature.id,
                    location=marker_location(feature),
                    color=style["color"],
                    radius=style["radius"],
                    border=BOOKMARK_COLOR if bookmarked else "#000",
                    weight=3 if bookmarked else 1,
                    popup_html=popup_html(feature),
                    popup_open=self.open_feature_id is not None
                    and str(feature.id) == str(self.open_feature_id),
                )
            )
        return specs

    def build_map(self, *, fit: bool = True) -> folium.Map:
        fmap = folium.Map(location=[self.view.lat, self.view.lng], zoom_start=self.view.zoom, tiles=None)
        theme = THEMES[self.theme]
        folium.TileLayer(tiles=theme["tiles"], attr=theme["attr"], name=f"{self.theme} theme", max_zoom=19).add_to(fmap)

        markers_parent = MarkerCluster(name="Listings").add_to(fmap) if self.clustered else fmap
        for spec in self.marker_specs():
            folium.CircleMarker(
                location=spec.location,
                radius=spec.radius,
                color=spec.border,
                weight=spec.weight,
                opacity=1,
                fill=True,
                fill_color=spec.color,
                fill_opacity=0.8,
                popup=folium.Popup(spec.popup_html, max_width=300, show=spec.popup_open),
            ).add_to(markers_parent)

        if self.heatmap and self.features:
            HeatMap([marker_location(f) for f in self.features], name="Heatmap", radius=15, blur=10).add_to(fmap)

        if self.highlighted is not None:
            self._add_highlight(fmap, self.highlighted)

        if self.user_location is not None:
            folium.Marker(
                [self.user_location.lat, self.user_location.lon],
                popup=folium.Popup("Your Location", show=True),
            ).add_to(fmap)

        # a located user or a deep-linked feature keeps the view it was given
        if fit and self.features and self.view.feature_id is None and self.user_location is None:
            lats = [f.lat for f in self.features]
            lons = [f.lon for f in self.features]
            fmap.fit_bounds([[min(lats), min(lons)], [max(lats), max(lons)]])

        folium.LayerControl().add_to(fmap)
        return fmap

    def save(self, path: str | Path) -> Path:
        output_file = Path(path).resolve()
        output_file.parent.mkdir(parents=True, exist_ok=True)
        self.build_map().save(str(output_file))
        logger.info("Map saved to %s", output_file)
        return output_file

    def _add_highlight(self, fmap: folium.Map, result: Any) -> None:
        layer = folium.FeatureGroup(name="Analysis")
        if isinstance(result, AnalysisResult):
            if result.region is not None:
                folium.GeoJson(
                    mapping(result.region),
                    style_function=lambda _: {"color": HIGHLIGHT_COLOR, "weight": 2, "fillOpacity": 0.1},
                ).add_to(layer)
            _highlight_markers(layer, result.matches)
        elif isinstance(result, NearestResult):
            _highlight_markers(layer, [result.feature], label=f"Nearest ({result.distance_km:.2f} km)")
        elif isinstance(result, list):
            for pair in result:
                if not isinstance(pair, ProximityPair):
                    continue
                folium.GeoJson(
                    mapping(pair.buffer),
                    style_function=lambda _: {"color": HIGHLIGHT_COLOR, "weight": 2, "fillOpacity": 0.1},
                ).add_to(layer)
                _highlight_markers(layer, pair.targets, label="Nearby vendor")
        layer.add_to(fmap)


def _highlight_markers(layer: folium.FeatureGroup, features: Iterable[Feature], label: Optional[str] = None) -> None:
    for feature in features:
        text = f"{label}: {feature.title}" if label else feature.title
        folium.CircleMarker(
            location=marker_location(feature),
            radius=10,
            color="#000",
            weight=2,
            fill=True,
            fill_color=HIGHLIGHT_COLOR,
            fill_opacity=0.9,
            popup=folium.Popup(f"<b>{html.escape(text)}</b>", max_width=300),
        ).add_to(layer)
