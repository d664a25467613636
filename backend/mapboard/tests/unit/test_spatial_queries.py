from __future__ import annotations

import math

import pytest

from mapboard.client.feature_store import FeatureStore
from mapboard.client.spatial import (
    SpatialQueryEngine,
    area_km2,
    distance_km,
    geodesic_buffer,
)
from mapboard.domain.models import CircleRegion, Feature, GeoPoint, PolygonRegion


def make_store(*features):
    store = FeatureStore()
    store.load(
        {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "properties": {"id": f.id, "category": f.category, "title": f.title},
                    "geometry": {"type": "Point", "coordinates": [f.lon, f.lat]},
                }
                for f in features
            ],
        }
    )
    return store


EVENT = Feature(id="E", category="event", title="Meetup", lat=6.45, lon=3.40)
VENDOR = Feature(id="V", category="vendor", title="Stall", lat=6.46, lon=3.41)
FAR_VENDOR = Feature(id="F", category="vendor", title="Abuja stall", lat=9.06, lon=7.49)


def test_distance_is_geodesic_km():
    # one degree of latitude at the equator is ~110.57 km on WGS84
    assert distance_km(GeoPoint(0, 0), GeoPoint(1, 0)) == pytest.approx(110.57, abs=0.05)


def test_radius_query_includes_both_points_within_5km():
    engine = SpatialQueryEngine(make_store(EVENT, VENDOR))
    result = engine.radius_query(GeoPoint(6.45, 3.40), 5)
    assert result.ids == ["E", "V"]
    assert result.summary["count"] == 2
    assert result.summary["distances_km"]["E"] == 0.0
    assert 1.0 < result.summary["distances_km"]["V"] < 2.0
    assert result.region is not None


def test_small_radius_keeps_only_center_point():
    engine = SpatialQueryEngine(make_store(EVENT, VENDOR))
    result = engine.radius_query(GeoPoint(6.45, 3.40), 0.01)
    assert result.ids == ["E"]


@pytest.mark.parametrize("radius", [0, -1, math.nan, math.inf])
def test_non_positive_radius_is_empty(radius):
    engine = SpatialQueryEngine(make_store(EVENT, VENDOR))
    result = engine.radius_query(GeoPoint(6.45, 3.40), radius)
    assert result.matches == ()
    assert result.region is None


def test_buffer_is_closed_ring_around_center():
    buffer = geodesic_buffer(GeoPoint(6.45, 3.40), 10, segments=32)
    assert buffer.is_valid
    assert len(buffer.exterior.coords) == 33
    # area of a 10 km disc
    assert area_km2(buffer) == pytest.approx(math.pi * 100, rel=0.01)


def test_buffer_across_antimeridian_stays_a_small_disc():
    buffer = geodesic_buffer(GeoPoint(0, 179.99), 5, segments=32)
    assert buffer.is_valid
    minx, _, maxx, _ = buffer.bounds
    assert maxx - minx < 1
    assert area_km2(buffer) == pytest.approx(math.pi * 25, rel=0.01)


def test_radius_query_across_antimeridian():
    near = Feature(id="near", category="event", title="Suva pier", lat=0, lon=179.995)
    across = Feature(id="across", category="vendor", title="Dateline stall", lat=0, lon=-179.995)
    far = Feature(id="far", category="vendor", title="Gulf of Guinea", lat=0, lon=0)
    engine = SpatialQueryEngine(make_store(near, across, far))
    result = engine.radius_query(GeoPoint(0, 179.99), 5)
    assert result.ids == ["near", "across"]
    assert result.summary["distances_km"]["across"] < 2


def test_proximity_across_antimeridian():
    event = Feature(id="E", category="event", title="Dateline fair", lat=0, lon=179.99)
    across = Feature(id="V", category="vendor", title="Dateline stall", lat=0, lon=-179.995)
    engine = SpatialQueryEngine(make_store(event, across, FAR_VENDOR))
    pairs = engine.proximity_query(radius_km=5)
    assert [t.id for t in pairs[0].targets] == ["V"]


def test_polygon_query_selects_points_inside():
    engine = SpatialQueryEngine(make_store(EVENT, VENDOR, FAR_VENDOR))
    square = [GeoPoint(6.0, 3.0), GeoPoint(6.0, 4.0), GeoPoint(7.0, 4.0), GeoPoint(7.0, 3.0)]
    result = engine.polygon_query(square)
    assert result.ids == ["E", "V"]
    assert result.summary["repaired"] is False
    assert result.summary["area_km2"] > 10_000


def test_degenerate_polygon_is_empty():
    engine = SpatialQueryEngine(make_store(EVENT))
    result = engine.polygon_query([GeoPoint(6, 3), GeoPoint(7, 4), GeoPoint(6, 3)])
    assert result.matches == ()


def test_self_intersecting_polygon_is_repaired():
    engine = SpatialQueryEngine(make_store(EVENT, FAR_VENDOR))
    bowtie = [GeoPoint(6.0, 3.0), GeoPoint(7.0, 4.0), GeoPoint(6.0, 4.0), GeoPoint(7.0, 3.0)]
    result = engine.polygon_query(bowtie)
    assert result.summary["repaired"] is True
    assert result.region.is_valid
    assert "F" not in result.ids


def test_nearest_on_empty_store_is_none():
    engine = SpatialQueryEngine(FeatureStore())
    assert engine.nearest(GeoPoint(6.45, 3.40)) is None


def test_nearest_picks_closest_and_first_on_ties():
    twin = Feature(id="T", category="event", title="Twin", lat=6.45, lon=3.40)
    engine = SpatialQueryEngine(make_store(EVENT, twin, VENDOR))
    result = engine.nearest(GeoPoint(6.451, 3.401))
    assert result.feature.id == "E"
    assert result.distance_km < 0.2


def test_nearest_limited_to_candidates():
    engine = SpatialQueryEngine(make_store(EVENT, VENDOR, FAR_VENDOR))
    result = engine.nearest(GeoPoint(6.45, 3.40), candidates=[FAR_VENDOR])
    assert result.feature.id == "F"


def test_proximity_pairs_vendors_with_events():
    engine = SpatialQueryEngine(make_store(EVENT, VENDOR, FAR_VENDOR))
    pairs = engine.proximity_query()
    assert len(pairs) == 1
    assert pairs[0].source.id == "E"
    assert [t.id for t in pairs[0].targets] == ["V"]
    assert engine.proximity_query(radius_km=0) == []


def test_region_query_dispatches():
    engine = SpatialQueryEngine(make_store(EVENT, VENDOR))
    assert engine.region_query(CircleRegion(GeoPoint(6.45, 3.40), 0.01)).kind == "radius"
    square = (GeoPoint(6.0, 3.0), GeoPoint(6.0, 4.0), GeoPoint(7.0, 4.0))
    assert engine.region_query(PolygonRegion(square)).kind == "polygon"
    with pytest.raises(TypeError):
        engine.region_query("circle")


def test_nan_feature_excluded_everywhere():
    store = FeatureStore()
    store.load(
        {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "properties": {"id": "E", "category": "event", "title": "Meetup"},
                    "geometry": {"type": "Point", "coordinates": [3.40, 6.45]},
                },
                {
                    "type": "Feature",
                    "properties": {"id": "N", "category": "vendor", "title": "Broken"},
                    "geometry": {"type": "Point", "coordinates": [3.40, float("nan")]},
                },
            ],
        }
    )
    engine = SpatialQueryEngine(store)
    assert [d.feature_id for d in store.dropped] == ["N"]
    assert engine.radius_query(GeoPoint(6.45, 3.40), 50).ids == ["E"]
    square = [GeoPoint(6.0, 3.0), GeoPoint(6.0, 4.0), GeoPoint(7.0, 4.0), GeoPoint(7.0, 3.0)]
    assert engine.polygon_query(square).ids == ["E"]
    assert engine.nearest(GeoPoint(6.45, 3.40)).feature.id == "E"
