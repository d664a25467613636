from __future__ import annotations

import pytest

from mapboard.client.errors import MalformedCollectionError
from mapboard.client.feature_store import FeatureStore


def collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


def point(feature_id, lon, lat, category="event"):
    return {
        "type": "Feature",
        "properties": {"id": feature_id, "category": category, "title": f"Item {feature_id}"},
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
    }


def test_load_replaces_contents():
    store = FeatureStore()
    store.load(collection(point(1, 3.4, 6.45), point(2, 3.41, 6.46)))
    assert len(store) == 2
    store.load(collection(point(3, 3.5, 6.5)))
    assert [f.id for f in store.all()] == [3]
    assert store.get(1) is None


def test_nan_feature_is_dropped_and_reported():
    store = FeatureStore()
    store.load(collection(point(1, 3.4, 6.45), point(2, float("nan"), 6.46)))
    assert [f.id for f in store.all()] == [1]
    assert [d.feature_id for d in store.dropped] == [2]


@pytest.mark.parametrize("payload", [None, [], {"type": "FeatureCollection"}, {"features": "nope"}])
def test_malformed_collection_keeps_previous_data(payload):
    store = FeatureStore()
    store.load(collection(point(1, 3.4, 6.45)))
    with pytest.raises(MalformedCollectionError):
        store.load(payload)
    assert [f.id for f in store.all()] == [1]


def test_get_accepts_string_ids():
    store = FeatureStore()
    store.load(collection(point(42, 3.4, 6.45)))
    assert store.get(42).id == 42
    assert store.get("42").id == 42
    assert store.get("43") is None


def test_empty_collection_is_valid():
    store = FeatureStore()
    store.load(collection())
    assert store.all() == ()
