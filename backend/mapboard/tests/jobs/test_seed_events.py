from __future__ import annotations

import json

import pytest
from sqlalchemy import create_engine

from mapboard.infra.db.events_repository import EventsRepository
from mapboard.infra.db.tables import metadata
from mapboard.jobs.seed_events import seed_events


@pytest.fixture()
def engine(tmp_path):
    db_path = tmp_path / "seed_test.db"
    engine = create_engine(f"sqlite:///{db_path}", future=True)
    metadata.create_all(engine)
    yield engine
    metadata.drop_all(engine)


@pytest.fixture()
def seed_file(tmp_path):
    def _feature(feature_id, category, title, coords):
        return {
            "type": "Feature",
            "properties": {"id": feature_id, "category": category, "title": title},
            "geometry": {"type": "Point", "coordinates": coords},
        }

    path = tmp_path / "static.geojson"
    payload = {
        "type": "FeatureCollection",
        "features": [
            _feature(1, "event", "Lagos Tech Meetup", [3.40, 6.45]),
            _feature(2, "vendor", "Suya stall", [3.41, 6.46]),
            _feature(3, "concert", "Unknown category", [3.42, 6.47]),
            _feature(4, "waste", "Broken point", ["x", 6.47]),
        ],
    }
    path.write_text(json.dumps(payload))
    return path


def test_seed_requires_static_data_flag(engine, seed_file, monkeypatch):
    monkeypatch.delenv("USE_STATIC_DATA", raising=False)
    stats = seed_events(seed_file, engine=engine)
    assert stats["inserted"] == 0
    assert EventsRepository(engine).count_events() == 0


def test_seed_inserts_valid_features(engine, seed_file, monkeypatch):
    monkeypatch.setenv("USE_STATIC_DATA", "true")
    stats = seed_events(seed_file, engine=engine)
    assert stats == {"inserted": 2, "skipped": 2, "existing": 0}
    rows = EventsRepository(engine).list_events()
    assert [(r["id"], r["latitude"], r["longitude"]) for r in rows] == [(1, 6.45, 3.40), (2, 6.46, 3.41)]


def test_seed_skips_populated_table(engine, seed_file):
    seed_events(seed_file, engine=engine, force=True)
    stats = seed_events(seed_file, engine=engine, force=True)
    assert stats == {"inserted": 0, "skipped": 0, "existing": 2}


def test_seed_rejects_non_collection(engine, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([1, 2, 3]))
    with pytest.raises(ValueError):
        seed_events(path, engine=engine, force=True)
