from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from mapboard.api.deps import get_engine, issue_token
from mapboard.api.main import create_app
from mapboard.config import Settings
from mapboard.infra.db.events_repository import EventsRepository
from mapboard.infra.db.tables import metadata
from mapboard.infra.db.users_repository import UsersRepository

TEST_SECRET = "test-secret"


@pytest.fixture()
def settings():
    return Settings(jwt_secret=TEST_SECRET, log_level="WARNING")


@pytest.fixture()
def engine(tmp_path):
    db_path = tmp_path / "api_tests.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    metadata.create_all(engine)
    yield engine
    metadata.drop_all(engine)


@pytest.fixture()
def seeded_engine(engine):
    EventsRepository(engine).bulk_insert(
        [
            {
                "id": 1,
                "category": "event",
                "title": "Lagos Tech Meetup",
                "description": "Monthly meetup",
                "link": "https://example.org/meetup",
                "date": "2026-03-01",
                "latitude": 6.45,
                "longitude": 3.40,
            },
            {
                "id": 2,
                "category": "vendor",
                "title": "Ikoyi Food Stall",
                "description": "Suya and drinks",
                "latitude": 6.46,
                "longitude": 3.41,
            },
        ]
    )
    return engine


@pytest.fixture()
def api_client(seeded_engine, settings):
    app = create_app(engine=seeded_engine, settings=settings)
    app.dependency_overrides[get_engine] = lambda: seeded_engine
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def users(seeded_engine):
    repo = UsersRepository(seeded_engine)
    return {
        "admin": repo.upsert_user("admin", "admin-pass", "admin"),
        "alice": repo.upsert_user("alice", "alice-pass", "user"),
    }


@pytest.fixture()
def admin_token(settings, users):
    return issue_token(settings, user_id=users["admin"], role="admin")


@pytest.fixture()
def user_token(settings, users):
    return issue_token(settings, user_id=users["alice"], role="user")
