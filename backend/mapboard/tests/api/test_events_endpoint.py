from __future__ import annotations

from datetime import datetime, timedelta, timezone

from mapboard.api.deps import issue_token

NEW_EVENT = {
    "category": "service",
    "title": "Free clinic",
    "description": "Walk-in health checks",
    "latitude": 6.5,
    "longitude": 3.35,
}


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_events_endpoint_returns_feature_collection(api_client):
    response = api_client.get("/api/events")
    assert response.status_code == 200
    data = response.json()
    assert data["type"] == "FeatureCollection"
    assert len(data["features"]) == 2
    first = data["features"][0]
    assert first["type"] == "Feature"
    assert first["geometry"] == {"type": "Point", "coordinates": [3.40, 6.45]}
    assert {"id", "category", "title", "description", "link", "date"} == set(first["properties"])
    assert first["properties"]["title"] == "Lagos Tech Meetup"


def test_create_event_requires_token(api_client):
    response = api_client.post("/api/events", json=NEW_EVENT)
    assert response.status_code == 401


def test_create_event_rejects_invalid_token(api_client):
    response = api_client.post("/api/events", json=NEW_EVENT, headers=_auth("not-a-jwt"))
    assert response.status_code == 403


def test_create_event_rejects_expired_token(api_client, settings, users):
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = issue_token(settings, user_id=users["admin"], role="admin", now=issued)
    response = api_client.post("/api/events", json=NEW_EVENT, headers=_auth(token))
    assert response.status_code == 403


def test_create_event_is_admin_only(api_client, user_token):
    response = api_client.post("/api/events", json=NEW_EVENT, headers=_auth(user_token))
    assert response.status_code == 403
    assert response.json()["detail"] == "Admins only"


def test_create_event_validates_payload(api_client, admin_token):
    bad = dict(NEW_EVENT, latitude=123.0, category="concert")
    response = api_client.post("/api/events", json=bad, headers=_auth(admin_token))
    assert response.status_code == 400
    fields = {err["field"] for err in response.json()["errors"]}
    assert {"latitude", "category"} <= fields


def test_create_event_rejects_blank_title_and_non_object(api_client, admin_token):
    response = api_client.post("/api/events", json=dict(NEW_EVENT, title="   "), headers=_auth(admin_token))
    assert response.status_code == 400

    response = api_client.post("/api/events", json=[NEW_EVENT], headers=_auth(admin_token))
    assert response.status_code == 400


def test_create_event_persists_and_appears_in_collection(api_client, admin_token):
    response = api_client.post("/api/events", json=NEW_EVENT, headers=_auth(admin_token))
    assert response.status_code == 201
    created = response.json()
    assert created["id"] == 3
    assert created["title"] == "Free clinic"
    assert created["created_at"]

    features = api_client.get("/api/events").json()["features"]
    assert [f["properties"]["id"] for f in features] == [1, 2, 3]
    assert features[-1]["geometry"]["coordinates"] == [3.35, 6.5]


def test_create_event_broadcasts_to_live_clients(api_client, admin_token):
    with api_client.websocket_connect("/api/ws") as ws:
        ws.send_text("ping")
        assert ws.receive_json() == {"type": "pong"}

        response = api_client.post("/api/events", json=NEW_EVENT, headers=_auth(admin_token))
        assert response.status_code == 201

        message = ws.receive_json()
        assert message["type"] == "newEvent"
        assert message["payload"]["id"] == response.json()["id"]
        assert message["payload"]["title"] == "Free clinic"


def test_rejected_event_is_not_broadcast(api_client, admin_token):
    with api_client.websocket_connect("/api/ws") as ws:
        response = api_client.post("/api/events", json={"title": "x"}, headers=_auth(admin_token))
        assert response.status_code == 400
        ws.send_text("ping")
        assert ws.receive_json() == {"type": "pong"}


def test_create_event_rejects_undecodable_body(api_client, admin_token):
    headers = {**_auth(admin_token), "Content-Type": "application/json"}
    response = api_client.post("/api/events", content=b'{"title": "\xff"}', headers=headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["msg"] == "Body must be JSON"

    response = api_client.post("/api/events", content=b"{not json", headers=headers)
    assert response.status_code == 400
