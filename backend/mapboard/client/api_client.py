from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from mapboard.client.errors import AuthenticationError, EventRejectedError, FetchError


class EventApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def fetch_collection(self) -> Any:
        try:
            async with self._client() as client:
                resp = await client.get("/events")
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"Event API returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Could not reach event API: {exc}") from exc
        except ValueError as exc:
            raise FetchError("Event API returned invalid JSON") from exc

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.post("/login", json={"username": username, "password": password})
        except httpx.HTTPError as exc:
            raise AuthenticationError(f"Login request failed: {exc}") from exc
        if resp.status_code == 400:
            raise AuthenticationError("Username and password are required", status_code=400)
        if resp.status_code == 401:
            raise AuthenticationError("Invalid credentials", status_code=401)
        if resp.status_code != 200:
            raise AuthenticationError(f"Login failed ({resp.status_code})", status_code=resp.status_code)
        return resp.json()

    async def create_event(self, token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with self._client() as client:
                resp = await client.post("/events", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise FetchError(f"Could not reach event API: {exc}") from exc
        if resp.status_code in (401, 403):
            raise AuthenticationError(_error_message(resp, "Not allowed"), status_code=resp.status_code)
        if resp.status_code == 400:
            body = _json_or_empty(resp)
            raise EventRejectedError(body.get("error", "Invalid event"), errors=body.get("errors"))
        if resp.status_code != 201:
            raise FetchError(f"Event API returned {resp.status_code}")
        return resp.json()


def _json_or_empty(resp: httpx.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_message(resp: httpx.Response, default: str) -> str:
    body = _json_or_empty(resp)
    return body.get("error") or body.get("detail") or default
