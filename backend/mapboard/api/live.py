from __future__ import annotations

import logging
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

NEW_EVENT = "newEvent"


class LiveUpdateBroadcaster:
    """Fan-out of live-update messages to connected WebSocket clients."""

    def __init__(self) -> None:
        self.active: Set[WebSocket] = set()

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self.active.add(ws)
        logger.info("Live client connected (total=%d)", len(self.active))

    def disconnect(self, ws: WebSocket) -> None:
        self.active.discard(ws)

    async def broadcast(self, message_type: str, payload: Dict[str, Any]) -> int:
        message = {"type": message_type, "payload": payload}
        dead: Set[WebSocket] = set()
        delivered = 0
        for ws in list(self.active):
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as exc:
                logger.warning("Dropping live client after send failure: %s", exc)
                dead.add(ws)
        self.active -= dead
        return delivered

    async def publish_new_event(self, record: Dict[str, Any]) -> int:
        return await self.broadcast(NEW_EVENT, record)
