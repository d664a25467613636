from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterable, Set

from mapboard.client.board import MapBoard

logger = logging.getLogger(__name__)

NEW_EVENT = "newEvent"


class LiveUpdateListener:
    """Feeds live-update messages into the board.

    ``messages`` can be any async stream of raw text frames or decoded dicts
    (a WebSocket receive loop, a test fixture). Each ``newEvent`` schedules a
    reload without waiting for it, so bursts overlap and get coalesced by the
    board.
    """

    def __init__(self, board: MapBoard):
        self.board = board
        self.received = 0
        self._tasks: Set[asyncio.Task] = set()

    async def run(self, messages: AsyncIterable[Any]) -> None:
        async for raw in messages:
            message = self._decode(raw)
            if message is None or message.get("type") != NEW_EVENT:
                continue
            self.received += 1
            task = asyncio.create_task(self.board.on_new_event(message.get("payload")))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        if self._tasks:
            await asyncio.gather(*self._tasks)

    @staticmethod
    def _decode(raw: Any):
        if isinstance(raw, dict):
            return raw
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring undecodable live message: %r", raw)
            return None
        return message if isinstance(message, dict) else None
