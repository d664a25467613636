from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["live"])


@router.websocket("/ws")
async def live_updates(ws: WebSocket):
    """Push channel: clients receive ``{"type": "newEvent", "payload": {...}}``."""
    broadcaster = ws.app.state.broadcaster
    await broadcaster.connect(ws)
    try:
        while True:
            data = await ws.receive_text()
            if data == "ping":
                await ws.send_json({"type": "pong"})
    except WebSocketDisconnect:
        broadcaster.disconnect(ws)
