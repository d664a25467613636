from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from mapboard.api.deps import TokenUser, get_broadcaster, get_engine, require_admin
from mapboard.api.live import LiveUpdateBroadcaster
from mapboard.api.schemas import EventCreate, serialize_record, validation_errors
from mapboard.domain.geojson import records_to_collection
from mapboard.infra.db.events_repository import EventsRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])


@router.get("/events")
def list_events(engine: Engine = Depends(get_engine)):
    try:
        rows = EventsRepository(engine).list_events()
    except SQLAlchemyError:
        logger.exception("Error fetching events")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return records_to_collection(rows)


@router.post("/events", status_code=201)
async def create_event(
    request: Request,
    user: TokenUser = Depends(require_admin),
    engine: Engine = Depends(get_engine),
    broadcaster: LiveUpdateBroadcaster = Depends(get_broadcaster),
):
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"errors": [{"field": None, "msg": "Body must be JSON"}]})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"errors": [{"field": None, "msg": "Body must be an object"}]})
    try:
        payload = EventCreate.model_validate(body)
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"errors": validation_errors(exc)})

    repo = EventsRepository(engine)
    try:
        record = await run_in_threadpool(repo.create_event, payload.model_dump())
    except SQLAlchemyError:
        logger.exception("Error creating event")
        return JSONResponse(status_code=400, content={"error": "Invalid data"})

    record = serialize_record(record)
    delivered = await broadcaster.publish_new_event(record)
    logger.info("Event %s created by user %s (notified=%d)", record["id"], user.id, delivered)
    return record
