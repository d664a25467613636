from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.engine import Engine

from mapboard.api.deps import get_engine, get_settings, issue_token
from mapboard.api.schemas import LoginRequest, validation_errors
from mapboard.config import Settings
from mapboard.infra.db.users_repository import UsersRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/login")
async def login(
    request: Request,
    engine: Engine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
):
    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"errors": [{"field": None, "msg": "Body must be an object"}]})
    try:
        credentials = LoginRequest.model_validate(body)
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"errors": validation_errors(exc)})

    user = await run_in_threadpool(
        UsersRepository(engine).verify_credentials, credentials.username, credentials.password
    )
    if user is None:
        logger.info("Failed login for %s", credentials.username)
        return JSONResponse(status_code=401, content={"error": "Invalid credentials"})
    token = issue_token(settings, user_id=user["id"], role=user["role"])
    return {"token": token, "role": user["role"]}
