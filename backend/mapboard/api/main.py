from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mapboard.api.live import LiveUpdateBroadcaster
from mapboard.api.routers import auth, events, live
from mapboard.config import Settings, configure_logging
from mapboard.infra.database import build_engine


def create_app(engine=None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    app = FastAPI(title="Community Map Board API", version="0.1.0")
    if engine is None:
        engine = build_engine(settings.database_url) if settings.database_url else None
    app.state.db_engine = engine
    app.state.settings = settings
    app.state.broadcaster = LiveUpdateBroadcaster()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(live.router, prefix="/api")
    return app


app = create_app()
