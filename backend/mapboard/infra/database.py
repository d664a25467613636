from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .db.tables import metadata


def build_engine(database_url: Optional[str] = None, *, create_tables: bool = True) -> Engine:
    database_url = database_url or os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL required if engine not provided")
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, connect_args=connect_args, future=True)
    if create_tables:
        metadata.create_all(engine)
    return engine
