from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.engine import Engine

from .tables import events_table

EVENT_COLUMNS = [
    "category",
    "title",
    "description",
    "link",
    "date",
    "latitude",
    "longitude",
]


class EventsRepository:
    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine is required")
        self.engine = engine

    def create_event(self, event_data: Dict[str, Any]) -> Dict[str, Any]:
        resolved = {col: event_data.get(col) for col in EVENT_COLUMNS}
        now = datetime.now(timezone.utc)
        with self.engine.begin() as conn:
            result = conn.execute(insert(events_table).values(**resolved, created_at=now, updated_at=now))
            event_id = result.inserted_primary_key[0]
            row = conn.execute(select(events_table).where(events_table.c.id == event_id)).mappings().one()
        return dict(row)

    def list_events(self) -> List[Dict[str, Any]]:
        with self.engine.begin() as conn:
            rows = conn.execute(select(events_table).order_by(events_table.c.id)).mappings().all()
        return [dict(row) for row in rows]

    def count_events(self) -> int:
        with self.engine.begin() as conn:
            return conn.execute(select(func.count()).select_from(events_table)).scalar_one()

    def bulk_insert(self, records: Iterable[Dict[str, Any]]) -> int:
        now = datetime.now(timezone.utc)
        count = 0
        with self.engine.begin() as conn:
            for record in records:
                values = {col: record.get(col) for col in EVENT_COLUMNS}
                event_id = _coerce_id(record.get("id"))
                if event_id is not None:
                    values["id"] = event_id
                conn.execute(insert(events_table).values(**values, created_at=now, updated_at=now))
                count += 1
        return count


def _coerce_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
