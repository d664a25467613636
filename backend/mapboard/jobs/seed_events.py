from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

import typer

from mapboard.config import Settings, configure_logging
from mapboard.domain.geojson import finite_or_none, geojson_to_record
from mapboard.domain.models import CATEGORIES
from mapboard.infra.database import build_engine
from mapboard.infra.db.events_repository import EventsRepository

logger = logging.getLogger(__name__)

app = typer.Typer(help="Seed the events table from a static GeoJSON file")


def seed_events(
    path: str | Path,
    *,
    engine=None,
    database_url: Optional[str] = None,
    force: bool = False,
) -> Dict[str, int]:
    """Load a FeatureCollection file into an empty events table.

    Runs only when ``USE_STATIC_DATA=true`` or ``force`` is set, and never on
    a table that already has rows.
    """
    settings = Settings.from_env()
    if not (force or settings.use_static_data):
        logger.info("USE_STATIC_DATA is not enabled; skipping seed")
        return {"inserted": 0, "skipped": 0, "existing": 0}

    if engine is None:
        engine = build_engine(database_url or settings.database_url)
    repo = EventsRepository(engine)
    existing = repo.count_events()
    if existing:
        logger.info("Database already seeded (%d events)", existing)
        return {"inserted": 0, "skipped": 0, "existing": existing}

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    raw_features = payload.get("features") if isinstance(payload, dict) else None
    if not isinstance(raw_features, list):
        raise ValueError(f"{path} is not a GeoJSON FeatureCollection")

    records = []
    skipped = 0
    for raw in raw_features:
        record = geojson_to_record(raw if isinstance(raw, dict) else {})
        reason = _invalid_reason(record)
        if reason:
            logger.warning("Skipping seed feature id=%s: %s", record.get("id"), reason)
            skipped += 1
            continue
        record["latitude"] = finite_or_none(record["latitude"])
        record["longitude"] = finite_or_none(record["longitude"])
        records.append(record)

    inserted = repo.bulk_insert(records)
    logger.info("Database seeded from %s: inserted=%d skipped=%d", path, inserted, skipped)
    return {"inserted": inserted, "skipped": skipped, "existing": 0}


def _invalid_reason(record: dict) -> Optional[str]:
    if not record.get("title"):
        return "missing title"
    if record.get("category") not in CATEGORIES:
        return f"unknown category {record.get('category')!r}"
    if finite_or_none(record.get("latitude")) is None or finite_or_none(record.get("longitude")) is None:
        return "invalid coordinates"
    return None


@app.command()
def cli(
    path: Path = typer.Argument(..., help="GeoJSON FeatureCollection file"),
    database_url: Optional[str] = typer.Option(None, help="Database URL (defaults to DATABASE_URL)"),
    force: bool = typer.Option(False, help="Seed even if USE_STATIC_DATA is not true"),
):
    configure_logging()
    stats = seed_events(path, database_url=database_url, force=force)
    typer.echo(f"inserted={stats['inserted']} skipped={stats['skipped']} existing={stats['existing']}")


if __name__ == "__main__":
    app()
