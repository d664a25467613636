import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from mapboard.client.api_client import EventApiClient
from mapboard.client.errors import FetchError, MalformedCollectionError
from mapboard.client.feature_store import FeatureStore
from mapboard.client.spatial import SpatialQueryEngine
from mapboard.client.visibility import compute_visible
from mapboard.config import Settings, configure_logging
from mapboard.domain.models import ALL_CATEGORIES, FilterState, GeoPoint
from mapboard.infra.database import build_engine
from mapboard.infra.db.users_repository import UsersRepository
from mapboard.jobs.seed_events import seed_events
from mapboard.render.map_adapter import FoliumRenderer

app = typer.Typer(help="CLI for the community map board")


def _load_store(source: Optional[str]) -> FeatureStore:
    """Load features from a GeoJSON file path or, failing that, from the event API."""
    store = FeatureStore()
    try:
        if source and Path(source).exists():
            payload = json.loads(Path(source).read_text(encoding="utf-8"))
        else:
            api_url = source or Settings.from_env().api_url
            payload = asyncio.run(EventApiClient(api_url).fetch_collection())
        store.load(payload)
    except (FetchError, MalformedCollectionError, json.JSONDecodeError) as exc:
        typer.echo(f"Could not load events: {exc}", err=True)
        raise typer.Exit(code=1)
    return store


@app.command("serve")
def cli_serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
):
    import uvicorn

    uvicorn.run("mapboard.api.main:app", host=host, port=port)


@app.command("seed")
def cli_seed(
    path: Path = typer.Argument(..., help="GeoJSON FeatureCollection file"),
    database_url: Optional[str] = typer.Option(None, help="Database URL"),
    force: bool = typer.Option(False, help="Ignore USE_STATIC_DATA"),
):
    stats = seed_events(path, database_url=database_url, force=force)
    typer.echo(f"inserted={stats['inserted']} skipped={stats['skipped']} existing={stats['existing']}")


@app.command("create-user")
def cli_create_user(
    username: str = typer.Option(..., help="Login name"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Password"),
    role: str = typer.Option("user", help="user or admin"),
    database_url: Optional[str] = typer.Option(None, help="Database URL"),
):
    engine = build_engine(database_url)
    try:
        user_id = UsersRepository(engine).upsert_user(username, password, role)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    typer.echo(f"user {username} ({role}) id={user_id}")


@app.command("render")
def cli_render(
    output: Path = typer.Option(Path("map.html"), help="Output HTML file"),
    source: Optional[str] = typer.Option(None, help="GeoJSON file or event API base URL"),
    category: str = typer.Option(ALL_CATEGORIES, help="Single category to show"),
    search: str = typer.Option("", help="Keyword filter on title/description"),
    theme: str = typer.Option("light", help="light or dark"),
    heatmap: bool = typer.Option(False, help="Add a heatmap layer"),
    cluster: bool = typer.Option(True, help="Cluster markers"),
):
    store = _load_store(source)
    state = FilterState(selected_category=category, search_query=search.lower())
    visible = compute_visible(store.all(), state)
    renderer = FoliumRenderer(theme=theme, clustered=cluster, heatmap=heatmap)
    renderer.draw(visible, set())
    path = renderer.save(output)
    typer.echo(f"{len(visible)} of {len(store)} features rendered to {path}")


@app.command("nearest")
def cli_nearest(
    lat: float = typer.Option(..., help="Latitude"),
    lon: float = typer.Option(..., help="Longitude"),
    source: Optional[str] = typer.Option(None, help="GeoJSON file or event API base URL"),
):
    store = _load_store(source)
    result = SpatialQueryEngine(store).nearest(GeoPoint(lat, lon))
    if result is None:
        typer.echo("No features loaded")
        raise typer.Exit(code=0)
    typer.echo("id\ttitle\tdistance_km")
    typer.echo(f"{result.feature.id}\t{result.feature.title}\t{result.distance_km:.3f}")


@app.command("within")
def cli_within(
    lat: float = typer.Option(..., help="Latitude"),
    lon: float = typer.Option(..., help="Longitude"),
    radius_km: float = typer.Option(..., help="Buffer radius in km"),
    source: Optional[str] = typer.Option(None, help="GeoJSON file or event API base URL"),
):
    store = _load_store(source)
    result = SpatialQueryEngine(store).radius_query(GeoPoint(lat, lon), radius_km)
    if not result.matches:
        typer.echo("No features within radius")
        raise typer.Exit(code=0)
    typer.echo("id\tcategory\ttitle\tdistance_km")
    for feature in result.matches:
        distance = result.summary["distances_km"][feature.id]
        typer.echo(f"{feature.id}\t{feature.category}\t{feature.title}\t{distance:.3f}")


@app.callback()
def main(log_level: str = typer.Option("WARNING", help="Logging level")):
    configure_logging(log_level)


if __name__ == "__main__":
    app()
