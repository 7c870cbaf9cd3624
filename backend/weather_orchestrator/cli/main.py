import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from weather_orchestrator.config import Settings, configure_logging
from weather_orchestrator.domain.models import Waypoint
from weather_orchestrator.hub.weather_hub import NoWeatherData
from weather_orchestrator.infra.database import create_db_engine, init_db
from weather_orchestrator.services.factory import build_service

app = typer.Typer(help="CLI for the weather orchestrator")


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Logging level (defaults to LOG_LEVEL)")):
    configure_logging(log_level or Settings.from_env().log_level)


def _load_waypoints(path: Path) -> list[Waypoint]:
    payload = json.loads(path.read_text())
    items = payload.get("waypoints", []) if isinstance(payload, dict) else payload
    waypoints = []
    for item in items:
        minutes = item.get("estimatedTimeFromStart_minutes", item.get("estimatedTimeFromStart", 0))
        waypoints.append(
            Waypoint(
                lat=float(item["lat"]),
                lon=float(item["lon"]),
                minutes_from_start=float(minutes or 0),
                elevation=item.get("elevation"),
                description=item.get("description"),
            )
        )
    return waypoints


def _build_service(settings: Settings):
    engine = create_db_engine(settings.database_url)
    if engine is not None:
        init_db(engine)
    return build_service(settings, engine=engine)


@app.command("point")
def cli_point(
    lat: float = typer.Option(..., help="Latitude"),
    lon: float = typer.Option(..., help="Longitude"),
    at: Optional[str] = typer.Option(None, help="Target time, ISO 8601 (default: now)"),
):
    settings = Settings.from_env()
    service = _build_service(settings)
    try:
        result = service.weather_for_point(lat, lon, datetime.fromisoformat(at) if at else None)
    except NoWeatherData as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    finally:
        service.close()
    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


@app.command("route")
def cli_route(
    file: Path = typer.Option(..., exists=True, dir_okay=False, help="JSON file with a waypoints list"),
    start: Optional[str] = typer.Option(None, help="Departure time, ISO 8601 (default: now)"),
):
    waypoints = _load_waypoints(file)
    if not waypoints:
        typer.echo("No waypoints found in file", err=True)
        raise typer.Exit(code=2)
    settings = Settings.from_env()
    service = _build_service(settings)
    try:
        result = service.weather_for_route(waypoints, start=datetime.fromisoformat(start) if start else None)
    finally:
        service.close()
    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


@app.command("status")
def cli_status():
    settings = Settings.from_env()
    service = build_service(settings)
    try:
        status = service.provider_status()
    finally:
        service.close()
    typer.echo("provider\tconfigured\tremaining/limit")
    for name, info in status.items():
        limits = info["rateLimitStatus"] or {}
        typer.echo(f"{name}\t{info['configured']}\t{limits.get('remaining')}/{limits.get('limit')}")


@app.command("init-db")
def cli_init_db(database_url: Optional[str] = typer.Option(None, help="Defaults to DATABASE_URL")):
    engine = create_db_engine(database_url or Settings.from_env().database_url)
    if engine is None:
        typer.echo("DATABASE_URL is not set", err=True)
        raise typer.Exit(code=1)
    init_db(engine)
    typer.echo("provider_usage table ready")


if __name__ == "__main__":
    app()
