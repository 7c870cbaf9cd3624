from __future__ import annotations

from fastapi import HTTPException, Request
from sqlalchemy.engine import Engine

from weather_orchestrator.services.route_weather import RouteWeatherService


def get_engine(request: Request) -> Engine:
    engine = getattr(request.app.state, "db_engine", None)
    if engine is None:
        raise HTTPException(status_code=500, detail="Database engine not configured")
    return engine


def get_weather_service(request: Request) -> RouteWeatherService:
    service = getattr(request.app.state, "weather_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Weather service not configured")
    return service
