from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.engine import Engine

from weather_orchestrator.api.deps import get_engine, get_weather_service
from weather_orchestrator.api.schemas import PointRequest, RouteRequest
from weather_orchestrator.hub.weather_hub import NoWeatherData
from weather_orchestrator.services.route_weather import RouteWeatherService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["weather"])


@router.post("/weather-for-route")
def weather_for_route(
    payload: RouteRequest,
    service: RouteWeatherService = Depends(get_weather_service),
):
    if not payload.waypoints:
        raise HTTPException(
            status_code=400,
            detail={"error": "Waypoints required", "details": "A non-empty waypoints array is required"},
        )
    logger.info(
        "Processing weather for route: waypoints=%s distance=%s duration=%s",
        len(payload.waypoints),
        payload.total_distance,
        payload.estimated_duration,
    )
    waypoints = [item.to_domain() for item in payload.waypoints]
    result = service.weather_for_route(waypoints, start=payload.start_time)
    return result.to_dict()


@router.post("/weather-for-point")
def weather_for_point(
    payload: PointRequest,
    service: RouteWeatherService = Depends(get_weather_service),
):
    try:
        result = service.weather_for_point(payload.lat, payload.lon, payload.timestamp)
    except NoWeatherData as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return result.to_dict()


@router.get("/providers-status")
def providers_status(service: RouteWeatherService = Depends(get_weather_service)):
    return service.provider_status()


@router.get("/providers-stats")
def providers_stats(
    hours: int = Query(24, ge=1, le=24 * 7),
    engine: Engine = Depends(get_engine),
    service: RouteWeatherService = Depends(get_weather_service),
):
    try:
        return service.provider_stats(hours=hours)
    except RuntimeError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
