from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from weather_orchestrator.domain.models import FusedRecord, Point, RiskAlert, Waypoint, WaypointWeather, to_utc
from weather_orchestrator.domain.risk import classify_risks
from weather_orchestrator.domain.summary import summarize_route, used_sources
from weather_orchestrator.hub.weather_hub import NoWeatherData, WeatherHub
from weather_orchestrator.infra.db.usage_repository import ProviderUsageRepository
from weather_orchestrator.infra.store import Store

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUTE_POINTS = 25


@dataclass
class RouteWeather:
    entries: List[WaypointWeather]
    risks: List[RiskAlert]
    summary: Dict[str, Any]
    sources: List[str]
    processed_at: datetime
    total_waypoints: int = 0

    def to_dict(self) -> Dict[str, Any]:
        summary = dict(self.summary)
        if self.total_waypoints > len(self.entries):
            summary["sampledWaypoints"] = len(self.entries)
            summary["totalWaypoints"] = self.total_waypoints
        return {
            "weatherData": [entry.to_dict() for entry in self.entries],
            "summary": summary,
            "risks": [risk.to_dict() for risk in self.risks],
            "sources": self.sources,
            "processedAt": self.processed_at.isoformat(),
        }


@dataclass
class PointWeather:
    point: Point
    weather: FusedRecord
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weather": self.weather.to_dict(),
            "location": {"lat": self.point.lat, "lon": self.point.lon},
            "timestamp": self.point.timestamp.isoformat(),
            "processedAt": self.processed_at.isoformat(),
        }


def sample_waypoints(waypoints: Sequence[Waypoint], limit: int) -> List[Tuple[int, Waypoint]]:
    """Evenly spaced subset of at most ``limit`` waypoints, endpoints included."""
    indexed = list(enumerate(waypoints))
    if limit <= 0 or len(indexed) <= limit:
        return indexed
    if limit == 1:
        return indexed[:1]
    step = (len(indexed) - 1) / (limit - 1)
    picks = sorted({round(i * step) for i in range(limit)})
    return [indexed[i] for i in picks]


class RouteWeatherService:
    def __init__(
        self,
        hub: WeatherHub,
        *,
        store: Optional[Store] = None,
        usage: Optional[ProviderUsageRepository] = None,
        max_route_points: int = DEFAULT_MAX_ROUTE_POINTS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.hub = hub
        self.store = store
        self.usage = usage
        self.max_route_points = max_route_points
        self._clock = clock

    def weather_for_point(self, lat: float, lon: float, timestamp: Optional[datetime] = None) -> PointWeather:
        point = Point(lat, lon, timestamp or self._clock())
        logger.info("Processing weather for point %.4f, %.4f at %s", lat, lon, point.timestamp.isoformat())
        return PointWeather(point=point, weather=self.hub.fetch_point(point), processed_at=self._clock())

    def weather_for_route(self, waypoints: Sequence[Waypoint], start: Optional[datetime] = None) -> RouteWeather:
        if not waypoints:
            raise ValueError("at least one waypoint is required")
        start = to_utc(start or self._clock())
        selected = sample_waypoints(waypoints, self.max_route_points)
        if len(selected) < len(waypoints):
            logger.info("Sampling %s of %s waypoints", len(selected), len(waypoints))
        entries: List[WaypointWeather] = []
        for index, waypoint in selected:
            target = start + timedelta(minutes=waypoint.minutes_from_start or 0)
            try:
                point = Point(waypoint.lat, waypoint.lon, target)
                weather = self.hub.fetch_point(point)
            except (NoWeatherData, ValueError) as exc:
                logger.error("Error getting weather for waypoint %s: %s", index, exc)
                entries.append(WaypointWeather(index, waypoint, target, weather=None, error=str(exc)))
                continue
            entries.append(WaypointWeather(index, waypoint, target, weather=weather))
        result = RouteWeather(
            entries=entries,
            risks=classify_risks(entries),
            summary=summarize_route(entries),
            sources=used_sources(entries),
            processed_at=self._clock(),
            total_waypoints=len(waypoints),
        )
        logger.info(
            "Route weather completed: %s waypoints, %s with data, %s risks",
            len(entries),
            sum(1 for entry in entries if entry.weather is not None),
            len(result.risks),
        )
        return result

    def provider_status(self) -> Dict[str, Dict[str, Any]]:
        status: Dict[str, Dict[str, Any]] = {}
        for name, provider in self.hub.registry.items():
            status[name] = {
                "available": provider.is_available(),
                "configured": provider.is_configured(),
                "rateLimitStatus": self.hub.rate_limiter.status(name),
            }
        return status

    def provider_stats(self, hours: int = 24) -> Dict[str, Dict[str, Any]]:
        if self.usage is None:
            raise RuntimeError("usage statistics require a database")
        return {name: self.usage.stats(name, hours=hours) for name in self.hub.registry.list()}

    def store_available(self) -> bool:
        return self.store.ping() if self.store is not None else False

    def close(self) -> None:
        if self.store is not None:
            self.store.close()
