from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union

WindDirection = Union[str, float, None]


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if not isinstance(value, str):
        raise TypeError(f"expected an ISO 8601 string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value.replace("Z", "+00:00")
    return to_utc(datetime.fromisoformat(value))


@dataclass(frozen=True)
class Point:
    lat: float
    lon: float
    timestamp: datetime

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"longitude out of range: {self.lon}")
        object.__setattr__(self, "timestamp", to_utc(self.timestamp))

    @property
    def hour_bucket(self) -> int:
        return int(self.timestamp.timestamp() // 3600)


@dataclass(frozen=True)
class Waypoint:
    lat: float
    lon: float
    minutes_from_start: float = 0.0
    elevation: Optional[float] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "lat": self.lat,
            "lon": self.lon,
            "estimatedTimeFromStart_minutes": self.minutes_from_start,
        }
        if self.elevation is not None:
            payload["elevation"] = self.elevation
        if self.description is not None:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class ProviderRecord:
    """One provider's answer for a point, in canonical units.

    - temperature in Celsius
    - wind speed in km/h, direction as compass text or degrees
    - precipitation rate in mm/h
    - humidity and cloud cover in percent, pressure in hPa, visibility in metres
    """

    source: str
    temperature_c: float
    wind_speed_kmh: float
    wind_direction: WindDirection = None
    precipitation_mm_h: float = 0.0
    humidity_pct: Optional[float] = None
    pressure_hpa: Optional[float] = None
    cloud_cover_pct: Optional[float] = None
    visibility_m: Optional[float] = None
    confidence: float = 0.5
    forecast_time: Optional[datetime] = None

    def __post_init__(self):
        if not self.source:
            raise ValueError("source is required")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["forecast_time"] = self.forecast_time.isoformat() if self.forecast_time else None
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ProviderRecord":
        data = dict(payload)
        data["forecast_time"] = _parse_dt(data.get("forecast_time"))
        return cls(**data)


@dataclass(frozen=True)
class SourceRecord:
    provider: str
    record: ProviderRecord
    cached: bool = False


@dataclass(frozen=True)
class FusedRecord:
    temperature_c: float
    wind_speed_kmh: float
    wind_direction: WindDirection
    precipitation_mm_h: float
    humidity_pct: Optional[float]
    pressure_hpa: Optional[float]
    cloud_cover_pct: Optional[float]
    visibility_m: Optional[float]
    forecast_time: Optional[datetime]
    sources: Tuple[str, ...]
    primary: str
    confidence: float
    warnings: Tuple[str, ...] = ()
    cached_sources: Tuple[str, ...] = field(default=())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature_c,
            "windSpeed": self.wind_speed_kmh,
            "windDirection": self.wind_direction,
            "precipitation": self.precipitation_mm_h,
            "humidity": self.humidity_pct,
            "pressure": self.pressure_hpa,
            "cloudCover": self.cloud_cover_pct,
            "visibility": self.visibility_m,
            "forecastTime": self.forecast_time.isoformat() if self.forecast_time else None,
            "sources": list(self.sources),
            "primary": self.primary,
            "confidence": self.confidence,
            "warnings": list(self.warnings),
            "cachedSources": list(self.cached_sources),
        }


@dataclass(frozen=True)
class WaypointWeather:
    index: int
    waypoint: Waypoint
    timestamp: datetime
    weather: Optional[FusedRecord] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "waypoint": self.waypoint.to_dict(),
            "weather": self.weather.to_dict() if self.weather else None,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class RiskAlert:
    type: str
    severity: str
    message: str
    waypoint_index: int
    lat: float
    lon: float
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "waypointIndex": self.waypoint_index,
            "location": f"Point {self.waypoint_index + 1}",
            "coordinates": {"lat": self.lat, "lon": self.lon},
            "timestamp": self.timestamp.isoformat(),
        }
