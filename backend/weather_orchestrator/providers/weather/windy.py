from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

from weather_orchestrator.domain.models import Point, ProviderRecord

from .base import (
    MalformedResponse,
    WeatherProvider,
    confidence_for_gap,
    nearest_slot,
    safe_index,
)

CONFIDENCE_BANDS = ((1, 0.90), (3, 0.80), (6, 0.70), (12, 0.60))
PARAMETERS = ["temp", "wind", "precip", "rh", "pressure", "lclouds", "mclouds", "hclouds"]
# past3hprecip is an accumulation over the previous three hours
PRECIP_WINDOW_HOURS = 3.0


class WindyProvider(WeatherProvider):
    """GFS point forecast in three-hour steps."""

    name = "windy"
    BASE_URL = "https://api.windy.com/api/point-forecast/v2"

    def __init__(self, api_key: Optional[str] = None, *, model: str = "gfs", **kwargs) -> None:
        super().__init__(api_key, **kwargs)
        self.model = model

    def _call(self, point: Point) -> Any:
        body = {
            "lat": round(point.lat, 4),
            "lon": round(point.lon, 4),
            "model": self.model,
            "parameters": PARAMETERS,
            "levels": ["surface"],
            "key": self.api_key,
        }
        return self._request("POST", self.BASE_URL, json=body)

    def _parse(self, payload: Any, point: Point) -> ProviderRecord:
        if not isinstance(payload, dict) or not payload.get("ts"):
            raise MalformedResponse(self.name, "missing ts series")
        times = [datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc) for ms in payload["ts"]]
        idx, gap_hours = nearest_slot(times, point.timestamp)
        units = payload.get("units") or {}

        temperature = self._value(payload, "temp", idx)
        if temperature is not None and units.get("temp-surface", "K") == "K":
            temperature = round(temperature - 273.15, 1)

        wind_u = self._value(payload, "wind_u", idx)
        wind_v = self._value(payload, "wind_v", idx)
        wind_speed = None
        wind_direction = None
        if wind_u is not None and wind_v is not None:
            wind_speed = round(math.hypot(wind_u, wind_v) * 3.6, 1)
            wind_direction = round((270.0 - math.degrees(math.atan2(wind_v, wind_u))) % 360.0)

        pressure = self._value(payload, "pressure", idx)
        if pressure is not None and units.get("pressure-surface", "Pa") == "Pa":
            pressure = round(pressure / 100.0, 1)

        precipitation = self._value(payload, "past3hprecip", idx)
        if precipitation is not None:
            if units.get("past3hprecip-surface", "m") == "m":
                precipitation *= 1000.0
            precipitation = round(precipitation / PRECIP_WINDOW_HOURS, 2)

        clouds = [self._value(payload, layer, idx) for layer in ("lclouds", "mclouds", "hclouds")]
        clouds = [value for value in clouds if value is not None]

        return ProviderRecord(
            source=self.name,
            temperature_c=self._require(temperature, "temperature"),
            wind_speed_kmh=self._require(wind_speed, "wind speed"),
            wind_direction=wind_direction,
            precipitation_mm_h=precipitation or 0.0,
            humidity_pct=self._value(payload, "rh", idx),
            pressure_hpa=pressure,
            cloud_cover_pct=max(clouds) if clouds else None,
            visibility_m=None,
            confidence=confidence_for_gap(gap_hours, CONFIDENCE_BANDS, 0.45),
            forecast_time=times[idx],
        )

    @staticmethod
    def _value(payload: dict, parameter: str, idx: int) -> Optional[float]:
        return safe_index(payload.get(f"{parameter}-surface"), idx)
