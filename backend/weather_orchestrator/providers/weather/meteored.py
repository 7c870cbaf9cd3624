from __future__ import annotations

from typing import Any, Optional

from weather_orchestrator.domain.models import Point, ProviderRecord

from .base import (
    MalformedResponse,
    WeatherProvider,
    confidence_for_gap,
    nearest_slot,
    parse_time,
    safe_float,
)

CONFIDENCE_BANDS = ((2, 0.75), (6, 0.65), (12, 0.55), (24, 0.45))


class MeteoredProvider(WeatherProvider):
    name = "meteored"
    BASE_URL = "https://api.tiempo.com/api/location"

    def __init__(self, api_key: Optional[str] = None, *, language: str = "es", **kwargs) -> None:
        super().__init__(api_key, **kwargs)
        self.language = language

    def _call(self, point: Point) -> Any:
        url = f"{self.BASE_URL}/{point.lat:.4f}/{point.lon:.4f}/weather.json"
        params = {"affiliate_id": self.api_key, "language": self.language}
        return self._request("GET", url, params=params)

    def _parse(self, payload: Any, point: Point) -> ProviderRecord:
        forecasts = (payload.get("weather") or {}).get("forecast") if isinstance(payload, dict) else None
        if not isinstance(forecasts, list) or not forecasts:
            raise MalformedResponse(self.name, "missing weather.forecast list")
        times = [parse_time(item["date"]) for item in forecasts]
        idx, gap_hours = nearest_slot(times, point.timestamp)
        forecast = forecasts[idx]
        wind = forecast.get("wind") or {}
        return ProviderRecord(
            source=self.name,
            temperature_c=self._require(self._temperature(forecast), "temperature"),
            wind_speed_kmh=self._require(safe_float(wind.get("speed")), "wind speed"),
            wind_direction=wind.get("direction") or None,
            precipitation_mm_h=self._first(forecast, "precipitation", "rain") or 0.0,
            humidity_pct=safe_float(forecast.get("humidity")),
            pressure_hpa=safe_float(forecast.get("pressure")),
            cloud_cover_pct=self._first(forecast, "cloudiness", "clouds"),
            visibility_m=None,
            confidence=confidence_for_gap(gap_hours, CONFIDENCE_BANDS, 0.35),
            forecast_time=times[idx],
        )

    @staticmethod
    def _temperature(forecast: dict) -> Optional[float]:
        temperature = forecast.get("temperature")
        if isinstance(temperature, dict):
            high = safe_float(temperature.get("max"))
            low = safe_float(temperature.get("min"))
            if high is not None and low is not None:
                return round((high + low) / 2, 1)
            return high if high is not None else low
        return safe_float(forecast.get("temp"))

    @staticmethod
    def _first(forecast: dict, *keys: str) -> Optional[float]:
        for key in keys:
            value = safe_float(forecast.get(key))
            if value is not None:
                return value
        return None
