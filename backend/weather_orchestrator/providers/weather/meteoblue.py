from __future__ import annotations

from typing import Any

from weather_orchestrator.domain.models import Point, ProviderRecord

from .base import (
    MalformedResponse,
    WeatherProvider,
    confidence_for_gap,
    nearest_slot,
    parse_time,
    safe_index,
)

CONFIDENCE_BANDS = ((1, 0.95), (3, 0.85), (6, 0.75), (12, 0.65))


class MeteoblueProvider(WeatherProvider):
    """Hourly global forecast, the highest-fidelity source."""

    name = "meteoblue"
    BASE_URL = "https://my.meteoblue.com/packages/basic-1h"

    def _call(self, point: Point) -> Any:
        params = {
            "lat": f"{point.lat:.4f}",
            "lon": f"{point.lon:.4f}",
            "apikey": self.api_key,
            "format": "json",
            "timeformat": "iso8601",
            "windspeed": "kmh",
            "tz": "utc",
        }
        return self._request("GET", self.BASE_URL, params=params)

    def _parse(self, payload: Any, point: Point) -> ProviderRecord:
        series = payload.get("data_1h") if isinstance(payload, dict) else None
        if not series or not series.get("time"):
            raise MalformedResponse(self.name, "missing data_1h time series")
        times = [parse_time(ts) for ts in series["time"]]
        idx, gap_hours = nearest_slot(times, point.timestamp)
        return ProviderRecord(
            source=self.name,
            temperature_c=self._require(safe_index(series.get("temperature"), idx), "temperature"),
            wind_speed_kmh=self._require(safe_index(series.get("windspeed"), idx), "windspeed"),
            wind_direction=safe_index(series.get("winddirection"), idx),
            precipitation_mm_h=safe_index(series.get("precipitation"), idx) or 0.0,
            humidity_pct=safe_index(series.get("relativehumidity"), idx),
            pressure_hpa=safe_index(series.get("sealevelpressure"), idx),
            cloud_cover_pct=safe_index(series.get("totalcloudcover"), idx),
            visibility_m=safe_index(series.get("visibility"), idx),
            confidence=confidence_for_gap(gap_hours, CONFIDENCE_BANDS, 0.50),
            forecast_time=times[idx],
        )
