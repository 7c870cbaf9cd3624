from __future__ import annotations

import math
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from weather_orchestrator.domain.models import Point, ProviderRecord

from .base import (
    MalformedResponse,
    ProviderError,
    ProviderNotConfigured,
    ProviderTimeout,
    RateLimited,
    WeatherProvider,
    confidence_for_gap,
    nearest_slot,
    safe_float,
)

MADRID_TZ = ZoneInfo("Europe/Madrid")
CONFIDENCE_BANDS = ((12, 0.80), (24, 0.70), (48, 0.60))

# Peninsula, Balearic and Canary Islands
SPAIN_BOUNDS = {"lat_min": 27.0, "lat_max": 44.0, "lon_min": -18.0, "lon_max": 5.0}

MUNICIPALITIES: Dict[str, Tuple[str, float, float]] = {
    "28079": ("Madrid", 40.4168, -3.7038),
    "40194": ("Segovia", 40.9429, -4.1088),
    "05019": ("Ávila", 40.6564, -4.6813),
    "45168": ("Toledo", 39.8628, -4.0273),
    "08019": ("Barcelona", 41.3874, 2.1686),
    "46250": ("València", 39.4699, -0.3763),
    "41091": ("Sevilla", 37.3891, -5.9845),
    "50297": ("Zaragoza", 41.6488, -0.8891),
    "29067": ("Málaga", 36.7213, -4.4214),
    "48020": ("Bilbao", 43.2630, -2.9350),
    "18087": ("Granada", 37.1773, -3.5986),
    "07040": ("Palma", 39.5696, 2.6502),
    "35016": ("Las Palmas de Gran Canaria", 28.1235, -15.4363),
    "38038": ("Santa Cruz de Tenerife", 28.4636, -16.2518),
}

SKY_COVER = (
    ("despejado", 10.0),
    ("poco nuboso", 25.0),
    ("intervalos", 50.0),
    ("nuboso", 75.0),
    ("cubierto", 90.0),
)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    r = 6371.0
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    return r * 2 * math.asin(math.sqrt(a))


def nearest_municipality(lat: float, lon: float) -> str:
    return min(MUNICIPALITIES, key=lambda code: haversine_km(lat, lon, MUNICIPALITIES[code][1], MUNICIPALITIES[code][2]))


class AemetProvider(WeatherProvider):
    """Spanish national service, daily municipal forecast.

    OpenData answers the metered request with a ``datos`` URL; the forecast
    itself is downloaded from there within the same invocation.
    """

    name = "aemet"
    BASE_URL = "https://opendata.aemet.es/opendata/api"
    _clock = staticmethod(time.monotonic)

    def supports(self, point: Point) -> bool:
        return (
            SPAIN_BOUNDS["lat_min"] <= point.lat <= SPAIN_BOUNDS["lat_max"]
            and SPAIN_BOUNDS["lon_min"] <= point.lon <= SPAIN_BOUNDS["lon_max"]
        )

    def _call(self, point: Point) -> Any:
        started = self._clock()
        code = nearest_municipality(point.lat, point.lon)
        url = f"{self.BASE_URL}/prediccion/especifica/municipio/diaria/{code}"
        meta = self._request("GET", url, params={"api_key": self.api_key})
        if not isinstance(meta, dict):
            raise MalformedResponse(self.name, "unexpected metadata response")
        self._check_estado(meta)
        datos = meta.get("datos")
        if not datos:
            raise MalformedResponse(self.name, "metadata response without datos URL")
        # both requests share one timeout budget
        remaining = self.timeout - (self._clock() - started)
        if remaining <= 0:
            raise ProviderTimeout(self.name, f"no answer within {self.timeout:g}s")
        return self._request("GET", datos, timeout=remaining)

    def _check_estado(self, meta: dict) -> None:
        estado = meta.get("estado")
        if estado == 200:
            return
        description = meta.get("descripcion") or "unknown error"
        if estado == 401:
            raise ProviderNotConfigured(self.name, description)
        if estado == 429:
            raise RateLimited(self.name, description)
        raise ProviderError(self.name, f"estado {estado}: {description}")

    def _parse(self, payload: Any, point: Point) -> ProviderRecord:
        if not isinstance(payload, list) or not payload:
            raise MalformedResponse(self.name, "empty forecast")
        days = (payload[0].get("prediccion") or {}).get("dia") or []
        if not days:
            raise MalformedResponse(self.name, "forecast without days")
        # a daily slot is represented by its local midday
        slots = [datetime.fromisoformat(day["fecha"]).replace(tzinfo=MADRID_TZ) + timedelta(hours=12) for day in days]
        idx, gap_hours = nearest_slot(slots, point.timestamp)
        day = days[idx]
        local_hour = point.timestamp.astimezone(MADRID_TZ).hour
        wind = _period_entry(day.get("viento"), local_hour, "velocidad")
        sky = _period_entry(day.get("estadoCielo"), local_hour, "descripcion")
        return ProviderRecord(
            source=self.name,
            temperature_c=self._require(_midpoint(day.get("temperatura")), "temperatura"),
            wind_speed_kmh=self._require(safe_float(wind.get("velocidad")) if wind else None, "viento"),
            wind_direction=(wind or {}).get("direccion") or None,
            precipitation_mm_h=0.0,
            humidity_pct=_midpoint(day.get("humedadRelativa")),
            pressure_hpa=None,
            cloud_cover_pct=_sky_cover(sky.get("descripcion") if sky else None),
            visibility_m=None,
            confidence=confidence_for_gap(gap_hours, CONFIDENCE_BANDS, 0.50),
            forecast_time=slots[idx],
        )


def _midpoint(block: Optional[dict]) -> Optional[float]:
    if not block:
        return None
    high = safe_float(block.get("maxima"))
    low = safe_float(block.get("minima"))
    if high is not None and low is not None:
        return round((high + low) / 2, 1)
    return high if high is not None else low


def _period_entry(entries: Optional[List[dict]], hour: int, field: str) -> Optional[dict]:
    """Narrowest period ("06-12", "00-24", ...) covering ``hour`` that has ``field``."""
    best = None
    best_width = None
    for entry in entries or []:
        if entry.get(field) in (None, ""):
            continue
        parts = (entry.get("periodo") or "00-24").split("-")
        if len(parts) != 2:
            continue
        start, end = int(parts[0]), int(parts[1])
        if not start <= hour < end:
            continue
        if best_width is None or end - start < best_width:
            best, best_width = entry, end - start
    if best is None:
        best = next((entry for entry in entries or [] if entry.get(field) not in (None, "")), None)
    return best


def _sky_cover(description: Optional[str]) -> Optional[float]:
    if not description:
        return None
    text = description.lower()
    for keyword, cover in SKY_COVER:
        if keyword in text:
            return cover
    return 50.0
