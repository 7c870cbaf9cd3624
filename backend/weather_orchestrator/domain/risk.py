from __future__ import annotations

from typing import Iterable, List, Optional

from .models import RiskAlert, WaypointWeather

WIND_MEDIUM_KMH = 25.0
WIND_HIGH_KMH = 40.0
PRECIP_MEDIUM_MM_H = 5.0
PRECIP_HIGH_MM_H = 15.0
TEMP_MIN_C = 0.0
TEMP_MAX_C = 35.0
VISIBILITY_MEDIUM_M = 1000.0
VISIBILITY_HIGH_M = 500.0


def wind_severity(speed_kmh: Optional[float]) -> Optional[str]:
    if speed_kmh is None or speed_kmh <= WIND_MEDIUM_KMH:
        return None
    return "high" if speed_kmh > WIND_HIGH_KMH else "medium"


def precipitation_severity(rate_mm_h: Optional[float]) -> Optional[str]:
    if rate_mm_h is None or rate_mm_h <= PRECIP_MEDIUM_MM_H:
        return None
    return "high" if rate_mm_h > PRECIP_HIGH_MM_H else "medium"


def temperature_severity(temperature_c: Optional[float]) -> Optional[str]:
    if temperature_c is None:
        return None
    if temperature_c < TEMP_MIN_C or temperature_c > TEMP_MAX_C:
        return "medium"
    return None


def visibility_severity(visibility_m: Optional[float]) -> Optional[str]:
    if visibility_m is None or visibility_m >= VISIBILITY_MEDIUM_M:
        return None
    return "high" if visibility_m < VISIBILITY_HIGH_M else "medium"


def classify_risks(entries: Iterable[WaypointWeather]) -> List[RiskAlert]:
    """Scan fused route weather and emit one alert per breached hazard.

    Alerts follow waypoint order; entries without weather are skipped.
    """
    alerts: List[RiskAlert] = []
    for entry in entries:
        weather = entry.weather
        if weather is None:
            continue
        checks = (
            ("wind", wind_severity(weather.wind_speed_kmh), f"Strong wind: {weather.wind_speed_kmh:g} km/h"),
            (
                "precipitation",
                precipitation_severity(weather.precipitation_mm_h),
                f"Heavy precipitation: {weather.precipitation_mm_h:g} mm/h",
            ),
            (
                "temperature",
                temperature_severity(weather.temperature_c),
                f"Extreme temperature: {weather.temperature_c:g}°C",
            ),
        )
        for hazard, severity, message in checks:
            if severity:
                alerts.append(_alert(entry, hazard, severity, message))
        visibility = visibility_severity(weather.visibility_m)
        if visibility:
            alerts.append(_alert(entry, "visibility", visibility, f"Reduced visibility: {weather.visibility_m:g} m"))
    return alerts


def _alert(entry: WaypointWeather, hazard: str, severity: str, message: str) -> RiskAlert:
    return RiskAlert(
        type=hazard,
        severity=severity,
        message=message,
        waypoint_index=entry.index,
        lat=entry.waypoint.lat,
        lon=entry.waypoint.lon,
        timestamp=entry.timestamp,
    )
