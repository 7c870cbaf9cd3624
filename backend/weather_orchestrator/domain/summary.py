from __future__ import annotations

from typing import Any, Dict, List, Sequence

from .models import WaypointWeather


def summarize_route(entries: Sequence[WaypointWeather]) -> Dict[str, Any]:
    valid = [entry.weather for entry in entries if entry.weather is not None]
    if not valid:
        return {"message": "No valid weather data could be retrieved for this route"}
    temperatures = [w.temperature_c for w in valid if w.temperature_c is not None]
    winds = [w.wind_speed_kmh for w in valid if w.wind_speed_kmh is not None]
    precipitation = [w.precipitation_mm_h for w in valid if w.precipitation_mm_h is not None]
    return {
        "temperatureRange": _range(temperatures),
        "windRange": _range(winds),
        "totalPrecipitation": round(sum(precipitation), 2),
        "dataPoints": len(valid),
        "coveragePercentage": round(len(valid) / len(entries) * 100),
    }


def used_sources(entries: Sequence[WaypointWeather]) -> List[str]:
    seen: List[str] = []
    for entry in entries:
        if entry.weather is None:
            continue
        for source in entry.weather.sources:
            if source not in seen:
                seen.append(source)
    return seen


def _range(values: List[float]) -> Dict[str, Any]:
    if not values:
        return {"min": None, "max": None, "avg": None}
    return {
        "min": min(values),
        "max": max(values),
        "avg": round(sum(values) / len(values)),
    }
