from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

from .models import FusedRecord, SourceRecord

PROVIDER_PRIORITY: Dict[str, int] = {
    "meteoblue": 4,
    "aemet": 3,
    "windy": 2,
    "meteored": 1,
}

TEMPERATURE_SPREAD_C = 5.0
WIND_SPREAD_KMH = 15.0


def aggregate_confidence(source_count: int) -> float:
    if source_count <= 0:
        raise ValueError("at least one source is required")
    if source_count == 1:
        return 0.75
    if source_count == 2:
        return 0.85
    return 0.95


def fuse(
    sources: Sequence[SourceRecord],
    priorities: Optional[Mapping[str, int]] = None,
) -> FusedRecord:
    """Merge provider records for one point.

    The highest-priority provider supplies every field, whatever its own
    confidence. Other sources only raise the aggregate confidence and feed
    the discrepancy warnings.
    """
    if not sources:
        raise ValueError("cannot fuse an empty source list")
    weights = PROVIDER_PRIORITY if priorities is None else priorities
    ordered = sorted(sources, key=lambda item: weights.get(item.provider, 0), reverse=True)
    primary = ordered[0]
    base = primary.record
    return FusedRecord(
        temperature_c=base.temperature_c,
        wind_speed_kmh=base.wind_speed_kmh,
        wind_direction=base.wind_direction,
        precipitation_mm_h=base.precipitation_mm_h,
        humidity_pct=base.humidity_pct,
        pressure_hpa=base.pressure_hpa,
        cloud_cover_pct=base.cloud_cover_pct,
        visibility_m=base.visibility_m,
        forecast_time=base.forecast_time,
        sources=tuple(item.provider for item in sources),
        primary=primary.provider,
        confidence=aggregate_confidence(len(sources)),
        warnings=tuple(detect_discrepancies(sources)),
        cached_sources=tuple(item.provider for item in sources if item.cached),
    )


def detect_discrepancies(sources: Sequence[SourceRecord]) -> List[str]:
    warnings: List[str] = []
    if len(sources) < 2:
        return warnings
    temp_spread = _spread([item.record.temperature_c for item in sources])
    if temp_spread is not None and temp_spread > TEMPERATURE_SPREAD_C:
        warnings.append(f"Large temperature spread between sources: {temp_spread:.1f}°C")
    wind_spread = _spread([item.record.wind_speed_kmh for item in sources])
    if wind_spread is not None and wind_spread > WIND_SPREAD_KMH:
        warnings.append(f"Large wind speed spread between sources: {wind_spread:.1f} km/h")
    return warnings


def _spread(values: List[Optional[float]]) -> Optional[float]:
    filtered = [v for v in values if v is not None]
    if len(filtered) < 2:
        return None
    return max(filtered) - min(filtered)
