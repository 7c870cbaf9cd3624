from __future__ import annotations

from datetime import datetime, timezone

from weather_orchestrator.domain.fusion import fuse
from weather_orchestrator.domain.models import SourceRecord, Waypoint, WaypointWeather
from weather_orchestrator.domain.summary import summarize_route, used_sources
from weather_orchestrator.tests.helpers import make_record

WHEN = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _entry(index, *providers, temperature=10.0, wind=10.0, rain=0.0):
    sources = [
        SourceRecord(name, make_record(name, temperature, wind, precipitation_mm_h=rain)) for name in providers
    ]
    weather = fuse(sources) if sources else None
    return WaypointWeather(index, Waypoint(40.0, -3.0), WHEN, weather=weather, error=None if sources else "failed")


def test_summary_ranges_and_coverage():
    entries = [
        _entry(0, "meteoblue", temperature=10.0, wind=5.0, rain=1.0),
        _entry(1, "meteoblue", temperature=15.0, wind=20.0, rain=2.5),
        _entry(2),
        _entry(3, "windy", temperature=12.0, wind=8.0),
    ]
    summary = summarize_route(entries)
    assert summary["temperatureRange"] == {"min": 10.0, "max": 15.0, "avg": 12}
    assert summary["windRange"]["max"] == 20.0
    assert summary["totalPrecipitation"] == 3.5
    assert summary["dataPoints"] == 3
    assert summary["coveragePercentage"] == 75


def test_summary_without_data_has_message_only():
    assert list(summarize_route([_entry(0), _entry(1)]).keys()) == ["message"]


def test_used_sources_first_seen_order():
    entries = [_entry(0, "windy"), _entry(1, "meteoblue", "windy"), _entry(2)]
    assert used_sources(entries) == ["windy", "meteoblue"]
