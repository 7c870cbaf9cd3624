from __future__ import annotations

from datetime import datetime, timezone

import pytest

from weather_orchestrator.domain.fusion import fuse
from weather_orchestrator.domain.models import SourceRecord, Waypoint, WaypointWeather
from weather_orchestrator.domain.risk import classify_risks
from weather_orchestrator.tests.helpers import make_record

WHEN = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _entry(index: int = 0, **fields) -> WaypointWeather:
    temperature = fields.pop("temperature", 15.0)
    wind = fields.pop("wind", 10.0)
    weather = fuse([SourceRecord("meteoblue", make_record("meteoblue", temperature, wind, **fields))])
    return WaypointWeather(index, Waypoint(40.0 + index, -3.0), WHEN, weather=weather)


@pytest.mark.parametrize(
    "wind,expected",
    [(25.0, None), (25.01, "medium"), (40.0, "medium"), (40.01, "high")],
)
def test_wind_thresholds_are_boundary_exact(wind, expected):
    alerts = [a for a in classify_risks([_entry(wind=wind)]) if a.type == "wind"]
    assert [a.severity for a in alerts] == ([expected] if expected else [])


@pytest.mark.parametrize(
    "rate,expected",
    [(5.0, None), (5.1, "medium"), (15.0, "medium"), (15.5, "high")],
)
def test_precipitation_thresholds(rate, expected):
    alerts = [a for a in classify_risks([_entry(precipitation_mm_h=rate)]) if a.type == "precipitation"]
    assert [a.severity for a in alerts] == ([expected] if expected else [])


@pytest.mark.parametrize("temperature,alerts", [(0.0, 0), (-0.5, 1), (35.0, 0), (35.5, 1), (50.0, 1)])
def test_temperature_only_medium(temperature, alerts):
    found = [a for a in classify_risks([_entry(temperature=temperature)]) if a.type == "temperature"]
    assert len(found) == alerts
    assert all(a.severity == "medium" for a in found)


@pytest.mark.parametrize(
    "visibility,expected",
    [(None, None), (1000.0, None), (999.0, "medium"), (500.0, "medium"), (499.0, "high")],
)
def test_visibility_only_when_present(visibility, expected):
    alerts = [a for a in classify_risks([_entry(visibility_m=visibility)]) if a.type == "visibility"]
    assert [a.severity for a in alerts] == ([expected] if expected else [])


def test_multiple_hazards_on_one_record():
    alerts = classify_risks([_entry(wind=50.0, precipitation_mm_h=20.0, temperature=-3.0, visibility_m=200.0)])
    assert [a.type for a in alerts] == ["wind", "precipitation", "temperature", "visibility"]


def test_alerts_follow_waypoint_order_and_skip_missing_weather():
    missing = WaypointWeather(1, Waypoint(41.0, -3.0), WHEN, weather=None, error="no data")
    entries = [_entry(0, wind=30.0), missing, _entry(2, wind=60.0)]
    alerts = classify_risks(entries)
    assert [(a.waypoint_index, a.severity) for a in alerts] == [(0, "medium"), (2, "high")]
    assert alerts[1].lat == 42.0
    assert alerts[1].timestamp == WHEN
    assert alerts[1].to_dict()["location"] == "Point 3"
