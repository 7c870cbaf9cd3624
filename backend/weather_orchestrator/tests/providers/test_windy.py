from __future__ import annotations

import json
from datetime import timedelta

import httpx
import pytest

from weather_orchestrator.providers.weather.base import MalformedResponse
from weather_orchestrator.providers.weather.windy import WindyProvider
from weather_orchestrator.tests.helpers import TARGET, mock_client


def _ms(moment):
    return int(moment.timestamp() * 1000)


def _payload(**overrides):
    payload = {
        "ts": [_ms(TARGET - timedelta(hours=3)), _ms(TARGET), _ms(TARGET + timedelta(hours=3))],
        "units": {
            "temp-surface": "K",
            "wind_u-surface": "m*s-1",
            "pressure-surface": "Pa",
            "past3hprecip-surface": "m",
        },
        "temp-surface": [288.15, 291.15, 293.15],
        "wind_u-surface": [1.0, 3.0, 0.0],
        "wind_v-surface": [1.0, 4.0, 0.0],
        "past3hprecip-surface": [0.0, 0.003, 0.0],
        "rh-surface": [80, 70, 60],
        "pressure-surface": [101000, 101300, 101500],
        "lclouds-surface": [0, 20, 0],
        "mclouds-surface": [0, 60, 0],
        "hclouds-surface": [0, 10, 0],
    }
    payload.update(overrides)
    return payload


def test_converts_units(point):
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_payload())

    record = WindyProvider("windy-key", client=mock_client(handler)).fetch(point)

    assert seen["method"] == "POST"
    assert seen["body"]["key"] == "windy-key"
    assert seen["body"]["model"] == "gfs"
    assert "wind" in seen["body"]["parameters"]
    assert record.temperature_c == 18.0
    assert record.wind_speed_kmh == 18.0
    assert record.wind_direction == 217
    assert record.pressure_hpa == 1013.0
    assert record.precipitation_mm_h == 1.0
    assert record.cloud_cover_pct == 60
    assert record.humidity_pct == 70
    assert record.forecast_time == TARGET
    assert record.confidence == 0.90


def test_far_slot_gets_fallback_confidence(point):
    payload = _payload(ts=[_ms(TARGET + timedelta(hours=13)), _ms(TARGET + timedelta(hours=16)), _ms(TARGET + timedelta(hours=19))])
    provider = WindyProvider("k", client=mock_client(lambda request: httpx.Response(200, json=payload)))
    assert provider.fetch(point).confidence == 0.45


def test_missing_wind_component_is_malformed(point):
    payload = _payload()
    del payload["wind_v-surface"]
    provider = WindyProvider("k", client=mock_client(lambda request: httpx.Response(200, json=payload)))
    with pytest.raises(MalformedResponse):
        provider.fetch(point)
