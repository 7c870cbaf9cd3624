from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from weather_orchestrator.providers.weather.base import (
    MalformedResponse,
    ProviderError,
    ProviderNotConfigured,
    ProviderTimeout,
    RateLimited,
    confidence_for_gap,
    nearest_slot,
    parse_time,
)
from weather_orchestrator.providers.weather.meteoblue import MeteoblueProvider
from weather_orchestrator.tests.helpers import TARGET, mock_client


def test_nearest_slot_picks_smallest_gap():
    times = [TARGET - timedelta(hours=3), TARGET + timedelta(minutes=50), TARGET + timedelta(hours=3)]
    idx, gap = nearest_slot(times, TARGET)
    assert idx == 1
    assert gap == pytest.approx(50 / 60)


def test_nearest_slot_requires_slots():
    with pytest.raises(ValueError):
        nearest_slot([], TARGET)


def test_confidence_bands_are_inclusive_upper_bounds():
    bands = ((1, 0.9), (3, 0.8))
    assert confidence_for_gap(1.0, bands, 0.1) == 0.9
    assert confidence_for_gap(2.5, bands, 0.1) == 0.8
    assert confidence_for_gap(3.5, bands, 0.1) == 0.1


def test_parse_time_normalizes_to_utc():
    assert parse_time("2026-10-19T14:00:00+02:00") == TARGET
    assert parse_time("2026-10-19T12:00:00Z") == TARGET
    assert parse_time("2026-10-19T12:00") == datetime(2026, 10, 19, 12, tzinfo=timezone.utc)


def test_unconfigured_provider_never_calls_upstream(point):
    def handler(request):
        raise AssertionError("no request expected")

    provider = MeteoblueProvider(None, client=mock_client(handler))
    assert not provider.is_available()
    with pytest.raises(ProviderNotConfigured):
        provider.fetch(point)


@pytest.mark.parametrize(
    "status,error",
    [
        (429, RateLimited),
        (401, ProviderNotConfigured),
        (403, ProviderNotConfigured),
        (500, ProviderError),
    ],
)
def test_http_status_mapping(point, status, error):
    provider = MeteoblueProvider("key", client=mock_client(lambda request: httpx.Response(status)))
    with pytest.raises(error):
        provider.fetch(point)


def test_timeout_is_reported_as_provider_timeout(point):
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    provider = MeteoblueProvider("key", timeout=2, client=mock_client(handler))
    with pytest.raises(ProviderTimeout) as excinfo:
        provider.fetch(point)
    assert excinfo.value.kind == "timeout"


def test_connection_failure_is_a_provider_error(point):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    provider = MeteoblueProvider("key", client=mock_client(handler))
    with pytest.raises(ProviderError) as excinfo:
        provider.fetch(point)
    assert excinfo.value.provider == "meteoblue"


def test_invalid_json_is_malformed(point):
    provider = MeteoblueProvider("key", client=mock_client(lambda request: httpx.Response(200, text="<html>")))
    with pytest.raises(MalformedResponse):
        provider.fetch(point)
