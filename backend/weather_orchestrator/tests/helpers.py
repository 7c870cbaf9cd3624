from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional

import httpx

from weather_orchestrator.domain.models import Point, ProviderRecord

TARGET = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider:
    """Adapter double that returns a fixed record or raises a fixed error."""

    def __init__(
        self,
        name: str,
        record: Optional[ProviderRecord] = None,
        *,
        error: Optional[Exception] = None,
        configured: bool = True,
        coverage: Callable[[Point], bool] = lambda point: True,
    ) -> None:
        self.name = name
        self.record = record
        self.error = error
        self.configured = configured
        self.coverage = coverage
        self.calls: List[Point] = []

    def is_configured(self) -> bool:
        return self.configured

    def is_available(self) -> bool:
        return self.configured

    def supports(self, point: Point) -> bool:
        return self.coverage(point)

    def fetch(self, point: Point) -> ProviderRecord:
        self.calls.append(point)
        if self.error is not None:
            raise self.error
        return self.record


def make_record(source: str, temperature: float = 18.0, wind: float = 10.0, **overrides) -> ProviderRecord:
    fields = {
        "source": source,
        "temperature_c": temperature,
        "wind_speed_kmh": wind,
        "wind_direction": 180.0,
        "precipitation_mm_h": 0.0,
        "confidence": 0.9,
        "forecast_time": TARGET,
    }
    fields.update(overrides)
    return ProviderRecord(**fields)



def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))
