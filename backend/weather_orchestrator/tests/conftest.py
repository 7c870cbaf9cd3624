from __future__ import annotations

import pytest

from weather_orchestrator.domain.models import Point
from weather_orchestrator.hub.weather_hub import WeatherHub
from weather_orchestrator.hub.weather_registry import WeatherProviderRegistry
from weather_orchestrator.infra.cache import WeatherCache
from weather_orchestrator.infra.rate_limiter import RateLimiter
from weather_orchestrator.infra.store import MemoryStore
from weather_orchestrator.tests.helpers import TARGET, FakeClock


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(clock):
    return MemoryStore(time_func=clock)


@pytest.fixture()
def point():
    return Point(40.4168, -3.7038, TARGET)


@pytest.fixture()
def build_hub(store):
    def _build(*providers, limits=None) -> WeatherHub:
        registry = WeatherProviderRegistry()
        for provider in providers:
            registry.register(provider.name, provider)
        if limits is None:
            limits = {provider.name: 100 for provider in providers}
        return WeatherHub(
            registry,
            cache=WeatherCache(store),
            rate_limiter=RateLimiter(store, limits=limits),
        )

    return _build
