from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from weather_orchestrator.api.main import create_app
from weather_orchestrator.config import Settings
from weather_orchestrator.hub.weather_hub import WeatherHub
from weather_orchestrator.hub.weather_registry import WeatherProviderRegistry
from weather_orchestrator.infra.cache import WeatherCache
from weather_orchestrator.infra.db.tables import metadata
from weather_orchestrator.infra.db.usage_repository import ProviderUsageRepository
from weather_orchestrator.infra.rate_limiter import RateLimiter
from weather_orchestrator.infra.store import MemoryStore
from weather_orchestrator.services.route_weather import RouteWeatherService
from weather_orchestrator.tests.helpers import ScriptedProvider, make_record


def _in_europe(point):
    return 27.0 <= point.lat <= 60.0


def _build_service(engine):
    registry = WeatherProviderRegistry()
    registry.register(
        "meteoblue",
        ScriptedProvider("meteoblue", make_record("meteoblue", 18.0, 45.0, precipitation_mm_h=2.0), coverage=_in_europe),
    )
    registry.register("aemet", ScriptedProvider("aemet", make_record("aemet", 17.0, 25.0), coverage=_in_europe))
    registry.register("windy", ScriptedProvider("windy", configured=False))
    store = MemoryStore()
    usage = ProviderUsageRepository(engine) if engine is not None else None
    hub = WeatherHub(
        registry,
        cache=WeatherCache(store),
        rate_limiter=RateLimiter(store, limits={"meteoblue": 50, "aemet": 50, "windy": 50}),
        usage=usage,
    )
    return RouteWeatherService(hub, store=store, usage=usage)


@pytest.fixture()
def api_client(tmp_path):
    db_path = tmp_path / "api_tests.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    metadata.create_all(engine)
    app = create_app(service=_build_service(engine), engine=engine, settings=Settings())
    with TestClient(app) as client:
        yield client
    metadata.drop_all(engine)


@pytest.fixture()
def api_client_no_db():
    app = create_app(service=_build_service(None), settings=Settings())
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def api_client_without_usage(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'api_tests.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    app = create_app(service=_build_service(None), engine=engine, settings=Settings())
    with TestClient(app) as client:
        yield client
