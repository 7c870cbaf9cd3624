from __future__ import annotations

from typing import Optional

from sqlalchemy.engine import Engine

from weather_orchestrator.config import Settings
from weather_orchestrator.hub.weather_hub import WeatherHub
from weather_orchestrator.hub.weather_registry import WeatherProviderRegistry
from weather_orchestrator.infra.cache import WeatherCache
from weather_orchestrator.infra.db.usage_repository import ProviderUsageRepository
from weather_orchestrator.infra.rate_limiter import RateLimiter
from weather_orchestrator.infra.store import Store, build_store
from weather_orchestrator.providers.weather.aemet import AemetProvider
from weather_orchestrator.providers.weather.meteoblue import MeteoblueProvider
from weather_orchestrator.providers.weather.meteored import MeteoredProvider
from weather_orchestrator.providers.weather.windy import WindyProvider

from .route_weather import RouteWeatherService

# registration order is acquisition priority
PROVIDER_CLASSES = (MeteoblueProvider, AemetProvider, WindyProvider, MeteoredProvider)


def build_registry(settings: Settings) -> WeatherProviderRegistry:
    registry = WeatherProviderRegistry()
    for provider_cls in PROVIDER_CLASSES:
        api_key = settings.api_keys.get(provider_cls.name)
        registry.register(provider_cls.name, provider_cls(api_key, timeout=settings.provider_timeout))
    return registry


def build_service(
    settings: Settings,
    *,
    store: Optional[Store] = None,
    engine: Optional[Engine] = None,
    registry: Optional[WeatherProviderRegistry] = None,
) -> RouteWeatherService:
    store = store or build_store(settings.redis_url)
    usage = ProviderUsageRepository(engine) if engine is not None else None
    hub = WeatherHub(
        registry or build_registry(settings),
        cache=WeatherCache(store, ttl=settings.cache_ttl_seconds),
        rate_limiter=RateLimiter(
            store,
            limits=settings.rate_limits,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        usage=usage,
    )
    return RouteWeatherService(hub, store=store, usage=usage, max_route_points=settings.max_route_points)
