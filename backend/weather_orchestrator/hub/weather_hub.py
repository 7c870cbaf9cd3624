from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from weather_orchestrator.domain.fusion import fuse
from weather_orchestrator.domain.models import FusedRecord, Point, SourceRecord
from weather_orchestrator.infra.cache import WeatherCache
from weather_orchestrator.infra.db.usage_repository import ProviderUsageRepository
from weather_orchestrator.infra.rate_limiter import RateLimiter
from weather_orchestrator.providers.weather.base import ProviderError

from .weather_registry import WeatherProviderRegistry

logger = logging.getLogger(__name__)


class NoWeatherData(RuntimeError):
    """Every provider was skipped or failed for a point."""

    def __init__(self, point: Point, failures: Dict[str, str]) -> None:
        detail = "; ".join(f"{name}: {reason}" for name, reason in failures.items()) or "no providers registered"
        super().__init__(f"No weather data available for ({point.lat}, {point.lon}): {detail}")
        self.point = point
        self.failures = dict(failures)


class WeatherHub:
    """Acquisition controller for single points.

    Providers are walked sequentially in registry order. Every usable
    provider contributes, so fusion sees as many sources as the cache and
    the per-provider budgets allow.
    """

    def __init__(
        self,
        registry: WeatherProviderRegistry,
        *,
        cache: WeatherCache,
        rate_limiter: RateLimiter,
        usage: Optional[ProviderUsageRepository] = None,
    ) -> None:
        self._registry = registry
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.usage = usage

    @property
    def registry(self) -> WeatherProviderRegistry:
        return self._registry

    def fetch_point(self, point: Point) -> FusedRecord:
        return fuse(self.acquire(point))

    def acquire(self, point: Point) -> List[SourceRecord]:
        sources: List[SourceRecord] = []
        failures: Dict[str, str] = {}
        for name, provider in self._registry.items():
            if not provider.is_available():
                failures[name] = "not configured"
                continue
            if not provider.supports(point):
                failures[name] = "location outside coverage"
                continue

            cached = self.cache.get(name, point)
            if cached is not None:
                logger.debug("Cache hit for %s at %.3f, %.3f", name, point.lat, point.lon)
                sources.append(SourceRecord(name, cached, cached=True))
                continue

            if not self.rate_limiter.try_acquire(name):
                failures[name] = "local rate limit reached"
                continue

            started = time.perf_counter()
            try:
                record = provider.fetch(point)
            except ProviderError as exc:
                logger.error("Provider %s failed (%s): %s", name, exc.kind, exc)
                self._record_usage(name, success=False, started=started)
                failures[name] = str(exc)
                continue
            except Exception as exc:
                logger.exception("Provider %s raised an unexpected error", name)
                self._record_usage(name, success=False, started=started)
                failures[name] = f"unexpected error: {exc}"
                continue

            self.cache.set(name, point, record)
            self._record_usage(name, success=True, started=started)
            sources.append(SourceRecord(name, record))

        if not sources:
            raise NoWeatherData(point, failures)
        return sources

    def _record_usage(self, provider: str, *, success: bool, started: float) -> None:
        if self.usage is None:
            return
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        try:
            self.usage.record_call(provider, success=success, response_ms=elapsed_ms)
        except SQLAlchemyError as exc:
            logger.warning("Could not record usage for %s: %s", provider, exc)
