from __future__ import annotations

import json
import logging
from typing import Optional

from weather_orchestrator.domain.models import Point, ProviderRecord

from .store import Store

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60


def cache_key(provider: str, point: Point) -> str:
    return f"weather:{provider}:{point.lat:.3f}:{point.lon:.3f}:{point.hour_bucket}"


class WeatherCache:
    """Provider responses keyed by ~100m cell and hour bucket."""

    def __init__(self, store: Store, ttl: int = DEFAULT_TTL_SECONDS) -> None:
        self.store = store
        self.ttl = ttl

    def get(self, provider: str, point: Point) -> Optional[ProviderRecord]:
        key = cache_key(provider, point)
        result = self.store.get(key)
        if not result.available or result.value is None:
            return None
        try:
            return ProviderRecord.from_dict(json.loads(result.value))
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable cache entry %s: %s", key, exc)
            return None

    def set(self, provider: str, point: Point, record: ProviderRecord) -> None:
        key = cache_key(provider, point)
        result = self.store.set(key, json.dumps(record.to_dict()), self.ttl)
        if not result.available:
            logger.warning("Cache write skipped for %s, store unavailable", key)
