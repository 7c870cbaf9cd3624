from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Mapping, Optional

from weather_orchestrator.config import DEFAULT_RATE_LIMITS

from .store import Store

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"
DEFAULT_WINDOW_SECONDS = 3600


@dataclass(frozen=True)
class RateLimit:
    max_requests: int
    window_seconds: int = DEFAULT_WINDOW_SECONDS


def rate_limit_key(provider: str, scope: str = GLOBAL_SCOPE) -> str:
    return f"ratelimit:{provider}:{scope}"


class RateLimiter:
    """Fixed-window request budget per provider.

    The window starts at the increment that creates the counter. Denied
    checks still increment, so call :meth:`try_acquire` once per attempted
    fetch.
    """

    def __init__(
        self,
        store: Store,
        limits: Optional[Mapping[str, int]] = None,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self._now = now
        source = DEFAULT_RATE_LIMITS if limits is None else limits
        self._limits: Dict[str, RateLimit] = {
            name: RateLimit(max_requests, window_seconds) for name, max_requests in source.items()
        }

    def try_acquire(self, provider: str, scope: str = GLOBAL_SCOPE) -> bool:
        limit = self._limits.get(provider)
        if limit is None:
            logger.warning("No rate limit configured for %s, allowing request", provider)
            return True
        key = rate_limit_key(provider, scope)
        result = self.store.incr_window(key, limit.window_seconds)
        if not result.available:
            logger.warning("Rate limit store unavailable for %s, allowing request", provider)
            return True
        current = result.value
        if current > limit.max_requests:
            logger.warning(
                "Rate limit exceeded for %s: %s/%s (resets in %ss)",
                provider,
                current,
                limit.max_requests,
                self._ttl(key),
            )
            return False
        logger.debug("Rate limit check for %s: %s/%s", provider, current, limit.max_requests)
        return True

    def remaining(self, provider: str, scope: str = GLOBAL_SCOPE) -> Optional[int]:
        limit = self._limits.get(provider)
        if limit is None:
            return None
        result = self.store.get(rate_limit_key(provider, scope))
        if not result.available:
            return None
        used = int(result.value) if result.value is not None else 0
        return max(0, limit.max_requests - used)

    def reset_time(self, provider: str, scope: str = GLOBAL_SCOPE) -> Optional[datetime]:
        ttl = self._ttl(rate_limit_key(provider, scope))
        if ttl is None or ttl <= 0:
            return None
        return self._now() + timedelta(seconds=ttl)

    def status(self, provider: str, scope: str = GLOBAL_SCOPE) -> Optional[dict]:
        limit = self._limits.get(provider)
        if limit is None:
            return None
        reset_at = self.reset_time(provider, scope)
        return {
            "limit": limit.max_requests,
            "remaining": self.remaining(provider, scope),
            "resetTime": reset_at.isoformat() if reset_at else None,
            "windowSeconds": limit.window_seconds,
        }

    def reset(self, provider: str, scope: str = GLOBAL_SCOPE) -> bool:
        result = self.store.delete(rate_limit_key(provider, scope))
        if result.available:
            logger.info("Rate limit reset for %s (scope=%s)", provider, scope)
        return result.available

    def limits(self) -> Dict[str, RateLimit]:
        return dict(self._limits)

    def set_limit(self, provider: str, max_requests: int, window_seconds: int = DEFAULT_WINDOW_SECONDS) -> None:
        self._limits[provider] = RateLimit(max_requests, window_seconds)
        logger.info("Rate limit for %s set to %s per %ss", provider, max_requests, window_seconds)

    def _ttl(self, key: str) -> Optional[int]:
        result = self.store.ttl(key)
        return result.value if result.available else None
