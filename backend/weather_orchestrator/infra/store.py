"""Shared key-value store used by the response cache and the rate limiter.

Every operation returns a :class:`StoreResult` instead of raising, so callers
decide at each call site whether an unreachable store means "miss", "no-op"
or "allow".
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis

logger = logging.getLogger(__name__)

# INCR and the first-increment EXPIRE must not be split across clients.
INCR_WINDOW_SCRIPT = """
local current = redis.call('INCR', KEYS[1])
if current == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return current
"""


@dataclass(frozen=True)
class StoreResult:
    available: bool
    value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> "StoreResult":
        return cls(True, value)


UNAVAILABLE = StoreResult(False)


class Store(Protocol):
    def get(self, key: str) -> StoreResult:
        ...

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> StoreResult:
        ...

    def incr_window(self, key: str, window_seconds: int) -> StoreResult:
        ...

    def ttl(self, key: str) -> StoreResult:
        ...

    def delete(self, key: str) -> StoreResult:
        ...

    def ping(self) -> bool:
        ...

    def close(self) -> None:
        ...


class MemoryStore:
    """Process-local store with Redis-like expiry semantics."""

    def __init__(self, time_func: Callable[[], float] = time.monotonic) -> None:
        self._time_func = time_func
        self._data: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = Lock()

    def get(self, key: str) -> StoreResult:
        with self._lock:
            item = self._live_item(key)
        return StoreResult.ok(item[0] if item else None)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> StoreResult:
        expires_at = self._time_func() + ttl if ttl else None
        with self._lock:
            self._data[key] = (value, expires_at)
        return StoreResult.ok(True)

    def incr_window(self, key: str, window_seconds: int) -> StoreResult:
        with self._lock:
            item = self._live_item(key)
            if item is None:
                self._data[key] = (1, self._time_func() + window_seconds)
                return StoreResult.ok(1)
            value = int(item[0]) + 1
            self._data[key] = (value, item[1])
            return StoreResult.ok(value)

    def ttl(self, key: str) -> StoreResult:
        with self._lock:
            item = self._live_item(key)
        if item is None:
            return StoreResult.ok(-2)
        if item[1] is None:
            return StoreResult.ok(-1)
        return StoreResult.ok(max(0, int(round(item[1] - self._time_func()))))

    def delete(self, key: str) -> StoreResult:
        with self._lock:
            self._data.pop(key, None)
        return StoreResult.ok(True)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        with self._lock:
            self._data.clear()

    def _live_item(self, key: str) -> Optional[Tuple[Any, Optional[float]]]:
        item = self._data.get(key)
        if item is None:
            return None
        if item[1] is not None and item[1] <= self._time_func():
            self._data.pop(key, None)
            return None
        return item


class RedisStore:
    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._incr_window = client.register_script(INCR_WINDOW_SCRIPT)

    @classmethod
    def from_url(cls, url: str, timeout: float = 5.0) -> "RedisStore":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client)

    def get(self, key: str) -> StoreResult:
        return self._run("GET", key, lambda: self._client.get(key))

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> StoreResult:
        return self._run("SET", key, lambda: self._client.set(key, value, ex=ttl))

    def incr_window(self, key: str, window_seconds: int) -> StoreResult:
        result = self._run("INCR", key, lambda: self._incr_window(keys=[key], args=[window_seconds]))
        if result.available:
            return StoreResult.ok(int(result.value))
        return result

    def ttl(self, key: str) -> StoreResult:
        return self._run("TTL", key, lambda: self._client.ttl(key))

    def delete(self, key: str) -> StoreResult:
        return self._run("DEL", key, lambda: self._client.delete(key))

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    def close(self) -> None:
        try:
            self._client.close()
        except redis.RedisError as exc:
            logger.warning("Error closing Redis client: %s", exc)

    def _run(self, command: str, key: str, operation: Callable[[], Any]) -> StoreResult:
        try:
            return StoreResult.ok(operation())
        except redis.RedisError as exc:
            logger.warning("Redis %s failed for %s: %s", command, key, exc)
            return UNAVAILABLE


def build_store(redis_url: Optional[str]) -> Store:
    if redis_url:
        logger.info("Using Redis store")
        return RedisStore.from_url(redis_url)
    logger.info("REDIS_URL not set, using in-process memory store")
    return MemoryStore()
