from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

PROVIDER_NAMES = ("meteoblue", "aemet", "windy", "meteored")

DEFAULT_RATE_LIMITS = {
    "meteoblue": 200,
    "aemet": 500,
    "windy": 400,
    "meteored": 300,
}

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return int(raw)


@dataclass
class Settings:
    redis_url: Optional[str] = None
    database_url: Optional[str] = None
    api_keys: Dict[str, Optional[str]] = field(default_factory=dict)
    provider_timeout: float = 15.0
    cache_ttl_seconds: int = 1800
    rate_limit_window_seconds: int = 3600
    rate_limits: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_RATE_LIMITS))
    max_route_points: int = 25
    log_level: str = "INFO"
    frontend_origin: str = "http://localhost:5174"

    @classmethod
    def from_env(cls) -> "Settings":
        api_keys = {name: os.getenv(f"{name.upper()}_API_KEY") or None for name in PROVIDER_NAMES}
        rate_limits = {
            name: _env_int(f"RATE_LIMIT_{name.upper()}", default)
            for name, default in DEFAULT_RATE_LIMITS.items()
        }
        return cls(
            redis_url=os.getenv("REDIS_URL") or None,
            database_url=os.getenv("DATABASE_URL") or None,
            api_keys=api_keys,
            provider_timeout=_env_float("PROVIDER_TIMEOUT_SECONDS", 15.0),
            cache_ttl_seconds=_env_int("CACHE_TTL_SECONDS", 1800),
            rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", 3600),
            rate_limits=rate_limits,
            max_route_points=_env_int("MAX_ROUTE_POINTS", 25),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            frontend_origin=os.getenv("FRONTEND_ORIGIN", "http://localhost:5174"),
        )


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level.upper())
    # httpx logs every request at INFO; adapters already log their calls
    logging.getLogger("httpx").setLevel(logging.WARNING)
