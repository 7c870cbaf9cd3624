from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

import httpx

from weather_orchestrator.domain.models import Point, ProviderRecord

DEFAULT_TIMEOUT = 15.0

# (max gap in hours, confidence); anything beyond the last band gets the fallback
ConfidenceBands = Sequence[Tuple[float, float]]


class ProviderError(RuntimeError):
    """Base provider error."""

    kind = "upstream"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderNotConfigured(ProviderError):
    kind = "unconfigured"


class UnsupportedLocation(ProviderError):
    kind = "unsupported"


class RateLimited(ProviderError):
    kind = "rate_limited"


class ProviderTimeout(ProviderError):
    kind = "timeout"


class MalformedResponse(ProviderError):
    kind = "malformed_response"


class WeatherProvider:
    """Base adapter: one upstream call in, one :class:`ProviderRecord` out.

    Subclasses implement ``_call`` (network) and ``_parse`` (shape to record),
    and may override ``supports`` to reject points outside their coverage
    before any quota is spent.
    """

    name = "provider"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.client = client
        self._log = logging.getLogger(f"{__name__}.{self.name}")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def is_available(self) -> bool:
        return self.is_configured()

    def supports(self, point: Point) -> bool:
        return True

    def fetch(self, point: Point) -> ProviderRecord:
        if not self.is_configured():
            raise ProviderNotConfigured(self.name, "API key not configured")
        if not self.supports(point):
            raise UnsupportedLocation(self.name, f"({point.lat}, {point.lon}) is outside coverage")
        self._log.info("Calling %s for %.4f, %.4f", self.name, point.lat, point.lon)
        payload = self._call(point)
        try:
            return self._parse(payload, point)
        except ProviderError:
            raise
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            raise MalformedResponse(self.name, f"unexpected response shape: {exc}") from exc

    def _call(self, point: Point) -> Any:
        raise NotImplementedError

    def _parse(self, payload: Any, point: Point) -> ProviderRecord:
        raise NotImplementedError

    # helpers ------------------------------------------------------------
    def _request(self, method: str, url: str, *, timeout: Optional[float] = None, **kwargs) -> Any:
        timeout = self.timeout if timeout is None else timeout
        try:
            if self.client is not None:
                response = self.client.request(method, url, timeout=timeout, **kwargs)
            else:
                with httpx.Client(timeout=timeout) as client:
                    response = client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderTimeout(self.name, f"no answer within {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"connection error: {exc}") from exc
        self._check_status(response)
        try:
            # .text honours the charset in Content-Type (AEMET answers in ISO-8859-15)
            return json.loads(response.text)
        except ValueError as exc:
            raise MalformedResponse(self.name, "invalid json") from exc

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 429:
            raise RateLimited(self.name, "upstream rate limit exceeded")
        if status in (401, 403):
            raise ProviderNotConfigured(self.name, "API key invalid or expired")
        raise ProviderError(self.name, f"HTTP {status}")

    def _require(self, value: Optional[float], field: str) -> float:
        if value is None:
            raise MalformedResponse(self.name, f"missing {field}")
        return value


def nearest_slot(times: Sequence[datetime], target: datetime) -> Tuple[int, float]:
    """Index of the slot closest to ``target`` and the gap in hours."""
    if not times:
        raise ValueError("no forecast slots")
    best_idx = 0
    best_gap = abs((times[0] - target).total_seconds())
    for idx, slot in enumerate(times[1:], start=1):
        gap = abs((slot - target).total_seconds())
        if gap < best_gap:
            best_idx, best_gap = idx, gap
    return best_idx, best_gap / 3600.0


def confidence_for_gap(gap_hours: float, bands: ConfidenceBands, fallback: float) -> float:
    for max_gap, confidence in bands:
        if gap_hours <= max_gap:
            return confidence
    return fallback


def parse_time(value: str) -> datetime:
    if value.endswith("Z"):
        value = value.replace("Z", "+00:00")
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def safe_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def safe_index(values: Optional[List[Any]], index: int) -> Optional[float]:
    if not values:
        return None
    try:
        return safe_float(values[index])
    except IndexError:
        return None
