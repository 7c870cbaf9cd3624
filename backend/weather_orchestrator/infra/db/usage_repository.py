from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from .tables import provider_usage_table


def _hour_start(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.replace(minute=0, second=0, microsecond=0)


class ProviderUsageRepository:
    """Hourly call counters per provider."""

    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine is required")
        self.engine = engine

    def record_call(
        self,
        provider: str,
        *,
        success: bool,
        response_ms: float = 0.0,
        at: Optional[datetime] = None,
    ) -> None:
        now = datetime.now(timezone.utc)
        hour = _hour_start(at or now)
        with self.engine.begin() as conn:
            if self._increment(conn, provider, hour, success, response_ms, now):
                return
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(provider_usage_table).values(
                        provider=provider,
                        hour_start=hour,
                        calls=1,
                        successes=1 if success else 0,
                        errors=0 if success else 1,
                        total_response_ms=response_ms,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            # another worker created the row for this hour first
            with self.engine.begin() as conn:
                self._increment(conn, provider, hour, success, response_ms, now)

    def _increment(
        self,
        conn: Connection,
        provider: str,
        hour: datetime,
        success: bool,
        response_ms: float,
        now: datetime,
    ) -> int:
        table = provider_usage_table
        result = conn.execute(
            update(table)
            .where(table.c.provider == provider)
            .where(table.c.hour_start == hour)
            .values(
                calls=table.c.calls + 1,
                successes=table.c.successes + (1 if success else 0),
                errors=table.c.errors + (0 if success else 1),
                total_response_ms=table.c.total_response_ms + response_ms,
                updated_at=now,
            )
        )
        return result.rowcount

    def stats(self, provider: str, hours: int = 24, now: Optional[datetime] = None) -> Dict[str, Any]:
        current = _hour_start(now or datetime.now(timezone.utc))
        since = current - timedelta(hours=max(1, hours) - 1)
        table = provider_usage_table
        with self.engine.begin() as conn:
            rows = conn.execute(
                select(table)
                .where(table.c.provider == provider)
                .where(table.c.hour_start >= since)
                .where(table.c.hour_start <= current)
                .order_by(table.c.hour_start.desc())
            ).mappings().all()
        breakdown: List[Dict[str, Any]] = []
        totals = {"calls": 0, "successes": 0, "errors": 0, "response_ms": 0.0}
        for row in rows:
            totals["calls"] += row["calls"]
            totals["successes"] += row["successes"]
            totals["errors"] += row["errors"]
            totals["response_ms"] += row["total_response_ms"]
            breakdown.append(
                {
                    "hour": row["hour_start"].strftime("%Y-%m-%dT%H"),
                    "calls": row["calls"],
                    "successes": row["successes"],
                    "errors": row["errors"],
                    "avgResponseTime": round(row["total_response_ms"] / row["calls"], 1) if row["calls"] else 0.0,
                }
            )
        result: Dict[str, Any] = {
            "totalCalls": totals["calls"],
            "successes": totals["successes"],
            "errors": totals["errors"],
            "avgResponseTime": round(totals["response_ms"] / totals["calls"], 1) if totals["calls"] else 0.0,
            "hourlyBreakdown": breakdown,
        }
        if totals["calls"]:
            result["successRate"] = round(totals["successes"] / totals["calls"] * 100, 1)
            result["errorRate"] = round(totals["errors"] / totals["calls"] * 100, 1)
        return result
