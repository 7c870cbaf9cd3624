from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, Integer, MetaData, Table, Text, UniqueConstraint

metadata = MetaData()

provider_usage_table = Table(
    "provider_usage",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("provider", Text, nullable=False),
    Column("hour_start", DateTime, nullable=False),
    Column("calls", Integer, nullable=False, default=0),
    Column("successes", Integer, nullable=False, default=0),
    Column("errors", Integer, nullable=False, default=0),
    Column("total_response_ms", Float, nullable=False, default=0.0),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("provider", "hour_start", name="uq_provider_usage_hour"),
)
