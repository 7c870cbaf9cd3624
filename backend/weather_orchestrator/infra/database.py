from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from weather_orchestrator.infra.db.tables import metadata


def create_db_engine(database_url: Optional[str]) -> Optional[Engine]:
    if not database_url:
        return None
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, future=True, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    metadata.create_all(engine)
