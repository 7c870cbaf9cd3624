from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from weather_orchestrator.api.routers import weather
from weather_orchestrator.config import Settings, configure_logging
from weather_orchestrator.infra.database import create_db_engine, init_db
from weather_orchestrator.services.factory import build_service
from weather_orchestrator.services.route_weather import RouteWeatherService


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.db_engine is not None:
        init_db(app.state.db_engine)
    yield
    app.state.weather_service.close()


def create_app(
    service: Optional[RouteWeatherService] = None,
    engine=None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    app = FastAPI(title="Weather Orchestrator API", version="0.1.0", lifespan=lifespan)
    if engine is None:
        engine = create_db_engine(settings.database_url)
    app.state.db_engine = engine
    app.state.weather_service = service or build_service(settings, engine=engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health(request: Request):
        current: RouteWeatherService = request.app.state.weather_service
        providers = {
            name: {"available": provider.is_available(), "configured": provider.is_configured()}
            for name, provider in current.hub.registry.items()
        }
        return {
            "status": "OK",
            "service": "weather-orchestrator",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "store": "up" if current.store_available() else "down",
            "providers": providers,
        }

    app.include_router(weather.router, prefix="/api")
    return app


app = create_app()
