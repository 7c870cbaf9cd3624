from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from weather_orchestrator.domain.models import Waypoint


class WaypointIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    estimated_time_from_start_minutes: float = Field(
        0.0,
        ge=0,
        validation_alias=AliasChoices(
            "estimatedTimeFromStart_minutes",
            "estimatedTimeFromStart",
            "estimated_time_from_start_minutes",
        ),
    )
    elevation: Optional[float] = None
    description: Optional[str] = None

    def to_domain(self) -> Waypoint:
        return Waypoint(
            lat=self.lat,
            lon=self.lon,
            minutes_from_start=self.estimated_time_from_start_minutes,
            elevation=self.elevation,
            description=self.description,
        )


class RouteRequest(BaseModel):
    waypoints: Optional[List[WaypointIn]] = None
    total_distance: Optional[float] = Field(None, validation_alias=AliasChoices("totalDistance", "total_distance"))
    estimated_duration: Optional[float] = Field(
        None, validation_alias=AliasChoices("estimatedDuration", "estimated_duration")
    )
    start_time: Optional[datetime] = Field(None, validation_alias=AliasChoices("startTime", "start_time"))


class PointRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    timestamp: Optional[datetime] = None
