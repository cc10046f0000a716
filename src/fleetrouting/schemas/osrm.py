"""Wire-level models for OSRM route, trip and table responses.

Only the fields the client consumes are declared; anything else OSRM sends is
ignored. Coordinates stay in OSRM's (lon, lat) order here and are swapped by
the client.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

LonLat = Tuple[float, float]


class _OSRMModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GeoJSONLineString(_OSRMModel):
    coordinates: List[LonLat]


class OSRMStep(_OSRMModel):
    geometry: GeoJSONLineString


class OSRMLeg(_OSRMModel):
    distance: float = Field(ge=0)
    duration: float = Field(ge=0)
    steps: List[OSRMStep] = Field(default_factory=list)


class OSRMRoute(_OSRMModel):
    distance: float = Field(ge=0)
    duration: float = Field(ge=0)
    geometry: GeoJSONLineString
    legs: List[OSRMLeg] = Field(default_factory=list)


class OSRMWaypoint(_OSRMModel):
    location: Optional[LonLat] = None


class OSRMTripWaypoint(OSRMWaypoint):
    waypoint_index: int = Field(ge=0)
    trips_index: int = 0


class OSRMResponse(_OSRMModel):
    code: str
    message: Optional[str] = None


class OSRMRouteResponse(OSRMResponse):
    routes: List[OSRMRoute] = Field(default_factory=list)


class OSRMTripResponse(OSRMResponse):
    trips: List[OSRMRoute] = Field(default_factory=list)
    waypoints: List[OSRMTripWaypoint] = Field(default_factory=list)


class OSRMTableResponse(OSRMResponse):
    distances: List[List[Optional[float]]] = Field(default_factory=list)
    durations: List[List[Optional[float]]] = Field(default_factory=list)
