"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from ..models.domain import DistanceMatrix, RoutingResult, TripResult

LatLon = Tuple[float, float]


class CoordinatesRequest(BaseModel):
    coordinates: List[LatLon] = Field(
        ...,
        description="Ordered (latitude, longitude) pairs; at least two are required.",
    )


class DistanceRequest(BaseModel):
    origin: LatLon
    destination: LatLon


class RouteSegmentModel(BaseModel):
    coordinates: List[LatLon]
    distance_m: float
    duration_s: float


class RoutingResultModel(BaseModel):
    polyline: List[LatLon]
    total_distance_km: float
    total_duration_min: int
    segments: List[RouteSegmentModel]
    source: Literal["remote", "fallback"]
    degraded: bool

    @classmethod
    def from_result(cls, result: RoutingResult) -> "RoutingResultModel":
        return cls(**_route_fields(result))


class TripResultModel(RoutingResultModel):
    waypoint_order: List[int]

    @classmethod
    def from_result(cls, result: TripResult) -> "TripResultModel":
        return cls(**_route_fields(result), waypoint_order=list(result.waypoint_order))


class DistanceMatrixModel(BaseModel):
    distances_km: List[List[Optional[float]]]
    durations_min: List[List[Optional[float]]]
    source: Literal["remote", "fallback"]
    degraded: bool

    @classmethod
    def from_result(cls, matrix: DistanceMatrix) -> "DistanceMatrixModel":
        return cls(
            distances_km=[list(row) for row in matrix.distances_km],
            durations_min=[list(row) for row in matrix.durations_min],
            source=matrix.source.value,
            degraded=matrix.degraded,
        )


class DistanceResponse(BaseModel):
    distance_km: float


def _route_fields(result: RoutingResult) -> dict:
    return {
        "polyline": list(result.polyline),
        "total_distance_km": result.total_distance_km,
        "total_duration_min": result.total_duration_min,
        "segments": [
            RouteSegmentModel(
                coordinates=list(segment.coordinates),
                distance_m=segment.distance_m,
                duration_s=segment.duration_s,
            )
            for segment in result.segments
        ],
        "source": result.source.value,
        "degraded": result.degraded,
    }
