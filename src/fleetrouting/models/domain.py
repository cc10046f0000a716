"""Domain models for routing results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

# (latitude, longitude) in degrees
Coordinate = Tuple[float, float]


class ResultSource(str, Enum):
    """Where a routing result came from."""

    REMOTE = "remote"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class RouteSegment:
    """One leg between two consecutive input waypoints."""

    coordinates: tuple[Coordinate, ...]
    distance_m: float
    duration_s: float


@dataclass(frozen=True, slots=True)
class RoutingResult:
    """Road-snapped or approximated itinerary over an ordered list of points."""

    polyline: tuple[Coordinate, ...]
    total_distance_km: float
    total_duration_min: int
    segments: tuple[RouteSegment, ...]
    source: ResultSource

    @property
    def degraded(self) -> bool:
        return self.source is ResultSource.FALLBACK


@dataclass(frozen=True, slots=True)
class TripResult(RoutingResult):
    """Routing result for an optimized visiting order.

    ``waypoint_order`` lists input indices in the order they are visited.
    """

    waypoint_order: tuple[int, ...] = ()

    @classmethod
    def from_route(cls, route: RoutingResult, waypoint_order: tuple[int, ...]) -> "TripResult":
        return cls(
            polyline=route.polyline,
            total_distance_km=route.total_distance_km,
            total_duration_min=route.total_duration_min,
            segments=route.segments,
            source=route.source,
            waypoint_order=tuple(waypoint_order),
        )


@dataclass(frozen=True, slots=True)
class DistanceMatrix:
    """Pairwise distances (km) and durations (minutes); unreachable pairs are None."""

    distances_km: tuple[tuple[Optional[float], ...], ...]
    durations_min: tuple[tuple[Optional[float], ...], ...]
    source: ResultSource

    @property
    def size(self) -> int:
        return len(self.distances_km)

    @property
    def degraded(self) -> bool:
        return self.source is ResultSource.FALLBACK
