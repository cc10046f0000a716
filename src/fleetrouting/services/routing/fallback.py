"""Network-free approximations used when OSRM is unavailable."""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import Coordinate, DistanceMatrix, ResultSource, RoutingResult, TripResult
from ..geospatial import distance_km, interpolate, path_length_km

# Average speed for duration estimation (km/h)
AVERAGE_SPEED_KMH = 40.0
INTERPOLATION_STEPS = 20

logger = logging.getLogger(__name__)


class FallbackPlanner:
    def __init__(
        self,
        average_speed_kmh: float = AVERAGE_SPEED_KMH,
        interpolation_steps: int = INTERPOLATION_STEPS,
    ) -> None:
        if average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be positive.")
        if interpolation_steps < 1:
            raise ValueError("interpolation_steps must be at least 1.")
        self.average_speed_kmh = average_speed_kmh
        self.interpolation_steps = interpolation_steps

    def _minutes(self, km: float) -> float:
        return km / self.average_speed_kmh * 60.0

    def straight_line(self, coordinates: Sequence[Coordinate]) -> RoutingResult:
        """Interpolated straight legs between consecutive points.

        Every leg contributes its full ``interpolation_steps + 1`` points,
        both ends included, so a junction point appears at the end of one leg
        and again at the start of the next.
        """
        polyline: list[Coordinate] = []
        for start, end in zip(coordinates, coordinates[1:]):
            polyline.extend(interpolate(start, end, self.interpolation_steps))
        if len(coordinates) == 1:
            polyline.append(coordinates[0])

        # Measured between input points, not interpolated ones
        total_km = path_length_km(coordinates)
        return RoutingResult(
            polyline=tuple(polyline),
            total_distance_km=round(total_km, 1),
            total_duration_min=round(self._minutes(total_km)),
            segments=(),
            source=ResultSource.FALLBACK,
        )

    @staticmethod
    def nearest_neighbor_order(coordinates: Sequence[Coordinate]) -> list[int]:
        """Greedy visiting order from index 0, always moving to the closest unvisited point.

        Ties go to the lower index so the order is deterministic.
        """
        if not coordinates:
            return []
        order = [0]
        unvisited = set(range(1, len(coordinates)))
        current = 0
        while unvisited:
            nearest = min(unvisited, key=lambda idx: (distance_km(coordinates[current], coordinates[idx]), idx))
            order.append(nearest)
            unvisited.remove(nearest)
            current = nearest
        return order

    def nearest_neighbor_trip(self, coordinates: Sequence[Coordinate]) -> TripResult:
        order = self.nearest_neighbor_order(coordinates)
        logger.debug(f"Nearest-neighbor order for {len(coordinates)} points: {order}")
        route = self.straight_line([coordinates[idx] for idx in order])
        return TripResult.from_route(route, tuple(order))

    def approximate_matrix(self, coordinates: Sequence[Coordinate]) -> DistanceMatrix:
        n = len(coordinates)
        distances: list[list[float]] = [[0.0] * n for _ in range(n)]
        durations: list[list[float]] = [[0.0] * n for _ in range(n)]

        for i in range(n):
            for j in range(n):
                if i == j:
                    continue
                km = distance_km(coordinates[i], coordinates[j])
                distances[i][j] = round(km, 1)
                durations[i][j] = round(self._minutes(km), 1)

        return DistanceMatrix(
            distances_km=tuple(tuple(row) for row in distances),
            durations_min=tuple(tuple(row) for row in durations),
            source=ResultSource.FALLBACK,
        )
