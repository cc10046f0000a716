"""Routing orchestration service."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, ClassVar, Sequence, TypeVar

from ...config import settings
from ...models.domain import Coordinate, DistanceMatrix, RoutingResult, TripResult
from ..geospatial import distance_km, validate_coordinates
from .cache import RouteCache
from .errors import CancellationToken, RemoteRoutingError, RoutingCancelled
from .fallback import FallbackPlanner
from .osrm_client import OSRMClient
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many rate-limited attempts a remote call gets before falling back."""

    max_attempts: int = 1
    backoff_seconds: float = 0.0

    NONE: ClassVar["RetryPolicy"]

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be non-negative.")

    @classmethod
    def bounded(cls, retries: int, backoff_seconds: float = 1.0) -> "RetryPolicy":
        return cls(max_attempts=retries + 1, backoff_seconds=backoff_seconds)


RetryPolicy.NONE = RetryPolicy()


class RoutingService:
    """Cache, rate limiter, OSRM client and fallback planner behind one API.

    Every public operation validates its input, makes at most one remote
    attempt per retry-policy slot, and degrades to the fallback planner when
    OSRM cannot answer. Only remote route results are cached.
    """

    def __init__(
        self,
        client: OSRMClient | None = None,
        cache: RouteCache | None = None,
        rate_limiter: RateLimiter | None = None,
        fallback: FallbackPlanner | None = None,
        retry_policy: RetryPolicy = RetryPolicy.NONE,
    ) -> None:
        # explicit None checks: an empty RouteCache is falsy
        self.client = client if client is not None else OSRMClient()
        self.cache = (
            cache
            if cache is not None
            else RouteCache(settings.route_cache_capacity, settings.route_cache_precision)
        )
        self.rate_limiter = (
            rate_limiter if rate_limiter is not None else RateLimiter(settings.osrm_min_request_interval_seconds)
        )
        self.fallback = (
            fallback
            if fallback is not None
            else FallbackPlanner(settings.fallback_average_speed_kmh, settings.fallback_interpolation_steps)
        )
        self.retry_policy = retry_policy

    @classmethod
    def from_settings(cls) -> "RoutingService":
        """Service built entirely from configuration, including the retry policy."""
        retry_policy = (
            RetryPolicy.bounded(settings.osrm_max_retries, settings.osrm_backoff_seconds)
            if settings.osrm_max_retries
            else RetryPolicy.NONE
        )
        return cls(retry_policy=retry_policy)

    def _call_remote(
        self,
        request: Callable[[Sequence[Coordinate], CancellationToken | None], T],
        coordinates: Sequence[Coordinate],
        cancel: CancellationToken | None,
    ) -> T:
        attempt = 0
        while True:
            attempt += 1
            self.rate_limiter.acquire(cancel)
            try:
                return request(coordinates, cancel)
            except RoutingCancelled:
                raise
            except RemoteRoutingError as exc:
                if attempt >= self.retry_policy.max_attempts:
                    raise
                wait_time = self.retry_policy.backoff_seconds * attempt
                logger.debug(
                    f"OSRM request failed, retrying in {wait_time:.1f}s "
                    f"(attempt {attempt}/{self.retry_policy.max_attempts}): {exc}"
                )
                if cancel is not None:
                    if cancel.wait(wait_time):
                        raise RoutingCancelled("Cancelled during OSRM retry backoff.") from exc
                elif wait_time:
                    time.sleep(wait_time)

    def calculate_route(
        self, coordinates: Sequence[Coordinate], cancel: CancellationToken | None = None
    ) -> RoutingResult:
        """Road-following route through the points in the given order."""
        points = validate_coordinates(coordinates)
        key = self.cache.key(points)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Route cache hit for {len(points)} points")
            return cached

        try:
            result = self._call_remote(self.client.route, points, cancel)
        except RemoteRoutingError as exc:
            logger.warning(f"OSRM route request failed: {exc}. Using straight-line fallback.")
            return self.fallback.straight_line(points)

        self.cache.put(key, result)
        return result

    def calculate_constrained_route(
        self, coordinates: Sequence[Coordinate], cancel: CancellationToken | None = None
    ) -> RoutingResult:
        """Route that must keep a business-mandated stop order (e.g. pickup before delivery).

        Identical to ``calculate_route``; it exists so callers that must never
        have their waypoints reordered say so explicitly.
        """
        return self.calculate_route(coordinates, cancel)

    def calculate_optimized_trip(
        self, coordinates: Sequence[Coordinate], cancel: CancellationToken | None = None
    ) -> TripResult:
        """Visit all points starting from the first one, in an optimized order, without returning."""
        points = validate_coordinates(coordinates)
        if len(points) == 2:
            return TripResult.from_route(self.calculate_route(points, cancel), (0, 1))

        try:
            return self._call_remote(self.client.trip, points, cancel)
        except RemoteRoutingError as exc:
            logger.warning(f"OSRM trip request failed: {exc}. Using nearest-neighbor fallback.")
            return self.fallback.nearest_neighbor_trip(points)

    def get_distance_matrix(
        self, coordinates: Sequence[Coordinate], cancel: CancellationToken | None = None
    ) -> DistanceMatrix:
        points = validate_coordinates(coordinates)
        try:
            return self._call_remote(self.client.table, points, cancel)
        except RemoteRoutingError as exc:
            logger.warning(f"OSRM table request failed: {exc}. Using haversine fallback.")
            return self.fallback.approximate_matrix(points)

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Route cache cleared")

    @staticmethod
    def distance(a: Coordinate, b: Coordinate) -> float:
        """Great-circle distance in km; never touches the network."""
        start, end = validate_coordinates((a, b))
        return distance_km(start, end)


@lru_cache(maxsize=1)
def get_routing_service() -> RoutingService:
    """Process-wide service shared by the HTTP layer."""
    return RoutingService.from_settings()
