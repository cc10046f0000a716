from typing import Callable

import pytest

from fleetrouting.models.domain import (
    DistanceMatrix,
    ResultSource,
    RouteSegment,
    RoutingResult,
    TripResult,
)
from fleetrouting.services.routing.cache import RouteCache
from fleetrouting.services.routing.errors import RemoteRoutingError
from fleetrouting.services.routing.fallback import FallbackPlanner
from fleetrouting.services.routing.rate_limiter import RateLimiter
from fleetrouting.services.routing.service import RoutingService

LIMA_COORDS = [
    (-12.0464, -77.0428),  # Centro
    (-12.0532, -77.0514),  # San Isidro
    (-12.1191, -77.0375),  # Miraflores
]


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeOSRM:
    """Stands in for OSRMClient; records calls and can be told to fail."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self.clock = clock
        self.calls: list[tuple[str, list]] = []
        self.call_times: list[float] = []
        self.failures: dict[str, int] = {}
        self.trip_order: tuple[int, ...] | None = None

    def fail(self, service: str, times: int = 10**6) -> None:
        self.failures[service] = times

    def _record(self, service: str, coordinates) -> None:
        self.calls.append((service, list(coordinates)))
        if self.clock is not None:
            self.call_times.append(self.clock())
        remaining = self.failures.get(service, 0)
        if remaining:
            self.failures[service] = remaining - 1
            raise RemoteRoutingError(f"{service} unavailable")

    def count(self, service: str) -> int:
        return sum(1 for name, _ in self.calls if name == service)

    def route(self, coordinates, cancel=None) -> RoutingResult:
        self._record("route", coordinates)
        return RoutingResult(
            polyline=tuple(coordinates),
            total_distance_km=15.0,
            total_duration_min=20,
            segments=tuple(
                RouteSegment(coordinates=(start, end), distance_m=15000 / (len(coordinates) - 1), duration_s=600.0)
                for start, end in zip(coordinates, coordinates[1:])
            ),
            source=ResultSource.REMOTE,
        )

    def trip(self, coordinates, cancel=None) -> TripResult:
        self._record("trip", coordinates)
        order = self.trip_order or tuple(range(len(coordinates)))
        route = RoutingResult(
            polyline=tuple(coordinates[i] for i in order),
            total_distance_km=18.0,
            total_duration_min=25,
            segments=(),
            source=ResultSource.REMOTE,
        )
        return TripResult.from_route(route, order)

    def table(self, coordinates, cancel=None) -> DistanceMatrix:
        self._record("table", coordinates)
        n = len(coordinates)
        distances = tuple(tuple(0.0 if i == j else 5.0 + i * 0.1 + j * 0.05 for j in range(n)) for i in range(n))
        durations = tuple(tuple(0.0 if i == j else 10.0 + i * 0.5 for j in range(n)) for i in range(n))
        return DistanceMatrix(distances_km=distances, durations_min=durations, source=ResultSource.REMOTE)


@pytest.fixture
def lima_coords() -> list[tuple[float, float]]:
    return list(LIMA_COORDS)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_osrm(clock: FakeClock) -> FakeOSRM:
    return FakeOSRM(clock=clock)


@pytest.fixture
def routing_service(fake_osrm: FakeOSRM, clock: FakeClock) -> RoutingService:
    return RoutingService(
        client=fake_osrm,
        cache=RouteCache(capacity=100, precision=5),
        rate_limiter=RateLimiter(1.1, clock=clock, sleep=clock.sleep),
        fallback=FallbackPlanner(average_speed_kmh=40.0, interpolation_steps=20),
    )
