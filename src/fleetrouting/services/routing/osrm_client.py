"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
from typing import Sequence, Type, TypeVar

import httpx
from pydantic import ValidationError

from ...config import settings
from ...models.domain import (
    Coordinate,
    DistanceMatrix,
    ResultSource,
    RouteSegment,
    RoutingResult,
    TripResult,
)
from ...schemas.osrm import (
    LonLat,
    OSRMResponse,
    OSRMRoute,
    OSRMRouteResponse,
    OSRMTableResponse,
    OSRMTripResponse,
)
from .errors import CancellationToken, RemoteRoutingError

DEFAULT_CONNECT_TIMEOUT = 5.0

ROUTE_PARAMS = {"overview": "full", "geometries": "geojson", "steps": "true"}
TRIP_PARAMS = {
    "source": "first",
    "roundtrip": "false",
    "overview": "full",
    "geometries": "geojson",
    "steps": "true",
}
TABLE_PARAMS = {"annotations": "distance,duration"}

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=OSRMResponse)


def _to_lat_lon(points: Sequence[LonLat]) -> tuple[Coordinate, ...]:
    return tuple((lat, lon) for lon, lat in points)


def _meters_to_km(value: float) -> float:
    return round(value / 1000.0, 1)


def _seconds_to_minutes(value: float) -> int:
    return round(value / 60.0)


class OSRMClient:
    """Issues one request per call against OSRM's route, trip and table services.

    Any failure (transport, HTTP status, engine code, payload shape) is raised
    as ``RemoteRoutingError``; retrying and fallback are the caller's concern.
    """

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_coordinates_per_request: int | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_coordinates_per_request = (
            max_coordinates_per_request
            if max_coordinates_per_request is not None
            else settings.osrm_max_coordinates_per_request
        )
        # Injected clients are owned by the caller and never closed here
        self._http_client = http_client

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout, connect=min(self.timeout, DEFAULT_CONNECT_TIMEOUT))

    def _get_client(self) -> httpx.Client:
        """Get a fresh HTTP client for one request."""
        return httpx.Client(timeout=self._timeout())

    @staticmethod
    def format_coordinates(coordinates: Sequence[Coordinate]) -> str:
        """Convert (lat, lon) pairs to OSRM's 'lon,lat;lon,lat;...' path segment."""
        return ";".join(f"{lon},{lat}" for lat, lon in coordinates)

    def _request(
        self,
        service: str,
        coordinates: Sequence[Coordinate],
        params: dict[str, str],
        response_model: Type[ResponseT],
        cancel: CancellationToken | None = None,
    ) -> ResponseT:
        if len(coordinates) < 2:
            raise ValueError(f"At least two coordinates are required for OSRM {service}.")
        if len(coordinates) > self.max_coordinates_per_request:
            raise RemoteRoutingError(
                f"OSRM {service} request has {len(coordinates)} coordinates; "
                f"the limit is {self.max_coordinates_per_request}."
            )
        if cancel is not None:
            cancel.raise_if_cancelled()

        url = f"{self.base_url}/{service}/v1/{self.profile}/{self.format_coordinates(coordinates)}"
        logger.debug(f"OSRM {service} request with {len(coordinates)} coordinates")

        client = self._http_client or self._get_client()
        try:
            response = client.get(url, params=params, timeout=self._timeout())
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 414:
                raise RemoteRoutingError(
                    f"OSRM request URL too large ({len(coordinates)} coordinates)."
                ) from exc
            raise RemoteRoutingError(
                f"OSRM {service} request failed with HTTP {exc.response.status_code}."
            ) from exc
        except httpx.TimeoutException as exc:
            raise RemoteRoutingError(f"OSRM {service} request timed out after {self.timeout}s.") from exc
        except httpx.HTTPError as exc:
            raise RemoteRoutingError(f"Failed to reach OSRM service at {self.base_url}: {exc}") from exc
        except ValueError as exc:
            raise RemoteRoutingError(f"OSRM {service} response is not valid JSON.") from exc
        finally:
            if self._http_client is None:
                client.close()

        if cancel is not None:
            cancel.raise_if_cancelled()

        try:
            parsed = response_model.model_validate(payload)
        except ValidationError as exc:
            raise RemoteRoutingError(f"Unexpected OSRM {service} response shape: {exc}") from exc
        if parsed.code != "Ok":
            raise RemoteRoutingError(
                f"OSRM {service} request failed: {parsed.code} ({parsed.message or 'no message'})"
            )
        return parsed

    @staticmethod
    def _parse_route(route: OSRMRoute) -> RoutingResult:
        if not route.geometry.coordinates:
            raise RemoteRoutingError("OSRM returned a route without geometry.")
        segments = tuple(
            RouteSegment(
                coordinates=_to_lat_lon([point for step in leg.steps for point in step.geometry.coordinates]),
                distance_m=leg.distance,
                duration_s=leg.duration,
            )
            for leg in route.legs
        )
        return RoutingResult(
            polyline=_to_lat_lon(route.geometry.coordinates),
            total_distance_km=_meters_to_km(route.distance),
            total_duration_min=_seconds_to_minutes(route.duration),
            segments=segments,
            source=ResultSource.REMOTE,
        )

    def route(self, coordinates: Sequence[Coordinate], cancel: CancellationToken | None = None) -> RoutingResult:
        """Road-following route through ``coordinates`` in the given order."""
        data = self._request("route", coordinates, ROUTE_PARAMS, OSRMRouteResponse, cancel)
        if not data.routes:
            raise RemoteRoutingError("OSRM found no route between the given points.")
        route = data.routes[0]
        if len(route.legs) != len(coordinates) - 1:
            raise RemoteRoutingError(
                f"OSRM returned {len(route.legs)} legs for {len(coordinates)} waypoints."
            )
        return self._parse_route(route)

    def trip(self, coordinates: Sequence[Coordinate], cancel: CancellationToken | None = None) -> TripResult:
        """Optimized visiting order starting at the first point, without returning to it."""
        data = self._request("trip", coordinates, TRIP_PARAMS, OSRMTripResponse, cancel)
        if not data.trips:
            raise RemoteRoutingError("OSRM found no trip through the given points.")
        if len(data.trips) != 1:
            raise RemoteRoutingError(f"OSRM split the trip into {len(data.trips)} disconnected parts.")

        # waypoints come back in input order; waypoint_index is each input's position in the trip
        positions = [waypoint.waypoint_index for waypoint in data.waypoints]
        n = len(coordinates)
        if sorted(positions) != list(range(n)):
            raise RemoteRoutingError(f"OSRM trip waypoints are not a permutation of 0..{n - 1}: {positions}")
        waypoint_order = [0] * n
        for input_index, position in enumerate(positions):
            waypoint_order[position] = input_index
        if waypoint_order[0] != 0:
            raise RemoteRoutingError("OSRM trip does not start at the first point.")

        return TripResult.from_route(self._parse_route(data.trips[0]), tuple(waypoint_order))

    def table(self, coordinates: Sequence[Coordinate], cancel: CancellationToken | None = None) -> DistanceMatrix:
        """All-pairs distance (km) and duration (minutes) matrix."""
        data = self._request("table", coordinates, TABLE_PARAMS, OSRMTableResponse, cancel)
        n = len(coordinates)
        for name, matrix in (("distances", data.distances), ("durations", data.durations)):
            if len(matrix) != n or any(len(row) != n for row in matrix):
                raise RemoteRoutingError(f"OSRM table {name} is not a {n}x{n} matrix.")

        distances = tuple(
            tuple(None if value is None else round(value / 1000.0, 1) for value in row) for row in data.distances
        )
        durations = tuple(
            tuple(None if value is None else round(value / 60.0, 1) for value in row) for row in data.durations
        )
        return DistanceMatrix(distances_km=distances, durations_min=durations, source=ResultSource.REMOTE)


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by making a simple table request.

    Public OSRM endpoints may not have a /health endpoint, so we test
    connectivity by making a minimal table request with two coordinates.
    """
    base = (base_url or settings.osrm_base_url).rstrip("/")
    if not base:
        return False
    try:
        # Two points in central Berlin, covered by every public OSRM extract
        test_coords = "13.388860,52.517037;13.385983,52.496891"
        url = f"{base}/table/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"annotations": "duration"}, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        return data.get("code") == "Ok" and isinstance(data.get("durations"), list)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning(f"OSRM health check failed: {exc}")
        return False
