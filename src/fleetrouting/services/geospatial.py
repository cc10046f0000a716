"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from ..models.domain import Coordinate
from .routing.errors import RouteValidationError

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two (lat, lon) pairs."""
    return haversine_km(a[0], a[1], b[0], b[1])


def path_length_km(coordinates: Sequence[Coordinate]) -> float:
    """Sum of great-circle distances between consecutive points."""
    return sum(distance_km(coordinates[i], coordinates[i + 1]) for i in range(len(coordinates) - 1))


def interpolate(start: Coordinate, end: Coordinate, steps: int) -> list[Coordinate]:
    """Return ``steps + 1`` evenly spaced points from ``start`` to ``end`` inclusive.

    Endpoints are copied exactly rather than computed, so callers can rely on
    ``result[0] == start`` and ``result[-1] == end``.
    """
    points: list[Coordinate] = [start]
    for j in range(1, steps):
        t = j / steps
        points.append((start[0] + (end[0] - start[0]) * t, start[1] + (end[1] - start[1]) * t))
    points.append(end)
    return points


def validate_coordinates(coordinates: Iterable[Sequence[float]], minimum: int = 2) -> list[Coordinate]:
    """Normalize input points to float (lat, lon) tuples and check their ranges."""

    normalized: list[Coordinate] = []
    for index, point in enumerate(coordinates):
        # "12" would otherwise unpack into two digits
        if isinstance(point, (str, bytes)):
            raise RouteValidationError(f"Point {index} is not a (latitude, longitude) pair: {point!r}")
        try:
            lat, lon = (float(value) for value in point)
        except (TypeError, ValueError) as exc:
            raise RouteValidationError(f"Point {index} is not a (latitude, longitude) pair: {point!r}") from exc
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise RouteValidationError(f"Point {index} has a non-finite coordinate: {point!r}")
        if not -90.0 <= lat <= 90.0:
            raise RouteValidationError(f"Point {index} latitude {lat} is outside [-90, 90].")
        if not -180.0 <= lon <= 180.0:
            raise RouteValidationError(f"Point {index} longitude {lon} is outside [-180, 180].")
        normalized.append((lat, lon))

    if len(normalized) < minimum:
        raise RouteValidationError(
            f"At least {minimum} points are required to calculate a route (got {len(normalized)})."
        )
    return normalized
