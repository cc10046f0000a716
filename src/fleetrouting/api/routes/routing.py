"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.routing import (
    CoordinatesRequest,
    DistanceMatrixModel,
    DistanceRequest,
    DistanceResponse,
    RoutingResultModel,
    TripResultModel,
)
from ...services.routing.service import RoutingService, get_routing_service

router = APIRouter(prefix="/routing", tags=["routing"])

logger = logging.getLogger(__name__)


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _server_error(action: str, exc: Exception) -> HTTPException:
    logger.exception(f"Error {action}: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed {action}: {exc}",
    )


@router.post("/route", response_model=RoutingResultModel, status_code=status.HTTP_200_OK)
def route(
    payload: CoordinatesRequest,
    service: RoutingService = Depends(get_routing_service),
) -> RoutingResultModel:
    try:
        return RoutingResultModel.from_result(service.calculate_route(payload.coordinates))
    except ValueError as exc:
        raise _bad_request(exc) from exc
    except Exception as exc:
        raise _server_error("calculating route", exc) from exc


@router.post("/constrained-route", response_model=RoutingResultModel, status_code=status.HTTP_200_OK)
def constrained_route(
    payload: CoordinatesRequest,
    service: RoutingService = Depends(get_routing_service),
) -> RoutingResultModel:
    """Route that keeps the stop order exactly as submitted."""
    try:
        return RoutingResultModel.from_result(service.calculate_constrained_route(payload.coordinates))
    except ValueError as exc:
        raise _bad_request(exc) from exc
    except Exception as exc:
        raise _server_error("calculating constrained route", exc) from exc


@router.post("/trip", response_model=TripResultModel, status_code=status.HTTP_200_OK)
def optimized_trip(
    payload: CoordinatesRequest,
    service: RoutingService = Depends(get_routing_service),
) -> TripResultModel:
    try:
        return TripResultModel.from_result(service.calculate_optimized_trip(payload.coordinates))
    except ValueError as exc:
        raise _bad_request(exc) from exc
    except Exception as exc:
        raise _server_error("optimizing trip", exc) from exc


@router.post("/matrix", response_model=DistanceMatrixModel, status_code=status.HTTP_200_OK)
def distance_matrix(
    payload: CoordinatesRequest,
    service: RoutingService = Depends(get_routing_service),
) -> DistanceMatrixModel:
    try:
        return DistanceMatrixModel.from_result(service.get_distance_matrix(payload.coordinates))
    except ValueError as exc:
        raise _bad_request(exc) from exc
    except Exception as exc:
        raise _server_error("building distance matrix", exc) from exc


@router.post("/distance", response_model=DistanceResponse, status_code=status.HTTP_200_OK)
def distance(payload: DistanceRequest, service: RoutingService = Depends(get_routing_service)) -> DistanceResponse:
    """Great-circle estimate; never calls OSRM."""
    try:
        return DistanceResponse(distance_km=service.distance(payload.origin, payload.destination))
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.delete("/cache", status_code=status.HTTP_200_OK)
def clear_cache(service: RoutingService = Depends(get_routing_service)) -> dict:
    service.clear_cache()
    return {"success": True, "message": "Route cache cleared"}
