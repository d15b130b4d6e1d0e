"""Route optimization endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...models.domain import Coordinate, DeliveryStop
from ...schemas.routing import GeocodeCacheResponse, RouteOptimizationRequest, RouteOptimizationResponse
from ...services.outputs.route_formatter import optimized_route_to_json, persist_route
from ...services.routing.service import get_route_optimizer

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=RouteOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(payload: RouteOptimizationRequest) -> RouteOptimizationResponse:
    try:
        optimizer = get_route_optimizer()
        stops = [DeliveryStop(**stop.model_dump()) for stop in payload.stops]
        route = optimizer.optimize_route(stops, Coordinate(payload.start.latitude, payload.start.longitude))
        body = optimized_route_to_json(route)
        if payload.persist:
            body["output_path"] = str(persist_route(route))
        return RouteOptimizationResponse(**body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}"
        ) from exc


@router.get("/geocode-cache", response_model=GeocodeCacheResponse, status_code=status.HTTP_200_OK)
def geocode_cache() -> GeocodeCacheResponse:
    try:
        cache = get_route_optimizer().cache
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    entries = cache.snapshot()
    return GeocodeCacheResponse(size=len(entries), hits=cache.hits, misses=cache.misses, entries=entries)


@router.delete("/geocode-cache", status_code=status.HTTP_200_OK)
def clear_geocode_cache() -> dict:
    try:
        get_route_optimizer().clear_cache()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "message": "Geocode cache cleared"}
