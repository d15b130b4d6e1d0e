"""Route optimization request/response schemas."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DeliveryStopModel(BaseModel):
    reference_id: str = Field(..., description="Booking reference of the stop.")
    street: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None


class StartPointModel(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class RouteOptimizationRequest(BaseModel):
    stops: List[DeliveryStopModel]
    start: StartPointModel
    persist: bool = Field(default=False, description="Write summary.json and waypoints.csv for this run.")


class RouteWaypointModel(BaseModel):
    visiting_order: int
    stop_reference: str
    latitude: float
    longitude: float
    address: str
    city: Optional[str] = None


class RouteOptimizationResponse(BaseModel):
    strategy: str
    total_distance_km: float
    total_duration_min: float
    fallback_reason: Optional[str] = None
    excluded_stops: List[str] = Field(default_factory=list)
    waypoints: List[RouteWaypointModel]
    output_path: Optional[str] = None


class GeocodeCacheResponse(BaseModel):
    size: int
    hits: int
    misses: int
    entries: Dict[str, Dict[str, float]]
