"""Domain models for telemetry samples, delivery stops and POD bundles."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


@dataclass(slots=True)
class GPSSample:
    """A single position fix as reported by the device."""

    latitude: float
    longitude: float
    captured_at: datetime
    accuracy_m: Optional[float] = None
    speed_mps: Optional[float] = None
    heading_deg: Optional[float] = None
    battery_level: Optional[float] = None


class RetryState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"
    ABANDONED = "abandoned"


@dataclass(slots=True)
class QueuedSample:
    """A GPS sample owned by the upload queue."""

    sample: GPSSample
    id: str = field(default_factory=new_id)
    retry_count: int = 0
    state: RetryState = RetryState.PENDING


class CaptureMode(str, Enum):
    STOPPED = "stopped"
    BACKGROUND = "background"
    FOREGROUND_ONLY = "foreground_only"


@dataclass(slots=True)
class CaptureStatus:
    running: bool
    mode: CaptureMode
    driver_id: Optional[str]
    last_sample_at: Optional[datetime]
    restart_count: int = 0


@dataclass(slots=True)
class CaptureStartResult:
    started: bool
    mode: CaptureMode
    background_permission: bool


@dataclass(frozen=True, slots=True)
class DeliveryStop:
    """Immutable snapshot of a booking's delivery address."""

    reference_id: str
    street: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None


@dataclass(frozen=True, slots=True)
class GeocodedPoint:
    address_key: str
    latitude: float
    longitude: float

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass(slots=True)
class RouteWaypoint:
    stop_reference: str
    coordinate: Coordinate
    visiting_order: int
    address: str
    city: Optional[str] = None


class RoutingStrategy(str, Enum):
    TRIVIAL = "trivial"
    EXACT = "exact"
    HEURISTIC = "heuristic"


@dataclass(slots=True)
class OptimizedRoute:
    waypoints: list[RouteWaypoint]
    strategy: RoutingStrategy
    total_distance_km: float = 0.0
    total_duration_min: float = 0.0
    excluded_stops: list[str] = field(default_factory=list)
    fallback_reason: Optional[str] = None


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"


@dataclass(slots=True)
class PODBlob:
    """A binary attachment (photo) of a proof-of-delivery bundle."""

    name: str
    data: bytes
    content_type: str = "image/jpeg"


@dataclass(slots=True)
class OfflineBundle:
    """Proof-of-delivery payload awaiting sync to the backend."""

    booking_reference: str
    booking_id: int
    payload_blobs: list[PODBlob]
    client_name: str = ""
    id_card: str = ""
    signature_base64: str = ""
    delivered_date: str = ""
    delivered_time: str = ""
    created_at: datetime = field(default_factory=utcnow)
    sync_status: SyncStatus = SyncStatus.PENDING
    attempts: int = 0
    id: Optional[int] = None
