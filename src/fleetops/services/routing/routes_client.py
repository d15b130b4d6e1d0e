"""HTTP client for the Google Routes waypoint-order optimization."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate

logger = logging.getLogger(__name__)

FIELD_MASK = "routes.optimizedIntermediateWaypointIndex,routes.distanceMeters,routes.duration"


@dataclass(slots=True)
class ExactOrderResult:
    """Outcome of an exact optimization call. Failures are values, not exceptions."""

    ok: bool
    order: list[int] = field(default_factory=list)
    distance_meters: Optional[float] = None
    duration_seconds: Optional[float] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "ExactOrderResult":
        return cls(ok=False, error=error)


class RouteOrderProvider(Protocol):
    def optimize_waypoint_order(
        self, origin: Coordinate, destinations: Sequence[Coordinate]
    ) -> ExactOrderResult: ...


def _lat_lng(coordinate: Coordinate) -> dict:
    return {"location": {"latLng": {"latitude": coordinate[0], "longitude": coordinate[1]}}}


def _parse_duration(value: object) -> Optional[float]:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.endswith("s"):
        try:
            return float(value[:-1])
        except ValueError:
            return None
    return None


def build_request_body(origin: Coordinate, destinations: Sequence[Coordinate]) -> dict:
    """Origin is the start, the last stop is the destination, the rest are intermediates."""
    return {
        "origin": _lat_lng(origin),
        "destination": _lat_lng(destinations[-1]),
        "intermediates": [_lat_lng(c) for c in destinations[:-1]],
        "travelMode": "DRIVE",
        "routingPreference": "TRAFFIC_AWARE",
        "computeAlternativeRoutes": False,
        "optimizeWaypointOrder": True,
    }


def parse_order(data: dict, destination_count: int) -> ExactOrderResult:
    """Map the provider's intermediate permutation onto destination indices."""
    routes = data.get("routes") if isinstance(data, dict) else None
    if not isinstance(routes, list) or not routes:
        return ExactOrderResult.failure("Provider returned no routes.")
    route = routes[0]
    if not isinstance(route, dict):
        return ExactOrderResult.failure(f"Malformed route entry: {route!r}")
    intermediate_count = destination_count - 1
    permutation = route.get("optimizedIntermediateWaypointIndex") or []
    if intermediate_count == 0:
        permutation = []
    # bool is an int subclass but never a valid index
    if not isinstance(permutation, list) or not all(
        isinstance(i, int) and not isinstance(i, bool) for i in permutation
    ):
        return ExactOrderResult.failure(f"Malformed waypoint permutation: {permutation!r}")
    if sorted(permutation) != list(range(intermediate_count)):
        return ExactOrderResult.failure(f"Malformed waypoint permutation: {permutation!r}")
    distance = route.get("distanceMeters")
    return ExactOrderResult(
        ok=True,
        order=[int(i) for i in permutation] + [destination_count - 1],
        distance_meters=float(distance) if isinstance(distance, (int, float)) else None,
        duration_seconds=_parse_duration(route.get("duration")),
    )


class GoogleRoutesClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key or settings.routes_key
        if not self.api_key:
            raise ValueError("Google Routes API key is not configured.")
        self.base_url = base_url or settings.routes_base_url
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout or settings.http_timeout_seconds, connect=5.0),
            transport=transport,
        )

    def optimize_waypoint_order(
        self, origin: Coordinate, destinations: Sequence[Coordinate]
    ) -> ExactOrderResult:
        if not destinations:
            return ExactOrderResult(ok=True, order=[])
        if len(destinations) == 1:
            return ExactOrderResult(ok=True, order=[0])

        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": FIELD_MASK,
        }
        try:
            response = self._client.post(
                self.base_url, json=build_request_body(origin, destinations), headers=headers
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            return ExactOrderResult.failure(f"Routes API HTTP {exc.response.status_code}")
        except (httpx.HTTPError, ValueError) as exc:
            return ExactOrderResult.failure(f"Routes API request failed: {exc}")
        return parse_order(data, len(destinations))

    def close(self) -> None:
        self._client.close()


def check_health(api_key: str | None = None) -> bool:
    """Return True when a Routes API key is configured."""
    return bool(api_key or settings.routes_key)
