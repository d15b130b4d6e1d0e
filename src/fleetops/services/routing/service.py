"""Route optimization orchestration service."""

from __future__ import annotations

import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

from ...config import settings
from ...errors import ValidationFailure
from ...models.domain import (
    Coordinate,
    DeliveryStop,
    GeocodedPoint,
    OptimizedRoute,
    RouteWaypoint,
    RoutingStrategy,
)
from ..geospatial import is_valid_gps_coordinates, path_length_km
from .geocoding import Geocoder, GeocodingCache, GoogleGeocoder, compose_address
from .heuristic import order_by_city_clusters
from .routes_client import GoogleRoutesClient, RouteOrderProvider

logger = logging.getLogger(__name__)


def choose_strategy(stop_count: int, limit: int) -> RoutingStrategy:
    """Pick the optimization strategy from the geocoded stop count alone."""
    if stop_count <= 1:
        return RoutingStrategy.TRIVIAL
    if stop_count <= limit:
        return RoutingStrategy.EXACT
    return RoutingStrategy.HEURISTIC


@dataclass(slots=True)
class _Located:
    stop: DeliveryStop
    address: str
    point: GeocodedPoint


class RouteOptimizer:
    """Orders delivery stops from a start point.

    Stops are geocoded through the optimizer's own cache. Up to
    ``max_waypoints`` geocoded stops go to the exact provider; beyond that, or
    when the provider fails, the city-cluster heuristic orders them.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        routes_client: RouteOrderProvider,
        cache: Optional[GeocodingCache] = None,
        *,
        max_waypoints: int | None = None,
        country_suffix: str | None = None,
        max_workers: int | None = None,
        average_speed_kmh: float | None = None,
    ) -> None:
        self.geocoder = geocoder
        self.routes_client = routes_client
        self.cache = cache if cache is not None else GeocodingCache()
        self.max_waypoints = max_waypoints or settings.max_waypoints
        self.country_suffix = country_suffix
        self.max_workers = max_workers or settings.geocoding_max_workers
        self.average_speed_kmh = average_speed_kmh or settings.average_speed_kmh

    def clear_cache(self) -> None:
        self.cache.clear()

    # -- geocoding -----------------------------------------------------------------

    def _geocode_uncached(self, address: str) -> Optional[GeocodedPoint]:
        try:
            point = self.geocoder.geocode(address)
        except Exception as exc:
            logger.warning(f"Geocoder raised for '{address}': {exc}")
            return None
        if point is not None:
            point = GeocodedPoint(address_key=address, latitude=point.latitude, longitude=point.longitude)
            self.cache.put(point)
        return point

    def geocode_stops(self, stops: Sequence[DeliveryStop]) -> tuple[list[_Located], list[str]]:
        """Geocode every stop; returns located stops in input order plus excluded references."""
        addresses = [compose_address(stop, self.country_suffix) for stop in stops]
        resolved: dict[str, Optional[GeocodedPoint]] = {}
        missing: list[str] = []
        for address in addresses:
            if address in resolved or address in missing:
                continue
            cached = self.cache.get(address)
            if cached is not None:
                resolved[address] = cached
            else:
                missing.append(address)

        if missing:
            workers = min(self.max_workers, len(missing))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                for address, point in zip(missing, executor.map(self._geocode_uncached, missing)):
                    resolved[address] = point
            logger.info(
                f"Geocoded {sum(1 for a in missing if resolved[a] is not None)}/{len(missing)} new addresses "
                f"({len(addresses) - len(missing)} served from cache)"
            )

        located: list[_Located] = []
        excluded: list[str] = []
        for stop, address in zip(stops, addresses):
            point = resolved.get(address)
            if point is None:
                excluded.append(stop.reference_id)
            else:
                located.append(_Located(stop=stop, address=address, point=point))
        if excluded:
            logger.warning(f"{len(excluded)} stops could not be geocoded and are excluded: {excluded}")
        return located, excluded

    # -- optimization --------------------------------------------------------------

    def optimize_route(self, stops: Sequence[DeliveryStop], start: Coordinate) -> OptimizedRoute:
        start = Coordinate(*start)
        if not is_valid_gps_coordinates(start.latitude, start.longitude):
            raise ValidationFailure(f"Invalid start point: {start}")
        if not stops:
            return OptimizedRoute(waypoints=[], strategy=RoutingStrategy.TRIVIAL)

        located, excluded = self.geocode_stops(stops)
        strategy = choose_strategy(len(located), self.max_waypoints)
        logger.info(
            f"Optimizing {len(located)} geocoded stops ({len(excluded)} excluded) with {strategy.value} strategy"
        )

        if strategy is RoutingStrategy.TRIVIAL:
            return self._finish(start, located, list(range(len(located))), strategy, excluded)

        fallback_reason: Optional[str] = None
        if strategy is RoutingStrategy.EXACT:
            coordinates = [item.point.coordinate for item in located]
            result = self.routes_client.optimize_waypoint_order(start, coordinates)
            if result.ok:
                route = self._finish(start, located, result.order, strategy, excluded)
                if result.distance_meters is not None:
                    route.total_distance_km = result.distance_meters / 1000.0
                if result.duration_seconds is not None:
                    route.total_duration_min = result.duration_seconds / 60.0
                return route
            fallback_reason = result.error or "exact optimization failed"
            logger.warning(f"Exact route optimization unavailable ({fallback_reason}); using city-cluster heuristic")

        plan = order_by_city_clusters(
            start,
            [item.point.coordinate for item in located],
            [item.stop.city for item in located],
        )
        logger.info(f"City visit order: {' -> '.join(plan.city_order)}")
        route = self._finish(start, located, plan.order, RoutingStrategy.HEURISTIC, excluded)
        route.fallback_reason = fallback_reason
        return route

    def _finish(
        self,
        start: Coordinate,
        located: Sequence[_Located],
        order: Sequence[int],
        strategy: RoutingStrategy,
        excluded: list[str],
    ) -> OptimizedRoute:
        waypoints = [
            RouteWaypoint(
                stop_reference=located[index].stop.reference_id,
                coordinate=located[index].point.coordinate,
                visiting_order=position,
                address=located[index].address,
                city=located[index].stop.city,
            )
            for position, index in enumerate(order, start=1)
        ]
        distance_km = path_length_km([start, *(w.coordinate for w in waypoints)]) if waypoints else 0.0
        return OptimizedRoute(
            waypoints=waypoints,
            strategy=strategy,
            total_distance_km=distance_km,
            total_duration_min=distance_km / self.average_speed_kmh * 60.0,
            excluded_stops=excluded,
        )


@functools.lru_cache(maxsize=1)
def get_route_optimizer() -> RouteOptimizer:
    """Process-wide optimizer for the API, built from settings on first use."""
    return RouteOptimizer(GoogleGeocoder(), GoogleRoutesClient())
