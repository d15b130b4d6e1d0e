"""Delivery route optimization."""

from .cities import standardize_city_name
from .geocoding import GeocodingCache, GoogleGeocoder, compose_address
from .heuristic import order_by_city_clusters
from .routes_client import ExactOrderResult, GoogleRoutesClient
from .service import RouteOptimizer, choose_strategy, get_route_optimizer

__all__ = [
    "ExactOrderResult",
    "GeocodingCache",
    "GoogleGeocoder",
    "GoogleRoutesClient",
    "RouteOptimizer",
    "choose_strategy",
    "compose_address",
    "get_route_optimizer",
    "order_by_city_clusters",
    "standardize_city_name",
]
