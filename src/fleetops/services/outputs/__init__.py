"""Route output serializers."""

from .route_formatter import optimized_route_to_csv, optimized_route_to_json, persist_route

__all__ = ["optimized_route_to_csv", "optimized_route_to_json", "persist_route"]
