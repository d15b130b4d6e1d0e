"""Serializers for optimized route outputs."""

from __future__ import annotations

import csv
import io
from pathlib import Path

from ...models.domain import OptimizedRoute
from ...persistence.filesystem import FileStorage


def optimized_route_to_json(route: OptimizedRoute) -> dict:
    return {
        "strategy": route.strategy.value,
        "total_distance_km": round(route.total_distance_km, 3),
        "total_duration_min": round(route.total_duration_min, 1),
        "fallback_reason": route.fallback_reason,
        "excluded_stops": list(route.excluded_stops),
        "waypoints": [
            {
                "visiting_order": waypoint.visiting_order,
                "stop_reference": waypoint.stop_reference,
                "latitude": waypoint.coordinate.latitude,
                "longitude": waypoint.coordinate.longitude,
                "address": waypoint.address,
                "city": waypoint.city,
            }
            for waypoint in route.waypoints
        ],
    }


def optimized_route_to_csv(route: OptimizedRoute) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "visiting_order",
        "stop_reference",
        "latitude",
        "longitude",
        "city",
        "address",
        "strategy",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for waypoint in route.waypoints:
        writer.writerow(
            {
                "visiting_order": waypoint.visiting_order,
                "stop_reference": waypoint.stop_reference,
                "latitude": waypoint.coordinate.latitude,
                "longitude": waypoint.coordinate.longitude,
                "city": waypoint.city or "",
                "address": waypoint.address,
                "strategy": route.strategy.value,
            }
        )
    return buffer.getvalue()


def persist_route(route: OptimizedRoute, storage: FileStorage | None = None) -> Path:
    """Write ``summary.json`` and ``waypoints.csv`` into a new run directory."""
    storage = storage or FileStorage()
    run_dir = storage.make_run_directory("route")
    storage.write_json(run_dir / "summary.json", optimized_route_to_json(route))
    storage.write_text(run_dir / "waypoints.csv", optimized_route_to_csv(route))
    return run_dir
