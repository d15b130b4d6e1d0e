"""Nearest-neighbour ordering over city clusters.

Used when the stop count exceeds the exact provider's waypoint cap or the
provider fails. Deliveries cluster by town, so ordering towns greedily and
then sorting stops inside each town keeps the cost linear in the number of
towns instead of searching over individual stops.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ...errors import ValidationFailure
from ...models.domain import Coordinate
from ..geospatial import centroid, haversine_km
from .cities import standardize_city_name

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClusterPlan:
    order: list[int]
    city_order: list[str]


def _distance(a: Sequence[float], b: Sequence[float]) -> float:
    return haversine_km(a[0], a[1], b[0], b[1])


def group_by_city(cities: Sequence[Optional[str]]) -> dict[str, list[int]]:
    """Indices grouped by canonical city, in order of first appearance."""
    groups: dict[str, list[int]] = {}
    for index, raw_city in enumerate(cities):
        canonical = standardize_city_name(raw_city) or (raw_city or "").strip()
        groups.setdefault(canonical, []).append(index)
    return groups


def order_by_city_clusters(
    start: Coordinate,
    coordinates: Sequence[Coordinate],
    cities: Sequence[Optional[str]],
) -> ClusterPlan:
    """Return the visiting order of ``coordinates`` as indices into it."""
    if len(coordinates) != len(cities):
        raise ValidationFailure("coordinates and cities must have the same length.")
    if not coordinates:
        return ClusterPlan(order=[], city_order=[])

    groups = group_by_city(cities)
    centroids = {
        city: centroid([coordinates[i] for i in indices])
        for city, indices in groups.items()
    }

    unvisited = list(groups)
    city_order: list[str] = []
    current: Sequence[float] = start
    while unvisited:
        nearest = min(unvisited, key=lambda city: _distance(current, centroids[city]))
        city_order.append(nearest)
        unvisited.remove(nearest)
        current = centroids[nearest]

    order: list[int] = []
    entry: Sequence[float] = start
    for city in city_order:
        members = sorted(groups[city], key=lambda i: _distance(entry, coordinates[i]))
        order.extend(members)
        entry = coordinates[members[-1]]

    logger.debug(f"City visit order: {' -> '.join(city_order)}")
    return ClusterPlan(order=order, city_order=city_order)
