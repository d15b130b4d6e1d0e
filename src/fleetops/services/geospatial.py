"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from shapely.geometry import MultiPoint

EARTH_RADIUS_KM = 6371.0
MPS_TO_KMH = 3.6


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bearing_degrees(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the initial bearing from (lat1, lon1) to (lat2, lon2)."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)
    y = math.sin(delta_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda)
    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360) % 360


def is_valid_gps_coordinates(latitude: object, longitude: object) -> bool:
    """Return True if both values are real numbers within WGS84 bounds."""

    if isinstance(latitude, bool) or isinstance(longitude, bool):
        return False
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def mps_to_kmh(speed_mps: float) -> float:
    return speed_mps * MPS_TO_KMH


def kmh_to_mps(speed_kmh: float) -> float:
    return speed_kmh / MPS_TO_KMH


def smooth_accuracy(previous: Optional[float], current: float, alpha: float = 0.3) -> float:
    """Exponential moving average of reported horizontal accuracy (meters)."""

    if not 0.0 < alpha <= 1.0:
        raise ValueError("alpha must be in (0, 1].")
    if previous is None:
        return current
    return alpha * current + (1.0 - alpha) * previous


def format_speed(speed_mps: float) -> str:
    if speed_mps < 1:
        return "Stationary"
    return f"{round(mps_to_kmh(speed_mps))} km/h"


def accuracy_label(accuracy_m: float) -> str:
    if accuracy_m < 5:
        return "Excellent"
    if accuracy_m < 20:
        return "Good"
    if accuracy_m < 50:
        return "Fair"
    return "Poor"


def centroid(points: Sequence[tuple[float, float]]) -> tuple[float, float]:
    """Arithmetic mean of (lat, lon) points."""

    if not points:
        raise ValueError("At least one point is required to compute a centroid.")
    center = MultiPoint([(lon, lat) for lat, lon in points]).centroid
    return center.y, center.x


def path_length_km(points: Sequence[tuple[float, float]]) -> float:
    """Sum of great-circle legs along an ordered (lat, lon) path."""

    return sum(
        haversine_km(a[0], a[1], b[0], b[1])
        for a, b in zip(points, points[1:])
    )
