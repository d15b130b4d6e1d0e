import math

import pytest

from fleetops.services.geospatial import (
    accuracy_label,
    bearing_degrees,
    centroid,
    format_speed,
    haversine_km,
    is_valid_gps_coordinates,
    kmh_to_mps,
    mps_to_kmh,
    path_length_km,
    smooth_accuracy,
)


def test_haversine_valletta_to_mdina() -> None:
    distance = haversine_km(35.8989, 14.5146, 35.8859, 14.4036)
    assert 9.5 < distance < 10.5


def test_haversine_zero_for_same_point() -> None:
    assert haversine_km(35.9, 14.5, 35.9, 14.5) == pytest.approx(0.0)


def test_bearing_due_north_and_east() -> None:
    assert bearing_degrees(35.0, 14.0, 36.0, 14.0) == pytest.approx(0.0, abs=1e-6)
    assert bearing_degrees(0.0, 14.0, 0.0, 15.0) == pytest.approx(90.0, abs=1e-6)


@pytest.mark.parametrize(
    "lat, lon, expected",
    [
        (35.9, 14.5, True),
        (90.0, 180.0, True),
        (-90.0, -180.0, True),
        (90.0001, 14.5, False),
        (35.9, -180.5, False),
        (math.nan, 14.5, False),
        (35.9, math.nan, False),
        ("35.9", 14.5, False),
        (None, 14.5, False),
        (True, 14.5, False),
    ],
)
def test_is_valid_gps_coordinates(lat, lon, expected) -> None:
    assert is_valid_gps_coordinates(lat, lon) is expected


def test_speed_conversions() -> None:
    assert mps_to_kmh(10.0) == pytest.approx(36.0)
    assert kmh_to_mps(36.0) == pytest.approx(10.0)


def test_smooth_accuracy_starts_with_first_reading() -> None:
    assert smooth_accuracy(None, 12.0) == 12.0
    assert smooth_accuracy(10.0, 20.0) == pytest.approx(13.0)


def test_smooth_accuracy_rejects_bad_alpha() -> None:
    with pytest.raises(ValueError):
        smooth_accuracy(10.0, 20.0, alpha=0.0)


def test_display_labels() -> None:
    assert format_speed(0.5) == "Stationary"
    assert format_speed(10.0) == "36 km/h"
    assert accuracy_label(3) == "Excellent"
    assert accuracy_label(10) == "Good"
    assert accuracy_label(30) == "Fair"
    assert accuracy_label(80) == "Poor"


def test_centroid_and_path_length() -> None:
    lat, lon = centroid([(35.0, 14.0), (36.0, 15.0)])
    assert lat == pytest.approx(35.5)
    assert lon == pytest.approx(14.5)

    leg = haversine_km(35.0, 14.0, 35.1, 14.0)
    assert path_length_km([(35.0, 14.0), (35.1, 14.0), (35.0, 14.0)]) == pytest.approx(2 * leg)
    assert path_length_km([(35.0, 14.0)]) == 0


def test_centroid_requires_points() -> None:
    with pytest.raises(ValueError):
        centroid([])
