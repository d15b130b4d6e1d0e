import json

import httpx
import pytest

from fleetops.errors import ProviderError
from fleetops.models.domain import Coordinate, DeliveryStop
from fleetops.services.routing.geocoding import GeocodingCache, GoogleGeocoder, compose_address
from fleetops.services.routing.routes_client import (
    FIELD_MASK,
    GoogleRoutesClient,
    build_request_body,
    parse_order,
)

ORIGIN = Coordinate(35.8989, 14.5146)


def test_compose_address_skips_empty_parts() -> None:
    stop = DeliveryStop(reference_id="B1", street=" 12 Triq il-Kbira ", city="Mosta", postcode=None)

    assert compose_address(stop, "Malta") == "12 Triq il-Kbira, Mosta, Malta"
    assert compose_address(stop, "") == "12 Triq il-Kbira, Mosta"


def test_geocoder_parses_first_result() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        return httpx.Response(
            200,
            json={"status": "OK", "results": [{"geometry": {"location": {"lat": 35.91, "lng": 14.42}}}]},
        )

    geocoder = GoogleGeocoder(api_key="key-1", base_url="https://geo.test/json", transport=httpx.MockTransport(handler))
    point = geocoder.geocode("Mosta, Malta")

    assert point is not None
    assert (point.latitude, point.longitude) == (35.91, 14.42)
    assert point.address_key == "Mosta, Malta"
    assert seen == [{"address": "Mosta, Malta", "key": "key-1"}]


@pytest.mark.parametrize(
    "body",
    [
        {"status": "ZERO_RESULTS", "results": []},
        {"status": "OK", "results": [{"geometry": {}}]},
    ],
)
def test_geocoder_returns_none_when_unresolved(body) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    geocoder = GoogleGeocoder(api_key="key-1", base_url="https://geo.test/json", transport=transport)

    assert geocoder.geocode("Atlantis") is None


def test_geocoder_retries_network_errors(monkeypatch) -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) < 3:
            raise httpx.ConnectError("down", request=request)
        return httpx.Response(200, json={"status": "OK", "results": [{"geometry": {"location": {"lat": 1, "lng": 2}}}]})

    monkeypatch.setattr("fleetops.services.routing.geocoding.time.sleep", lambda seconds: None)
    geocoder = GoogleGeocoder(
        api_key="key-1",
        base_url="https://geo.test/json",
        max_retries=2,
        backoff_seconds=0.1,
        transport=httpx.MockTransport(handler),
    )

    assert geocoder.geocode("Somewhere") is not None
    assert len(attempts) == 3


def test_geocoder_requires_api_key(monkeypatch) -> None:
    from fleetops.config import settings

    monkeypatch.setattr(settings, "google_geocoding_api_key", None)
    monkeypatch.setattr(settings, "google_maps_api_key", None)

    with pytest.raises(ValueError):
        GoogleGeocoder()


def test_geocoding_cache_snapshot_and_counters() -> None:
    from fleetops.models.domain import GeocodedPoint

    cache = GeocodingCache()
    cache.put(GeocodedPoint("Mosta, Malta", 35.91, 14.42))

    assert cache.get("Mosta, Malta") is not None
    assert cache.get("Rabat, Malta") is None
    assert (cache.hits, cache.misses) == (1, 1)
    assert cache.snapshot() == {"Mosta, Malta": {"lat": 35.91, "lng": 14.42}}

    cache.clear()
    assert len(cache) == 0
    assert (cache.hits, cache.misses) == (0, 0)


def test_build_request_body_uses_last_stop_as_destination() -> None:
    destinations = [Coordinate(35.0, 14.0), Coordinate(35.1, 14.1), Coordinate(35.2, 14.2)]

    body = build_request_body(ORIGIN, destinations)

    assert body["optimizeWaypointOrder"] is True
    assert body["destination"]["location"]["latLng"] == {"latitude": 35.2, "longitude": 14.2}
    assert len(body["intermediates"]) == 2


def test_parse_order_appends_destination() -> None:
    data = {"routes": [{"optimizedIntermediateWaypointIndex": [1, 0], "distanceMeters": 5400, "duration": "720s"}]}

    result = parse_order(data, 3)

    assert result.ok
    assert result.order == [1, 0, 2]
    assert result.distance_meters == 5400.0
    assert result.duration_seconds == 720.0


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"routes": []},
        {"routes": [{"optimizedIntermediateWaypointIndex": [0, 0]}]},
        {"routes": [{"optimizedIntermediateWaypointIndex": [0]}]},
        {"routes": [{"optimizedIntermediateWaypointIndex": 5}]},
        {"routes": [{"optimizedIntermediateWaypointIndex": [0, "1"]}]},
        {"routes": [{"optimizedIntermediateWaypointIndex": [True, 0]}]},
        {"routes": {"0": {"optimizedIntermediateWaypointIndex": [0, 1]}}},
        {"routes": ["not-a-route"]},
        ["routes"],
    ],
)
def test_parse_order_rejects_malformed_responses(data) -> None:
    result = parse_order(data, 3)

    assert not result.ok
    assert result.error


def test_routes_client_sends_field_mask_and_parses() -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"routes": [{"optimizedIntermediateWaypointIndex": [0], "duration": "60s"}]})

    client = GoogleRoutesClient(api_key="key-2", base_url="https://routes.test", transport=httpx.MockTransport(handler))
    result = client.optimize_waypoint_order(ORIGIN, [Coordinate(35.0, 14.0), Coordinate(35.1, 14.1)])

    assert result.ok
    assert result.order == [0, 1]
    assert captured["headers"]["X-Goog-Api-Key"] == "key-2"
    assert captured["headers"]["X-Goog-FieldMask"] == FIELD_MASK
    assert captured["body"]["travelMode"] == "DRIVE"


def test_routes_client_failure_is_a_value() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"error": "unavailable"}))
    client = GoogleRoutesClient(api_key="key-2", base_url="https://routes.test", transport=transport)

    result = client.optimize_waypoint_order(ORIGIN, [Coordinate(35.0, 14.0), Coordinate(35.1, 14.1)])

    assert not result.ok
    assert "503" in result.error


def test_routes_client_short_circuits_trivial_inputs() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = GoogleRoutesClient(api_key="key-2", base_url="https://routes.test", transport=httpx.MockTransport(handler))

    assert client.optimize_waypoint_order(ORIGIN, []).order == []
    assert client.optimize_waypoint_order(ORIGIN, [Coordinate(35.0, 14.0)]).order == [0]


def test_geocoder_raises_when_key_is_rejected() -> None:
    body = {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid.", "results": []}
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    geocoder = GoogleGeocoder(api_key="bad", base_url="https://geo.test/json", transport=transport)

    with pytest.raises(ProviderError, match="REQUEST_DENIED"):
        geocoder.geocode("Mosta, Malta")
