import httpx
import pytest

from conftest import FakeGeocoder, FakeRoutesClient
from fleetops.errors import ProviderError, ValidationFailure
from fleetops.models.domain import Coordinate, DeliveryStop, RoutingStrategy
from fleetops.services.routing.geocoding import GeocodingCache
from fleetops.services.routing.routes_client import GoogleRoutesClient
from fleetops.services.routing.service import RouteOptimizer, choose_strategy

START = Coordinate(35.8989, 14.5146)


def _stops(count: int, city: str = "Hamrun") -> list[DeliveryStop]:
    return [DeliveryStop(reference_id=f"B{i}", street=f"S{i}", city=city) for i in range(count)]


def _known(count: int) -> dict:
    return {f"S{i},": (35.88 + i * 0.002, 14.48 + i * 0.002) for i in range(count)}


def _optimizer(geocoder, routes_client, limit: int = 3, cache=None) -> RouteOptimizer:
    return RouteOptimizer(
        geocoder,
        routes_client,
        cache,
        max_waypoints=limit,
        country_suffix="Malta",
        max_workers=4,
        average_speed_kmh=40.0,
    )


@pytest.mark.parametrize(
    "count, expected",
    [
        (0, RoutingStrategy.TRIVIAL),
        (1, RoutingStrategy.TRIVIAL),
        (2, RoutingStrategy.EXACT),
        (25, RoutingStrategy.EXACT),
        (26, RoutingStrategy.HEURISTIC),
    ],
)
def test_choose_strategy(count, expected) -> None:
    assert choose_strategy(count, 25) is expected


def test_zero_stops_makes_no_calls() -> None:
    geocoder, routes = FakeGeocoder({}), FakeRoutesClient()

    route = _optimizer(geocoder, routes).optimize_route([], START)

    assert route.waypoints == []
    assert route.strategy is RoutingStrategy.TRIVIAL
    assert geocoder.calls == []
    assert routes.calls == []


def test_single_stop_is_geocoded_without_optimization() -> None:
    geocoder, routes = FakeGeocoder(_known(1)), FakeRoutesClient()

    route = _optimizer(geocoder, routes).optimize_route(_stops(1), START)

    [waypoint] = route.waypoints
    assert waypoint.stop_reference == "B0"
    assert waypoint.visiting_order == 1
    assert waypoint.address == "S0, Hamrun, Malta"
    assert geocoder.calls == ["S0, Hamrun, Malta"]
    assert routes.calls == []


def test_limit_stops_use_exact_provider() -> None:
    geocoder, routes = FakeGeocoder(_known(3)), FakeRoutesClient()

    route = _optimizer(geocoder, routes, limit=3).optimize_route(_stops(3), START)

    assert route.strategy is RoutingStrategy.EXACT
    assert routes.calls == [3]
    assert [w.stop_reference for w in route.waypoints] == ["B2", "B1", "B0"]
    assert [w.visiting_order for w in route.waypoints] == [1, 2, 3]
    assert route.total_distance_km == pytest.approx(12.345)
    assert route.total_duration_min == pytest.approx(30.0)


def test_one_over_limit_uses_heuristic() -> None:
    geocoder, routes = FakeGeocoder(_known(4)), FakeRoutesClient()

    route = _optimizer(geocoder, routes, limit=3).optimize_route(_stops(4), START)

    assert route.strategy is RoutingStrategy.HEURISTIC
    assert routes.calls == []
    assert sorted(w.stop_reference for w in route.waypoints) == ["B0", "B1", "B2", "B3"]
    assert route.fallback_reason is None


def test_heuristic_totals_are_estimated_from_average_speed() -> None:
    geocoder, routes = FakeGeocoder(_known(4)), FakeRoutesClient()

    route = _optimizer(geocoder, routes, limit=3).optimize_route(_stops(4), START)

    assert route.total_distance_km > 0
    assert route.total_duration_min == pytest.approx(route.total_distance_km / 40.0 * 60.0)


def test_provider_failure_falls_back_to_heuristic() -> None:
    geocoder, routes = FakeGeocoder(_known(3)), FakeRoutesClient(fail=True)

    route = _optimizer(geocoder, routes, limit=3).optimize_route(_stops(3), START)

    assert routes.calls == [3]
    assert route.strategy is RoutingStrategy.HEURISTIC
    assert route.fallback_reason == "Routes API HTTP 503"
    assert len(route.waypoints) == 3


def test_ungeocodable_stops_are_excluded_and_reported() -> None:
    geocoder, routes = FakeGeocoder(_known(2)), FakeRoutesClient()
    stops = _stops(2) + [DeliveryStop(reference_id="LOST", street="Nowhere", city="Atlantis")]

    route = _optimizer(geocoder, routes).optimize_route(stops, START)

    assert route.excluded_stops == ["LOST"]
    assert {w.stop_reference for w in route.waypoints} == {"B0", "B1"}
    assert routes.calls == [2]


def test_warm_cache_gives_same_order_without_geocoding() -> None:
    geocoder, routes = FakeGeocoder(_known(5)), FakeRoutesClient()
    optimizer = _optimizer(geocoder, routes, limit=3)

    first = optimizer.optimize_route(_stops(5), START)
    calls_after_first = len(geocoder.calls)
    second = optimizer.optimize_route(_stops(5), START)

    assert [w.stop_reference for w in first.waypoints] == [w.stop_reference for w in second.waypoints]
    assert len(geocoder.calls) == calls_after_first == 5
    assert optimizer.cache.hits == 5


def test_duplicate_addresses_are_geocoded_once() -> None:
    geocoder, routes = FakeGeocoder(_known(1)), FakeRoutesClient()
    stops = [
        DeliveryStop(reference_id="B0", street="S0", city="Hamrun"),
        DeliveryStop(reference_id="B0-bis", street="S0", city="Hamrun"),
    ]

    route = _optimizer(geocoder, routes).optimize_route(stops, START)

    assert geocoder.calls == ["S0, Hamrun, Malta"]
    assert len(route.waypoints) == 2


def test_clear_cache_forces_regeocoding() -> None:
    cache = GeocodingCache()
    geocoder, routes = FakeGeocoder(_known(1)), FakeRoutesClient()
    optimizer = _optimizer(geocoder, routes, cache=cache)

    optimizer.optimize_route(_stops(1), START)
    assert "S0, Hamrun, Malta" in cache
    optimizer.clear_cache()
    optimizer.optimize_route(_stops(1), START)

    assert len(geocoder.calls) == 2
    assert len(cache) == 1


def test_alias_clustering_visits_nearer_town_first() -> None:
    geocoder = FakeGeocoder(
        {
            "A,": (35.8847, 14.4889),
            "B,": (35.8861, 14.4840),
            "C,": (35.9094, 14.4256),
        }
    )
    stops = [
        DeliveryStop(reference_id="C", street="C", city="Mosta"),
        DeliveryStop(reference_id="A", street="A", city="Hamrun"),
        DeliveryStop(reference_id="B", street="B", city="Ħamrun"),
    ]

    route = _optimizer(geocoder, FakeRoutesClient(fail=True), limit=25).optimize_route(stops, START)

    assert route.strategy is RoutingStrategy.HEURISTIC
    assert [w.stop_reference for w in route.waypoints] == ["A", "B", "C"]


def test_invalid_start_point_is_rejected() -> None:
    geocoder = FakeGeocoder(_known(1))

    with pytest.raises(ValidationFailure):
        _optimizer(geocoder, FakeRoutesClient()).optimize_route(_stops(1), Coordinate(120.0, 14.5))

    assert geocoder.calls == []


def test_provider_error_excludes_stop() -> None:
    class RejectingGeocoder:
        def geocode(self, address):
            raise ProviderError("REQUEST_DENIED")

    route = _optimizer(RejectingGeocoder(), FakeRoutesClient()).optimize_route(_stops(2), START)

    assert route.waypoints == []
    assert route.excluded_stops == ["B0", "B1"]


def test_malformed_provider_response_falls_back_to_heuristic() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"routes": [{"optimizedIntermediateWaypointIndex": 5}]})

    routes = GoogleRoutesClient(api_key="key", base_url="https://routes.test", transport=httpx.MockTransport(handler))

    route = _optimizer(FakeGeocoder(_known(3)), routes).optimize_route(_stops(3), START)

    assert route.strategy is RoutingStrategy.HEURISTIC
    assert route.fallback_reason.startswith("Malformed waypoint permutation")
    assert sorted(w.stop_reference for w in route.waypoints) == ["B0", "B1", "B2"]
