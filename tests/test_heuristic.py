import pytest

from fleetops.models.domain import Coordinate
from fleetops.services.routing.heuristic import group_by_city, order_by_city_clusters

VALLETTA = Coordinate(35.8989, 14.5146)
HAMRUN_A = Coordinate(35.8847, 14.4889)
HAMRUN_B = Coordinate(35.8861, 14.4840)
MOSTA = Coordinate(35.9094, 14.4256)


def test_group_by_city_merges_aliases() -> None:
    groups = group_by_city(["Hamrun", "Ħamrun", "Mosta", None])

    assert groups == {"Hamrun": [0, 1], "Mosta": [2], "": [3]}


def test_nearer_cluster_is_visited_first() -> None:
    plan = order_by_city_clusters(
        VALLETTA,
        [MOSTA, HAMRUN_B, HAMRUN_A],
        ["Mosta", "Ħamrun", "Hamrun"],
    )

    assert plan.city_order == ["Hamrun", "Mosta"]
    # Within Hamrun, the stop closer to the start comes first.
    assert plan.order == [2, 1, 0]


def test_start_city_first_then_nearest_stop_from_its_exit() -> None:
    far_hamrun = Coordinate(35.8700, 14.4700)
    plan = order_by_city_clusters(
        MOSTA,
        [HAMRUN_A, far_hamrun, MOSTA],
        ["Hamrun", "Hamrun", "Mosta"],
    )

    assert plan.city_order == ["Mosta", "Hamrun"]
    assert plan.order == [2, 1, 0]


def test_empty_input() -> None:
    plan = order_by_city_clusters(VALLETTA, [], [])
    assert plan.order == []
    assert plan.city_order == []


def test_mismatched_lengths_raise() -> None:
    with pytest.raises(ValueError):
        order_by_city_clusters(VALLETTA, [MOSTA], [])
