import pytest

from fleetops.services.routing.cities import standardize_city_name


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Hamrun", "Hamrun"),
        ("Ħamrun", "Hamrun"),
        ("  HAMRUN ", "Hamrun"),
        ("Hal Lija", "Lija"),
        ("Lija", "Lija"),
        ("B'Kara", "Birkirkara"),
        ("Il-Belt Valletta", "Valletta"),
        ("Gżira", "Gzira"),
        ("Mosta Road", "Mosta"),
        ("Swatar Birkirkara", "Birkirkara"),
        ("Rabat Gozo", "Victoria"),
        ("Rabat", "Rabat"),
        ("Marsa Scala", "Marsaskala"),
        ("Marsa Skala Road", "Marsaskala"),
        ("Marsa", "Marsa"),
        ("Ħal Far Road", "Hal Far"),
    ],
)
def test_known_aliases_map_to_canonical_names(raw, expected) -> None:
    assert standardize_city_name(raw) == expected


def test_unknown_city_is_capitalized() -> None:
    assert standardize_city_name("  new   TOWN ") == "New town"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_blank_city_is_empty(raw) -> None:
    assert standardize_city_name(raw) == ""
