import pytest

from services.circuits import (
    CATEGORIES,
    TRACK_LAYOUTS,
    get_circuit_by_slug,
    layout_for,
    list_circuits,
    main_straight_direction,
    search_circuits,
    track_sections,
)


def test_catalogue_covers_every_category():
    for category in CATEGORIES:
        circuits = list_circuits(category)
        assert circuits
        assert all(circuit.category == category for circuit in circuits)
    assert len(list_circuits()) == sum(len(list_circuits(category)) for category in CATEGORIES)


def test_lookup_by_slug_and_category():
    monza = get_circuit_by_slug("monza", "f1")
    assert monza is not None
    assert monza.country == "Italy"
    assert get_circuit_by_slug("monza", "motogp") is None
    assert get_circuit_by_slug("monza", "indycar") is None
    assert get_circuit_by_slug("", "f1") is None


def test_search_matches_name_country_and_slug():
    assert "monza" in {circuit.slug for circuit in search_circuits("italy", "f1")}
    assert all(circuit.category == "f2" for circuit in search_circuits("silverstone", "f2"))
    assert search_circuits("   ") == []


def test_series_slugs_share_base_layout():
    assert layout_for("silverstone-mgp") == TRACK_LAYOUTS["silverstone"]
    assert layout_for("monza-f3") == TRACK_LAYOUTS["monza"]
    assert layout_for("nowhere") == TRACK_LAYOUTS["default"]


def test_every_circuit_layout_yields_sections():
    for circuit in list_circuits():
        sections = track_sections(circuit.slug)
        assert sections, circuit.slug
        for section in sections:
            assert 0.0 <= section.heading < 360.0
            assert 0.0 <= section.importance <= 1.0


def test_published_track_direction_wins():
    circuit = get_circuit_by_slug("silverstone-f2", "f2")
    assert main_straight_direction(circuit) == 180.0


def test_track_direction_derived_from_layout():
    monza = get_circuit_by_slug("monza", "f1")
    assert monza.track_direction is None
    assert main_straight_direction(monza) == pytest.approx(90.0)
