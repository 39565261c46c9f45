import math

import pytest

from station_insight.catalog import build_station_catalog
from station_insight.geo import (
    ALGARVE,
    ALGARVE_TOWNS,
    COIMBRA,
    PORTO,
    combine_stations,
    coverage_quality,
    filter_by_names,
    filter_by_radius,
    filter_by_region,
    haversine_km,
    network_extent,
    pairwise_distances,
    regional_coverage,
    target_station_ids,
)
from station_insight.models.stations import RegionBoundary, StationRecord


def _station(sid, name="S", lon=0.0, lat=0.0):
    return StationRecord(station_id=sid, station_name=name, longitude=lon, latitude=lat)


@pytest.fixture
def catalog(station_features):
    return build_station_catalog(station_features)


def test_haversine_same_point_is_zero():
    assert haversine_km(37.02, -7.97, 37.02, -7.97) == 0.0


def test_haversine_is_symmetric():
    forward = haversine_km(37.02, -7.97, 41.23, -8.68)
    assert forward == haversine_km(41.23, -8.68, 37.02, -7.97)
    assert 465 < forward < 475


def test_haversine_one_degree_latitude():
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == 111.2


def test_haversine_antipodes_do_not_fail():
    assert haversine_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * 6371.0, abs=0.1)


def test_haversine_propagates_nan():
    assert math.isnan(haversine_km(float("nan"), 0.0, 1.0, 0.0))


def test_filter_by_region_includes_edges():
    box = RegionBoundary(west=-9.0, east=-7.0, south=36.9, north=37.5)
    stations = [
        _station("west", lon=-9.0, lat=37.0),
        _station("north", lon=-8.0, lat=37.5),
        _station("outside", lon=-6.9, lat=37.0),
    ]
    assert [s.station_id for s in filter_by_region(stations, box)] == ["west", "north"]


def test_filter_by_region_algarve(catalog):
    assert {s.station_name for s in filter_by_region(catalog, ALGARVE)} == {
        "Faro (Aeroporto)", "Tavira", "Sagres",
    }


def test_filter_by_names_is_case_insensitive(catalog):
    matches = filter_by_names(catalog, ["faro", "PORTO"])
    assert [s.station_id for s in matches] == ["1210881", "1200545"]


def test_filter_by_names_handles_accents(catalog):
    assert [s.station_name for s in filter_by_names(catalog, ["évora"])] == ["Évora (C. Coord)"]


def test_filter_by_names_empty_patterns(catalog):
    assert filter_by_names(catalog, []) == []
    assert filter_by_names(catalog, [""]) == []


def test_filter_by_radius(catalog):
    near_faro = filter_by_radius(catalog, 37.02, -7.97, radius_km=50)
    assert {s.station_name for s in near_faro} == {"Faro (Aeroporto)", "Tavira"}


def test_combine_stations_dedupes_keeping_first(catalog):
    by_region = filter_by_region(catalog, ALGARVE)
    by_name = filter_by_names(catalog, ALGARVE_TOWNS)
    renamed = _station("1210881", name="Duplicate")

    combined = combine_stations(by_region, by_name, [renamed])

    ids = target_station_ids(combined)
    assert len(ids) == len(set(ids))
    assert combined[0].station_name == "Faro (Aeroporto)"


def test_pairwise_distances_and_gaps():
    stations = [
        _station("a", lon=-7.97, lat=37.02),
        _station("b", lon=-7.65, lat=37.12),
        _station("c", lon=-8.95, lat=37.01),
    ]
    pairs = pairwise_distances(stations)

    assert [(p.first.station_id, p.second.station_id) for p in pairs] == [
        ("a", "b"), ("a", "c"), ("b", "c"),
    ]
    assert not pairs[0].is_gap
    assert pairs[1].is_gap


def test_pairwise_distances_single_station():
    assert pairwise_distances([_station("a")]) == []


@pytest.mark.parametrize(
    "distance, grade",
    [(None, "Insufficient"), (25, "Excellent"), (40, "Good"), (60, "Marginal"), (60.1, "Poor")],
)
def test_coverage_quality(distance, grade):
    assert coverage_quality(distance) == grade


def test_network_extent_density():
    stations = [
        _station("a", lon=-8.0, lat=37.0),
        _station("b", lon=-7.9, lat=37.1),
        _station("c", lon=-7.95, lat=37.05),
    ]
    extent = network_extent(stations)

    assert extent.center_latitude == pytest.approx(37.05)
    assert extent.approx_area_km2 == pytest.approx(0.1 * 0.1 * 111 * 111)
    assert extent.density_per_1000_km2 == pytest.approx(3 / 123.21 * 1000)
    assert extent.has_good_density


def test_network_extent_single_station_has_no_density():
    extent = network_extent([_station("a", lon=-8.0, lat=37.0)])
    assert extent.approx_area_km2 == 0
    assert extent.density_per_1000_km2 is None
    assert not extent.has_good_density


def test_network_extent_requires_stations():
    with pytest.raises(ValueError):
        network_extent([])


def test_regional_coverage_combines_box_and_radius(catalog):
    coverage = regional_coverage(catalog, PORTO)

    assert [s.station_id for s in coverage.boundary_stations] == ["1200545"]
    assert [s.station_id for s in coverage.stations] == ["1200545"]
    assert coverage.max_distance_km is None
    assert coverage.quality == "Insufficient"


def test_regional_coverage_grades_pairs():
    stations = [
        _station("a", lon=-8.45, lat=40.2),
        _station("b", lon=-8.40, lat=40.25),
        _station("far", lon=-7.0, lat=41.5),
    ]
    coverage = regional_coverage(stations, COIMBRA, radius_km=50)

    assert [s.station_id for s in coverage.stations] == ["a", "b"]
    assert coverage.min_distance_km == coverage.max_distance_km
    assert coverage.quality == "Excellent"
