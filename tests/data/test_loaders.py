"""Tests for the input-directory readers."""

import json

import pytest

from liveability.data.loaders import (
    apply_zone_overlays,
    load_mapping,
    load_overlays,
    load_zones,
    parse_number,
    read_csv_rows,
    zone_from_dict,
    zone_to_dict,
)
from liveability.errors import LiveabilityError, MappingConfigError


def write(path, text: str):
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadMapping:
    def test_preserves_file_order(self, tmp_path):
        path = write(tmp_path / "mapping.json", json.dumps({
            "zeta": {"name": "Zeta", "zoneIds": [3]},
            "alpha": {"name": "Alpha", "zoneIds": ["1", "2"]},
        }))
        configs = load_mapping(path)
        assert [c.neighbourhood_id for c in configs] == ["zeta", "alpha"]
        assert configs[0].zone_ids == ("3",)
        assert configs[1].zone_ids == ("1", "2")

    def test_literal_boundary(self, tmp_path):
        path = write(tmp_path / "mapping.json", json.dumps({
            "park": {"name": "Park", "boundary": [[[-75.7, 45.4], [-75.69, 45.4], [-75.69, 45.41]]], "population": 40},
        }))
        config = load_mapping(path)[0]
        assert config.boundary == [[(-75.7, 45.4), (-75.69, 45.4), (-75.69, 45.41)]]
        assert config.population == 40

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(MappingConfigError):
            load_mapping(tmp_path / "nope.json")

    def test_invalid_json_is_fatal(self, tmp_path):
        with pytest.raises(MappingConfigError):
            load_mapping(write(tmp_path / "mapping.json", "{not json"))

    @pytest.mark.parametrize("content", [
        "[]",
        "{}",
        '{"a": {"zoneIds": ["1"]}}',
        '{"a": {"name": "A", "zoneIds": "1"}}',
        '{"a": {"name": "A", "boundary": [["x"]]}}',
    ])
    def test_malformed_entries_are_fatal(self, tmp_path, content):
        with pytest.raises(MappingConfigError):
            load_mapping(write(tmp_path / "mapping.json", content))

    def test_mapping_error_is_a_liveability_error(self):
        assert issubclass(MappingConfigError, LiveabilityError)


class TestZones:
    def test_load_zones(self, tmp_path):
        path = write(tmp_path / "zones.json", json.dumps([
            {"zoneId": 901, "name": "Alpha", "rings": [[[-75.7, 45.4], [-75.69, 45.4], [-75.69, 45.41]]],
             "population": 5000, "attributes": {"medianIncome": 90000, "pctChildren": "18.5"}},
            {"name": "no id"},
        ]))
        zones = load_zones(path)
        assert list(zones) == ["901"]
        zone = zones["901"]
        assert zone.population == 5000
        assert zone.attributes.median_income == 90000
        assert zone.attributes.pct_children == 18.5

    def test_absent_file(self, tmp_path):
        assert load_zones(tmp_path / "zones.json") is None

    def test_bad_rings_skip_the_zone(self):
        assert zone_from_dict({"zoneId": "1", "rings": "oops"}) is None

    def test_dict_round_trip_keeps_geometry(self, alpha_zone):
        zone = zone_from_dict(zone_to_dict(alpha_zone))
        assert zone.rings == alpha_zone.rings
        assert zone.population == alpha_zone.population

    def test_overlays_merge_into_zones(self, tmp_path, zones_by_id):
        write(tmp_path / "zone_census.csv", "zoneId,population,medianIncome,pctSeniors\n901,5200,95000,12.5\n777,1,1,1\n")
        write(tmp_path / "tree_canopy.csv", "zoneId,treeCanopyPct\n902,31.5\n")
        zones = apply_zone_overlays(zones_by_id, tmp_path)
        assert zones["901"].population == 5200
        assert zones["901"].attributes.median_income == 95000
        assert zones["901"].attributes.pct_seniors == 12.5
        assert zones["901"].attributes.pct_children == 20  # kept from the boundary source
        assert zones["902"].attributes.tree_canopy_pct == 31.5
        assert "777" not in zones

    def test_non_finite_census_values_read_as_missing(self, tmp_path, zones_by_id):
        write(tmp_path / "zone_census.csv", "zoneId,population,medianIncome\n901,NaN,50000\n902,3100,inf\n")
        zones = apply_zone_overlays(zones_by_id, tmp_path)
        assert zones["901"].population == 5000
        assert zones["901"].attributes.median_income == 50000
        assert zones["902"].population == 3100
        assert zones["902"].attributes.median_income == zones_by_id["902"].attributes.median_income

    def test_non_finite_zone_population(self):
        zone = zone_from_dict({"zoneId": "1", "rings": [], "population": float("nan")})
        assert zone.population is None

    def test_invalid_json_is_treated_as_absent(self, tmp_path):
        assert load_zones(write(tmp_path / "zones.json", "[{oops")) is None

    def test_unexpected_payload_shape(self, tmp_path):
        assert load_zones(write(tmp_path / "zones.json", '{"zones": 7}')) is None

    def test_non_object_records_are_skipped(self, tmp_path):
        path = write(tmp_path / "zones.json", json.dumps([
            "901", 42, None, ["x"],
            {"zoneId": "902", "rings": [[[-75.69, 45.4], [-75.68, 45.4], [-75.68, 45.41]]]},
        ]))
        assert list(load_zones(path)) == ["902"]


class TestCsv:
    def test_absent_file_is_none(self, tmp_path):
        assert read_csv_rows(tmp_path / "parks.csv") is None

    def test_rows_as_dicts(self, tmp_path):
        rows = read_csv_rows(write(tmp_path / "parks.csv", "﻿NAME,LATITUDE,LONGITUDE\nA,45.4,-75.7\n"))
        assert rows == [{"NAME": "A", "LATITUDE": "45.4", "LONGITUDE": "-75.7"}]

    def test_parse_number(self):
        assert parse_number("1,250") == 1250
        assert parse_number("12.5%") == 12.5
        assert parse_number("") is None
        assert parse_number("n/a") is None
        assert parse_number(None) is None
        assert parse_number("NaN") is None
        assert parse_number("-inf") is None
        assert parse_number(float("inf")) is None


class TestOverlays:
    def test_combines_files_by_id(self, tmp_path):
        write(tmp_path / "neighbourhoods.csv",
              "id,area,image,avgRent,avgHomePrice,pros,cons\n"
              "alpha,Central,/a.jpg,1850,650000,Walkable; Parks,Noise\n")
        write(tmp_path / "scores.csv", "id,walkScore,transitScore,bikeScore\nalpha,88,75,90\n")
        write(tmp_path / "overdose.csv", "id,overdoseEdVisits\nalpha,7\n")
        write(tmp_path / "health.csv", "id,primaryCareAccess,diabetesPrevalence\nalpha,88.5,7.2\n")

        overlays, missing = load_overlays(tmp_path)
        alpha = overlays["alpha"]
        assert alpha.area == "Central"
        assert alpha.avg_rent == 1850
        assert alpha.pros == ("Walkable", "Parks")
        assert alpha.cons == ("Noise",)
        assert alpha.walk_score == 88
        assert alpha.overdose_ed_visits == 7
        assert alpha.health["primary_care_access"] == 88.5
        assert alpha.health["asthma_prevalence"] is None
        assert alpha.health_data_source == "OCHPP"
        assert alpha.commute_to_downtown is None
        assert sorted(missing) == ["commute.csv", "nei.csv"]

    def test_nothing_supplied(self, tmp_path):
        overlays, missing = load_overlays(tmp_path)
        assert overlays == {}
        assert len(missing) == 6
