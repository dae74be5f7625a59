"""Tests for per-neighbourhood metric aggregation."""

import pytest

from conftest import point_row, square
from liveability.engine.aggregator import (
    AggregationParams,
    CrimeTally,
    aggregate_neighbourhood,
    aggregate_zone_attributes,
    classify_crime,
    crime_rates,
    density,
    estimate_commute,
    per_capita_rate,
    weighted_average,
)
from liveability.engine.assigner import assign_features
from liveability.engine.catalog import build_catalog
from liveability.engine.proximity import resolve_proximity
from liveability.engine.scoring import score_neighbourhood
from liveability.models.feature import PointFeature
from liveability.models.overlay import NeighbourhoodOverlay
from liveability.models.zone import NeighbourhoodConfig, Zone


@pytest.fixture
def two_zone_catalog():
    """One neighbourhood over zone A (population 1,000) and zone B (population 4,000)."""
    zones = {
        "A": Zone(zone_id="A", name="Zone A", rings=[square(-75.70, 45.40)], population=1000),
        "B": Zone(zone_id="B", name="Zone B", rings=[square(-75.69, 45.40)], population=4000),
    }
    configs = [NeighbourhoodConfig(neighbourhood_id="hood", name="Hood", zone_ids=("A", "B"))]
    catalog, _ = build_catalog(configs, zones)
    return catalog


class TestPrimitives:
    def test_zero_population_zone_does_not_corrupt_average(self):
        assert weighted_average([(10, 100), (999, 0)]) == 10

    def test_unknown_values_are_skipped(self):
        assert weighted_average([(10, 100), (None, 5000)]) == 10

    def test_no_weight_is_null_not_zero(self):
        assert weighted_average([(10, 0), (20, None)]) is None
        assert weighted_average([]) is None

    def test_density_guards(self):
        assert density(10, 2.0) == 5.0
        assert density(10, 0.0) is None
        assert density(None, 2.0) is None

    def test_per_capita_rate_annualized(self):
        assert per_capita_rate(30, 5000, years=2) == pytest.approx(3.0)
        assert per_capita_rate(5, 100_000, per=100_000) == pytest.approx(5.0)
        assert per_capita_rate(5, 0) is None
        assert per_capita_rate(None, 5000) is None


class TestZoneAttributes:
    def test_population_weighted_and_households_summed(self, alpha_zone, beta_zone):
        attrs = aggregate_zone_attributes([alpha_zone, beta_zone])
        assert attrs["median_income"] == pytest.approx(85_000)
        assert attrs["pct_children"] == pytest.approx(16.25)
        assert attrs["households"] == 3500
        assert attrs["tree_canopy_pct"] is None


class TestCrime:
    def test_classify(self):
        assert classify_crime("Assault") == "violent"
        assert classify_crime("Theft Under $5000") == "property"
        assert classify_crime("Drug Offence") == "other"
        assert classify_crime("  ") is None

    def test_bucket_rates_null_when_any_incident_unlabelled(self):
        tally = CrimeTally(total=10, violent=5, property=4, unlabelled=1)
        rates = crime_rates(tally, 1000)
        assert rates.total == pytest.approx(10.0)
        assert rates.violent is None

    def test_no_dataset_no_rates(self):
        assert crime_rates(None, 1000).total is None


class TestCommuteEstimate:
    def test_near_downtown(self):
        car, transit = estimate_commute(2.0)
        assert car == round(2.0 / 22 * 60) + 5
        assert transit == round(2.0 * 12) + 5

    def test_transit_is_capped(self):
        _, transit = estimate_commute(60.0)
        assert transit == 120

    def test_otrain_access_shortens_transit(self):
        _, without = estimate_commute(12.0)
        _, with_otrain = estimate_commute(12.0, distance_to_otrain=0.5)
        assert with_otrain < without


class TestAggregateNeighbourhood:
    def test_crime_rate_end_to_end(self, two_zone_catalog):
        """3 crimes in zone A, 12 in zone B: 15 / 5,000 residents → 3.0 per 1,000 → sub-score 100."""
        rows = [point_row(45.405, -75.695) for _ in range(3)] + [point_row(45.405, -75.685) for _ in range(12)]
        crime = assign_features(rows, "crime", two_zone_catalog)
        entry = two_zone_catalog.get("hood")

        result = aggregate_neighbourhood(entry, {"crime": crime})
        assert result.metrics.population == 5000
        assert result.details.crime_total == 15
        assert result.metrics.crime_per_1000 == 3.0
        assert score_neighbourhood(result.metrics.model_dump()).sub_scores["crime"] == 100

        snapshots = {s.zone_id: s for s in result.boundaries}
        assert snapshots["A"].crime_total == 3
        assert snapshots["B"].crime_total == 12
        assert snapshots["A"].crime_rate == 3.0

    def test_labelled_crime_uses_composite(self, two_zone_catalog):
        rows = [point_row(45.405, -75.695, OFF_CATEG="Assault") for _ in range(25)]
        crime = assign_features(rows, "crime", two_zone_catalog)
        result = aggregate_neighbourhood(two_zone_catalog.get("hood"), {"crime": crime})
        assert result.metrics.violent_crime_per_1000 == 5.0
        assert result.metrics.property_crime_per_1000 == 0.0
        assert result.details.violent_crimes == 25
        # 0.5 × 70 + 0.3 × 100 + 0.2 × 100
        assert score_neighbourhood(result.metrics.model_dump()).sub_scores["crime"] == pytest.approx(85)

    def test_years_annualize_rates(self, two_zone_catalog):
        rows = [point_row(45.405, -75.695) for _ in range(15)]
        crime = assign_features(rows, "crime", two_zone_catalog)
        result = aggregate_neighbourhood(
            two_zone_catalog.get("hood"), {"crime": crime}, params=AggregationParams(crime_years=3),
        )
        assert result.metrics.crime_per_1000 == 1.0

    def test_missing_datasets_are_null_not_zero(self, catalog):
        result = aggregate_neighbourhood(catalog.get("alpha"), {})
        assert result.details.parks is None
        assert result.metrics.park_density is None
        assert result.metrics.crime_per_1000 is None
        assert result.metrics.distance_to_hospital is None

    def test_supplied_but_empty_dataset_counts_zero(self, catalog):
        parks = assign_features([], "parks", catalog)
        result = aggregate_neighbourhood(catalog.get("alpha"), {"parks": parks})
        assert result.details.parks == 0
        assert result.metrics.park_density == 0.0

    def test_counts_lists_and_subcategories(self, catalog):
        assignments = {
            "parks": assign_features([point_row(45.405, -75.695, NAME="Alpha Park")], "parks", catalog),
            "schools": assign_features([
                point_row(45.405, -75.695, NAME="A Elementary", CATEGORY="Elementary", EQAO_SCORE="70"),
                point_row(45.406, -75.695, NAME="A High", CATEGORY="Secondary", EQAO_SCORE="80"),
                point_row(45.407, -75.695, NAME="A Montessori"),
            ], "schools", catalog),
            "bus_stops": assign_features([
                point_row(45.405, -75.695, SHELTER="Y", BENCH="N"),
                point_row(45.406, -75.695, SHELTER="0", BENCH="1"),
            ], "bus_stops", catalog),
            "food_establishments": assign_features([
                point_row(45.405, -75.695, CATEGORY="Cafe"),
                point_row(45.406, -75.695, CATEGORY="cafe"),
                point_row(45.407, -75.695, CATEGORY="Restaurant"),
            ], "food_establishments", catalog),
            "cycling": assign_features([
                point_row(45.405, -75.695, LENGTH_KM="0.5"),
                point_row(45.406, -75.695, LENGTH_KM="0.25"),
            ], "cycling", catalog),
        }
        details = aggregate_neighbourhood(catalog.get("alpha"), assignments).details
        assert details.parks == 1
        assert details.parks_list == ["Alpha Park"]
        assert details.parks_data[0]["lat"] == 45.405
        assert details.schools == 3
        assert details.elementary_schools == 1
        assert details.secondary_schools == 1
        assert details.avg_eqao_score == 75.0
        assert details.schools_with_eqao_scores == 2
        assert details.stops_with_shelter == 1
        assert details.stops_with_bench == 1
        assert details.food_by_category == {"cafe": 2, "restaurant": 1}
        assert details.cycling_km == 0.75

    def test_overlay_values_pass_through(self, catalog):
        overlay = NeighbourhoodOverlay(
            avg_rent=1800, walk_score=88, commute_to_downtown=12, commute_by_transit=20,
            overdose_ed_visits=5, health={"primary_care_access": 90.0}, health_data_source="OCHPP",
        )
        metrics = aggregate_neighbourhood(catalog.get("alpha"), {}, overlay=overlay).metrics
        assert metrics.avg_rent == 1800
        assert metrics.walk_score == 88
        assert metrics.commute_to_downtown == 12
        assert metrics.overdose_per_100k == 100.0
        assert metrics.primary_care_access == 90.0
        assert metrics.diabetes_prevalence is None

    def test_commute_estimated_without_overlay(self, catalog):
        metrics = aggregate_neighbourhood(catalog.get("alpha"), {}).metrics
        assert metrics.commute_to_downtown is not None
        assert metrics.commute_by_transit is not None

    def test_otrain_station_from_source_labels(self, catalog):
        stations = [
            PointFeature(category="transit_stations", lat=45.405, lon=-75.70,
                         attributes={"NAME": "Bayview", "TYPE": "O-Train", "LINE": "Line 1"}),
            PointFeature(category="transit_stations", lat=45.43, lon=-75.70,
                         attributes={"NAME": "Westboro", "TYPE": "Transitway"}),
        ]
        entry = catalog.get("alpha")
        metrics = aggregate_neighbourhood(entry, {}, proximity=resolve_proximity(entry, None, stations)).metrics
        assert metrics.nearest_otrain_station == "Bayview"
        assert metrics.distance_to_otrain is not None
        assert metrics.nearest_transitway_station == "Westboro"
        assert metrics.nearest_rapid_transit_type == "otrain"

    def test_collision_columns_from_city_export(self, catalog):
        rows = [
            point_row(45.405, -75.695, CLASSIFICATION="01 - Fatal injury", PEDESTRIANS="1", BICYCLES="0", FATAL="1"),
            point_row(45.406, -75.695, CLASSIFICATION="02 - Non-fatal injury", PEDESTRIANS="0", BICYCLES="1",
                      INJURIES="2", FATAL="0"),
            point_row(45.407, -75.695, CLASSIFICATION="03 - P.D. only", PEDESTRIANS="0", BICYCLES="0",
                      INJURIES="0", FATAL="0"),
        ]
        collisions = assign_features(rows, "collisions", catalog)
        details = aggregate_neighbourhood(catalog.get("alpha"), {"collisions": collisions}).details
        assert details.collisions == 3
        assert details.collisions_fatal == 1
        assert details.collisions_injury == 1
        assert details.collisions_pedestrian == 1
        assert details.collisions_bicycle == 1

    def test_fatal_count_overrides_severity_text(self, catalog):
        rows = [point_row(45.405, -75.695, SEVERITY="Fatal", FATAL="0")]
        collisions = assign_features(rows, "collisions", catalog)
        details = aggregate_neighbourhood(catalog.get("alpha"), {"collisions": collisions}).details
        assert details.collisions_fatal == 0
        assert details.collisions_injury == 0

    def test_empty_neighbourhood_has_null_rates(self):
        catalog, _ = build_catalog([NeighbourhoodConfig(neighbourhood_id="ghost", name="Ghost")], {})
        crime = assign_features([], "crime", catalog)
        result = aggregate_neighbourhood(catalog.get("ghost"), {"crime": crime})
        assert result.metrics.population == 0
        assert result.metrics.area_km2 == 0.0
        assert result.metrics.crime_per_1000 is None
        assert result.metrics.population_density is None
        assert result.metrics.commute_to_downtown is None
        assert result.boundaries == []
