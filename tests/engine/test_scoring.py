"""Tests for the absolute-benchmark scoring engine."""

import math

import pytest

from liveability.engine.scoring import (
    CATEGORY_METRICS,
    CATEGORY_WEIGHTS,
    SCORING_RULES,
    TOTAL_CRIME_BANDS,
    LinearScale,
    ThresholdBands,
    category_score,
    crime_sub_score,
    overall_score,
    score_neighbourhood,
    sub_scores,
)
from liveability.errors import InvalidScoringTableError


class TestThresholdBands:
    def test_first_band_at_or_above_value_wins(self):
        assert TOTAL_CRIME_BANDS.score(3.0) == 100
        assert TOTAL_CRIME_BANDS.score(15.0) == 100
        assert TOTAL_CRIME_BANDS.score(15.1) == 85
        assert TOTAL_CRIME_BANDS.score(500) == 0

    def test_null_in_null_out(self):
        assert TOTAL_CRIME_BANDS.score(None) is None

    def test_monotonic_for_lower_is_better(self):
        values = [i * 0.5 for i in range(400)]
        scores = [TOTAL_CRIME_BANDS.score(v) for v in values]
        assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))

    def test_unsorted_table_is_rejected(self):
        with pytest.raises(InvalidScoringTableError):
            ThresholdBands(((10, 100), (5, 50), (math.inf, 0)))

    def test_non_exhaustive_table_is_rejected(self):
        with pytest.raises(InvalidScoringTableError):
            ThresholdBands(((10, 100), (20, 50)))

    def test_empty_table_is_rejected(self):
        with pytest.raises(InvalidScoringTableError):
            ThresholdBands(())

    def test_all_configured_band_tables_are_valid(self):
        for rule in SCORING_RULES:
            if isinstance(rule.scorer, ThresholdBands):
                assert rule.scorer.bands[-1][0] == math.inf


class TestLinearScale:
    def test_clamps_and_scales(self):
        scale = LinearScale(0, 100)
        assert scale.score(-5) == 0
        assert scale.score(50) == 50
        assert scale.score(150) == 100

    def test_lower_is_better(self):
        rent = LinearScale(1_200, 2_800, higher_is_better=False)
        assert rent.score(1_200) == 100
        assert rent.score(2_800) == 0
        values = range(1_000, 3_000, 50)
        scores = [rent.score(v) for v in values]
        assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))

    def test_empty_range_is_rejected(self):
        with pytest.raises(InvalidScoringTableError):
            LinearScale(10, 10)


class TestCrimeComposite:
    def test_weighted_components(self):
        metrics = {"violent_crime_per_1000": 5.0, "property_crime_per_1000": 10.0, "other_crime_per_1000": 1.0}
        # 0.5 × 70 + 0.3 × 85 + 0.2 × 100
        assert crime_sub_score(metrics) == pytest.approx(80.5)

    def test_falls_back_to_total(self):
        metrics = {"crime_per_1000": 30.0, "violent_crime_per_1000": 1.0}
        assert crime_sub_score(metrics) == 70

    def test_nothing_known(self):
        assert crime_sub_score({}) is None


class TestAggregation:
    def test_weights_sum_to_one(self):
        assert sum(CATEGORY_WEIGHTS.values()) == pytest.approx(1.0)

    def test_every_rule_belongs_to_a_weighted_category(self):
        for rule in SCORING_RULES:
            assert rule.category in CATEGORY_WEIGHTS
        assert set(CATEGORY_METRICS) == set(CATEGORY_WEIGHTS)

    def test_category_mean_ignores_nulls(self):
        assert category_score([80, None, 60]) == 70
        assert category_score([None, None]) is None
        assert category_score([]) is None

    def test_overall_renormalizes_over_present_categories(self):
        scores = {"walkability": 80.0, "safety": 60.0}
        expected = (80 * 0.15 + 60 * 0.15) / 0.30
        assert overall_score(scores) == pytest.approx(expected)

    def test_overall_all_null(self):
        assert overall_score({c: None for c in CATEGORY_WEIGHTS}) is None

    def test_null_metrics_never_score(self):
        subs = sub_scores({"walk_score": None, "avg_rent": float("nan"), "park_density": True})
        assert subs["walk_score"] is None
        assert subs["avg_rent"] is None
        assert subs["park_density"] is None


class TestScoreNeighbourhood:
    def test_missing_category_is_null_and_excluded(self):
        card = score_neighbourhood({"walk_score": 90, "transit_score": 70, "crime_per_1000": 10})
        assert card.category_scores["walkability"] == pytest.approx(80.0)
        assert card.category_scores["safety"] == 100
        assert card.category_scores["education"] is None
        expected = (80 * 0.15 + 100 * 0.15) / 0.30
        assert card.overall == pytest.approx(round(expected, 1))

    def test_scores_within_bounds(self):
        card = score_neighbourhood({
            "walk_score": 250, "avg_rent": -10, "median_income": 10_000_000, "distance_to_hospital": 0,
        })
        for value in card.category_scores.values():
            assert value is None or 0 <= value <= 100
        assert 0 <= card.overall <= 100

    def test_empty_metrics(self):
        card = score_neighbourhood({})
        assert card.overall is None
        assert all(v is None for v in card.category_scores.values())
