"""Absolute-benchmark liveability scoring.

Every metric maps to a 0-100 sub-score, either through calibrated threshold
bands (where real-world policy breakpoints exist) or through linear min-max
scaling. Sub-scores average into category scores, and categories combine
into the overall score with fixed weights renormalized over the categories
that have data.

Category weights (sum to 1.0):
  Walkability:     0.15
  Safety:          0.15
  Amenities:       0.15
  Affordability:   0.10
  Education:       0.10
  Healthcare:      0.10
  Commute time:    0.10
  Income:          0.05
  Family friendly: 0.05
  Lifestyle:       0.05

A missing metric never scores as a number: its sub-score is ``None`` and it
drops out of its category's mean.
"""

import math
from dataclasses import dataclass, field
from typing import Mapping

from liveability.errors import InvalidScoringTableError

INF = math.inf

WALKABILITY = "walkability"
SAFETY = "safety"
AFFORDABILITY = "affordability"
AMENITIES = "amenities"
EDUCATION = "education"
HEALTHCARE = "healthcare"
INCOME = "income"
FAMILY_FRIENDLY = "family_friendly"
COMMUTE_TIME = "commute_time"
LIFESTYLE = "lifestyle"

CATEGORY_WEIGHTS: dict[str, float] = {
    WALKABILITY: 0.15,
    SAFETY: 0.15,
    AFFORDABILITY: 0.10,
    AMENITIES: 0.15,
    EDUCATION: 0.10,
    HEALTHCARE: 0.10,
    INCOME: 0.05,
    FAMILY_FRIENDLY: 0.05,
    COMMUTE_TIME: 0.10,
    LIFESTYLE: 0.05,
}

# Weights of the composite crime sub-score
CRIME_COMPONENT_WEIGHTS = {"violent": 0.5, "property": 0.3, "other": 0.2}

CRIME_METRIC = "crime"


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


@dataclass(frozen=True)
class ThresholdBands:
    """Ordered (upper_bound, score) pairs; the first bound >= value wins."""

    bands: tuple[tuple[float, float], ...]

    def __post_init__(self) -> None:
        if not self.bands:
            raise InvalidScoringTableError("Threshold table is empty")
        bounds = [b for b, _ in self.bands]
        if any(later <= earlier for earlier, later in zip(bounds, bounds[1:])):
            raise InvalidScoringTableError(f"Threshold bounds must be strictly ascending: {bounds}")
        if bounds[-1] != INF:
            raise InvalidScoringTableError("Last threshold band must be unbounded")
        if any(not 0 <= s <= 100 for _, s in self.bands):
            raise InvalidScoringTableError("Band scores must be within 0-100")

    def score(self, value: float | None) -> float | None:
        if value is None:
            return None
        for upper, score in self.bands:
            if value <= upper:
                return float(score)
        return float(self.bands[-1][1])


@dataclass(frozen=True)
class LinearScale:
    """Clamp to [minimum, maximum] and scale to 0-100."""

    minimum: float
    maximum: float
    higher_is_better: bool = True

    def __post_init__(self) -> None:
        if self.maximum <= self.minimum:
            raise InvalidScoringTableError(f"Empty scale [{self.minimum}, {self.maximum}]")

    def score(self, value: float | None) -> float | None:
        if value is None:
            return None
        clamped = max(self.minimum, min(self.maximum, value))
        fraction = (clamped - self.minimum) / (self.maximum - self.minimum)
        if not self.higher_is_better:
            fraction = 1 - fraction
        return clamp_score(fraction * 100)


Scorer = ThresholdBands | LinearScale


@dataclass(frozen=True)
class MetricRule:
    metric: str
    category: str
    scorer: Scorer


# ── Threshold tables ─────────────────────────────────────────────

# Crimes per 1,000 residents per year
TOTAL_CRIME_BANDS = ThresholdBands(((15, 100), (25, 85), (40, 70), (60, 50), (90, 30), (120, 15), (INF, 0)))
VIOLENT_CRIME_BANDS = ThresholdBands(((2, 100), (4, 85), (6, 70), (9, 50), (12, 30), (18, 15), (INF, 0)))
PROPERTY_CRIME_BANDS = ThresholdBands(((8, 100), (15, 85), (25, 70), (40, 50), (60, 30), (90, 15), (INF, 0)))
OTHER_CRIME_BANDS = ThresholdBands(((3, 100), (6, 85), (10, 70), (15, 50), (25, 30), (40, 15), (INF, 0)))

# Collisions per 1,000 residents per year
COLLISION_BANDS = ThresholdBands(((2, 100), (4, 80), (6, 60), (9, 40), (13, 20), (INF, 0)))
# Overdose ED visits per 100,000 residents per year
OVERDOSE_BANDS = ThresholdBands(((25, 100), (50, 80), (100, 60), (200, 40), (400, 20), (INF, 0)))
# Kilometres from the neighbourhood centroid
HOSPITAL_DISTANCE_BANDS = ThresholdBands(((2, 100), (5, 85), (10, 65), (15, 45), (25, 25), (40, 10), (INF, 0)))
RAPID_TRANSIT_DISTANCE_BANDS = ThresholdBands(((0.8, 100), (1.5, 80), (3, 60), (5, 40), (10, 20), (INF, 0)))
# Minutes to downtown
CAR_COMMUTE_BANDS = ThresholdBands(((15, 100), (20, 85), (30, 65), (40, 45), (55, 25), (INF, 5)))
TRANSIT_COMMUTE_BANDS = ThresholdBands(((20, 100), (30, 85), (45, 65), (60, 45), (80, 25), (INF, 5)))

SCORING_RULES: tuple[MetricRule, ...] = (
    # Walkability
    MetricRule("walk_score", WALKABILITY, LinearScale(0, 100)),
    MetricRule("transit_score", WALKABILITY, LinearScale(0, 100)),
    MetricRule("bike_score", WALKABILITY, LinearScale(0, 100)),
    # Safety (crime handled by the composite rule)
    MetricRule("collisions_per_1000", SAFETY, COLLISION_BANDS),
    MetricRule("overdose_per_100k", SAFETY, OVERDOSE_BANDS),
    # Affordability
    MetricRule("avg_rent", AFFORDABILITY, LinearScale(1_200, 2_800, higher_is_better=False)),
    MetricRule("avg_home_price", AFFORDABILITY, LinearScale(350_000, 1_200_000, higher_is_better=False)),
    # Amenities (per km²)
    MetricRule("park_density", AMENITIES, LinearScale(0, 4)),
    MetricRule("grocery_density", AMENITIES, LinearScale(0, 3)),
    MetricRule("food_density", AMENITIES, LinearScale(0, 40)),
    MetricRule("library_density", AMENITIES, LinearScale(0, 0.5)),
    MetricRule("gym_density", AMENITIES, LinearScale(0, 3)),
    # Education
    MetricRule("avg_eqao_score", EDUCATION, LinearScale(50, 90)),
    MetricRule("pct_post_secondary", EDUCATION, LinearScale(40, 85)),
    # Healthcare
    MetricRule("distance_to_hospital", HEALTHCARE, HOSPITAL_DISTANCE_BANDS),
    MetricRule("primary_care_access", HEALTHCARE, LinearScale(70, 95)),
    MetricRule("premature_mortality", HEALTHCARE, LinearScale(100, 300, higher_is_better=False)),
    # Income
    MetricRule("median_income", INCOME, LinearScale(40_000, 150_000)),
    MetricRule("unemployment_rate", INCOME, LinearScale(3, 12, higher_is_better=False)),
    # Family friendly
    MetricRule("pct_children", FAMILY_FRIENDLY, LinearScale(8, 25)),
    MetricRule("school_density", FAMILY_FRIENDLY, LinearScale(0, 2)),
    # Commute
    MetricRule("commute_to_downtown", COMMUTE_TIME, CAR_COMMUTE_BANDS),
    MetricRule("commute_by_transit", COMMUTE_TIME, TRANSIT_COMMUTE_BANDS),
    MetricRule("distance_to_rapid_transit", COMMUTE_TIME, RAPID_TRANSIT_DISTANCE_BANDS),
    # Lifestyle
    MetricRule("tree_canopy", LIFESTYLE, LinearScale(10, 50)),
    MetricRule("cycling_km_per_km2", LIFESTYLE, LinearScale(0, 4)),
    MetricRule("service_requests_per_1000", LIFESTYLE, LinearScale(50, 400, higher_is_better=False)),
)


@dataclass(frozen=True)
class ScoreCard:
    sub_scores: dict[str, float | None] = field(default_factory=dict)
    category_scores: dict[str, float | None] = field(default_factory=dict)
    overall: float | None = None


def _numeric(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def crime_sub_score(metrics: Mapping[str, object]) -> float | None:
    """Weighted violent / property / other crime score.

    Falls back to the undifferentiated total-crime rate when any of the
    three components is unavailable.
    """
    components = {
        "violent": VIOLENT_CRIME_BANDS.score(_numeric(metrics.get("violent_crime_per_1000"))),
        "property": PROPERTY_CRIME_BANDS.score(_numeric(metrics.get("property_crime_per_1000"))),
        "other": OTHER_CRIME_BANDS.score(_numeric(metrics.get("other_crime_per_1000"))),
    }
    if any(v is None for v in components.values()):
        return TOTAL_CRIME_BANDS.score(_numeric(metrics.get("crime_per_1000")))
    return clamp_score(sum(components[k] * w for k, w in CRIME_COMPONENT_WEIGHTS.items()))


def sub_scores(metrics: Mapping[str, object]) -> dict[str, float | None]:
    """Sub-score per scored metric, keyed by metric name."""
    scores: dict[str, float | None] = {CRIME_METRIC: crime_sub_score(metrics)}
    for rule in SCORING_RULES:
        scores[rule.metric] = rule.scorer.score(_numeric(metrics.get(rule.metric)))
    return scores


def category_score(values: list[float | None]) -> float | None:
    """Mean of the non-null sub-scores; ``None`` when there are none."""
    known = [v for v in values if v is not None]
    if not known:
        return None
    return sum(known) / len(known)


def overall_score(
    category_scores: Mapping[str, float | None],
    weights: Mapping[str, float] = CATEGORY_WEIGHTS,
) -> float | None:
    """Weighted mean over the categories that produced a score."""
    total = 0.0
    weight = 0.0
    for category, w in weights.items():
        score = category_scores.get(category)
        if score is None:
            continue
        total += score * w
        weight += w
    if weight == 0:
        return None
    return clamp_score(total / weight)


def _categories() -> dict[str, list[str]]:
    members: dict[str, list[str]] = {c: [] for c in CATEGORY_WEIGHTS}
    members[SAFETY].append(CRIME_METRIC)
    for rule in SCORING_RULES:
        members[rule.category].append(rule.metric)
    return members


CATEGORY_METRICS = _categories()


def score_neighbourhood(metrics: Mapping[str, object]) -> ScoreCard:
    """Score one neighbourhood's metrics. Category and overall scores are rounded to 0.1."""
    subs = sub_scores(metrics)
    raw_categories = {
        category: category_score([subs[m] for m in members])
        for category, members in CATEGORY_METRICS.items()
    }
    overall = overall_score(raw_categories)
    return ScoreCard(
        sub_scores=subs,
        category_scores={c: (round(s, 1) if s is not None else None) for c, s in raw_categories.items()},
        overall=round(overall, 1) if overall is not None else None,
    )
