"""Pydantic models for the output document consumed by the front end.

All optional numeric fields are nullable; ``None`` means the source dataset
was absent or a denominator was zero, never "zero".
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from liveability.models.report import RunSummary


class OutputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategoryScores(OutputModel):
    walkability: float | None = None
    safety: float | None = None
    affordability: float | None = None
    amenities: float | None = None
    education: float | None = None
    healthcare: float | None = None
    income: float | None = None
    family_friendly: float | None = None
    commute_time: float | None = None
    lifestyle: float | None = None


class ScoreWeights(OutputModel):
    walkability: float
    safety: float
    affordability: float
    amenities: float
    education: float
    healthcare: float
    income: float
    family_friendly: float
    commute_time: float
    lifestyle: float


class ZoneSnapshot(OutputModel):
    """Per-zone polygon and attribute snapshot used for map shading."""

    zone_id: str
    name: str
    rings: list[list[tuple[float, float]]]
    population: int | None = None
    area_km2: float = 0.0
    median_income: float | None = None
    households: float | None = None
    pct_children: float | None = None
    pct_youth: float | None = None
    pct_adults: float | None = None
    pct_young_professionals: float | None = None
    pct_seniors: float | None = None
    avg_age: float | None = None
    pct_no_high_school: float | None = None
    pct_post_secondary: float | None = None
    pct_bachelors: float | None = None
    unemployment_rate: float | None = None
    pct_renters: float | None = None
    pct_immigrants: float | None = None
    pct_racialized: float | None = None
    pct_commute_car: float | None = None
    pct_commute_transit: float | None = None
    pct_work_from_home: float | None = None
    tree_canopy_pct: float | None = None
    crime_total: int | None = None
    crime_rate: float | None = None  # per 1,000 residents per year
    data_year: str = ""
    source: str = ""


class NeighbourhoodDetails(OutputModel):
    """Counts, name lists and source records per category.

    A count of ``None`` means the category's dataset was not supplied.
    """

    area_km2: float = 0.0
    parks: int | None = None
    parks_list: list[str] = []
    parks_data: list[dict[str, Any]] = []
    schools: int | None = None
    elementary_schools: int | None = None
    secondary_schools: int | None = None
    schools_list: list[str] = []
    schools_data: list[dict[str, Any]] = []
    avg_eqao_score: float | None = None
    schools_with_eqao_scores: int = 0
    libraries: int | None = None
    libraries_list: list[str] = []
    libraries_data: list[dict[str, Any]] = []
    grocery_stores: int | None = None
    grocery_stores_list: list[str] = []
    grocery_stores_data: list[dict[str, Any]] = []
    food_establishments: int | None = None
    food_by_category: dict[str, int] = {}
    food_data: list[dict[str, Any]] = []
    gyms: int | None = None
    gyms_list: list[str] = []
    gyms_data: list[dict[str, Any]] = []
    bus_stops: int | None = None
    stops_with_shelter: int = 0
    stops_with_bench: int = 0
    bus_stops_data: list[dict[str, Any]] = []
    crime_total: int | None = None
    crime_by_category: dict[str, int] = {}
    violent_crimes: int | None = None
    property_crimes: int | None = None
    other_crimes: int | None = None
    collisions: int | None = None
    collisions_fatal: int | None = None
    collisions_injury: int | None = None
    collisions_pedestrian: int | None = None
    collisions_bicycle: int | None = None
    cycling_segments: int | None = None
    cycling_km: float | None = None
    service_requests: int | None = None
    service_requests_by_type: dict[str, int] = {}
    overdose_ed_visits: float | None = None
    nearest_hospital_address: str | None = None


class NeighbourhoodMetrics(OutputModel):
    """Top-level metrics of one neighbourhood, as scored."""

    population: int = 0
    area_km2: float = 0.0
    population_density: float | None = None  # people per km²
    households: float | None = None
    median_income: float | None = None
    avg_rent: float | None = None
    avg_home_price: float | None = None
    # Indices (0-100)
    walk_score: float | None = None
    transit_score: float | None = None
    bike_score: float | None = None
    # Demographics (population-weighted)
    pct_children: float | None = None
    pct_youth: float | None = None
    pct_adults: float | None = None
    pct_young_professionals: float | None = None
    pct_seniors: float | None = None
    avg_age: float | None = None
    pct_no_high_school: float | None = None
    pct_post_secondary: float | None = None
    pct_bachelors: float | None = None
    unemployment_rate: float | None = None
    pct_renters: float | None = None
    pct_immigrants: float | None = None
    pct_racialized: float | None = None
    pct_commute_car: float | None = None
    pct_commute_transit: float | None = None
    pct_work_from_home: float | None = None
    tree_canopy: float | None = None
    # Rates
    crime_per_1000: float | None = None
    violent_crime_per_1000: float | None = None
    property_crime_per_1000: float | None = None
    other_crime_per_1000: float | None = None
    collisions_per_1000: float | None = None
    service_requests_per_1000: float | None = None
    overdose_per_100k: float | None = None
    # Densities (per km²)
    park_density: float | None = None
    school_density: float | None = None
    library_density: float | None = None
    grocery_density: float | None = None
    food_density: float | None = None
    gym_density: float | None = None
    bus_stop_density: float | None = None
    cycling_km_per_km2: float | None = None
    avg_eqao_score: float | None = None
    # Proximity (km) and commute (minutes)
    nearest_hospital: str | None = None
    distance_to_hospital: float | None = None
    nearest_otrain_station: str | None = None
    distance_to_otrain: float | None = None
    nearest_transitway_station: str | None = None
    distance_to_transitway: float | None = None
    nearest_rapid_transit: str | None = None
    nearest_rapid_transit_type: str | None = None
    distance_to_rapid_transit: float | None = None
    commute_to_downtown: float | None = None
    commute_by_transit: float | None = None
    # Equity / health overlays
    nei_score: float | None = None
    primary_care_access: float | None = None
    diabetes_prevalence: float | None = None
    asthma_prevalence: float | None = None
    copd_prevalence: float | None = None
    hypertension_prevalence: float | None = None
    mental_health_ed_rate: float | None = None
    premature_mortality: float | None = None
    hospital_admission_rate: float | None = None
    health_data_source: str | None = None


class NeighbourhoodRecord(NeighbourhoodMetrics):
    id: str
    name: str
    area: str = ""
    image: str = ""
    rank: int = 0
    overall_score: float | None = None
    category_scores: CategoryScores = CategoryScores()
    score_weights: ScoreWeights
    details: NeighbourhoodDetails = NeighbourhoodDetails()
    boundaries: list[ZoneSnapshot] = []
    pros: list[str] = []
    cons: list[str] = []


class OutputDocument(OutputModel):
    neighbourhoods: list[NeighbourhoodRecord]
    summary: RunSummary
