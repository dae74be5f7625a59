"""Per-neighbourhood metric aggregation.

Counts and densities come from assigned point features, rates divide counts
by population (annualized over the years a source spans), and census
attributes are population-weighted across the neighbourhood's zones.

Every guard against a zero denominator returns ``None`` rather than 0 so
that missing data never reads as a bad (or good) value downstream.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from liveability.engine.assigner import AssignmentResult
from liveability.engine.catalog import entry_area_km2
from liveability.engine.geometry import haversine_distance_km, polygon_area_km2
from liveability.engine.proximity import ProximitySet, neighbourhood_centroid
from liveability.models.feature import (
    BUS_STOPS,
    COLLISIONS,
    CRIME,
    CYCLING,
    FOOD_ESTABLISHMENTS,
    GROCERY_STORES,
    GYMS,
    LIBRARIES,
    PARKS,
    SCHOOLS,
    SERVICE_REQUESTS,
    PointFeature,
)
from liveability.models.neighbourhood import NeighbourhoodDetails, NeighbourhoodMetrics, ZoneSnapshot
from liveability.models.overlay import HEALTH_FIELDS, NeighbourhoodOverlay
from liveability.models.zone import CatalogEntry, Zone, ZoneAttributes

logger = logging.getLogger(__name__)

PER_THOUSAND = 1_000
PER_HUNDRED_THOUSAND = 100_000

# Parliament Hill, reference point for estimated commutes
DOWNTOWN = (45.4236, -75.6998)

CRIME_LABEL_COLUMNS = ("OFF_CATEG", "CATEGORY", "category", "OFFENCE_CATEGORY")
VIOLENT_KEYWORDS = (
    "assault", "robbery", "homicide", "murder", "sexual", "weapon", "firearm",
    "kidnap", "abduction", "threat", "harass", "violent",
)
PROPERTY_KEYWORDS = (
    "theft", "break and enter", "break & enter", "mischief", "fraud", "arson",
    "stolen", "shoplift", "motor vehicle", "property",
)

FOOD_CATEGORIES = ("restaurant", "cafe", "coffee shop", "fast food", "bakery", "pub", "bar", "ice cream")


@dataclass(frozen=True)
class AggregationParams:
    """Years covered by each multi-year source."""

    crime_years: int = 1
    collision_years: int = 1
    service_request_years: int = 1
    overdose_years: int = 1


@dataclass
class CrimeTally:
    total: int = 0
    by_category: dict[str, int] = field(default_factory=dict)
    violent: int = 0
    property: int = 0
    other: int = 0
    unlabelled: int = 0


@dataclass(frozen=True)
class CrimeRates:
    total: float | None = None
    violent: float | None = None
    property: float | None = None
    other: float | None = None


@dataclass(frozen=True)
class AggregateResult:
    metrics: NeighbourhoodMetrics
    details: NeighbourhoodDetails
    boundaries: list[ZoneSnapshot]


# ── Primitive aggregates ─────────────────────────────────────────

def density(count: float | None, area_km2: float | None) -> float | None:
    """Count per km²; ``None`` when the count is unknown or the area is zero."""
    if count is None or not area_km2 or area_km2 <= 0:
        return None
    return count / area_km2


def per_capita_rate(
    count: float | None,
    population: float | None,
    per: int = PER_THOUSAND,
    years: float = 1,
) -> float | None:
    """Annualized rate per ``per`` residents."""
    if count is None or not population or population <= 0 or years <= 0:
        return None
    return count / population * per / years


def weighted_average(pairs: Iterable[tuple[float | None, float | None]]) -> float | None:
    """Population-weighted mean of (value, population) pairs.

    Pairs with an unknown value or a zero/unknown population contribute
    nothing; a total weight of zero yields ``None``.
    """
    total = 0.0
    weight = 0.0
    for value, population in pairs:
        if value is None or not population or population <= 0:
            continue
        total += value * population
        weight += population
    if weight == 0:
        return None
    return total / weight


def _round(value: float | None, digits: int = 1) -> float | None:
    if value is None:
        return None
    return round(value, digits)


def _parse_number(value: str) -> float | None:
    try:
        return float(value.replace(",", ""))
    except (ValueError, AttributeError):
        return None


def _truthy(value: str) -> bool:
    text = value.strip().lower()
    if text in ("y", "yes", "true", "t"):
        return True
    number = _parse_number(text)
    return number is not None and number > 0


def _first_attr(feature: PointFeature, keys: Iterable[str]) -> str:
    for key in keys:
        value = feature.get(key)
        if value:
            return value
    return ""


# ── Zone attributes ──────────────────────────────────────────────

def aggregate_zone_attributes(zones: Iterable[Zone]) -> dict[str, float | None]:
    """Population-weighted census attributes; households are summed."""
    zones = list(zones)
    result: dict[str, float | None] = {}
    for name in ZoneAttributes.names():
        if name == "households":
            known = [z.attributes.households for z in zones if z.attributes.households is not None]
            result[name] = sum(known) if known else None
            continue
        result[name] = weighted_average((getattr(z.attributes, name), z.population) for z in zones)
    return result


# ── Crime ────────────────────────────────────────────────────────

def classify_crime(label: str) -> str | None:
    """Bucket an offence label as violent / property / other."""
    text = label.strip().lower()
    if not text:
        return None
    if any(k in text for k in VIOLENT_KEYWORDS):
        return "violent"
    if any(k in text for k in PROPERTY_KEYWORDS):
        return "property"
    return "other"


def tally_crimes(features: Iterable[PointFeature]) -> CrimeTally:
    tally = CrimeTally()
    for feature in features:
        tally.total += 1
        label = _first_attr(feature, CRIME_LABEL_COLUMNS)
        bucket = classify_crime(label)
        if bucket is None:
            tally.unlabelled += 1
            continue
        tally.by_category[label] = tally.by_category.get(label, 0) + 1
        setattr(tally, bucket, getattr(tally, bucket) + 1)
    return tally


def crime_rates(tally: CrimeTally | None, population: float | None, years: float = 1) -> CrimeRates:
    """Crimes per 1,000 residents per year, overall and by bucket.

    Bucket rates are ``None`` when any incident lacks an offence label,
    since the split would be incomplete.
    """
    if tally is None:
        return CrimeRates()
    total = per_capita_rate(tally.total, population, PER_THOUSAND, years)
    if tally.unlabelled:
        return CrimeRates(total=total)
    return CrimeRates(
        total=total,
        violent=per_capita_rate(tally.violent, population, PER_THOUSAND, years),
        property=per_capita_rate(tally.property, population, PER_THOUSAND, years),
        other=per_capita_rate(tally.other, population, PER_THOUSAND, years),
    )


# ── Commute estimate ─────────────────────────────────────────────

def estimate_commute(
    distance_km: float,
    distance_to_otrain: float | None = None,
    distance_to_transitway: float | None = None,
) -> tuple[int, int]:
    """Estimated (car, transit) minutes to downtown from straight-line distance."""
    if distance_km < 5:
        car_speed = 22
    elif distance_km < 15:
        car_speed = 32
    elif distance_km < 30:
        car_speed = 48
    else:
        car_speed = 55
    car = round(distance_km / car_speed * 60) + (5 if distance_km < 5 else 8)

    has_otrain = distance_to_otrain is not None and distance_to_otrain < 2
    has_transitway = distance_to_transitway is not None and distance_to_transitway < 1.5

    if distance_km < 3:
        transit = round(distance_km * 12) + 5
    elif has_otrain:
        transit = round(distance_to_otrain * 12) + 5 + round(distance_km * 0.7 / 35 * 60) + 5
    elif has_transitway:
        transit = round(distance_to_transitway * 12) + 8 + round(distance_km * 0.8 / 28 * 60) + 5
    elif distance_km < 10:
        transit = round(distance_km * 4) + 15
    elif distance_km < 20:
        transit = round(distance_km * 3.5) + 20
    else:
        transit = round(distance_km * 3) + 30

    return car, min(transit, 120)


# ── Details ──────────────────────────────────────────────────────

def _names(features: list[PointFeature]) -> list[str]:
    return [f.name for f in features if f.name]


def _records(features: list[PointFeature]) -> list[dict]:
    return [f.as_record() for f in features]


def _school_level(feature: PointFeature) -> str | None:
    text = _first_attr(feature, ("CATEGORY", "category", "LEVEL", "level")).lower()
    if "second" in text or "high" in text:
        return "secondary"
    if "elem" in text or "primary" in text:
        return "elementary"
    return None


def _food_category(feature: PointFeature) -> str:
    text = _first_attr(feature, ("CATEGORY", "category", "TYPE", "type")).lower()
    for known in FOOD_CATEGORIES:
        if text == known or text.replace("_", " ") == known:
            return known
    return text or "other"


def _collision_flags(feature: PointFeature) -> tuple[bool, bool, bool, bool]:
    """(fatal, injury, pedestrian, bicycle).

    A numeric ``FATAL`` count wins over the severity text when present.
    """
    severity = _first_attr(
        feature, ("CLASSIFICATION", "CLASSIFICATION_OF_ACCIDENT", "SEVERITY", "severity"),
    ).lower()
    fatal_count = _first_attr(feature, ("FATAL", "FATALITIES"))
    if fatal_count:
        fatal = _truthy(fatal_count)
    else:
        fatal = "fatal" in severity and "non-fatal" not in severity
    injury = not fatal and ("injury" in severity or _truthy(_first_attr(feature, ("INJURIES",))))
    pedestrian = _truthy(_first_attr(feature, ("PEDESTRIANS", "PEDESTRIAN", "pedestrian", "NUM_PEDESTRIANS")))
    bicycle = _truthy(_first_attr(feature, ("BICYCLES", "BICYCLE", "bicycle", "NUM_BICYCLES")))
    return fatal, injury, pedestrian, bicycle


def _fill_counts(
    details: NeighbourhoodDetails,
    neighbourhood_id: str,
    assignments: Mapping[str, AssignmentResult],
) -> CrimeTally | None:
    """Populate category counts and lists in place; returns the crime tally."""
    def present(category: str) -> list[PointFeature] | None:
        result = assignments.get(category)
        if result is None:
            return None
        return result.features_for(neighbourhood_id)

    parks = present(PARKS)
    if parks is not None:
        details.parks = len(parks)
        details.parks_list = _names(parks)
        details.parks_data = _records(parks)

    schools = present(SCHOOLS)
    if schools is not None:
        levels = [_school_level(s) for s in schools]
        eqao = [v for v in (_parse_number(_first_attr(s, ("EQAO_SCORE", "eqaoScore", "EQAO"))) for s in schools)
                if v is not None]
        details.schools = len(schools)
        details.elementary_schools = levels.count("elementary")
        details.secondary_schools = levels.count("secondary")
        details.schools_list = _names(schools)
        details.schools_data = _records(schools)
        details.schools_with_eqao_scores = len(eqao)
        details.avg_eqao_score = _round(sum(eqao) / len(eqao)) if eqao else None

    libraries = present(LIBRARIES)
    if libraries is not None:
        details.libraries = len(libraries)
        details.libraries_list = _names(libraries)
        details.libraries_data = _records(libraries)

    grocery = present(GROCERY_STORES)
    if grocery is not None:
        details.grocery_stores = len(grocery)
        details.grocery_stores_list = _names(grocery)
        details.grocery_stores_data = _records(grocery)

    food = present(FOOD_ESTABLISHMENTS)
    if food is not None:
        by_category: dict[str, int] = {}
        for f in food:
            key = _food_category(f)
            by_category[key] = by_category.get(key, 0) + 1
        details.food_establishments = len(food)
        details.food_by_category = by_category
        details.food_data = _records(food)

    gyms = present(GYMS)
    if gyms is not None:
        details.gyms = len(gyms)
        details.gyms_list = _names(gyms)
        details.gyms_data = _records(gyms)

    stops = present(BUS_STOPS)
    if stops is not None:
        details.bus_stops = len(stops)
        details.stops_with_shelter = sum(1 for s in stops if _truthy(_first_attr(s, ("SHELTER", "hasShelter"))))
        details.stops_with_bench = sum(1 for s in stops if _truthy(_first_attr(s, ("BENCH", "hasBench"))))
        details.bus_stops_data = _records(stops)

    collisions = present(COLLISIONS)
    if collisions is not None:
        flags = [_collision_flags(c) for c in collisions]
        details.collisions = len(collisions)
        details.collisions_fatal = sum(1 for f in flags if f[0])
        details.collisions_injury = sum(1 for f in flags if f[1])
        details.collisions_pedestrian = sum(1 for f in flags if f[2])
        details.collisions_bicycle = sum(1 for f in flags if f[3])

    cycling = present(CYCLING)
    if cycling is not None:
        lengths = [_parse_number(_first_attr(c, ("LENGTH_KM", "length_km", "lengthKm"))) or 0.0 for c in cycling]
        details.cycling_segments = len(cycling)
        details.cycling_km = round(sum(lengths), 2)

    requests = present(SERVICE_REQUESTS)
    if requests is not None:
        by_type: dict[str, int] = {}
        for r in requests:
            key = _first_attr(r, ("TYPE", "type", "SERVICE_TYPE")) or "other"
            by_type[key] = by_type.get(key, 0) + 1
        details.service_requests = len(requests)
        details.service_requests_by_type = by_type

    crimes = present(CRIME)
    if crimes is None:
        return None
    tally = tally_crimes(crimes)
    details.crime_total = tally.total
    details.crime_by_category = tally.by_category
    if not tally.unlabelled:
        details.violent_crimes = tally.violent
        details.property_crimes = tally.property
        details.other_crimes = tally.other
    return tally


# ── Zone snapshots ───────────────────────────────────────────────

def zone_snapshots(
    entry: CatalogEntry,
    crime: AssignmentResult | None,
    crime_years: float = 1,
) -> list[ZoneSnapshot]:
    snapshots = []
    for zone in entry.zones:
        crime_total = crime.zone_count(entry.neighbourhood_id, zone.zone_id) if crime is not None else None
        snapshots.append(ZoneSnapshot(
            zone_id=zone.zone_id,
            name=zone.name,
            rings=zone.rings,
            population=zone.population,
            area_km2=round(polygon_area_km2(zone.rings), 3),
            crime_total=crime_total,
            crime_rate=_round(per_capita_rate(crime_total, zone.population, PER_THOUSAND, crime_years), 2),
            data_year=zone.data_year,
            source=zone.source,
            **{name: getattr(zone.attributes, name) for name in ZoneAttributes.names()},
        ))
    return snapshots


# ── Neighbourhood ────────────────────────────────────────────────

def aggregate_neighbourhood(
    entry: CatalogEntry,
    assignments: Mapping[str, AssignmentResult],
    overlay: NeighbourhoodOverlay | None = None,
    proximity: ProximitySet | None = None,
    params: AggregationParams = AggregationParams(),
) -> AggregateResult:
    """Fold zones, assigned features, proximity and overlays into one profile."""
    overlay = overlay or NeighbourhoodOverlay()
    proximity = proximity or ProximitySet()

    population = entry.population
    area = entry_area_km2(entry)

    details = NeighbourhoodDetails(area_km2=round(area, 2))
    tally = _fill_counts(details, entry.neighbourhood_id, assignments)
    rates = crime_rates(tally, population, params.crime_years)
    attrs = aggregate_zone_attributes(entry.zones)

    transit = proximity.transit_by_subtype or {}
    otrain = transit.get("otrain")
    transitway = transit.get("transitway")
    rapid = proximity.rapid_transit
    hospital = proximity.hospital
    if hospital is not None and hospital.feature is not None:
        details.nearest_hospital_address = hospital.feature.get("ADDRESS") or None

    commute_car = overlay.commute_to_downtown
    commute_transit = overlay.commute_by_transit
    if commute_car is None or commute_transit is None:
        origin = neighbourhood_centroid(entry)
        if origin is not None:
            km = haversine_distance_km(origin[1], origin[0], DOWNTOWN[0], DOWNTOWN[1])
            est_car, est_transit = estimate_commute(
                km,
                otrain.distance_km if otrain else None,
                transitway.distance_km if transitway else None,
            )
            commute_car = commute_car if commute_car is not None else est_car
            commute_transit = commute_transit if commute_transit is not None else est_transit

    details.overdose_ed_visits = overlay.overdose_ed_visits

    metrics = NeighbourhoodMetrics(
        population=population,
        area_km2=round(area, 2),
        population_density=_round(density(population, area), 0),
        households=attrs["households"],
        median_income=_round(attrs["median_income"], 0),
        avg_rent=overlay.avg_rent,
        avg_home_price=overlay.avg_home_price,
        walk_score=overlay.walk_score,
        transit_score=overlay.transit_score,
        bike_score=overlay.bike_score,
        pct_children=_round(attrs["pct_children"]),
        pct_youth=_round(attrs["pct_youth"]),
        pct_adults=_round(attrs["pct_adults"]),
        pct_young_professionals=_round(attrs["pct_young_professionals"]),
        pct_seniors=_round(attrs["pct_seniors"]),
        avg_age=_round(attrs["avg_age"]),
        pct_no_high_school=_round(attrs["pct_no_high_school"]),
        pct_post_secondary=_round(attrs["pct_post_secondary"]),
        pct_bachelors=_round(attrs["pct_bachelors"]),
        unemployment_rate=_round(attrs["unemployment_rate"]),
        pct_renters=_round(attrs["pct_renters"]),
        pct_immigrants=_round(attrs["pct_immigrants"]),
        pct_racialized=_round(attrs["pct_racialized"]),
        pct_commute_car=_round(attrs["pct_commute_car"]),
        pct_commute_transit=_round(attrs["pct_commute_transit"]),
        pct_work_from_home=_round(attrs["pct_work_from_home"]),
        tree_canopy=_round(attrs["tree_canopy_pct"]),
        crime_per_1000=_round(rates.total, 2),
        violent_crime_per_1000=_round(rates.violent, 2),
        property_crime_per_1000=_round(rates.property, 2),
        other_crime_per_1000=_round(rates.other, 2),
        collisions_per_1000=_round(
            per_capita_rate(details.collisions, population, PER_THOUSAND, params.collision_years), 2),
        service_requests_per_1000=_round(
            per_capita_rate(details.service_requests, population, PER_THOUSAND, params.service_request_years), 2),
        overdose_per_100k=_round(
            per_capita_rate(overlay.overdose_ed_visits, population, PER_HUNDRED_THOUSAND, params.overdose_years), 1),
        park_density=_round(density(details.parks, area), 2),
        school_density=_round(density(details.schools, area), 2),
        library_density=_round(density(details.libraries, area), 2),
        grocery_density=_round(density(details.grocery_stores, area), 2),
        food_density=_round(density(details.food_establishments, area), 2),
        gym_density=_round(density(details.gyms, area), 2),
        bus_stop_density=_round(density(details.bus_stops, area), 2),
        cycling_km_per_km2=_round(density(details.cycling_km, area), 2),
        avg_eqao_score=details.avg_eqao_score,
        nearest_hospital=hospital.name if hospital else None,
        distance_to_hospital=_round(hospital.distance_km, 2) if hospital else None,
        nearest_otrain_station=otrain.name if otrain else None,
        distance_to_otrain=_round(otrain.distance_km, 2) if otrain else None,
        nearest_transitway_station=transitway.name if transitway else None,
        distance_to_transitway=_round(transitway.distance_km, 2) if transitway else None,
        nearest_rapid_transit=rapid.name if rapid else None,
        nearest_rapid_transit_type=rapid.subtype if rapid else None,
        distance_to_rapid_transit=_round(rapid.distance_km, 2) if rapid else None,
        commute_to_downtown=commute_car,
        commute_by_transit=commute_transit,
        nei_score=overlay.nei_score,
        health_data_source=overlay.health_data_source,
        **{name: overlay.health.get(name) for name in HEALTH_FIELDS},
    )

    boundaries = zone_snapshots(entry, assignments.get(CRIME), params.crime_years)
    return AggregateResult(metrics=metrics, details=details, boundaries=boundaries)
