"""Nearest-facility distances from neighbourhood centroids.

Used for facilities that matter by proximity rather than containment
(hospitals, rapid-transit stations).
"""

import re
from dataclasses import dataclass
from typing import Iterable

from liveability.engine.geometry import centroid, haversine_distance_km
from liveability.models.feature import PointFeature
from liveability.models.zone import CatalogEntry


def subtype_of(label: str) -> str:
    """Normalized subtype key: "O-Train" and "OTrain" both become "otrain"."""
    return re.sub(r"[^a-z0-9]", "", label.lower())


@dataclass(frozen=True)
class NearestFacility:
    name: str
    distance_km: float
    subtype: str = ""
    feature: PointFeature | None = None


def neighbourhood_centroid(entry: CatalogEntry) -> tuple[float, float] | None:
    """Unweighted mean of the zones' outer-ring centroids, as (lon, lat)."""
    points = []
    for zone in entry.zones:
        if not zone.rings:
            continue
        c = centroid(zone.rings[0])
        if c is not None:
            points.append(c)
    if not points:
        return None
    lon = sum(p[0] for p in points) / len(points)
    lat = sum(p[1] for p in points) / len(points)
    return lon, lat


def nearest_facility(
    origin: tuple[float, float] | None,
    facilities: Iterable[PointFeature],
    subtype: str = "",
) -> NearestFacility | None:
    """Closest facility to ``origin`` (lon, lat); ``None`` when there is none."""
    if origin is None:
        return None
    lon, lat = origin
    best: NearestFacility | None = None
    for facility in facilities:
        distance = haversine_distance_km(lat, lon, facility.lat, facility.lon)
        if best is None or distance < best.distance_km:
            best = NearestFacility(
                name=facility.name,
                distance_km=distance,
                subtype=subtype,
                feature=facility,
            )
    return best


def nearest_by_subtype(
    origin: tuple[float, float] | None,
    facilities: Iterable[PointFeature],
    subtype_key: str,
) -> tuple[dict[str, NearestFacility], NearestFacility | None]:
    """Nearest facility per subtype, plus the overall nearest tagged with its subtype.

    Subtypes are returned in first-seen order; on equal distances the
    earlier subtype keeps the overall minimum.
    """
    groups: dict[str, list[PointFeature]] = {}
    for facility in facilities:
        groups.setdefault(subtype_of(facility.get(subtype_key)), []).append(facility)

    per_subtype: dict[str, NearestFacility] = {}
    for subtype, members in groups.items():
        nearest = nearest_facility(origin, members, subtype=subtype)
        if nearest is not None:
            per_subtype[subtype] = nearest

    overall: NearestFacility | None = None
    for nearest in per_subtype.values():
        if overall is None or nearest.distance_km < overall.distance_km:
            overall = nearest
    return per_subtype, overall


@dataclass(frozen=True)
class ProximitySet:
    hospital: NearestFacility | None = None
    transit_by_subtype: dict[str, NearestFacility] | None = None
    rapid_transit: NearestFacility | None = None


def resolve_proximity(
    entry: CatalogEntry,
    hospitals: list[PointFeature] | None,
    stations: list[PointFeature] | None,
    station_type_key: str = "TYPE",
) -> ProximitySet:
    """Nearest hospital and rapid-transit station for one neighbourhood.

    A dataset that was not supplied, or a neighbourhood without a centroid,
    yields ``None`` distances.
    """
    origin = neighbourhood_centroid(entry)
    hospital = nearest_facility(origin, hospitals) if hospitals else None
    per_subtype: dict[str, NearestFacility] = {}
    rapid = None
    if stations:
        per_subtype, rapid = nearest_by_subtype(origin, stations, station_type_key)
    return ProximitySet(hospital=hospital, transit_by_subtype=per_subtype, rapid_transit=rapid)
