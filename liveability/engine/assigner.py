"""Spatial join of raw point rows to catalog neighbourhoods."""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from liveability.engine.catalog import ZoneCatalog
from liveability.engine.geometry import point_in_polygon_with_holes
from liveability.models.feature import PointFeature
from liveability.models.report import AssignmentReport

logger = logging.getLogger(__name__)

LAT_COLUMNS = ("LATITUDE", "latitude", "Latitude", "lat", "LAT", "Y")
LON_COLUMNS = ("LONGITUDE", "longitude", "Longitude", "lng", "lon", "LONG", "X")

ZoneKey = tuple[str, str]  # (neighbourhood id, zone id)


@dataclass
class AssignmentResult:
    category: str
    by_neighbourhood: dict[str, list[PointFeature]] = field(default_factory=dict)
    by_zone: dict[ZoneKey, int] = field(default_factory=dict)
    report: AssignmentReport | None = None

    def features_for(self, neighbourhood_id: str) -> list[PointFeature]:
        return self.by_neighbourhood.get(neighbourhood_id, [])

    def zone_count(self, neighbourhood_id: str, zone_id: str) -> int:
        return self.by_zone.get((neighbourhood_id, zone_id), 0)


def parse_coordinate(value: object) -> float | None:
    """Parse a coordinate cell; ``None`` for blanks, text and non-finite values."""
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _first_present(row: Mapping[str, str], columns: Sequence[str]) -> str | None:
    for column in columns:
        if column in row and row[column] not in (None, ""):
            return row[column]
    return None


def to_point_feature(
    row: Mapping[str, str],
    category: str,
    lat_columns: Sequence[str] = LAT_COLUMNS,
    lon_columns: Sequence[str] = LON_COLUMNS,
) -> PointFeature | None:
    lat = parse_coordinate(_first_present(row, lat_columns))
    lon = parse_coordinate(_first_present(row, lon_columns))
    if lat is None or lon is None:
        return None
    attributes = {
        k: (v or "") for k, v in row.items()
        if k is not None and k not in lat_columns and k not in lon_columns
    }
    return PointFeature(category=category, lat=lat, lon=lon, attributes=attributes)


def parse_features(
    rows: Iterable[Mapping[str, str]],
    category: str,
    lat_columns: Sequence[str] = LAT_COLUMNS,
    lon_columns: Sequence[str] = LON_COLUMNS,
) -> tuple[list[PointFeature], AssignmentReport]:
    """Parse rows without assigning them (for proximity-only datasets)."""
    report = AssignmentReport(category=category)
    features = []
    for row in rows:
        report.total += 1
        feature = to_point_feature(row, category, lat_columns, lon_columns)
        if feature is None:
            report.rejected += 1
            continue
        features.append(feature)
    report.assigned = len(features)
    logger.info("Loaded %d/%d %s (%d rejected)", report.assigned, report.total, category, report.rejected)
    return features, report


def assign_point_to_zone(lat: float, lon: float, catalog: ZoneCatalog) -> ZoneKey | None:
    """First (neighbourhood id, zone id), in catalog order, containing the point."""
    coords = (lon, lat)
    for entry in catalog:
        for zone in entry.zones:
            if point_in_polygon_with_holes(coords, zone.rings):
                return entry.neighbourhood_id, zone.zone_id
    return None


def assign_point(lat: float, lon: float, catalog: ZoneCatalog) -> str | None:
    match = assign_point_to_zone(lat, lon, catalog)
    return match[0] if match else None


def assign_features(
    rows: Iterable[Mapping[str, str]],
    category: str,
    catalog: ZoneCatalog,
    lat_columns: Sequence[str] = LAT_COLUMNS,
    lon_columns: Sequence[str] = LON_COLUMNS,
) -> AssignmentResult:
    """Assign every row of a point dataset to at most one neighbourhood.

    Rows without usable coordinates are rejected; points inside no
    neighbourhood are dropped. Both are counted in the report.
    """
    result = AssignmentResult(category=category)
    report = AssignmentReport(category=category)

    for row in rows:
        report.total += 1
        feature = to_point_feature(row, category, lat_columns, lon_columns)
        if feature is None:
            report.rejected += 1
            continue

        match = assign_point_to_zone(feature.lat, feature.lon, catalog)
        if match is None:
            report.unassigned += 1
            continue

        neighbourhood_id, zone_id = match
        result.by_neighbourhood.setdefault(neighbourhood_id, []).append(feature)
        result.by_zone[match] = result.by_zone.get(match, 0) + 1
        report.assigned += 1

    logger.info(
        "Assigned %d/%d %s (%d rejected, %d outside all neighbourhoods)",
        report.assigned, report.total, category, report.rejected, report.unassigned,
    )
    result.report = report
    return result
