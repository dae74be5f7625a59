"""Readers for the pipeline's input directory.

Only the neighbourhood mapping is mandatory; every other file is optional and
its absence surfaces as ``None`` metrics downstream.
"""

import csv
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping

from pydantic.alias_generators import to_camel

from liveability.errors import MappingConfigError
from liveability.models.overlay import HEALTH_FIELDS, NeighbourhoodOverlay
from liveability.models.zone import NeighbourhoodConfig, Rings, Zone, ZoneAttributes

logger = logging.getLogger(__name__)

MAPPING_FILE = "neighbourhood_mapping.json"
ZONES_FILE = "zones.json"
ZONE_OVERLAY_FILES = ("zone_census.csv", "tree_canopy.csv")

# Column name (camelCase or snake_case) -> ZoneAttributes field
_ZONE_COLUMNS = {
    **{to_camel(name): name for name in ZoneAttributes.names()},
    **{name: name for name in ZoneAttributes.names()},
}


def parse_number(value: Any) -> float | None:
    """Lenient number parse; blanks, junk, NaN and infinities read as missing."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").rstrip("%")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _parse_int(value: Any) -> int | None:
    number = parse_number(value)
    return int(number) if number is not None else None


def _parse_rings(value: Any, where: str) -> Rings:
    if not isinstance(value, list):
        raise ValueError(f"{where}: rings must be a list")
    rings = []
    for ring in value:
        rings.append([(float(p[0]), float(p[1])) for p in ring])
    return rings


# ── Mapping ──────────────────────────────────────────────────────

def load_mapping(path: str | Path) -> list[NeighbourhoodConfig]:
    """Load the ordered neighbourhood -> zone mapping.

    The file's key order is the catalog order. Any problem here is fatal.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise MappingConfigError(f"Neighbourhood mapping not found: {path}") from e
    except json.JSONDecodeError as e:
        raise MappingConfigError(f"Neighbourhood mapping is not valid JSON: {e}") from e

    if not isinstance(raw, dict) or not raw:
        raise MappingConfigError("Neighbourhood mapping must be a non-empty object keyed by id")

    configs = []
    for neighbourhood_id, entry in raw.items():
        if not isinstance(entry, dict) or not entry.get("name"):
            raise MappingConfigError(f"Mapping entry {neighbourhood_id!r} needs a name")

        zone_ids = entry.get("zoneIds", entry.get("onsIds", []))
        if not isinstance(zone_ids, list):
            raise MappingConfigError(f"Mapping entry {neighbourhood_id!r}: zoneIds must be a list")

        boundary = None
        if entry.get("boundary") is not None:
            try:
                boundary = _parse_rings(entry["boundary"], neighbourhood_id)
            except (ValueError, TypeError, IndexError) as e:
                raise MappingConfigError(f"Mapping entry {neighbourhood_id!r}: bad boundary ({e})") from e

        configs.append(NeighbourhoodConfig(
            neighbourhood_id=str(neighbourhood_id),
            name=str(entry["name"]),
            zone_ids=tuple(str(z) for z in zone_ids),
            boundary=boundary,
            population=_parse_int(entry.get("population")),
        ))

    logger.info("Loaded mapping for %d neighbourhoods", len(configs))
    return configs


# ── Zones ────────────────────────────────────────────────────────

def attributes_from_row(row: Mapping[str, Any]) -> ZoneAttributes:
    values = {}
    for column, value in row.items():
        name = _ZONE_COLUMNS.get(column)
        if name is not None:
            values[name] = parse_number(value)
    return ZoneAttributes(**values)


def zone_from_dict(data: Mapping[str, Any]) -> Zone | None:
    """Build a Zone from a boundary-source record; ``None`` if unusable."""
    zone_id = data.get("zoneId", data.get("onsId"))
    if zone_id is None:
        return None
    try:
        rings = _parse_rings(data.get("rings", []), str(zone_id))
    except (ValueError, TypeError, IndexError) as e:
        logger.warning("Skipping zone %s: %s", zone_id, e)
        return None
    return Zone(
        zone_id=str(zone_id),
        name=str(data.get("name", "")),
        rings=rings,
        population=_parse_int(data.get("population")),
        attributes=attributes_from_row(data.get("attributes") or {}),
        data_year=str(data.get("dataYear", "")),
        source=str(data.get("source", "")),
    )


def zone_to_dict(zone: Zone) -> dict[str, Any]:
    return {
        "zoneId": zone.zone_id,
        "name": zone.name,
        "rings": [[list(p) for p in ring] for ring in zone.rings],
        "population": zone.population,
        "dataYear": zone.data_year,
        "source": zone.source,
    }


def load_zones(path: str | Path) -> dict[str, Zone] | None:
    """Boundary source keyed by zone id; ``None`` when the file is absent or unreadable."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("Ignoring %s, not valid JSON: %s", path.name, e)
        return None
    if isinstance(raw, dict):
        raw = raw.get("zones", [])
    if not isinstance(raw, list):
        logger.warning("Ignoring %s, expected a list of zones", path.name)
        return None
    zones: dict[str, Zone] = {}
    for item in raw:
        if not isinstance(item, dict):
            logger.warning("Skipping malformed zone record in %s", path.name)
            continue
        zone = zone_from_dict(item)
        if zone is not None:
            zones[zone.zone_id] = zone
    logger.info("Loaded %d zone boundaries from %s", len(zones), path.name)
    return zones


def read_csv_rows(path: str | Path) -> list[dict[str, str]] | None:
    """All rows of a CSV file as dicts; ``None`` when the file is absent."""
    path = Path(path)
    if not path.exists():
        return None
    with path.open(newline="", encoding="utf-8-sig") as f:
        return [dict(row) for row in csv.DictReader(f)]


def _id_of(row: Mapping[str, str], *columns: str) -> str | None:
    for column in columns:
        value = (row.get(column) or "").strip()
        if value:
            return value
    return None


def apply_zone_overlays(zones: dict[str, Zone], data_dir: str | Path) -> dict[str, Zone]:
    """Merge per-zone CSV overlays (census, tree canopy) into the zones.

    Overlay values win over attributes pre-attached to the boundary source.
    """
    merged = dict(zones)
    for filename in ZONE_OVERLAY_FILES:
        rows = read_csv_rows(Path(data_dir) / filename)
        if rows is None:
            continue
        applied = 0
        for row in rows:
            zone_id = _id_of(row, "zoneId", "zone_id", "onsId", "ONS_ID")
            zone = merged.get(zone_id) if zone_id else None
            if zone is None:
                continue
            population = _parse_int(row.get("population"))
            merged[zone_id] = replace(
                zone,
                attributes=zone.attributes.merged(attributes_from_row(row)),
                population=population if population is not None else zone.population,
            )
            applied += 1
        logger.info("Applied %s to %d zones", filename, applied)
    return merged


# ── Neighbourhood overlays ───────────────────────────────────────

def _split_list(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(";") if part.strip())


def load_overlays(data_dir: str | Path) -> tuple[dict[str, NeighbourhoodOverlay], list[str]]:
    """Neighbourhood-keyed overlays and the list of overlay files not found."""
    data_dir = Path(data_dir)
    fields: dict[str, dict[str, Any]] = {}
    missing: list[str] = []

    def rows_of(filename: str) -> list[dict[str, str]]:
        rows = read_csv_rows(data_dir / filename)
        if rows is None:
            missing.append(filename)
            return []
        return rows

    for row in rows_of("neighbourhoods.csv"):
        nid = _id_of(row, "id")
        if nid is None:
            continue
        fields.setdefault(nid, {}).update(
            area=row.get("area", "") or "",
            image=row.get("image", "") or "",
            avg_rent=parse_number(row.get("avgRent")),
            avg_home_price=parse_number(row.get("avgHomePrice")),
            pros=_split_list(row.get("pros")),
            cons=_split_list(row.get("cons")),
        )

    for row in rows_of("scores.csv"):
        nid = _id_of(row, "id")
        if nid is None:
            continue
        fields.setdefault(nid, {}).update(
            walk_score=parse_number(row.get("walkScore")),
            transit_score=parse_number(row.get("transitScore")),
            bike_score=parse_number(row.get("bikeScore")),
        )

    for row in rows_of("commute.csv"):
        nid = _id_of(row, "id")
        if nid is None:
            continue
        fields.setdefault(nid, {}).update(
            commute_to_downtown=parse_number(row.get("commuteToDowntown")),
            commute_by_transit=parse_number(row.get("commuteByTransit")),
        )

    for row in rows_of("nei.csv"):
        nid = _id_of(row, "id")
        if nid is None:
            continue
        fields.setdefault(nid, {})["nei_score"] = parse_number(row.get("neiScore"))

    for row in rows_of("overdose.csv"):
        nid = _id_of(row, "id")
        if nid is None:
            continue
        fields.setdefault(nid, {})["overdose_ed_visits"] = parse_number(row.get("overdoseEdVisits"))

    for row in rows_of("health.csv"):
        nid = _id_of(row, "id")
        if nid is None:
            continue
        fields.setdefault(nid, {}).update(
            health={name: parse_number(row.get(to_camel(name))) for name in HEALTH_FIELDS},
            health_data_source=row.get("dataSource") or "OCHPP",
        )

    return {nid: NeighbourhoodOverlay(**kwargs) for nid, kwargs in fields.items()}, missing
