"""Zone catalog: resolves curated neighbourhoods to their zone polygons.

The catalog keeps neighbourhoods in configuration order. That order is the
tie-break for spatial assignment: a point inside overlapping zones of two
neighbourhoods belongs to whichever neighbourhood was configured first.
Overlaps are a configuration defect and are not validated here.
"""

import logging
from typing import Iterator, Mapping

from liveability.engine.geometry import polygon_area_km2
from liveability.errors import MappingConfigError
from liveability.models.report import CatalogReport
from liveability.models.zone import CUSTOM_ZONE_ID, CatalogEntry, NeighbourhoodConfig, Zone

logger = logging.getLogger(__name__)


class ZoneCatalog:
    def __init__(self, entries: list[CatalogEntry]):
        self._entries = list(entries)
        self._index: dict[str, CatalogEntry] = {}
        for entry in self._entries:
            if entry.neighbourhood_id in self._index:
                raise MappingConfigError(f"Duplicate neighbourhood id: {entry.neighbourhood_id}")
            self._index[entry.neighbourhood_id] = entry

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, neighbourhood_id: object) -> bool:
        return neighbourhood_id in self._index

    def get(self, neighbourhood_id: str) -> CatalogEntry | None:
        return self._index.get(neighbourhood_id)

    def ids(self) -> list[str]:
        return [e.neighbourhood_id for e in self._entries]

    def zone_ids(self) -> list[str]:
        """All zone ids across the catalog, in catalog order."""
        return [z.zone_id for e in self._entries for z in e.zones]


def _custom_zone(config: NeighbourhoodConfig) -> Zone:
    return Zone(
        zone_id=CUSTOM_ZONE_ID,
        name=config.name,
        rings=config.boundary or [],
        population=config.population,
        source="Custom boundary",
    )


def build_catalog(
    configs: list[NeighbourhoodConfig],
    zones_by_id: Mapping[str, Zone],
) -> tuple[ZoneCatalog, CatalogReport]:
    """Resolve each configured neighbourhood to its zones.

    Missing zone ids are skipped; a neighbourhood resolving to no zones is
    kept with zero population and area.
    """
    entries: list[CatalogEntry] = []
    report = CatalogReport()

    for config in configs:
        if config.boundary is not None:
            zones = (_custom_zone(config),)
            requested = 1
        else:
            found = []
            for zone_id in config.zone_ids:
                zone = zones_by_id.get(zone_id)
                if zone is None:
                    logger.warning("Zone %s for %s not found in boundary source", zone_id, config.neighbourhood_id)
                    continue
                found.append(zone)
            zones = tuple(found)
            requested = len(config.zone_ids)

        entry = CatalogEntry(
            neighbourhood_id=config.neighbourhood_id,
            name=config.name,
            zones=zones,
            requested=requested,
        )
        entries.append(entry)
        logger.debug("%s: %d/%d zones", config.neighbourhood_id, entry.resolved, requested)

        report.zones_requested += requested
        report.zones_resolved += entry.resolved
        if entry.resolved == 0:
            report.empty_neighbourhoods.append(config.neighbourhood_id)

    report.neighbourhoods = len(entries)
    return ZoneCatalog(entries), report


def entry_area_km2(entry: CatalogEntry) -> float:
    """Sum of the zone polygon areas."""
    return sum(polygon_area_km2(z.rings) for z in entry.zones)
