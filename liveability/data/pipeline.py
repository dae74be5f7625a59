"""Liveability pipeline: orchestrates loaders and the engine into one output file.

Flow: mapping → zones (file or remote) → catalog → point assignment
      → proximity → aggregation → scoring → ranking → data.json
"""

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path

from liveability.config import settings as default_settings, Settings
from liveability.data.boundaries import BoundaryClient
from liveability.data.boundary_cache import BoundaryCache
from liveability.data.health import SAMPLE_SOURCE, generate_sample_health
from liveability.data.loaders import (
    MAPPING_FILE,
    ZONES_FILE,
    apply_zone_overlays,
    load_mapping,
    load_overlays,
    load_zones,
    read_csv_rows,
)
from liveability.engine.aggregator import AggregationParams, aggregate_neighbourhood
from liveability.engine.assembler import build_record, rank_records
from liveability.engine.assigner import AssignmentResult, assign_features, parse_features
from liveability.engine.catalog import ZoneCatalog, build_catalog
from liveability.engine.proximity import resolve_proximity
from liveability.engine.scoring import score_neighbourhood
from liveability.models.feature import CONTAINMENT_CATEGORIES, HOSPITALS, TRANSIT_STATIONS, PointFeature
from liveability.models.neighbourhood import NeighbourhoodRecord, OutputDocument
from liveability.models.overlay import NeighbourhoodOverlay
from liveability.models.report import AssignmentReport, RunSummary
from liveability.models.zone import NeighbourhoodConfig, Zone

logger = logging.getLogger(__name__)


def score_catalog(
    catalog: ZoneCatalog,
    assignments: dict[str, AssignmentResult],
    overlays: dict[str, NeighbourhoodOverlay],
    hospitals: list[PointFeature] | None = None,
    stations: list[PointFeature] | None = None,
    params: AggregationParams = AggregationParams(),
) -> list[NeighbourhoodRecord]:
    """Aggregate, score and rank every catalog neighbourhood."""
    records = []
    for entry in catalog:
        overlay = overlays.get(entry.neighbourhood_id)
        proximity = resolve_proximity(entry, hospitals, stations)
        aggregate = aggregate_neighbourhood(entry, assignments, overlay, proximity, params)
        scorecard = score_neighbourhood(aggregate.metrics.model_dump())
        records.append(build_record(entry, aggregate, scorecard, overlay))
    return rank_records(records)


def write_output(document: OutputDocument, path: str | Path) -> Path:
    """Serialize to camelCase JSON and atomically replace ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(document.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.write("\n")
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Wrote %d neighbourhoods to %s", len(document.neighbourhoods), path)
    return path


class LiveabilityPipeline:
    def __init__(
        self,
        data_dir: str | Path | None = None,
        settings: Settings | None = None,
        boundary_client: BoundaryClient | None = None,
    ):
        self.settings = settings or default_settings
        self.data_dir = Path(data_dir or self.settings.data_dir)
        self._boundary_client = boundary_client
        self.missing_datasets: list[str] = []

    @property
    def boundary_client(self) -> BoundaryClient:
        if self._boundary_client is None:
            self._boundary_client = BoundaryClient(
                base_url=self.settings.boundary_api_url,
                timeout=self.settings.fetch_timeout_seconds,
                concurrency=self.settings.fetch_concurrency,
                cache=BoundaryCache(self.settings.boundary_cache_path),
                max_age_days=self.settings.boundary_cache_days,
            )
        return self._boundary_client

    def params(self) -> AggregationParams:
        return AggregationParams(
            crime_years=self.settings.crime_years,
            collision_years=self.settings.collision_years,
            service_request_years=self.settings.service_request_years,
            overdose_years=self.settings.overdose_years,
        )

    async def load_zones(self, configs: list[NeighbourhoodConfig]) -> dict[str, Zone]:
        zones = load_zones(self.data_dir / ZONES_FILE)
        if zones is None:
            zone_ids = [z for c in configs if c.boundary is None for z in c.zone_ids]
            if self.settings.fetch_boundaries and zone_ids:
                zones = await self.boundary_client.fetch_zones(zone_ids)
            else:
                logger.warning("%s not found and remote fetch disabled; only literal boundaries resolve", ZONES_FILE)
                self.missing_datasets.append(ZONES_FILE)
                zones = {}
        return apply_zone_overlays(zones, self.data_dir)

    def _rows(self, category: str) -> list[dict[str, str]] | None:
        rows = read_csv_rows(self.data_dir / f"{category}.csv")
        if rows is None:
            logger.warning("No %s dataset found; its metrics will be null", category)
            self.missing_datasets.append(f"{category}.csv")
        return rows

    def assign_all(self, catalog: ZoneCatalog) -> tuple[dict[str, AssignmentResult], list[AssignmentReport]]:
        assignments: dict[str, AssignmentResult] = {}
        reports: list[AssignmentReport] = []
        for category in CONTAINMENT_CATEGORIES:
            rows = self._rows(category)
            if rows is None:
                continue
            result = assign_features(rows, category, catalog)
            assignments[category] = result
            reports.append(result.report)
        return assignments, reports

    def load_facilities(self, category: str, reports: list[AssignmentReport]) -> list[PointFeature] | None:
        rows = self._rows(category)
        if rows is None:
            return None
        features, report = parse_features(rows, category)
        reports.append(report)
        return features

    def load_overlays(self, configs: list[NeighbourhoodConfig]) -> tuple[dict[str, NeighbourhoodOverlay], bool]:
        """Neighbourhood overlays, with seeded sample health data filling gaps."""
        overlays, missing = load_overlays(self.data_dir)
        self.missing_datasets.extend(missing)

        seed = self.settings.health_sample_seed
        without_health = [c for c in configs if not overlays.get(c.neighbourhood_id, NeighbourhoodOverlay()).health]
        if seed is None or not without_health:
            return overlays, False

        samples = generate_sample_health(without_health, seed)
        for nid, health in samples.items():
            base = overlays.get(nid, NeighbourhoodOverlay())
            overlays[nid] = replace(base, health=health, health_data_source=SAMPLE_SOURCE)
        return overlays, True

    async def run(self) -> OutputDocument:
        """Run every stage and return the output document.

        Raises MappingConfigError when the mapping cannot be loaded; every
        other data problem degrades to null metrics.
        """
        self.missing_datasets = []

        # Step 1: Mapping (fatal if missing or malformed)
        configs = load_mapping(self.data_dir / MAPPING_FILE)

        # Step 2: Zone boundaries + census overlays
        zones = await self.load_zones(configs)

        # Step 3: Catalog
        catalog, catalog_report = build_catalog(configs, zones)
        logger.info(
            "Catalog: %d neighbourhoods, %d/%d zones resolved",
            catalog_report.neighbourhoods, catalog_report.zones_resolved, catalog_report.zones_requested,
        )

        # Step 4: Spatial assignment of point datasets
        assignments, reports = self.assign_all(catalog)

        # Step 5: Proximity-only datasets
        hospitals = self.load_facilities(HOSPITALS, reports)
        stations = self.load_facilities(TRANSIT_STATIONS, reports)

        # Step 6: Overlays
        overlays, health_sampled = self.load_overlays(configs)

        # Step 7: Aggregate, score, rank
        records = score_catalog(catalog, assignments, overlays, hospitals, stations, self.params())

        summary = RunSummary(
            catalog=catalog_report,
            assignments=reports,
            missing_datasets=list(self.missing_datasets),
            health_data_sampled=health_sampled,
        )
        return OutputDocument(neighbourhoods=records, summary=summary)

    async def run_and_write(self, output_path: str | Path | None = None) -> OutputDocument:
        document = await self.run()
        write_output(document, output_path or self.settings.output_path)
        return document
