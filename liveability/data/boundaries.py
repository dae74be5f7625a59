"""ArcGIS REST client for zone boundaries and population estimates."""

import asyncio
import logging
from dataclasses import replace

import httpx

from liveability.config import settings
from liveability.data.boundary_cache import BoundaryCache
from liveability.data.loaders import zone_from_dict, zone_to_dict
from liveability.models.zone import Zone

logger = logging.getLogger(__name__)

ZONE_ID_FIELD = "ONS_ID"
NAME_FIELD = "NAME"
POPULATION_FIELD = "POPEST"


class BoundaryClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        concurrency: int | None = None,
        cache: BoundaryCache | None = None,
        max_age_days: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.boundary_api_url
        self.timeout = timeout or settings.fetch_timeout_seconds
        self.concurrency = concurrency or settings.fetch_concurrency
        self.cache = cache
        self.max_age_days = settings.boundary_cache_days if max_age_days is None else max_age_days
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _query(self, params: dict) -> dict | None:
        try:
            async with self._client() as client:
                resp = await client.get(self.base_url, params=params)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Boundary query %s failed: %s", params.get("where"), e)
            return None

    async def fetch_populations(self) -> dict[str, int]:
        """Population estimate per zone id; empty on failure."""
        data = await self._query({
            "where": "1=1",
            "outFields": f"{ZONE_ID_FIELD},{NAME_FIELD},{POPULATION_FIELD}",
            "returnGeometry": "false",
            "f": "json",
        })
        if not data:
            return {}

        populations = {}
        for feature in data.get("features", []):
            attrs = feature.get("attributes") or {}
            zone_id = attrs.get(ZONE_ID_FIELD)
            if zone_id is None:
                continue
            populations[str(zone_id)] = int(attrs.get(POPULATION_FIELD) or 0)
        logger.info("Fetched population for %d zones", len(populations))
        return populations

    async def fetch_boundary(self, zone_id: str) -> Zone | None:
        """Rings and name of one zone, in WGS84; None if unavailable."""
        data = await self._query({
            "where": f"{ZONE_ID_FIELD}={zone_id}",
            "outFields": f"{ZONE_ID_FIELD},{NAME_FIELD}",
            "returnGeometry": "true",
            "outSR": "4326",
            "f": "json",
        })
        if not data or not data.get("features"):
            logger.warning("No boundary returned for zone %s", zone_id)
            return None

        feature = data["features"][0]
        rings = (feature.get("geometry") or {}).get("rings")
        if not rings:
            logger.warning("Boundary for zone %s has no rings", zone_id)
            return None
        return zone_from_dict({
            "zoneId": zone_id,
            "name": (feature.get("attributes") or {}).get(NAME_FIELD, ""),
            "rings": rings,
            "source": "City of Ottawa Neighbourhoods",
        })

    async def fetch_zones(self, zone_ids: list[str]) -> dict[str, Zone]:
        """Fetch every zone concurrently, serving fresh cache entries first.

        Zones that cannot be fetched are left out of the result.
        """
        zones: dict[str, Zone] = {}
        pending = []
        for zone_id in dict.fromkeys(zone_ids):
            cached = self.cache.get(zone_id, self.max_age_days) if self.cache else None
            zone = zone_from_dict(cached) if cached else None
            if zone is not None:
                zones[zone_id] = zone
            else:
                pending.append(zone_id)

        if pending:
            logger.info("Fetching %d zone boundaries (%d cached)", len(pending), len(zones))
            populations = await self.fetch_populations()
            semaphore = asyncio.Semaphore(self.concurrency)

            async def bounded(zone_id: str) -> Zone | None:
                async with semaphore:
                    return await self.fetch_boundary(zone_id)

            fetched = await asyncio.gather(*(bounded(z) for z in pending))
            for zone_id, zone in zip(pending, fetched):
                if zone is None:
                    continue
                if zone_id not in populations:
                    # Not cached, so the next run retries the population
                    zones[zone_id] = zone
                    continue
                zone = zones[zone_id] = replace(zone, population=populations[zone_id])
                if self.cache:
                    self.cache.set(zone_id, zone_to_dict(zone))

        # Preserve request order
        return {z: zones[z] for z in zone_ids if z in zones}
