"""Canonical fixtures shared across engine and data tests.

Fixture city: two adjacent 0.01° square zones near downtown Ottawa.
  Zone 901 (Alpha): lon -75.70..-75.69, lat 45.40..45.41, population 5,000
  Zone 902 (Beta):  lon -75.69..-75.68, lat 45.40..45.41, population 3,000
"""

import pytest

from liveability.engine.catalog import build_catalog
from liveability.models.zone import NeighbourhoodConfig, Zone, ZoneAttributes


def square(lon: float, lat: float, size: float = 0.01) -> list[tuple[float, float]]:
    """Closed counter-clockwise square ring with its south-west corner at (lon, lat)."""
    return [(lon, lat), (lon + size, lat), (lon + size, lat + size), (lon, lat + size), (lon, lat)]


@pytest.fixture
def alpha_zone() -> Zone:
    return Zone(
        zone_id="901",
        name="Alpha",
        rings=[square(-75.70, 45.40)],
        population=5000,
        attributes=ZoneAttributes(median_income=100_000, pct_children=20, households=2000),
    )


@pytest.fixture
def beta_zone() -> Zone:
    return Zone(
        zone_id="902",
        name="Beta",
        rings=[square(-75.69, 45.40)],
        population=3000,
        attributes=ZoneAttributes(median_income=60_000, pct_children=10, households=1500),
    )


@pytest.fixture
def zones_by_id(alpha_zone, beta_zone) -> dict[str, Zone]:
    return {alpha_zone.zone_id: alpha_zone, beta_zone.zone_id: beta_zone}


@pytest.fixture
def configs() -> list[NeighbourhoodConfig]:
    return [
        NeighbourhoodConfig(neighbourhood_id="alpha", name="Alpha", zone_ids=("901",)),
        NeighbourhoodConfig(neighbourhood_id="beta", name="Beta", zone_ids=("902",)),
    ]


@pytest.fixture
def catalog(configs, zones_by_id):
    catalog, _ = build_catalog(configs, zones_by_id)
    return catalog


def point_row(lat: float, lon: float, **attrs: str) -> dict[str, str]:
    return {"LATITUDE": str(lat), "LONGITUDE": str(lon), **attrs}
