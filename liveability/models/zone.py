"""Zone and neighbourhood configuration types."""

from dataclasses import dataclass, field, fields

# A ring is a closed, ordered sequence of (longitude, latitude) vertices.
Point = tuple[float, float]
Ring = list[Point]
Rings = list[Ring]

CUSTOM_ZONE_ID = "custom"


@dataclass(frozen=True)
class ZoneAttributes:
    """Zone-local census attributes. Percentages are 0-100."""

    median_income: float | None = None  # median after-tax household income
    households: float | None = None
    # Age (2021 Census)
    pct_children: float | None = None  # 0-14
    pct_youth: float | None = None  # 15-24
    pct_adults: float | None = None  # 25-64
    pct_young_professionals: float | None = None  # 25-44
    pct_seniors: float | None = None  # 65+
    avg_age: float | None = None
    # Education (ages 25-64)
    pct_no_high_school: float | None = None
    pct_post_secondary: float | None = None
    pct_bachelors: float | None = None
    # Households / labour
    unemployment_rate: float | None = None
    pct_renters: float | None = None
    pct_immigrants: float | None = None
    pct_racialized: float | None = None
    pct_commute_car: float | None = None
    pct_commute_transit: float | None = None
    pct_work_from_home: float | None = None
    # Environment
    tree_canopy_pct: float | None = None

    @classmethod
    def names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def merged(self, other: "ZoneAttributes") -> "ZoneAttributes":
        """Return a copy where every known value of ``other`` wins."""
        values = {
            name: getattr(other, name) if getattr(other, name) is not None else getattr(self, name)
            for name in self.names()
        }
        return ZoneAttributes(**values)


@dataclass(frozen=True)
class Zone:
    zone_id: str
    name: str
    rings: Rings
    population: int | None = None
    attributes: ZoneAttributes = field(default_factory=ZoneAttributes)
    data_year: str = ""
    source: str = ""


@dataclass(frozen=True)
class NeighbourhoodConfig:
    """One entry of the static neighbourhood -> zone mapping."""

    neighbourhood_id: str
    name: str
    zone_ids: tuple[str, ...] = ()
    boundary: Rings | None = None  # literal override, replaces zone lookup
    population: int | None = None  # only used with a literal boundary


@dataclass(frozen=True)
class CatalogEntry:
    neighbourhood_id: str
    name: str
    zones: tuple[Zone, ...]
    requested: int  # zone ids named in the mapping

    @property
    def resolved(self) -> int:
        return len(self.zones)

    @property
    def population(self) -> int:
        return sum(z.population or 0 for z in self.zones)
