"""Tabular overlays keyed by neighbourhood id."""

from dataclasses import dataclass, field

HEALTH_FIELDS = (
    "primary_care_access",  # % with a family doctor
    "diabetes_prevalence",  # % of adults
    "asthma_prevalence",
    "copd_prevalence",
    "hypertension_prevalence",
    "mental_health_ed_rate",  # ED visits per 100K
    "premature_mortality",  # per 100K
    "hospital_admission_rate",  # per 1,000
)


@dataclass(frozen=True)
class NeighbourhoodOverlay:
    """Everything known about a neighbourhood that is not spatially derived.

    Fields stay ``None`` when the overlay file (or the row) is absent.
    """

    area: str = ""
    image: str = ""
    avg_rent: float | None = None
    avg_home_price: float | None = None
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()
    walk_score: float | None = None
    transit_score: float | None = None
    bike_score: float | None = None
    commute_to_downtown: float | None = None
    commute_by_transit: float | None = None
    nei_score: float | None = None
    overdose_ed_visits: float | None = None
    health: dict[str, float | None] = field(default_factory=dict)
    health_data_source: str | None = None
