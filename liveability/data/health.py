"""Seeded sample health indicators for runs without OCHPP data.

Generated values are flagged with ``SAMPLE_SOURCE`` so they can never be
mistaken for observed data.
"""

import logging
import random

from liveability.models.zone import NeighbourhoodConfig

logger = logging.getLogger(__name__)

SAMPLE_SOURCE = "Sample"

# Ottawa averages
BASE_VALUES = {
    "primary_care_access": 85.0,
    "diabetes_prevalence": 9.5,
    "asthma_prevalence": 14.0,
    "copd_prevalence": 4.0,
    "hypertension_prevalence": 22.0,
    "mental_health_ed_rate": 650.0,
    "premature_mortality": 180.0,
    "hospital_admission_rate": 45.0,
}

URBAN_CORE = frozenset({
    "lowertown-west", "lowertown-east", "west-centretown", "centretown", "vanier-south", "vanier-north",
})
AFFLUENT = frozenset({
    "rockcliffe-park", "glebe-dows-lake", "westboro", "old-ottawa-south", "manor-park",
})


def generate_sample_health(
    configs: list[NeighbourhoodConfig],
    seed: int,
) -> dict[str, dict[str, float]]:
    """Health indicators per neighbourhood id, reproducible for a given seed."""
    rng = random.Random(seed)

    def variation() -> float:
        return 0.8 + rng.random() * 0.5

    samples = {}
    for config in configs:
        nid = config.neighbourhood_id
        urban = nid in URBAN_CORE
        affluent = nid in AFFLUENT
        modifier = 0.85 if affluent else 1.2 if urban else 1.0
        access = 1.05 if affluent else 0.9 if urban else 1.0

        samples[nid] = {
            "primary_care_access": round(BASE_VALUES["primary_care_access"] * access, 1),
            "diabetes_prevalence": round(BASE_VALUES["diabetes_prevalence"] * modifier * variation(), 1),
            "asthma_prevalence": round(BASE_VALUES["asthma_prevalence"] * variation(), 1),
            "copd_prevalence": round(BASE_VALUES["copd_prevalence"] * modifier * variation(), 1),
            "hypertension_prevalence": round(BASE_VALUES["hypertension_prevalence"] * modifier * variation(), 1),
            "mental_health_ed_rate": float(round(BASE_VALUES["mental_health_ed_rate"] * modifier * variation())),
            "premature_mortality": float(round(BASE_VALUES["premature_mortality"] * modifier * variation())),
            "hospital_admission_rate": round(BASE_VALUES["hospital_admission_rate"] * modifier * variation(), 1),
        }

    logger.warning("Using seeded sample health data (seed=%d) for %d neighbourhoods", seed, len(samples))
    return samples
