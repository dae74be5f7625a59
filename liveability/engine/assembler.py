"""Final record assembly and city-wide ranking."""

from liveability.engine.aggregator import AggregateResult
from liveability.engine.scoring import CATEGORY_WEIGHTS, ScoreCard
from liveability.models.neighbourhood import CategoryScores, NeighbourhoodRecord, ScoreWeights
from liveability.models.overlay import NeighbourhoodOverlay
from liveability.models.zone import CatalogEntry


def build_record(
    entry: CatalogEntry,
    aggregate: AggregateResult,
    scorecard: ScoreCard,
    overlay: NeighbourhoodOverlay | None = None,
) -> NeighbourhoodRecord:
    overlay = overlay or NeighbourhoodOverlay()
    return NeighbourhoodRecord(
        id=entry.neighbourhood_id,
        name=entry.name,
        area=overlay.area,
        image=overlay.image,
        overall_score=scorecard.overall,
        category_scores=CategoryScores(**scorecard.category_scores),
        score_weights=ScoreWeights(**CATEGORY_WEIGHTS),
        details=aggregate.details,
        boundaries=aggregate.boundaries,
        pros=list(overlay.pros),
        cons=list(overlay.cons),
        **aggregate.metrics.model_dump(),
    )


def rank_records(records: list[NeighbourhoodRecord]) -> list[NeighbourhoodRecord]:
    """Sort by descending overall score and assign 1-based ranks.

    The sort is stable, so ties keep their incoming (configuration) order.
    Neighbourhoods without an overall score rank last.
    """
    ordered = sorted(
        records,
        key=lambda r: (r.overall_score is None, -(r.overall_score or 0.0)),
    )
    return [r.model_copy(update={"rank": i}) for i, r in enumerate(ordered, start=1)]
