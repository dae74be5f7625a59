"""CLI for building the neighbourhood liveability data file.

Usage:
    python -m liveability.data.cli --data-dir data --output data/processed/data.json
    python -m liveability.data.cli --fetch-boundaries --health-sample-seed 42
"""

import argparse
import asyncio
import logging
import sys

from liveability.config import settings
from liveability.data.pipeline import LiveabilityPipeline
from liveability.errors import MappingConfigError
from liveability.models.neighbourhood import OutputDocument

logger = logging.getLogger(__name__)


def print_summary(document: OutputDocument) -> None:
    summary = document.summary
    print(f"\n{'=' * 60}")
    print(f"  Liveability Build")
    print(f"{'=' * 60}")
    print(f"  Neighbourhoods:   {summary.catalog.neighbourhoods}")
    print(f"  Zones resolved:   {summary.catalog.zones_resolved}/{summary.catalog.zones_requested}")
    if summary.catalog.empty_neighbourhoods:
        print(f"  Without zones:    {', '.join(summary.catalog.empty_neighbourhoods)}")
    if summary.health_data_sampled:
        print("  Health data:      SAMPLE (seeded)")
    print()

    for report in summary.assignments:
        print(
            f"  [{report.category:>20}]  {report.assigned:>6} assigned  "
            f"{report.unassigned:>6} outside  {report.rejected:>5} rejected"
        )
    if summary.missing_datasets:
        print(f"\n  Missing: {', '.join(summary.missing_datasets)}")
    print()

    for record in document.neighbourhoods[:10]:
        score = f"{record.overall_score:.1f}" if record.overall_score is not None else "N/A"
        print(f"  {record.rank:>3}. {record.name:<35} {score:>6}")
    print()


async def main() -> None:
    parser = argparse.ArgumentParser(description="Neighbourhood liveability data builder")
    parser.add_argument("--data-dir", default=settings.data_dir, help=f"Input directory (default: {settings.data_dir})")
    parser.add_argument("--output", default=settings.output_path, help="Output JSON path")
    parser.add_argument("--fetch-boundaries", action="store_true", help="Fetch zones from ArcGIS when zones.json is absent")
    parser.add_argument("--health-sample-seed", type=int, default=None, help="Seed for sample health data")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    parser.add_argument("--quiet", action="store_true", help="Do not print the summary")

    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    overrides = {}
    if args.fetch_boundaries:
        overrides["fetch_boundaries"] = True
    if args.health_sample_seed is not None:
        overrides["health_sample_seed"] = args.health_sample_seed
    run_settings = settings.model_copy(update=overrides)

    pipeline = LiveabilityPipeline(data_dir=args.data_dir, settings=run_settings)
    try:
        document = await pipeline.run_and_write(args.output)
    except MappingConfigError as e:
        logger.error("Cannot build liveability data: %s", e)
        sys.exit(1)

    if not args.quiet:
        print_summary(document)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
