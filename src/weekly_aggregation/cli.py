"""
Command line entry points.

    weekly-aggregation crawl --weeks-ago 1
    weekly-aggregation backfill --weeks 3
    weekly-aggregation backfill --week 5 --year 2026 --skip-crawl
"""

import argparse
import sys
from typing import Optional

from weekly_aggregation.config import reload_config
from weekly_aggregation.core.pipeline import AggregationPipeline, WeekResult
from weekly_aggregation.exceptions import ConfigurationError, PipelineCancelled
from weekly_aggregation.logger import get_logger, setup_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="weekly-aggregation",
        description="Aggregate weekly releases and news",
    )
    parser.add_argument("--config", help="Path to config YAML (default: config/config.yaml)")
    parser.add_argument("--repositories", help="Path to repositories YAML")
    parser.add_argument("--news-sources", help="Path to news sources YAML")
    parser.add_argument("--data-dir", help="Output directory for data files")

    subparsers = parser.add_subparsers(dest="command", required=True)

    crawl = subparsers.add_parser("crawl", help="Aggregate a single week")
    crawl.add_argument("--weeks-ago", type=int, default=None, help="Weeks before the current week")
    crawl.add_argument("--week", type=int, default=None, help="ISO week number")
    crawl.add_argument("--year", type=int, default=None, help="ISO year for --week")

    backfill = subparsers.add_parser("backfill", help="Aggregate past weeks")
    backfill.add_argument("--weeks", type=int, default=3, help="Number of past weeks")
    backfill.add_argument("--week", type=int, default=None, help="A specific ISO week (overrides --weeks)")
    backfill.add_argument("--year", type=int, default=None, help="ISO year for --week")
    backfill.add_argument(
        "--skip-crawl", action="store_true", help="Use existing data files instead of crawling"
    )

    return parser


def _report(result: WeekResult) -> None:
    window = result.window
    if result.skipped:
        logger.info(f"Week {window.iso_week} of {window.iso_year}: skipped")
        return
    logger.info(
        f"Week {window.iso_week} of {window.iso_year}: "
        f"{len(result.stable_releases)} stable releases, "
        f"{len(result.prereleases)} pre-releases, "
        f"{len(result.news_items)} news items"
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Run the command line interface.

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    try:
        config = reload_config(args.config)
        if args.data_dir:
            config.pipeline.data_dir = args.data_dir

        setup_logger()

        skip_crawl = getattr(args, "skip_crawl", False)

        pipeline = AggregationPipeline.from_files(
            config=config,
            repositories_file=args.repositories,
            news_sources_file=args.news_sources,
            require_credentials=not skip_crawl,
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    with pipeline:
        try:
            if args.command == "crawl":
                results = [pipeline.run(weeks_ago=args.weeks_ago, week=args.week, year=args.year)]
            else:
                results = pipeline.run_backfill(
                    weeks=args.weeks,
                    week=args.week,
                    year=args.year,
                    load_existing=skip_crawl,
                )
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return 2
        except KeyboardInterrupt:
            pipeline.cancel()
            logger.warning("Interrupted, no output for the in-flight week")
            return 130
        except PipelineCancelled as e:
            logger.warning(str(e))
            return 130

    for result in results:
        _report(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
