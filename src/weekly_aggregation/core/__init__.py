"""Core business logic modules for weekly aggregation.

External code (CLI, scripts) should go through ``AggregationPipeline``;
the adapters and pure helpers are exported for tests and custom wiring.

    from weekly_aggregation.core import AggregationPipeline

    with AggregationPipeline.from_files() as pipeline:
        result = pipeline.run(weeks_ago=1)
"""

from weekly_aggregation.core.base import SourceStats
from weekly_aggregation.core.deduplicator import (
    classify_releases,
    deduplicate_news,
    is_prerelease,
    merge_news,
)
from weekly_aggregation.core.discussion import DiscussionSearcher
from weekly_aggregation.core.feeds import FeedFetcher
from weekly_aggregation.core.pipeline import AggregationPipeline, Summarizer, WeekResult
from weekly_aggregation.core.releases import ReleaseFetcher
from weekly_aggregation.core.scraper import NewsScraper
from weekly_aggregation.core.weeks import resolve_window, week_window, weeks_ago_window

__all__ = [
    # Orchestration
    "AggregationPipeline",
    "Summarizer",
    "WeekResult",
    # Adapters
    "ReleaseFetcher",
    "FeedFetcher",
    "NewsScraper",
    "DiscussionSearcher",
    "SourceStats",
    # Week math
    "week_window",
    "weeks_ago_window",
    "resolve_window",
    # Merging and classification
    "merge_news",
    "deduplicate_news",
    "classify_releases",
    "is_prerelease",
]
