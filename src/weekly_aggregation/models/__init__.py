"""Data models for weekly aggregation."""

from weekly_aggregation.models.news import NewsItem
from weekly_aggregation.models.release import Release
from weekly_aggregation.models.sources import (
    HackerNewsSource,
    NewsSourceConfig,
    Repository,
    RepositoryConfig,
    RSSSource,
    ScrapeSource,
)
from weekly_aggregation.models.window import TimeWindow

__all__ = [
    "Release",
    "NewsItem",
    "TimeWindow",
    "Repository",
    "RepositoryConfig",
    "RSSSource",
    "ScrapeSource",
    "HackerNewsSource",
    "NewsSourceConfig",
]
