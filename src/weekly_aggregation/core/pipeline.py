"""
Weekly aggregation pipeline.

Resolves the target week, runs every source adapter, merges and
deduplicates the results, separates prereleases and hands the collections
to an optional summarizer. Backfill repeats this for past weeks.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import httpx

from weekly_aggregation.config import Config, get_config, load_news_sources, load_repositories
from weekly_aggregation.core.base import SourceStats
from weekly_aggregation.core.deduplicator import classify_releases, merge_news
from weekly_aggregation.core.factories import (
    create_discussion_searcher,
    create_feed_fetcher,
    create_http_client,
    create_release_fetcher,
    create_scraper,
)
from weekly_aggregation.core.releases import count_by_category
from weekly_aggregation.core.weeks import resolve_window, week_window, weeks_ago_window
from weekly_aggregation.exceptions import ConfigurationError, PipelineCancelled, SourceError
from weekly_aggregation.logger import get_logger
from weekly_aggregation.models import (
    NewsItem,
    NewsSourceConfig,
    Release,
    RepositoryConfig,
    TimeWindow,
)
from weekly_aggregation.storage import WeekStore

logger = get_logger(__name__)

#: summarize(stable_releases, news_items, window) -> document text
Summarizer = Callable[[list[Release], list[NewsItem], TimeWindow], str]


@dataclass
class WeekResult:
    """Outcome of one week's run."""

    window: TimeWindow
    releases: list[Release] = field(default_factory=list)
    stable_releases: list[Release] = field(default_factory=list)
    prereleases: list[Release] = field(default_factory=list)
    news_items: list[NewsItem] = field(default_factory=list)
    content: Optional[str] = None
    skipped: bool = False
    releases_file: Optional[Path] = None
    news_file: Optional[Path] = None

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to summarize."""
        return not self.stable_releases and not self.news_items


class AggregationPipeline:
    """Runs the adapters for one or more weeks."""

    def __init__(
        self,
        repositories: RepositoryConfig,
        news_sources: NewsSourceConfig,
        config: Optional[Config] = None,
        client: Optional[httpx.Client] = None,
        summarize: Optional[Summarizer] = None,
        cancel_event: Optional[threading.Event] = None,
        store: Optional[WeekStore] = None,
        require_credentials: bool = True,
    ):
        """Initialize the pipeline.

        Args:
            repositories: Tracked repositories
            news_sources: Feed, scrape and discussion sources
            config: Configuration, defaults to the global instance
            client: Shared HTTP client; one is created (and owned) if omitted
            summarize: Optional downstream summarizer
            cancel_event: Cancellation signal shared with every adapter
            store: Artifact store, defaults to ``pipeline.data_dir``
            require_credentials: Require an API token when repositories are
                configured; off when only existing files are re-loaded

        Raises:
            ConfigurationError: If no source is configured or a required
                credential is missing
        """
        self.config = config or get_config()
        self.repositories = repositories
        self.news_sources = news_sources
        self.summarize = summarize
        self.cancel_event = cancel_event or threading.Event()
        self.store = store or WeekStore(self.config.pipeline.data_dir)

        self._validate(require_credentials)

        self._owns_client = client is None
        self.client = client or create_http_client(self.config)

        self.release_fetcher = create_release_fetcher(self.client, self.config, self.cancel_event)
        self.feed_fetcher = create_feed_fetcher(self.client, self.config, self.cancel_event)
        self.scraper = create_scraper(self.client, self.config, self.cancel_event)
        self.discussion = create_discussion_searcher(self.client, self.config, self.cancel_event)
        self.adapters = (self.release_fetcher, self.feed_fetcher, self.scraper, self.discussion)

    @classmethod
    def from_files(
        cls,
        config: Optional[Config] = None,
        repositories_file: Optional[str] = None,
        news_sources_file: Optional[str] = None,
        **kwargs,
    ) -> "AggregationPipeline":
        """Build a pipeline from the source-list YAML files."""
        config = config or get_config()
        repositories = load_repositories(repositories_file or config.repositories_file)
        news_sources = load_news_sources(news_sources_file or config.news_sources_file)
        return cls(repositories, news_sources, config=config, **kwargs)

    def _validate(self, require_credentials: bool) -> None:
        repo_count = len(self.repositories.repositories)

        if repo_count == 0 and self.news_sources.source_count == 0:
            raise ConfigurationError("No sources configured")

        if require_credentials and repo_count and not self.config.github.token:
            raise ConfigurationError(
                "GITHUB_TOKEN environment variable is required for crawling releases"
            )

    def cancel(self) -> None:
        """Signal every in-flight adapter to stop."""
        self.cancel_event.set()

    def close(self) -> None:
        """Close the HTTP client if the pipeline created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "AggregationPipeline":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # -- collection -------------------------------------------------------

    def _fetch_releases(self, window: TimeWindow) -> list[Release]:
        repositories = self.repositories.repositories
        if not repositories:
            return []
        logger.info(f"Fetching releases from {len(repositories)} repositories...")
        return self.release_fetcher.fetch_all(repositories, window)

    def _fetch_feeds(self, window: TimeWindow) -> list[NewsItem]:
        feeds = self.news_sources.rss_feeds
        if not feeds:
            return []
        logger.info(f"Fetching {len(feeds)} RSS feeds...")
        items = self.feed_fetcher.fetch_all(feeds, window)
        logger.info(f"Found {len(items)} RSS items")
        return items

    def _fetch_scraped(self, window: TimeWindow) -> list[NewsItem]:
        sources = self.news_sources.scrape_sources
        if not sources:
            return []
        logger.info(f"Scraping {len(sources)} sources...")
        return self.scraper.fetch_all(sources, window)

    def _fetch_discussion(self, window: TimeWindow) -> list[NewsItem]:
        hackernews = self.news_sources.hackernews
        if not hackernews.enabled:
            return []
        logger.info("Searching Hacker News...")
        items = self.discussion.search(hackernews.keywords, window)
        logger.info(f"Found {len(items)} Hacker News items")
        return items

    def collect(self, window: TimeWindow) -> tuple[list[Release], list[NewsItem]]:
        """Run every adapter for a window.

        News is merged in the fixed order feeds, scrape, discussion, also
        when the source groups run in parallel.

        Returns:
            (releases, deduplicated news items)
        """
        steps = (
            self._fetch_releases,
            self._fetch_feeds,
            self._fetch_scraped,
            self._fetch_discussion,
        )

        for adapter in self.adapters:
            adapter.stats = SourceStats()

        if self.config.pipeline.parallel_sources:
            results = self._collect_parallel(steps, window)
        else:
            results = [step(window) for step in steps]

        releases, feed_items, scraped_items, discussion_items = results
        self._log_stats()

        for category, count in count_by_category(releases).items():
            logger.info(f"  - {category}: {count} releases")

        news_items = merge_news([feed_items, scraped_items, discussion_items])
        logger.info(f"Total: {len(releases)} releases, {len(news_items)} news items")
        return releases, news_items

    def _collect_parallel(self, steps, window: TimeWindow) -> list:
        """Run the steps concurrently, returning their results in step order.

        An interrupt or unexpected error sets the cancellation event before
        the executor joins its workers, so in-flight adapters stop early.
        A SourceError leaves the event alone; it only fails this week.
        """
        results = [None] * len(steps)

        with ThreadPoolExecutor(max_workers=len(steps)) as executor:
            futures = {executor.submit(step, window): i for i, step in enumerate(steps)}
            try:
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            except SourceError:
                raise
            except BaseException:
                self.cancel_event.set()
                raise

        return results

    def _log_stats(self) -> None:
        for adapter in self.adapters:
            stats = adapter.stats
            if not stats.total_sources:
                continue
            logger.info(
                f"{adapter.source_name}: {stats.successful}/{stats.total_sources} calls ok "
                f"({stats.success_rate:.0%}), {stats.total_items} items"
            )
            if stats.errors_by_type:
                logger.warning(f"{adapter.source_name} errors: {stats.errors_by_type}")

    # -- weekly runs ------------------------------------------------------

    def run_week(self, window: TimeWindow, load_existing: bool = False) -> WeekResult:
        """Aggregate one week.

        Args:
            window: Target week
            load_existing: Re-load the week's data files instead of crawling

        Returns:
            WeekResult; ``skipped`` is set when there was nothing to summarize
        """
        logger.info("=" * 60)
        logger.info(f"Generating {window}")
        logger.info("=" * 60)

        result = WeekResult(window=window)

        if load_existing:
            releases = self.store.load_releases(window)
            if releases is None:
                logger.info(f"No existing data for week {window.iso_week}, skipping")
                result.skipped = True
                return result
            news_items = self.store.load_news(window) or []
            logger.info(f"Loaded {len(releases)} releases and {len(news_items)} news items")
        else:
            releases, news_items = self.collect(window)
            result.releases_file = self.store.save_releases(window, releases)
            result.news_file = self.store.save_news(window, news_items)

        stable, prereleases = classify_releases(releases)
        result.releases = releases
        result.stable_releases = stable
        result.prereleases = prereleases
        result.news_items = news_items

        if result.is_empty:
            logger.info(f"No items for week {window.iso_week}, skipping summarization")
            result.skipped = True
            return result

        if self.summarize is not None:
            result.content = self.summarize(stable, news_items, window)

        return result

    def run(
        self,
        weeks_ago: Optional[int] = None,
        week: Optional[int] = None,
        year: Optional[int] = None,
        load_existing: bool = False,
        now: Optional[datetime] = None,
    ) -> WeekResult:
        """Aggregate a single week given as "N weeks ago" or an ISO week.

        With neither given, the current week is used.
        """
        window = resolve_window(
            weeks_ago=weeks_ago,
            week=week,
            year=year,
            tz=self.config.pipeline.tzinfo,
            now=now,
        )
        return self.run_week(window, load_existing=load_existing)

    def backfill_windows(
        self,
        weeks: Optional[int] = None,
        week: Optional[int] = None,
        year: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[TimeWindow]:
        """Windows a backfill covers, oldest first.

        Raises:
            ConfigurationError: If ``weeks`` is outside the allowed range
        """
        tz = self.config.pipeline.tzinfo

        if week is not None:
            if year is None:
                return [resolve_window(week=week, tz=tz, now=now)]
            return [week_window(year, week, tz)]

        weeks = 3 if weeks is None else weeks
        max_weeks = self.config.pipeline.max_backfill_weeks
        if not 1 <= weeks <= max_weeks:
            raise ConfigurationError(f"Weeks must be between 1 and {max_weeks}")

        return [weeks_ago_window(i, now=now, tz=tz) for i in range(weeks, 0, -1)]

    def run_backfill(
        self,
        weeks: Optional[int] = None,
        week: Optional[int] = None,
        year: Optional[int] = None,
        load_existing: bool = False,
        now: Optional[datetime] = None,
    ) -> list[WeekResult]:
        """Re-run the pipeline for past weeks.

        Weeks are processed oldest first with ``week_delay_seconds`` between
        them. A failing week is logged and skipped.

        Raises:
            ConfigurationError: On invalid week parameters
            PipelineCancelled: If the run is cancelled
        """
        windows = self.backfill_windows(weeks=weeks, week=week, year=year, now=now)
        delay = self.config.pipeline.week_delay_seconds
        results = []

        for i, window in enumerate(windows):
            if i and self.cancel_event.wait(delay):
                raise PipelineCancelled("Backfill cancelled")

            try:
                results.append(self.run_week(window, load_existing=load_existing))
            except SourceError as e:
                logger.error(f"Error generating week {window.iso_week}: {e}")

        logger.info("=" * 60)
        logger.info("Backfill complete!")
        logger.info("=" * 60)
        return results
