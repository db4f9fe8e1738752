"""Unit tests for the aggregation pipeline."""

import threading
from datetime import datetime, timezone

import httpx
import pytest

from weekly_aggregation.config import Config, DiscussionConfig, GitHubConfig, PipelineConfig
from weekly_aggregation.core.pipeline import AggregationPipeline
from weekly_aggregation.core.weeks import week_window
from weekly_aggregation.exceptions import (
    ConfigurationError,
    PipelineCancelled,
    SourceUnavailableError,
)
from weekly_aggregation.models import (
    HackerNewsSource,
    NewsItem,
    NewsSourceConfig,
    Release,
    Repository,
    RepositoryConfig,
    RSSSource,
)
from weekly_aggregation.storage import WeekStore

WINDOW = week_window(2026, 2)

# Sunday 2026-10-18, ISO week 42
SUNDAY = datetime(2026, 10, 18, 15, 30, tzinfo=timezone.utc)

FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Cloud News</title>
  <item>
    <title>Kubernetes 1.35 released</title>
    <link>https://news.example.com/k8s-135</link>
    <pubDate>Tue, 06 Jan 2026 10:00:00 GMT</pubDate>
  </item>
  <item>
    <title>Terraform adds stacks</title>
    <link>https://news.example.com/terraform-stacks</link>
    <pubDate>Wed, 07 Jan 2026 12:00:00 GMT</pubDate>
  </item>
</channel></rss>
"""


def release_json(tag, published_at="2026-01-06T10:00:00Z"):
    return {
        "tag_name": tag,
        "name": tag,
        "html_url": f"https://github.com/org/alpha/releases/tag/{tag}",
        "published_at": published_at,
        "draft": False,
        "prerelease": False,
    }


DEFAULT_RELEASES = {
    "alpha": [
        release_json("v1.3.0", "2026-01-08T09:00:00Z"),
        release_json("v1.2.0", "2026-01-06T10:00:00Z"),
        release_json("v1.1.0", "2025-12-15T10:00:00Z"),
    ],
    "beta": [],
}


def make_handler(releases=None, hn_hits=None, requests=None):
    releases = DEFAULT_RELEASES if releases is None else releases

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        host = request.url.host
        if host == "api.github.com":
            repo = request.url.path.split("/")[3]
            return httpx.Response(200, json=releases.get(repo, []))
        if host == "news.example.com":
            return httpx.Response(200, text=FEED_XML)
        if host == "hn.algolia.com":
            return httpx.Response(200, json={"hits": hn_hits or []})
        return httpx.Response(404)

    return handler


@pytest.fixture
def config(tmp_path):
    """Configuration without delays, writing to a temporary directory."""
    return Config(
        github=GitHubConfig(token="test-token", request_delay_seconds=0),
        discussion=DiscussionConfig(request_delay_seconds=0, combined_queries=[]),
        pipeline=PipelineConfig(data_dir=str(tmp_path / "data"), week_delay_seconds=0),
    )


@pytest.fixture
def repositories():
    """Two tracked repositories."""
    return RepositoryConfig(
        repositories=[
            Repository(owner="org", repo="alpha", category="tools"),
            Repository(owner="org", repo="beta", category="tools"),
        ]
    )


@pytest.fixture
def news_sources():
    """One feed."""
    return NewsSourceConfig(
        rss_feeds=[RSSSource(name="Cloud News", url="https://news.example.com/feed.xml")]
    )


def make_pipeline(config, repositories, news_sources, handler=None, **kwargs):
    client = httpx.Client(transport=httpx.MockTransport(handler or make_handler()))
    return AggregationPipeline(repositories, news_sources, config=config, client=client, **kwargs)


class TestValidation:
    """Tests for fatal configuration checks."""

    def test_no_sources(self, config):
        """Test that a run without any source is rejected."""
        with pytest.raises(ConfigurationError):
            make_pipeline(config, RepositoryConfig(), NewsSourceConfig())

    def test_missing_token(self, config, repositories, news_sources):
        """Test that repositories require an API token."""
        config.github.token = None

        with pytest.raises(ConfigurationError):
            make_pipeline(config, repositories, news_sources)

    def test_token_not_required_for_news_only(self, config, news_sources):
        """Test that news-only runs need no token."""
        config.github.token = None

        pipeline = make_pipeline(config, RepositoryConfig(), news_sources)

        assert pipeline.run_week(WINDOW).news_items

    def test_token_not_required_when_reloading(self, config, repositories, news_sources):
        """Test that re-loading existing files does not need a token."""
        config.github.token = None

        make_pipeline(config, repositories, news_sources, require_credentials=False)

    def test_from_files(self, tmp_path, config):
        """Test building a pipeline from the source-list files."""
        repos = tmp_path / "repositories.yaml"
        repos.write_text(
            "repositories:\n  - owner: org\n    repo: alpha\n    category: tools\n",
            encoding="utf-8",
        )
        sources = tmp_path / "news-sources.yaml"
        sources.write_text("hackernews:\n  enabled: true\n  keywords: [kubernetes]\n", encoding="utf-8")

        pipeline = AggregationPipeline.from_files(
            config=config, repositories_file=str(repos), news_sources_file=str(sources)
        )
        pipeline.close()

        assert pipeline.repositories.repositories[0].repo == "alpha"
        assert pipeline.news_sources.hackernews.keywords == ["kubernetes"]

    def test_from_files_missing(self, tmp_path, config):
        """Test that a missing source file is fatal."""
        with pytest.raises(ConfigurationError):
            AggregationPipeline.from_files(
                config=config,
                repositories_file=str(tmp_path / "missing.yaml"),
                news_sources_file=str(tmp_path / "missing.yaml"),
            )


class TestRunWeek:
    """Tests for single-week runs."""

    def test_end_to_end(self, config, repositories, news_sources):
        """Test releases and news for one week with a summarizer."""
        calls = []

        def summarize(stable, news, window):
            calls.append((stable, news, window))
            return "weekly digest"

        pipeline = make_pipeline(config, repositories, news_sources, summarize=summarize)

        result = pipeline.run(week=2, year=2026)

        assert result.window == WINDOW
        assert [r.tag_name for r in result.stable_releases] == ["v1.3.0", "v1.2.0"]
        assert result.prereleases == []
        assert [i.title for i in result.news_items] == [
            "Kubernetes 1.35 released",
            "Terraform adds stacks",
        ]
        assert result.content == "weekly digest"
        assert result.skipped is False
        assert calls == [(result.stable_releases, result.news_items, WINDOW)]

    def test_artifacts_written(self, config, repositories, news_sources):
        """Test that both week files are written and load back."""
        pipeline = make_pipeline(config, repositories, news_sources)

        result = pipeline.run_week(WINDOW)

        assert result.releases_file.name == "releases-2026-week-02.json"
        assert result.news_file.name == "news-2026-week-02.json"
        assert pipeline.store.load_releases(WINDOW) == result.releases
        assert pipeline.store.load_news(WINDOW) == result.news_items

    def test_prereleases_separated(self, config, repositories, news_sources):
        """Test that prerelease tags are split from stable ones."""
        releases = {
            "alpha": [release_json("v2.0.0-rc.1"), release_json("v1.3.0")],
            "beta": [release_json("v0.9.0-beta.2")],
        }
        pipeline = make_pipeline(
            config, repositories, news_sources, handler=make_handler(releases=releases)
        )

        result = pipeline.run_week(WINDOW)

        assert [r.tag_name for r in result.stable_releases] == ["v1.3.0"]
        assert [r.tag_name for r in result.prereleases] == ["v2.0.0-rc.1", "v0.9.0-beta.2"]
        assert len(result.releases) == 3

    def test_empty_week_skipped(self, config, repositories):
        """Test that a week without stable releases or news skips summarization."""
        summarize_calls = []
        releases = {"alpha": [release_json("v2.0.0-rc.1")], "beta": []}
        pipeline = make_pipeline(
            config,
            repositories,
            NewsSourceConfig(),
            handler=make_handler(releases=releases),
            summarize=lambda *args: summarize_calls.append(args),
        )

        result = pipeline.run_week(WINDOW)

        assert result.skipped is True
        assert result.is_empty
        assert summarize_calls == []
        assert result.releases_file.exists()

    def test_discussion_duplicates_lose_to_feeds(self, config, repositories):
        """Test that a discussion item with a feed item's title is dropped."""
        hits = [
            {
                "objectID": "1",
                "title": "KUBERNETES 1.35 RELEASED",
                "url": "https://hn.example.com/k8s",
                "points": 50,
                "num_comments": 10,
                "created_at_i": 1767700000,
            },
            {
                "objectID": "2",
                "title": "Kubernetes operators in practice",
                "url": "https://hn.example.com/operators",
                "points": 5,
                "num_comments": 0,
                "created_at_i": 1767700000,
            },
        ]
        news_sources = NewsSourceConfig(
            rss_feeds=[RSSSource(name="Cloud News", url="https://news.example.com/feed.xml")],
            hackernews=HackerNewsSource(enabled=True, keywords=["kubernetes"]),
        )
        pipeline = make_pipeline(
            config, repositories, news_sources, handler=make_handler(hn_hits=hits)
        )

        result = pipeline.run_week(WINDOW)

        assert [(i.source, i.title) for i in result.news_items] == [
            ("Cloud News", "Kubernetes 1.35 released"),
            ("Cloud News", "Terraform adds stacks"),
            ("Hacker News", "Kubernetes operators in practice"),
        ]

    def test_parallel_sources_keep_order(self, config, repositories, news_sources):
        """Test that parallel collection returns the same result as sequential."""
        sequential = make_pipeline(config, repositories, news_sources).run_week(WINDOW)

        config.pipeline.parallel_sources = True
        parallel = make_pipeline(config, repositories, news_sources).run_week(WINDOW)

        assert parallel.releases == sequential.releases
        assert parallel.news_items == sequential.news_items

    def test_parallel_interrupt_cancels_other_steps(self, config, repositories, news_sources):
        """Test that an interrupt in one parallel step signals the others to stop."""
        config.pipeline.parallel_sources = True
        pipeline = make_pipeline(config, repositories, news_sources)
        observed = []

        def slow_releases(window):
            pipeline.cancel_event.wait(5)
            try:
                pipeline.release_fetcher._check_cancelled()
            except PipelineCancelled as e:
                observed.append(e)
                raise
            return []

        def interrupted_feeds(window):
            raise KeyboardInterrupt

        pipeline._fetch_releases = slow_releases
        pipeline._fetch_feeds = interrupted_feeds

        with pytest.raises(KeyboardInterrupt):
            pipeline.collect(WINDOW)

        assert pipeline.cancel_event.is_set()
        assert len(observed) == 1

    def test_parallel_source_error_does_not_cancel(self, config, repositories, news_sources):
        """Test that a source failure in parallel mode leaves later weeks runnable."""
        config.pipeline.parallel_sources = True
        pipeline = make_pipeline(config, repositories, news_sources)

        def failing_releases(window):
            raise SourceUnavailableError("releases", "HTTP 503", status_code=503)

        pipeline._fetch_releases = failing_releases

        with pytest.raises(SourceUnavailableError):
            pipeline.collect(WINDOW)

        assert not pipeline.cancel_event.is_set()

    def test_stats_reset_per_week(self, config, repositories, news_sources):
        """Test that adapter statistics cover only the latest week."""
        pipeline = make_pipeline(config, repositories, news_sources)

        pipeline.run_week(WINDOW)
        pipeline.run_week(week_window(2026, 3))

        assert pipeline.release_fetcher.stats.successful == 2
        assert pipeline.feed_fetcher.stats.total_sources == 1

    def test_load_existing(self, config, repositories, news_sources):
        """Test that existing files are used without network access."""
        requests = []
        store = WeekStore(config.pipeline.data_dir)
        release = Release(
            repo_owner="org",
            repo_name="alpha",
            tag_name="v1.0.0",
            name="v1.0.0",
            url="https://github.com/org/alpha/releases/tag/v1.0.0",
            published_at=datetime(2026, 1, 6, tzinfo=timezone.utc),
            category="tools",
        )
        store.save_releases(WINDOW, [release])
        store.save_news(WINDOW, [])
        pipeline = make_pipeline(
            config, repositories, news_sources, handler=make_handler(requests=requests)
        )

        result = pipeline.run_week(WINDOW, load_existing=True)

        assert requests == []
        assert result.stable_releases == [release]
        assert result.releases_file is None

    def test_load_existing_missing_week(self, config, repositories, news_sources):
        """Test that a week without files is skipped in load mode."""
        pipeline = make_pipeline(config, repositories, news_sources)

        result = pipeline.run_week(WINDOW, load_existing=True)

        assert result.skipped is True
        assert result.releases == []

    def test_cancelled_before_run(self, config, repositories, news_sources):
        """Test that a cancelled pipeline raises instead of producing a partial week."""
        pipeline = make_pipeline(config, repositories, news_sources)
        pipeline.cancel()

        with pytest.raises(PipelineCancelled):
            pipeline.run_week(WINDOW)

        assert not pipeline.store.releases_path(WINDOW).exists()


class TestBackfill:
    """Tests for backfilling past weeks."""

    def test_windows_oldest_first(self, config, repositories, news_sources):
        """Test the default three weeks before the current one."""
        pipeline = make_pipeline(config, repositories, news_sources)

        windows = pipeline.backfill_windows(now=SUNDAY)

        assert [w.iso_week for w in windows] == [39, 40, 41]

    def test_explicit_week(self, config, repositories, news_sources):
        """Test that an explicit week replaces the relative range."""
        pipeline = make_pipeline(config, repositories, news_sources)

        assert pipeline.backfill_windows(weeks=5, week=2, year=2026) == [WINDOW]
        assert pipeline.backfill_windows(week=2, now=SUNDAY) == [WINDOW]

    def test_weeks_out_of_range(self, config, repositories, news_sources):
        """Test the allowed number of weeks."""
        pipeline = make_pipeline(config, repositories, news_sources)

        for weeks in (0, 11):
            with pytest.raises(ConfigurationError):
                pipeline.backfill_windows(weeks=weeks, now=SUNDAY)
        assert len(pipeline.backfill_windows(weeks=10, now=SUNDAY)) == 10

    def test_run_backfill(self, config, repositories, news_sources):
        """Test that every week is collected and written."""
        pipeline = make_pipeline(config, repositories, news_sources)

        results = pipeline.run_backfill(weeks=2, now=SUNDAY)

        assert [r.window.iso_week for r in results] == [40, 41]
        for result in results:
            assert result.releases_file.exists()

    def test_failing_week_skipped(self, config, repositories, news_sources):
        """Test that a week that fails to load does not stop the backfill."""
        store = WeekStore(config.pipeline.data_dir)
        pipeline = make_pipeline(config, repositories, news_sources, require_credentials=False)
        first, second = pipeline.backfill_windows(weeks=2, now=SUNDAY)
        store.data_dir.mkdir(parents=True)
        store.releases_path(first).write_text("{broken", encoding="utf-8")
        store.save_releases(second, [])

        results = pipeline.run_backfill(weeks=2, load_existing=True, now=SUNDAY)

        assert [r.window for r in results] == [second]

    def test_cancel_between_weeks(self, config, repositories, news_sources):
        """Test that cancelling during a week stops before the next one."""
        event = threading.Event()
        processed = []

        def summarize(stable, news, window):
            processed.append(window.iso_week)
            event.set()
            return ""

        # One stable release inside week 39
        releases = {"alpha": [release_json("v1.0.0", "2026-09-22T10:00:00Z")]}
        pipeline = make_pipeline(
            config,
            repositories,
            news_sources,
            handler=make_handler(releases=releases),
            summarize=summarize,
            cancel_event=event,
        )

        with pytest.raises(PipelineCancelled):
            pipeline.run_backfill(weeks=3, now=SUNDAY)

        assert processed == [39]
