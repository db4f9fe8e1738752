"""
Factory functions for creating core components with proper dependency injection.

The HTTP client is built once per run and handed to every adapter, so
timeouts and transport live in one place and tests can substitute an
``httpx.MockTransport``.

Usage:
    from weekly_aggregation.core.factories import create_http_client, create_feed_fetcher

    client = create_http_client()
    feeds = create_feed_fetcher(client)
"""

import threading
from typing import Optional

import httpx

from weekly_aggregation.config import Config, get_config
from weekly_aggregation.core.discussion import DiscussionSearcher
from weekly_aggregation.core.feeds import FeedFetcher
from weekly_aggregation.core.releases import ReleaseFetcher
from weekly_aggregation.core.scraper import NewsScraper


def create_http_client(
    config: Optional[Config] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create the shared HTTP client.

    Args:
        config: Configuration, defaults to the global instance
        transport: Optional transport override

    Returns:
        Configured httpx Client
    """
    config = config or get_config()
    fetcher = config.fetcher

    return httpx.Client(
        timeout=httpx.Timeout(fetcher.timeout_seconds),
        follow_redirects=fetcher.follow_redirects,
        max_redirects=fetcher.max_redirects,
        headers={"User-Agent": fetcher.user_agent},
        transport=transport,
    )


def create_release_fetcher(
    client: httpx.Client,
    config: Optional[Config] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ReleaseFetcher:
    """Create a configured ReleaseFetcher."""
    config = config or get_config()
    github = config.github

    return ReleaseFetcher(
        client,
        token=github.token,
        api_url=github.api_url,
        per_page=github.per_page,
        max_pages=github.max_pages,
        request_delay_seconds=github.request_delay_seconds,
        rate_limit_policy=github.rate_limit_policy,
        user_agent=config.fetcher.user_agent,
        cancel_event=cancel_event,
    )


def create_feed_fetcher(
    client: httpx.Client,
    config: Optional[Config] = None,
    cancel_event: Optional[threading.Event] = None,
) -> FeedFetcher:
    """Create a configured FeedFetcher."""
    config = config or get_config()
    return FeedFetcher(
        client,
        user_agent=config.fetcher.user_agent,
        cancel_event=cancel_event,
    )


def create_scraper(
    client: httpx.Client,
    config: Optional[Config] = None,
    cancel_event: Optional[threading.Event] = None,
) -> NewsScraper:
    """Create a configured NewsScraper."""
    config = config or get_config()
    return NewsScraper(
        client,
        user_agent=config.fetcher.browser_user_agent,
        accept_language=config.fetcher.accept_language,
        selectors=config.scraper.selectors,
        min_title_length=config.scraper.min_title_length,
        cancel_event=cancel_event,
    )


def create_discussion_searcher(
    client: httpx.Client,
    config: Optional[Config] = None,
    cancel_event: Optional[threading.Event] = None,
) -> DiscussionSearcher:
    """Create a configured DiscussionSearcher."""
    config = config or get_config()
    discussion = config.discussion

    return DiscussionSearcher(
        client,
        api_url=discussion.api_url,
        item_url_template=discussion.item_url_template,
        source_label=discussion.source_name,
        combined_queries=discussion.combined_queries,
        hits_per_page=discussion.hits_per_page,
        front_page_hits=discussion.front_page_hits,
        min_points=discussion.min_points,
        min_comments=discussion.min_comments,
        description_max_length=discussion.description_max_length,
        request_delay_seconds=discussion.request_delay_seconds,
        user_agent=config.fetcher.user_agent,
        cancel_event=cancel_event,
    )
