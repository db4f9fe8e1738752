"""
RSS/Atom feed fetcher.
"""

import threading
from datetime import datetime, timezone
from typing import Optional

import feedparser
import httpx

from weekly_aggregation.core.base import BaseAdapter
from weekly_aggregation.exceptions import SourceError, SourceParseError
from weekly_aggregation.logger import get_logger
from weekly_aggregation.models import NewsItem, RSSSource, TimeWindow
from weekly_aggregation.utils.text_utils import normalize_whitespace, strip_html

logger = get_logger(__name__)


class FeedFetcher(BaseAdapter):
    """Fetches syndication feeds and keeps entries published since the window start."""

    source_name = "feeds"

    def __init__(
        self,
        client: httpx.Client,
        user_agent: Optional[str] = None,
        category: str = "news",
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize feed fetcher.

        Args:
            client: Shared HTTP client
            user_agent: User-Agent header for feed requests
            category: Category assigned to feed items
            cancel_event: Run cancellation signal
        """
        super().__init__(client, cancel_event=cancel_event)
        self.user_agent = user_agent
        self.category = category

    def _published_at(self, entry) -> datetime:
        """Entry publish time, falling back to the update time.

        Entries with neither count as published now.
        """
        parsed = entry.get("published_parsed") or entry.get("updated_parsed")
        if parsed:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
        return datetime.now(timezone.utc)

    def fetch_feed(self, source: RSSSource, window: TimeWindow) -> list[NewsItem]:
        """Fetch one feed.

        Only a lower bound is applied: entries older than ``window.start``
        are dropped.

        Args:
            source: Feed to fetch
            window: Target window

        Returns:
            Feed items in document order

        Raises:
            SourceUnavailableError: On network errors or non-2xx status
            SourceParseError: If the document cannot be parsed as a feed
        """
        headers = {"User-Agent": self.user_agent} if self.user_agent else None
        response = self._request(source.url, source.name, headers=headers)
        self._raise_for_status(response, source.name)

        parsed = feedparser.parse(response.content)
        entries = parsed.get("entries", [])

        if parsed.get("bozo") and not entries:
            raise SourceParseError(
                source.name, f"Failed to parse feed: {parsed.get('bozo_exception')}"
            )

        items = []
        for entry in entries:
            published_at = self._published_at(entry)
            if published_at < window.start:
                continue

            title = normalize_whitespace(entry.get("title"))
            link = (entry.get("link") or "").strip()
            if not title or not link:
                continue

            items.append(
                NewsItem(
                    title=title,
                    url=link,
                    source=source.name,
                    description=strip_html(entry.get("summary")),
                    published_at=published_at,
                    category=self.category,
                )
            )

        return items

    def fetch_all(self, sources: list[RSSSource], window: TimeWindow) -> list[NewsItem]:
        """Fetch every feed, skipping the ones that fail.

        Args:
            sources: Feeds to fetch, in order
            window: Target window

        Returns:
            All feed items, in source order
        """
        all_items = []

        for source in sources:
            try:
                items = self.fetch_feed(source, window)
            except SourceError as e:
                self.stats.add_failure(e)
                logger.warning(f"Skipping feed {source.name}: {e}")
                continue

            self.stats.add_success(len(items))
            logger.info(f"Fetched {len(items)} items from {source.name}")
            all_items.extend(items)

        return all_items
