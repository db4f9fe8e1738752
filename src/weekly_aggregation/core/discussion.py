"""
Discussion search adapter for the Hacker News (Algolia) search API.

Three strategies run in a fixed order and all of their results are kept:

1. one search per configured keyword
2. broadened combined queries
3. the front page for the window, filtered client-side by keyword relevance
"""

import threading
from typing import Optional

import httpx

from weekly_aggregation.core.base import BaseAdapter
from weekly_aggregation.core.deduplicator import deduplicate_news
from weekly_aggregation.exceptions import SourceError, SourceParseError
from weekly_aggregation.logger import get_logger
from weekly_aggregation.models import NewsItem, TimeWindow
from weekly_aggregation.utils.date_utils import from_unix, parse_iso8601
from weekly_aggregation.utils.text_utils import normalize_whitespace, strip_html, truncate

logger = get_logger(__name__)


def passes_engagement(hit: dict, min_points: int = 3, min_comments: int = 2) -> bool:
    """Keep hits with enough points OR enough comments."""
    points = hit.get("points") or 0
    comments = hit.get("num_comments") or 0
    return points >= min_points or comments >= min_comments


def is_relevant(item: NewsItem, keywords: list[str]) -> bool:
    """Case-insensitive substring match of any keyword on title or description."""
    title = item.title.lower()
    description = item.description.lower()
    for keyword in keywords:
        keyword = keyword.lower()
        if keyword and (keyword in title or keyword in description):
            return True
    return False


class DiscussionSearcher(BaseAdapter):
    """Searches a discussion site for items created since the window start."""

    source_name = "discussion"

    def __init__(
        self,
        client: httpx.Client,
        api_url: str = "https://hn.algolia.com/api/v1/search",
        item_url_template: str = "https://news.ycombinator.com/item?id={id}",
        source_label: str = "Hacker News",
        combined_queries: Optional[list[str]] = None,
        hits_per_page: int = 50,
        front_page_hits: int = 100,
        min_points: int = 3,
        min_comments: int = 2,
        description_max_length: int = 200,
        request_delay_seconds: float = 0.1,
        user_agent: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        super().__init__(client, cancel_event=cancel_event)
        self.api_url = api_url
        self.item_url_template = item_url_template
        self.source_label = source_label
        self.combined_queries = list(combined_queries or [])
        self.hits_per_page = hits_per_page
        self.front_page_hits = front_page_hits
        self.min_points = min_points
        self.min_comments = min_comments
        self.description_max_length = description_max_length
        self.request_delay_seconds = request_delay_seconds
        self.user_agent = user_agent
        self._calls = 0

    def _query(self, params: dict, label: str) -> list[dict]:
        """Run one search request and return its hits."""
        if self._calls:
            self._pause(self.request_delay_seconds)
        self._calls += 1

        headers = {"Accept": "application/json"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent

        response = self._request(self.api_url, label, params=params, headers=headers)
        self._raise_for_status(response, label)

        payload = self._decode_json(response, label)
        hits = payload.get("hits") if isinstance(payload, dict) else None
        if not isinstance(hits, list):
            raise SourceParseError(label, "Response has no hits list")
        return [hit for hit in hits if isinstance(hit, dict)]

    def _to_item(self, hit: dict) -> Optional[NewsItem]:
        title = normalize_whitespace(hit.get("title"))
        if not title:
            return None

        url = (hit.get("url") or "").strip()
        if not url:
            object_id = hit.get("objectID")
            if not object_id:
                return None
            url = self.item_url_template.format(id=object_id)

        published_at = from_unix(hit.get("created_at_i")) or parse_iso8601(hit.get("created_at"))
        if published_at is None:
            return None

        description = truncate(strip_html(hit.get("story_text")), self.description_max_length)

        return NewsItem(
            title=title,
            url=url,
            source=self.source_label,
            description=description,
            published_at=published_at,
            category="community",
        )

    def search_query(self, query: str, window: TimeWindow) -> list[NewsItem]:
        """Search stories matching ``query`` created after the window start.

        Hits below the engagement threshold are dropped.
        """
        hits = self._query(
            {
                "query": query,
                "tags": "story",
                "numericFilters": f"created_at_i>{int(window.start.timestamp())}",
                "hitsPerPage": self.hits_per_page,
            },
            label=f"{self.source_label} '{query}'",
        )

        items = []
        for hit in hits:
            if not passes_engagement(hit, self.min_points, self.min_comments):
                continue
            item = self._to_item(hit)
            if item is not None:
                items.append(item)
        return items

    def search_front_page(self, window: TimeWindow) -> list[NewsItem]:
        """Fetch front-page stories created after the window start."""
        hits = self._query(
            {
                "tags": "front_page",
                "numericFilters": f"created_at_i>{int(window.start.timestamp())}",
                "hitsPerPage": self.front_page_hits,
            },
            label=f"{self.source_label} front page",
        )

        items = []
        for hit in hits:
            item = self._to_item(hit)
            if item is not None:
                items.append(item)
        return items

    def search(self, keywords: list[str], window: TimeWindow) -> list[NewsItem]:
        """Run all strategies and return their deduplicated concatenation.

        A failing query is logged and skipped; the remaining queries still run.

        Args:
            keywords: Configured keyword list
            window: Target window

        Returns:
            Items in strategy order, first occurrence of each title kept
        """
        all_items = []

        for keyword in keywords:
            try:
                items = self.search_query(keyword, window)
            except SourceError as e:
                self.stats.add_failure(e)
                logger.warning(f"HN search for '{keyword}' failed: {e}")
                continue
            self.stats.add_success(len(items))
            logger.info(f"HN: Found {len(items)} items for keyword '{keyword}'")
            all_items.extend(items)

        for query in self.combined_queries:
            try:
                items = self.search_query(query, window)
            except SourceError as e:
                self.stats.add_failure(e)
                logger.warning(f"HN combined query '{query}' failed: {e}")
                continue
            self.stats.add_success(len(items))
            logger.info(f"HN: Found {len(items)} items for combined query '{query}'")
            all_items.extend(items)

        try:
            front_page = self.search_front_page(window)
        except SourceError as e:
            self.stats.add_failure(e)
            logger.warning(f"HN front page query failed: {e}")
        else:
            self.stats.add_success(len(front_page))
            relevant = [item for item in front_page if is_relevant(item, keywords)]
            logger.info(f"HN: Found {len(relevant)} relevant front page items")
            all_items.extend(relevant)

        unique = deduplicate_news(all_items)
        logger.info(f"HN: Total unique items after deduplication: {len(unique)}")
        return unique
