"""
HTML news-listing scraper.

Resolves teaser elements with a cascade of selectors, most specific first,
so that the scraper keeps working when the listing markup drifts.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup, Tag

from weekly_aggregation.core.base import BaseAdapter
from weekly_aggregation.exceptions import SourceError
from weekly_aggregation.logger import get_logger
from weekly_aggregation.models import NewsItem, ScrapeSource, TimeWindow
from weekly_aggregation.utils.date_utils import parse_iso8601, parse_with_formats
from weekly_aggregation.utils.text_utils import normalize_whitespace

logger = get_logger(__name__)

DEFAULT_SELECTORS = (
    "article[data-component='TeaserContainer']",
    "[data-component='TeaserContainer']",
    "article[data-teaser-name]",
    "article",
)

LINK_SELECTOR = "a[data-component='TeaserLinkContainer']"
TITLE_SELECTOR = "h2, h3, span"
DESCRIPTION_SELECTOR = "p, [class*='synopsis'], [class*='description']"
DATETIME_SELECTOR = "time[datetime], [datetime]"


@dataclass
class ScrapedCandidate:
    """Fields extracted from one teaser element; each may be missing."""

    title: str = ""
    link: str = ""
    description: str = ""
    published_at: Optional[datetime] = None


def parse_datetime_attr(value: Optional[str]) -> Optional[datetime]:
    """Parse a ``datetime`` attribute value.

    Formats are tried in order: fractional seconds with ``Z``, full RFC 3339,
    then whole seconds with ``Z``. The first successful parse wins.
    """
    if not value:
        return None

    return (
        parse_with_formats(value, ["%Y-%m-%dT%H:%M:%S.%fZ"])
        or parse_iso8601(value)
        or parse_with_formats(value, ["%Y-%m-%dT%H:%M:%SZ"])
    )


def resolve_selector(soup: BeautifulSoup, selectors) -> Optional[str]:
    """Return the first selector that matches at least one element."""
    for selector in selectors:
        if soup.select_one(selector) is not None:
            return selector
    return None


def extract_candidate(element: Tag) -> ScrapedCandidate:
    """Extract title, link, description and date from a teaser element."""
    candidate = ScrapedCandidate()

    link_el = element.select_one(LINK_SELECTOR) or element.find("a")
    if link_el is not None:
        candidate.link = (link_el.get("href") or "").strip()

        title_el = link_el.select_one(TITLE_SELECTOR)
        if title_el is not None:
            candidate.title = title_el.get_text(" ", strip=True)
        if not candidate.title:
            candidate.title = link_el.get_text(" ", strip=True)

    desc_el = element.select_one(DESCRIPTION_SELECTOR)
    if desc_el is not None:
        candidate.description = normalize_whitespace(desc_el.get_text(" ", strip=True))

    time_el = element.select_one(DATETIME_SELECTOR)
    if time_el is not None:
        candidate.published_at = parse_datetime_attr(time_el.get("datetime"))

    candidate.title = normalize_whitespace(candidate.title)
    return candidate


def absolutize(link: str, base_url: str) -> str:
    """Rewrite a relative link against the site origin."""
    if link.startswith(("http://", "https://")):
        return link
    return urljoin(base_url, link)


def site_origin(url: str) -> str:
    """Return ``scheme://host`` of a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def is_acceptable(candidate: ScrapedCandidate, window: TimeWindow, min_title_length: int) -> bool:
    """Apply the exclusion rules; any single failing rule drops the candidate."""
    if candidate.published_at is None or candidate.published_at < window.start:
        return False
    if not candidate.title or not candidate.link:
        return False
    if len(candidate.title) < min_title_length:
        return False
    return True


class NewsScraper(BaseAdapter):
    """Scrapes a news listing page into news items."""

    source_name = "scraper"

    def __init__(
        self,
        client: httpx.Client,
        user_agent: Optional[str] = None,
        accept_language: Optional[str] = None,
        selectors=DEFAULT_SELECTORS,
        min_title_length: int = 10,
        category: str = "news",
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize news scraper.

        Args:
            client: Shared HTTP client
            user_agent: Browser-like User-Agent header
            accept_language: Accept-Language header
            selectors: Candidate selector cascade, most specific first
            min_title_length: Titles shorter than this are dropped
            category: Category assigned to scraped items
            cancel_event: Run cancellation signal
        """
        super().__init__(client, cancel_event=cancel_event)
        self.user_agent = user_agent
        self.accept_language = accept_language
        self.selectors = tuple(selectors)
        self.min_title_length = min_title_length
        self.category = category

    def _headers(self) -> dict:
        headers = {"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        if self.accept_language:
            headers["Accept-Language"] = self.accept_language
        return headers

    def scrape(self, source: ScrapeSource, window: TimeWindow) -> list[NewsItem]:
        """Fetch and parse one listing page.

        A non-2xx response is treated as temporarily unavailable and yields
        an empty list.

        Raises:
            SourceUnavailableError: On timeout or network error
        """
        response = self._request(source.url, source.name, headers=self._headers())

        if not response.is_success:
            logger.warning(f"{source.name} returned status {response.status_code}")
            return []

        return self.parse_page(response.text, source, window)

    def parse_page(self, html: str, source: ScrapeSource, window: TimeWindow) -> list[NewsItem]:
        """Extract news items from listing HTML.

        Args:
            html: Page HTML
            source: Scrape source the page belongs to
            window: Target window

        Returns:
            Accepted items in document order
        """
        soup = BeautifulSoup(html, "lxml")

        selectors = self.selectors
        if source.selector:
            selectors = (source.selector,) + selectors

        selector = resolve_selector(soup, selectors)
        if selector is None:
            logger.warning(f"{source.name}: No matching selectors found")
            return []

        elements = soup.select(selector)
        logger.debug(f"{source.name}: Using selector '{selector}' - found {len(elements)} elements")

        base_url = source.base_url or site_origin(source.url)
        items = []

        for element in elements:
            candidate = extract_candidate(element)
            if not is_acceptable(candidate, window, self.min_title_length):
                continue

            items.append(
                NewsItem(
                    title=candidate.title,
                    url=absolutize(candidate.link, base_url),
                    source=source.name,
                    description=candidate.description,
                    published_at=candidate.published_at,
                    category=self.category,
                )
            )

        logger.info(f"{source.name}: Scraped {len(items)} items from {source.url}")
        return items

    def fetch_all(self, sources: list[ScrapeSource], window: TimeWindow) -> list[NewsItem]:
        """Scrape every source, skipping the ones that fail."""
        all_items = []

        for source in sources:
            try:
                items = self.scrape(source, window)
            except SourceError as e:
                self.stats.add_failure(e)
                logger.warning(f"Scraping {source.name} failed: {e}")
                continue

            self.stats.add_success(len(items))
            all_items.extend(items)

        return all_items
