"""
Release fetcher for the repository-hosting REST API.

Pages through ``GET /repos/{owner}/{repo}/releases`` and keeps non-draft
releases published inside the requested window.
"""

import threading
from collections import Counter
from datetime import datetime
from typing import Optional

import httpx

from weekly_aggregation.core.base import BaseAdapter
from weekly_aggregation.exceptions import RateLimitError, SourceError, SourceParseError
from weekly_aggregation.logger import get_logger
from weekly_aggregation.models import Release, Repository, TimeWindow
from weekly_aggregation.utils.date_utils import from_unix, parse_iso8601

logger = get_logger(__name__)

RATE_LIMIT_STATUSES = (403, 429)


class ReleaseFetcher(BaseAdapter):
    """Fetches releases for a list of (owner, repo, category) entries."""

    source_name = "releases"

    def __init__(
        self,
        client: httpx.Client,
        token: Optional[str] = None,
        api_url: str = "https://api.github.com",
        per_page: int = 100,
        max_pages: int = 10,
        request_delay_seconds: float = 0.1,
        rate_limit_policy: str = "skip",
        user_agent: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize release fetcher.

        Args:
            client: Shared HTTP client
            token: API token sent as a bearer token
            api_url: API base URL
            per_page: Releases requested per page
            max_pages: Upper bound on pages fetched per repository
            request_delay_seconds: Delay between repositories in a batch
            rate_limit_policy: "skip" skips the limited repository, "abort"
                stops the batch
            user_agent: User-Agent header
            cancel_event: Run cancellation signal
        """
        super().__init__(client, cancel_event=cancel_event)
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.per_page = per_page
        self.max_pages = max_pages
        self.request_delay_seconds = request_delay_seconds
        self.rate_limit_policy = rate_limit_policy
        self.user_agent = user_agent

    def _headers(self) -> dict:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers

    def _rate_limit_error(self, response: httpx.Response, source: str) -> RateLimitError:
        remaining = response.headers.get("X-RateLimit-Remaining")
        try:
            remaining = int(remaining) if remaining is not None else None
        except ValueError:
            remaining = None

        reset_at = from_unix(response.headers.get("X-RateLimit-Reset"))

        return RateLimitError(
            source,
            remaining=remaining,
            reset_at=reset_at,
            status_code=response.status_code,
        )

    def _fetch_page(self, owner: str, repo: str, page: int) -> list:
        """Fetch one page of the release list.

        Raises:
            RateLimitError: On a 403/429 response
            SourceUnavailableError: On network errors or other non-2xx status
            SourceParseError: On a malformed body
        """
        source = f"{owner}/{repo}"
        response = self._request(
            f"{self.api_url}/repos/{owner}/{repo}/releases",
            source,
            params={"per_page": self.per_page, "page": page},
            headers=self._headers(),
        )

        if response.status_code in RATE_LIMIT_STATUSES:
            raise self._rate_limit_error(response, source)

        self._raise_for_status(response, source)

        payload = self._decode_json(response, source)
        if not isinstance(payload, list):
            raise SourceParseError(source, "Expected a list of releases")
        return payload

    def fetch_releases(
        self,
        owner: str,
        repo: str,
        category: str,
        window: TimeWindow,
    ) -> list[Release]:
        """Fetch the releases of one repository published inside ``window``.

        Every page is filtered on its own, so out-of-order responses are
        tolerated; paging stops when a page is short or empty, or when every
        dated release on it is older than the window start.

        Args:
            owner: Repository owner
            repo: Repository name
            category: Category assigned to the releases
            window: Target window

        Returns:
            Releases in provider order

        Raises:
            RateLimitError: When the provider signals rate limiting
            SourceError: On any other source failure
        """
        releases = []

        for page in range(1, self.max_pages + 1):
            payload = self._fetch_page(owner, repo, page)
            if not payload:
                break

            published_times = []

            for raw in payload:
                if not isinstance(raw, dict):
                    continue

                published_at = parse_iso8601(raw.get("published_at"))
                if published_at is not None:
                    published_times.append(published_at)

                release = self._to_release(raw, owner, repo, category, published_at, window)
                if release is not None:
                    releases.append(release)

            if len(payload) < self.per_page:
                break
            if published_times and all(t < window.start for t in published_times):
                break

        return releases

    def _to_release(
        self,
        raw: dict,
        owner: str,
        repo: str,
        category: str,
        published_at: Optional[datetime],
        window: TimeWindow,
    ) -> Optional[Release]:
        """Convert one API record, or return None if it is filtered out."""
        if raw.get("draft"):
            return None
        if published_at is None:
            return None
        if not window.contains(published_at):
            return None

        tag_name = raw.get("tag_name") or ""
        name = raw.get("name") or tag_name

        return Release(
            repo_owner=owner,
            repo_name=repo,
            tag_name=tag_name,
            name=name,
            body=raw.get("body") or "",
            url=raw.get("html_url") or "",
            published_at=published_at,
            category=category,
            is_prerelease=bool(raw.get("prerelease")),
        )

    def fetch_all(self, repositories: list[Repository], window: TimeWindow) -> list[Release]:
        """Fetch releases for every repository, skipping failed ones.

        Args:
            repositories: Repositories to crawl, in order
            window: Target window

        Returns:
            All releases, in repository order
        """
        all_releases = []
        total = len(repositories)

        logger.info(
            f"Fetching releases from {window.start:%Y-%m-%d} to {window.end:%Y-%m-%d}"
        )

        for i, repository in enumerate(repositories, start=1):
            if i > 1:
                self._pause(self.request_delay_seconds)

            logger.info(f"[{i}/{total}] Fetching {repository.owner}/{repository.repo}...")

            try:
                releases = self.fetch_releases(
                    repository.owner, repository.repo, repository.category, window
                )
            except RateLimitError as e:
                self.stats.add_failure(e)
                reset = e.reset_at.isoformat() if e.reset_at else "unknown"
                logger.warning(
                    f"Rate limited for {repository.owner}/{repository.repo}, "
                    f"remaining: {e.remaining}, reset: {reset}"
                )
                if self.rate_limit_policy == "abort":
                    logger.error(
                        f"Aborting release batch after {i - 1}/{total} repositories"
                    )
                    break
                continue
            except SourceError as e:
                self.stats.add_failure(e)
                logger.warning(f"  Error: {e}")
                continue

            self.stats.add_success(len(releases))

            if releases:
                logger.info(f"  Found {len(releases)} releases")
                for release in releases:
                    logger.debug(f"    - {release.tag_name} ({release.published_at:%Y-%m-%d})")

            all_releases.extend(releases)

        return all_releases


def count_by_category(releases: list[Release]) -> dict[str, int]:
    """Count releases per category, in first-seen order."""
    return dict(Counter(release.category for release in releases))
