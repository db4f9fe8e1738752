"""
Shared plumbing for source adapters: HTTP error translation, cancellation
checks, rate-limit delays and per-batch statistics.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from weekly_aggregation.exceptions import (
    PipelineCancelled,
    SourceParseError,
    SourceUnavailableError,
)


@dataclass
class SourceStats:
    """Statistics for one adapter's batch of source calls."""

    total_sources: int = 0
    successful: int = 0
    failed: int = 0
    total_items: int = 0
    errors_by_type: dict = field(default_factory=dict)

    def add_success(self, items_count: int) -> None:
        """Record a successful source call."""
        self.total_sources += 1
        self.successful += 1
        self.total_items += items_count

    def add_failure(self, error: Exception) -> None:
        """Record a failed source call."""
        self.total_sources += 1
        self.failed += 1
        error_type = type(error).__name__
        self.errors_by_type[error_type] = self.errors_by_type.get(error_type, 0) + 1

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        if self.total_sources == 0:
            return 0.0
        return self.successful / self.total_sources


class BaseAdapter:
    """Base class for source adapters.

    Adapters never own their HTTP client; the orchestrator builds one
    ``httpx.Client`` and injects it, together with the run's cancellation
    event.
    """

    #: Name used in log lines and error messages
    source_name = "source"

    def __init__(
        self,
        client: httpx.Client,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.client = client
        self.cancel_event = cancel_event
        self.stats = SourceStats()

    def _check_cancelled(self) -> None:
        """Raise PipelineCancelled if the run has been cancelled."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise PipelineCancelled(f"{self.source_name}: run cancelled")

    def _pause(self, seconds: float) -> None:
        """Sleep between provider calls, waking early on cancellation."""
        if seconds <= 0:
            self._check_cancelled()
            return

        if self.cancel_event is not None:
            if self.cancel_event.wait(seconds):
                raise PipelineCancelled(f"{self.source_name}: run cancelled")
        else:
            time.sleep(seconds)

    def _request(
        self,
        url: str,
        source: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> httpx.Response:
        """Issue a GET request, translating transport failures.

        Non-2xx responses are returned unchanged so callers can decide how to
        treat them.

        Raises:
            PipelineCancelled: If the run has been cancelled
            SourceUnavailableError: On timeout or network error
        """
        self._check_cancelled()

        try:
            return self.client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise SourceUnavailableError(source, f"Timeout: {e}") from e
        except httpx.RequestError as e:
            raise SourceUnavailableError(source, f"Request error: {e}") from e

    def _raise_for_status(self, response: httpx.Response, source: str) -> None:
        """Raise SourceUnavailableError for non-2xx responses."""
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SourceUnavailableError(
                source,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e

    def _decode_json(self, response: httpx.Response, source: str) -> Any:
        """Decode a JSON body, raising SourceParseError on malformed input."""
        try:
            return response.json()
        except ValueError as e:
            raise SourceParseError(source, f"Failed to decode response: {e}") from e

