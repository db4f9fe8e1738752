"""
Exception hierarchy for the aggregation pipeline.

Source errors are recoverable and handled at the adapter batch boundary.
Configuration errors are fatal and abort a run before any network call.
"""

from datetime import datetime
from typing import Optional


class AggregationError(Exception):
    """Base class for all aggregation errors."""


class ConfigurationError(AggregationError):
    """Raised when configuration or run parameters are invalid."""


class WeekValidationError(ConfigurationError):
    """Raised for an ISO (year, week) pair that does not exist."""

    def __init__(self, year: int, week: int, reason: str = ""):
        self.year = year
        self.week = week
        message = f"Invalid ISO week {week} for year {year}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SourceError(AggregationError):
    """Recoverable error raised by a single source call."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class SourceUnavailableError(SourceError):
    """Network failure, timeout or non-2xx response from a source."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(source, message)


class SourceParseError(SourceError):
    """Malformed feed, HTML or JSON payload."""


class RateLimitError(SourceUnavailableError):
    """Provider signalled that the request quota is exhausted."""

    def __init__(
        self,
        source: str,
        remaining: Optional[int] = None,
        reset_at: Optional[datetime] = None,
        status_code: int = 403,
    ):
        self.remaining = remaining
        self.reset_at = reset_at
        reset = reset_at.isoformat() if reset_at else "unknown"
        super().__init__(
            source,
            f"rate limited (remaining={remaining}, reset={reset})",
            status_code=status_code,
        )


class PipelineCancelled(AggregationError):
    """Raised when the run's cancellation event has been set."""
