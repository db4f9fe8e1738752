"""
Timestamp parsing helpers.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_iso8601(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 / RFC 3339 timestamp into an aware datetime.

    Returns None for empty or unparseable input.
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        return None


def parse_with_formats(value: Optional[str], formats: Iterable[str]) -> Optional[datetime]:
    """Try ``strptime`` formats in order; the first successful parse wins."""
    if not value:
        return None

    for fmt in formats:
        try:
            return ensure_aware(datetime.strptime(value.strip(), fmt))
        except ValueError:
            continue
    return None


def from_unix(value) -> Optional[datetime]:
    """Convert a unix timestamp to an aware UTC datetime."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
