"""Utility helpers for weekly aggregation."""

from weekly_aggregation.utils.date_utils import (
    ensure_aware,
    from_unix,
    parse_iso8601,
    parse_with_formats,
)
from weekly_aggregation.utils.text_utils import (
    normalize_whitespace,
    sanitize_text,
    strip_html,
    truncate,
)

__all__ = [
    "ensure_aware",
    "from_unix",
    "parse_iso8601",
    "parse_with_formats",
    "normalize_whitespace",
    "sanitize_text",
    "strip_html",
    "truncate",
]
