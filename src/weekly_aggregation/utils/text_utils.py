"""
Text helpers shared by adapters and models.
"""

import re
from typing import Optional, Union

from bs4 import BeautifulSoup

_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_text(value: Union[str, bytes, None]) -> str:
    """Drop invalid code units so the text can always be encoded as UTF-8.

    Invalid byte sequences in ``bytes`` input and lone surrogates in ``str``
    input (which JSON decoding can produce) are removed, not replaced.

    Args:
        value: Raw text or bytes

    Returns:
        Valid text
    """
    if value is None:
        return ""

    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")

    try:
        value.encode("utf-8")
        return value
    except UnicodeEncodeError:
        return value.encode("utf-8", errors="ignore").decode("utf-8")


def normalize_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace into single spaces and strip the ends."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate(text: str, max_length: int) -> str:
    """Cut text to ``max_length`` characters, appending ``...`` when cut."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def strip_html(html: Optional[str]) -> str:
    """Strip HTML tags and return normalized plain text.

    Args:
        html: HTML fragment

    Returns:
        Plain text content
    """
    if not html:
        return ""

    if "<" not in html:
        return normalize_whitespace(html)

    soup = BeautifulSoup(html, "html.parser")

    for element in soup(["script", "style", "noscript"]):
        element.decompose()

    return normalize_whitespace(soup.get_text(separator=" "))
