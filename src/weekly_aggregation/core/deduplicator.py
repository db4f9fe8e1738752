"""
Cross-source merging, title deduplication and prerelease classification.

Deduplication keys on the case-folded title only. Two different stories
that share a title collapse into the first one seen.
"""

from typing import Iterable, Sequence

from weekly_aggregation.logger import get_logger
from weekly_aggregation.models import NewsItem, Release

logger = get_logger(__name__)

# Substrings anywhere in the lower-cased tag
PRERELEASE_MARKERS = (
    "-rc",
    "-alpha",
    "-beta",
    "-test",
    "-dev",
    "-preview",
    "-pre",
    "-next",
    "-canary",
    "-nightly",
    "-snapshot",
    "alpha.",
    "beta.",
    "test.",
    "dev.",
    "preview.",
    "edge-",
)

# Words that mark a prerelease when a separator directly precedes them
PRERELEASE_SUFFIXES = ("rc", "alpha", "beta", "test", "dev", "preview", "pre", "next")
SUFFIX_SEPARATORS = (".", "-")


def has_prerelease_marker(tag: str) -> bool:
    """Check the tag for any fixed prerelease marker substring."""
    tag = tag.lower()
    return any(marker in tag for marker in PRERELEASE_MARKERS)


def has_prerelease_suffix(tag: str) -> bool:
    """Check for a separator followed by a prerelease word (``.rc1``, ``-beta``).

    Unseparated forms such as ``1.0.0alpha1`` do not match.
    """
    tag = tag.lower()
    return any(
        separator + suffix in tag
        for suffix in PRERELEASE_SUFFIXES
        for separator in SUFFIX_SEPARATORS
    )


def is_prerelease(tag: str) -> bool:
    """Classify a release tag as prerelease by name alone.

    The provider's own prerelease flag is not consulted; some projects flag
    patch releases as prereleases.
    """
    return has_prerelease_marker(tag) or has_prerelease_suffix(tag)


def classify_releases(releases: Iterable[Release]) -> tuple[list[Release], list[Release]]:
    """Split releases into (stable, prerelease), keeping input order."""
    stable = []
    prereleases = []

    for release in releases:
        if is_prerelease(release.tag_name):
            prereleases.append(release)
        else:
            stable.append(release)

    logger.info(
        f"Filtered {len(prereleases)} pre-releases, keeping {len(stable)} stable releases"
    )
    if prereleases:
        logger.debug(
            "Filtered releases: "
            + ", ".join(f"{r.full_name} {r.tag_name}" for r in prereleases)
        )
    return stable, prereleases


def deduplicate_news(items: Iterable[NewsItem]) -> list[NewsItem]:
    """Remove items whose case-folded title was already seen.

    The first occurrence wins and the original order is preserved.
    """
    seen = set()
    unique = []

    for item in items:
        key = item.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)

    return unique


def merge_news(per_adapter_results: Sequence[Iterable[NewsItem]]) -> list[NewsItem]:
    """Concatenate adapter outputs in the given order and deduplicate.

    Args:
        per_adapter_results: Item lists in adapter run order

    Returns:
        Merged, deduplicated items
    """
    merged = [item for items in per_adapter_results for item in items]
    unique = deduplicate_news(merged)

    dropped = len(merged) - len(unique)
    if dropped:
        logger.info(f"Removed {dropped} duplicate news items")

    return unique
