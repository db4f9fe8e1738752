"""
Declarative source lists loaded from YAML once per run.
"""

from typing import Optional

import soupsieve
from pydantic import BaseModel, Field, field_validator


def check_selector(selector: str) -> str:
    """Compile a CSS selector, raising ValueError if it is malformed."""
    try:
        soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as e:
        raise ValueError(f"Invalid CSS selector {selector!r}: {e}") from e
    return selector


class Repository(BaseModel):
    """A tracked repository."""

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, description="Display name")
    category: str = Field(..., min_length=1, description="Release category")


class RepositoryConfig(BaseModel):
    """List of tracked repositories."""

    repositories: list[Repository] = Field(default_factory=list)


class RSSSource(BaseModel):
    """A syndication feed."""

    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class ScrapeSource(BaseModel):
    """An HTML news listing page."""

    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    selector: Optional[str] = Field(None, description="Selector tried before the built-in cascade")
    base_url: Optional[str] = Field(None, description="Origin for relative links")

    @field_validator("selector")
    @classmethod
    def validate_selector(cls, v: Optional[str]) -> Optional[str]:
        """Reject selectors that cannot be compiled."""
        if v:
            check_selector(v)
        return v


class HackerNewsSource(BaseModel):
    """Discussion search settings."""

    enabled: bool = False
    keywords: list[str] = Field(default_factory=list)


class NewsSourceConfig(BaseModel):
    """All news sources."""

    rss_feeds: list[RSSSource] = Field(default_factory=list)
    scrape_sources: list[ScrapeSource] = Field(default_factory=list)
    hackernews: HackerNewsSource = Field(default_factory=HackerNewsSource)

    @property
    def source_count(self) -> int:
        """Number of configured sources, counting discussion search as one."""
        count = len(self.rss_feeds) + len(self.scrape_sources)
        if self.hackernews.enabled:
            count += 1
        return count
