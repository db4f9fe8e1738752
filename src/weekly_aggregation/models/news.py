"""
News item data model for feed, scrape and discussion sources.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from weekly_aggregation.utils.text_utils import sanitize_text


class NewsItem(BaseModel):
    """One news or discussion item.

    Adapters drop candidates without a title or URL before building an item,
    so both fields are required to be non-empty here.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1, description="Item title")
    url: str = Field(..., min_length=1, description="Item URL")
    source: str = Field(..., description="Source name, used as a grouping key")
    description: str = Field(default="", description="Summary or description")
    published_at: datetime = Field(..., description="Publish instant")
    category: str = Field(default="news", description="news, community, ...")

    @field_validator("title", "url", "source", "description", "category", mode="before")
    @classmethod
    def clean_text(cls, v):
        """Drop invalid code units from text fields."""
        if v is None or isinstance(v, (str, bytes)):
            return sanitize_text(v)
        return v

    @property
    def dedup_key(self) -> str:
        """Case-folded title used for cross-source deduplication."""
        return self.title.casefold()

    def __repr__(self) -> str:
        return f"<NewsItem(source='{self.source}', title='{self.title}')>"
