"""
Release data model for software release events.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from weekly_aggregation.utils.text_utils import sanitize_text


class Release(BaseModel):
    """One published release of a tracked repository.

    Records are immutable; a later backfill producing the same tag creates a
    new record rather than updating this one.
    """

    model_config = ConfigDict(frozen=True)

    repo_owner: str = Field(..., description="Owning organization or user")
    repo_name: str = Field(..., description="Repository name")
    tag_name: str = Field(..., description="Git tag of the release")
    name: str = Field(..., description="Display name, falls back to tag name")
    body: str = Field(default="", description="Release notes")
    url: str = Field(..., description="Canonical release URL")
    published_at: datetime = Field(..., description="Publish instant")
    category: str = Field(..., description="Category assigned by configuration")
    is_prerelease: bool = Field(
        default=False,
        description="Provider-reported prerelease flag (advisory only)",
    )

    @field_validator("repo_owner", "repo_name", "tag_name", "name", "body", "url", "category", mode="before")
    @classmethod
    def clean_text(cls, v):
        """Drop invalid code units from text fields."""
        if v is None or isinstance(v, (str, bytes)):
            return sanitize_text(v)
        return v

    @property
    def full_name(self) -> str:
        """Return ``owner/repo``."""
        return f"{self.repo_owner}/{self.repo_name}"

    def __repr__(self) -> str:
        return f"<Release({self.full_name} {self.tag_name})>"
