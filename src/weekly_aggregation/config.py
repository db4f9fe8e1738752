"""
Configuration management for weekly aggregation.

Uses Pydantic for validation and pydantic-settings for environment variable support.
Source lists (repositories, news sources) live in separate YAML files.
"""

from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from weekly_aggregation.exceptions import ConfigurationError
from weekly_aggregation.models.sources import NewsSourceConfig, RepositoryConfig, check_selector


class FetcherConfig(BaseSettings):
    """HTTP client configuration shared by all adapters."""

    model_config = SettingsConfigDict(env_prefix="FETCHER_")

    timeout_seconds: int = Field(default=30, ge=1, le=300, description="Request timeout")
    user_agent: str = Field(
        default="Weekly-Aggregation/0.1.0 (+https://github.com/weekly-aggregation)",
        description="User-Agent header for API calls",
    )
    browser_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        description="User-Agent header for scraped pages",
    )
    accept_language: str = Field(default="de-DE,de;q=0.9,en;q=0.8")

    follow_redirects: bool = Field(default=True)
    max_redirects: int = Field(default=5, ge=0, le=20)


class GitHubConfig(BaseSettings):
    """Release API configuration."""

    model_config = SettingsConfigDict(env_prefix="GITHUB_")

    token: Optional[str] = Field(default=None, description="API token (GITHUB_TOKEN)")
    api_url: str = Field(default="https://api.github.com", description="API base URL")
    per_page: int = Field(default=100, ge=1, le=100, description="Releases per page")
    max_pages: int = Field(default=10, ge=1, le=100, description="Pagination safety cap")
    request_delay_seconds: float = Field(
        default=0.1, ge=0.0, description="Delay between repositories"
    )
    rate_limit_policy: str = Field(default="skip", description="skip or abort")

    @field_validator("rate_limit_policy")
    @classmethod
    def validate_policy(cls, v: str) -> str:
        """Validate rate limit policy."""
        v = v.lower().strip()
        if v not in ("skip", "abort"):
            raise ValueError(f"Invalid rate_limit_policy: {v!r}. Must be 'skip' or 'abort'")
        return v


class DiscussionConfig(BaseSettings):
    """Discussion search API configuration."""

    model_config = SettingsConfigDict(env_prefix="DISCUSSION_")

    api_url: str = Field(default="https://hn.algolia.com/api/v1/search")
    item_url_template: str = Field(default="https://news.ycombinator.com/item?id={id}")
    source_name: str = Field(default="Hacker News")

    hits_per_page: int = Field(default=50, ge=1, le=1000)
    front_page_hits: int = Field(default=100, ge=1, le=1000)

    # Engagement threshold, either one is enough
    min_points: int = Field(default=3, ge=0)
    min_comments: int = Field(default=2, ge=0)

    description_max_length: int = Field(default=200, ge=10)
    combined_queries: list[str] = Field(
        default_factory=lambda: [
            "kubernetes OR k8s",
            "docker container",
            "cloud infrastructure",
            "devops platform",
        ],
        description="Broadened queries run in addition to the keyword list",
    )
    request_delay_seconds: float = Field(default=0.1, ge=0.0)


class ScraperConfig(BaseSettings):
    """HTML scraper configuration."""

    model_config = SettingsConfigDict(env_prefix="SCRAPER_")

    min_title_length: int = Field(default=10, ge=1, description="Shorter titles are dropped")
    selectors: list[str] = Field(
        default_factory=lambda: [
            "article[data-component='TeaserContainer']",
            "[data-component='TeaserContainer']",
            "article[data-teaser-name]",
            "article",
        ],
        description="Candidate selectors, most specific first",
    )

    @field_validator("selectors")
    @classmethod
    def validate_selectors(cls, v: list[str]) -> list[str]:
        """Validate every candidate selector."""
        return [check_selector(selector) for selector in v]


class PipelineConfig(BaseSettings):
    """Orchestrator configuration."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    timezone: str = Field(default="UTC", description="IANA timezone for week boundaries")
    data_dir: str = Field(default="data", description="Output directory for JSON artifacts")
    week_delay_seconds: float = Field(default=2.0, ge=0.0, description="Delay between backfill weeks")
    max_backfill_weeks: int = Field(default=10, ge=1, le=53)
    parallel_sources: bool = Field(default=False, description="Run source groups concurrently")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v!r}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for week computations."""
        return ZoneInfo(self.timezone)


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    # File logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_path: str = Field(default="logs/weekly_aggregation.log", description="Log file path")
    rotation: str = Field(default="100 MB", description="Log rotation size")
    retention: str = Field(default="30 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WEEKLY_",
        case_sensitive=False,
        extra="ignore",
    )

    # Sub-configurations
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    discussion: DiscussionConfig = Field(default_factory=DiscussionConfig)
    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Source lists
    repositories_file: str = Field(default="config/repositories.yaml")
    news_sources_file: str = Field(default="config/news-sources.yaml")


_SECTIONS = {
    "fetcher": FetcherConfig,
    "github": GitHubConfig,
    "discussion": DiscussionConfig,
    "scraper": ScraperConfig,
    "pipeline": PipelineConfig,
    "logging": LoggingConfig,
}

DEFAULT_CONFIG_FILE = "config/config.yaml"

# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def _read_yaml(path: str) -> dict:
    """Read a YAML mapping, raising ConfigurationError on any failure."""
    yaml_file = Path(path)
    if not yaml_file.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with yaml_file.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Nested sections are built individually so environment variables can
    still fill in values the file does not set.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config instance loaded from the file.
    """
    config_dict = _read_yaml(yaml_path)

    main_config = {}
    for key, value in config_dict.items():
        if key not in _SECTIONS:
            main_config[key] = value

    try:
        for key, config_class in _SECTIONS.items():
            main_config[key] = config_class(**(config_dict.get(key) or {}))
        return Config(**main_config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {yaml_path}: {e}") from e


def reload_config(yaml_path: Optional[str] = None) -> Config:
    """Reload configuration from environment and a YAML file.

    An explicit ``yaml_path`` must exist. Without one, ``config/config.yaml``
    is used when present and environment-only settings otherwise.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    global _config
    _config = None

    if yaml_path is not None:
        _config = load_config_from_yaml(yaml_path)
    elif Path(DEFAULT_CONFIG_FILE).exists():
        _config = load_config_from_yaml(DEFAULT_CONFIG_FILE)
    else:
        _config = Config()

    return _config


def load_repositories(path: str) -> RepositoryConfig:
    """Load the tracked repository list.

    Args:
        path: Path to the repositories YAML file

    Returns:
        RepositoryConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    data = _read_yaml(path)
    try:
        return RepositoryConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid repositories file {path}: {e}") from e


def load_news_sources(path: str) -> NewsSourceConfig:
    """Load feed, scrape and discussion source settings.

    Args:
        path: Path to the news sources YAML file

    Returns:
        NewsSourceConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    data = _read_yaml(path)
    try:
        return NewsSourceConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid news sources file {path}: {e}") from e
