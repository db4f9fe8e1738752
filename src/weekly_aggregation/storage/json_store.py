"""
Flat-file storage for per-week release and news collections.

Each week produces ``releases-YYYY-week-WW.json`` and
``news-YYYY-week-WW.json``: pretty-printed UTF-8 JSON lists in collection
order.
"""

import json
from pathlib import Path
from typing import Optional, Union

from pydantic import TypeAdapter, ValidationError

from weekly_aggregation.exceptions import SourceParseError
from weekly_aggregation.logger import get_logger
from weekly_aggregation.models import NewsItem, Release, TimeWindow

logger = get_logger(__name__)

_RELEASES = TypeAdapter(list[Release])
_NEWS = TypeAdapter(list[NewsItem])


class WeekStore:
    """Reads and writes the JSON artifacts of each week under one directory."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def releases_path(self, window: TimeWindow) -> Path:
        """Path of the release file for a week."""
        return self.data_dir / f"releases-{window.label}.json"

    def news_path(self, window: TimeWindow) -> Path:
        """Path of the news file for a week."""
        return self.data_dir / f"news-{window.label}.json"

    def _write(self, path: Path, adapter: TypeAdapter, items: list) -> Path:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = adapter.dump_json(items, indent=2)
        path.write_bytes(data)
        return path

    def save_releases(self, window: TimeWindow, releases: list[Release]) -> Path:
        """Write a week's releases and return the file path."""
        path = self._write(self.releases_path(window), _RELEASES, releases)
        logger.info(f"Saved {len(releases)} releases to {path}")
        return path

    def save_news(self, window: TimeWindow, items: list[NewsItem]) -> Path:
        """Write a week's news items and return the file path."""
        path = self._write(self.news_path(window), _NEWS, items)
        logger.info(f"Saved {len(items)} news items to {path}")
        return path

    def _load(self, path: Path, adapter: TypeAdapter) -> Optional[list]:
        if not path.exists():
            return None

        # Invalid UTF-8 is dropped here; the models drop lone surrogates
        text = path.read_bytes().decode("utf-8", errors="ignore")
        try:
            return adapter.validate_python(json.loads(text))
        except (ValueError, ValidationError) as e:
            raise SourceParseError(str(path), f"Invalid data file: {e}") from e

    def load_releases(self, window: TimeWindow) -> Optional[list[Release]]:
        """Load a week's releases, or None if the file does not exist.

        Raises:
            SourceParseError: If the file content is not a release list
        """
        return self._load(self.releases_path(window), _RELEASES)

    def load_news(self, window: TimeWindow) -> Optional[list[NewsItem]]:
        """Load a week's news items, or None if the file does not exist."""
        return self._load(self.news_path(window), _NEWS)
