"""Persistence of per-week JSON artifacts."""

from weekly_aggregation.storage.json_store import WeekStore

__all__ = ["WeekStore"]
