"""
ISO-8601 week arithmetic.

Converts "N weeks ago" or an explicit (ISO year, ISO week) pair into a
``TimeWindow`` whose start is Monday 00:00:00 in the given timezone.
Additions are done on wall-clock time, so windows keep their Monday
midnight boundaries across DST changes.
"""

from datetime import date, datetime, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from weekly_aggregation.exceptions import ConfigurationError, WeekValidationError
from weekly_aggregation.models.window import TimeWindow

_UTC = ZoneInfo("UTC")


def iso_weeks_in_year(year: int) -> int:
    """Return 52 or 53, the number of ISO weeks in ``year``."""
    # December 28th always falls in the last ISO week of its year
    return date(year, 12, 28).isocalendar()[1]


def _window_from_start(start: datetime) -> TimeWindow:
    end = start + timedelta(days=7) - timedelta(seconds=1)
    iso_year, iso_week, _ = start.isocalendar()
    return TimeWindow(start=start, end=end, iso_year=iso_year, iso_week=iso_week)


def week_start_for(year: int, week: int, tz: Optional[tzinfo] = None) -> datetime:
    """Return Monday 00:00:00 of ISO week ``week`` of ``year``.

    January 4th is always in ISO week 1, so week 1 starts on the Monday on or
    before it; later weeks follow in steps of seven days.

    Raises:
        WeekValidationError: For weeks outside [1, 53], or week 53 of a
            year with only 52 ISO weeks.
    """
    if not 1 <= week <= 53:
        raise WeekValidationError(year, week, "week must be between 1 and 53")
    if week == 53 and iso_weeks_in_year(year) == 52:
        raise WeekValidationError(year, week, "year has only 52 ISO weeks")

    jan4 = datetime(year, 1, 4, tzinfo=tz or _UTC)
    week1_monday = jan4 - timedelta(days=jan4.isoweekday() - 1)
    return week1_monday + timedelta(days=(week - 1) * 7)


def week_window(year: int, week: int, tz: Optional[tzinfo] = None) -> TimeWindow:
    """Build the window for an explicit ISO (year, week) pair."""
    return _window_from_start(week_start_for(year, week, tz))


def weeks_ago_window(
    weeks_ago: int,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> TimeWindow:
    """Build the window for the week ``weeks_ago`` weeks before ``now``.

    ``weeks_ago=0`` is the current week.

    Args:
        weeks_ago: Number of whole weeks to go back
        now: Reference instant, defaults to the current time
        tz: Timezone for week boundaries, defaults to UTC

    Returns:
        TimeWindow of the target week
    """
    if weeks_ago < 0:
        raise ConfigurationError(f"weeks_ago must not be negative, got {weeks_ago}")

    tz = tz or _UTC
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    else:
        now = now.astimezone(tz)

    # isoweekday() counts Monday as 1 and Sunday as 7
    monday = now - timedelta(days=now.isoweekday() - 1)
    monday = monday.replace(hour=0, minute=0, second=0, microsecond=0)

    return _window_from_start(monday - timedelta(days=7 * weeks_ago))


def resolve_window(
    weeks_ago: Optional[int] = None,
    week: Optional[int] = None,
    year: Optional[int] = None,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """Resolve run parameters into a window.

    An explicit ``week`` wins over ``weeks_ago``; a missing ``year`` means the
    ISO year of ``now``. With neither given the current week is used.
    """
    if week is not None:
        if year is None:
            reference = now or datetime.now(tz or _UTC)
            year = reference.isocalendar()[0]
        return week_window(year, week, tz)

    return weeks_ago_window(weeks_ago or 0, now=now, tz=tz)
