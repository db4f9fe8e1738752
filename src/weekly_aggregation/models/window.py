"""
Time window covering one ISO calendar week.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TimeWindow:
    """A ``[start, end)`` instant range for one ISO week.

    ``start`` is a Monday 00:00:00 in the window's timezone and
    ``end = start + 7 days - 1 second``.
    """

    start: datetime
    end: datetime
    iso_year: int
    iso_week: int

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError("Window end must be after its start")

    def contains(self, instant: datetime) -> bool:
        """Check whether an instant lies in ``[start, end)``."""
        return self.start <= instant < self.end

    @property
    def label(self) -> str:
        """Return the ``YYYY-week-WW`` label used for file names."""
        return f"{self.iso_year}-week-{self.iso_week:02d}"

    def __str__(self) -> str:
        return (
            f"Week {self.iso_week} of {self.iso_year} "
            f"({self.start:%Y-%m-%d} to {self.end:%Y-%m-%d})"
        )
