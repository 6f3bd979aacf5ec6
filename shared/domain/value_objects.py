"""
Common Value Objects

Date and time-of-day primitives used by availability and scheduling:
- overlaps / same_day / within_date_range: interval predicates
- TimeWindow: a half-open time-of-day window on a single date
- DateSpan: an inclusive range of calendar dates
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, Union

from shared.domain.base import ValueObject

Moment = Union[date, datetime, time]


def overlaps(start_a: Moment, end_a: Moment, start_b: Moment, end_b: Moment) -> bool:
    """
    Half-open overlap test.

    Touching boundaries do not overlap: 09:00-13:00 and 13:00-17:00 are
    both allowed on the same date.
    """
    return start_a < end_b and end_a > start_b


def same_day(a: Union[date, datetime], b: Union[date, datetime]) -> bool:
    if isinstance(a, datetime):
        a = a.date()
    if isinstance(b, datetime):
        b = b.date()
    return a == b


def within_date_range(day: date, range_start: date, range_end: date) -> bool:
    """Inclusive on both ends."""
    return range_start <= day <= range_end


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Time-of-day window value object

    Represents start (inclusive) to end (exclusive) on one calendar date.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time ({self.start:%H:%M}) must be before end time ({self.end:%H:%M})")

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")
        return overlaps(self.start, self.end, other.start, other.end)

    @property
    def duration(self) -> timedelta:
        anchor = date.min
        return datetime.combine(anchor, self.end) - datetime.combine(anchor, self.start)

    def __str__(self):
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


@dataclass(frozen=True)
class DateSpan(ValueObject):
    """
    Date span value object

    Represents start_date to end_date, both inclusive. Used for blocks and
    blackout ranges, where a single-day span has start_date == end_date.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must not be after end date ({self.end_date})")

    @classmethod
    def single(cls, day: date) -> 'DateSpan':
        return cls(day, day)

    def contains(self, day: date) -> bool:
        return within_date_range(day, self.start_date, self.end_date)

    def days(self) -> Iterator[date]:
        current = self.start_date
        while current <= self.end_date:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def __str__(self):
        if self.start_date == self.end_date:
            return self.start_date.isoformat()
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"
