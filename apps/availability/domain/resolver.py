"""
Availability Resolver

Pure decision logic for the venue calendar. Given a candidate (a whole day
or a time window on one date), the committed holds on that date and the
blackout ranges, it returns a tri-state verdict:

- available: nothing stands in the way
- partial: a whole-day candidate meets hourly activity only (calendar shading)
- blocked: blackout, a whole-day hold, or an overlapping time window

Checks run in order and the first blocking match decides. Only ``available``
counts as accepted; ``partial`` is rejected for reservations because a daily
booking cannot coexist with any hourly activity on the same date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Iterable, Optional

from shared.domain.base import ValueObject
from shared.domain.value_objects import DateSpan, TimeWindow


class Availability(str, Enum):
    AVAILABLE = "available"
    PARTIAL = "partial"
    BLOCKED = "blocked"


class HoldKind(str, Enum):
    BOOKING = "booking"
    BLOCK = "block"
    BLACKOUT = "blackout"


@dataclass(frozen=True)
class Candidate(ValueObject):
    """Requested reservation window."""
    day: date
    window: Optional[TimeWindow] = None

    @classmethod
    def daily(cls, day: date) -> 'Candidate':
        return cls(day=day)

    @classmethod
    def hourly(cls, day: date, start: time, end: time) -> 'Candidate':
        return cls(day=day, window=TimeWindow(start, end))

    @property
    def is_daily(self) -> bool:
        return self.window is None

    def __str__(self):
        if self.window is None:
            return f"{self.day.isoformat()} (full day)"
        return f"{self.day.isoformat()} {self.window}"


@dataclass(frozen=True)
class Hold(ValueObject):
    """
    Something occupying the calendar: a committed booking or a manual block.

    ``window`` is None for whole-day holds, which occupy every hour of every
    date in ``span``.
    """
    kind: HoldKind
    reference: str
    span: DateSpan
    window: Optional[TimeWindow] = None

    @property
    def is_daily(self) -> bool:
        return self.window is None

    def covers(self, day: date) -> bool:
        return self.span.contains(day)

    def describe(self) -> str:
        if self.kind == HoldKind.BOOKING:
            label = f"booking {self.reference}"
        elif self.kind == HoldKind.BLACKOUT:
            label = f"blackout {self.reference}".rstrip()
        else:
            label = f"calendar block {self.reference}"
        if self.window is None:
            return f"{label} ({self.span}, full day)"
        return f"{label} ({self.span} {self.window})"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "reference": self.reference,
            "start_date": self.span.start_date.isoformat(),
            "end_date": self.span.end_date.isoformat(),
            "start_time": self.window.start.strftime("%H:%M") if self.window else None,
            "end_time": self.window.end.strftime("%H:%M") if self.window else None,
        }


@dataclass(frozen=True)
class Verdict(ValueObject):
    status: Availability
    conflict: Optional[Hold] = None
    reason: str = ""

    @property
    def is_available(self) -> bool:
        return self.status == Availability.AVAILABLE


def _blackout_hold(span: DateSpan) -> Hold:
    return Hold(kind=HoldKind.BLACKOUT, reference="", span=span)


def resolve(
    candidate: Candidate,
    bookings: Iterable[Hold],
    blocks: Iterable[Hold],
    blackouts: Iterable[DateSpan],
) -> Verdict:
    """Tri-state verdict for ``candidate``; see module docstring for ordering."""

    for span in blackouts:
        if span.contains(candidate.day):
            return Verdict(
                Availability.BLOCKED,
                _blackout_hold(span),
                f"{candidate.day.isoformat()} is a blackout date",
            )

    same_day = [hold for hold in [*bookings, *blocks] if hold.covers(candidate.day)]

    for hold in same_day:
        if hold.is_daily:
            return Verdict(
                Availability.BLOCKED,
                hold,
                f"The whole day is held by {hold.describe()}",
            )

    hourly = [hold for hold in same_day if not hold.is_daily]

    if candidate.is_daily:
        if hourly:
            return Verdict(
                Availability.PARTIAL,
                hourly[0],
                f"A full-day reservation cannot share the date with {hourly[0].describe()}",
            )
        return Verdict(Availability.AVAILABLE)

    for hold in hourly:
        if candidate.window.overlaps_with(hold.window):
            return Verdict(
                Availability.BLOCKED,
                hold,
                f"This time overlaps an existing {hold.describe()}",
            )

    return Verdict(Availability.AVAILABLE)


def is_available(
    candidate: Candidate,
    bookings: Iterable[Hold],
    blocks: Iterable[Hold],
    blackouts: Iterable[DateSpan],
) -> bool:
    return resolve(candidate, bookings, blocks, blackouts).is_available
