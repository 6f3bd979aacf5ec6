"""Unit tests for the availability resolver (no database)."""

from __future__ import annotations

from datetime import date, time

from apps.availability.domain.resolver import (
    Availability,
    Candidate,
    Hold,
    HoldKind,
    is_available,
    resolve,
)
from shared.domain.value_objects import DateSpan, TimeWindow

JUNE_1 = date(2025, 6, 1)
JULY_4 = date(2025, 7, 4)


def hourly_booking(day: date, start: time, end: time, reference: str = "VB-TEST") -> Hold:
    return Hold(HoldKind.BOOKING, reference, DateSpan.single(day), TimeWindow(start, end))


def daily_block(start: date, end: date | None = None) -> Hold:
    return Hold(HoldKind.BLOCK, "#1", DateSpan(start, end or start))


def test_overlapping_hourly_request_is_blocked():
    booking = hourly_booking(JUNE_1, time(9, 0), time(13, 0))

    verdict = resolve(Candidate.hourly(JUNE_1, time(12, 0), time(16, 0)), [booking], [], [])

    assert verdict.status == Availability.BLOCKED
    assert verdict.conflict == booking
    assert "overlaps an existing booking VB-TEST" in verdict.reason


def test_back_to_back_hourly_request_is_available():
    booking = hourly_booking(JUNE_1, time(9, 0), time(13, 0))

    verdict = resolve(Candidate.hourly(JUNE_1, time(13, 0), time(17, 0)), [booking], [], [])

    assert verdict.status == Availability.AVAILABLE
    assert verdict.conflict is None


def test_daily_block_closes_every_hourly_window():
    block = daily_block(JULY_4)

    assert resolve(Candidate.hourly(JULY_4, time(10, 0), time(11, 0)), [], [block], []).status == Availability.BLOCKED
    for hour in range(0, 23):
        candidate = Candidate.hourly(JULY_4, time(hour, 0), time(hour + 1, 0))
        assert not is_available(candidate, [], [block], [])


def test_multi_day_block_covers_inner_dates():
    block = daily_block(date(2025, 7, 1), date(2025, 7, 5))

    assert resolve(Candidate.daily(JULY_4), [], [block], []).status == Availability.BLOCKED
    assert resolve(Candidate.daily(date(2025, 7, 6)), [], [block], []).status == Availability.AVAILABLE


def test_daily_request_on_date_with_hourly_activity_is_partial():
    booking = hourly_booking(JUNE_1, time(18, 0), time(19, 0))

    verdict = resolve(Candidate.daily(JUNE_1), [booking], [], [])

    assert verdict.status == Availability.PARTIAL
    assert not verdict.is_available


def test_blackout_wins_over_everything_else():
    blackout = DateSpan(date(2025, 12, 24), date(2025, 12, 26))

    verdict = resolve(Candidate.daily(date(2025, 12, 25)), [], [], [blackout])

    assert verdict.status == Availability.BLOCKED
    assert verdict.conflict.kind == HoldKind.BLACKOUT
    assert "blackout" in verdict.reason


def test_holds_on_other_dates_are_ignored():
    booking = hourly_booking(date(2025, 6, 2), time(9, 0), time(13, 0))
    block = daily_block(date(2025, 5, 31))

    assert is_available(Candidate.hourly(JUNE_1, time(9, 0), time(13, 0)), [booking], [block], [])
    assert is_available(Candidate.daily(JUNE_1), [booking], [block], [])


def test_conflict_serialises_for_responses():
    booking = hourly_booking(JUNE_1, time(9, 0), time(13, 0))

    verdict = resolve(Candidate.hourly(JUNE_1, time(10, 0), time(11, 0)), [booking], [], [])

    assert verdict.conflict.to_dict() == {
        "kind": "booking",
        "reference": "VB-TEST",
        "start_date": "2025-06-01",
        "end_date": "2025-06-01",
        "start_time": "09:00",
        "end_time": "13:00",
    }
