"""Domain services for availability checks."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from django.conf import settings  # type: ignore

from .domain.resolver import Availability, Candidate, Verdict, resolve
from .store import AvailabilityStore

logger = logging.getLogger(__name__)


class ConflictError(Exception):
    """Raised when the requested window is already taken."""

    def __init__(self, verdict: Verdict, candidate: Candidate):
        self.verdict = verdict
        self.candidate = candidate
        super().__init__(verdict.reason or f"{candidate} is not available")

    @property
    def conflict(self) -> Optional[dict]:
        if self.verdict.conflict is None:
            return None
        return self.verdict.conflict.to_dict()

    def as_response(self) -> dict:
        return {
            "detail": str(self),
            "status": self.verdict.status.value,
            "conflict": self.conflict,
        }


class AvailabilityService:
    """Runs the resolver against holds loaded from the store."""

    def __init__(self, store: Optional[AvailabilityStore] = None):
        self.store = store or AvailabilityStore()

    def check(
        self,
        candidate: Candidate,
        *,
        exclude_booking_id: Optional[int] = None,
        lock: bool = False,
    ) -> Verdict:
        day = candidate.day
        bookings = self.store.booking_holds(day, day, exclude_booking_id=exclude_booking_id, lock=lock)
        blocks = self.store.block_holds(day, day, exclude_booking_id=exclude_booking_id, lock=lock)
        blackouts = self.store.blackout_spans(day, day)
        return resolve(candidate, bookings, blocks, blackouts)

    def ensure_available(
        self,
        candidate: Candidate,
        *,
        exclude_booking_id: Optional[int] = None,
    ) -> Verdict:
        """Raise ConflictError unless the candidate is fully free.

        Call inside transaction.atomic() so competing rows are locked where
        the database supports it.
        """
        verdict = self.check(candidate, exclude_booking_id=exclude_booking_id, lock=True)
        if not verdict.is_available:
            logger.info(f"Availability conflict for {candidate}: {verdict.reason}")
            raise ConflictError(verdict, candidate)
        return verdict

    def calendar(self, start: date, end: date) -> list[dict]:
        """Tri-state status of every date in the inclusive range."""

        max_days = settings.VENUE_SCHEDULING["CALENDAR_MAX_DAYS"]
        if end < start:
            raise ValueError("End date must not be before start date")
        if (end - start).days + 1 > max_days:
            raise ValueError(f"Calendar range is limited to {max_days} days")

        bookings = self.store.booking_holds(start, end)
        blocks = self.store.block_holds(start, end)
        blackouts = self.store.blackout_spans(start, end)

        result = []
        current = start
        while current <= end:
            verdict = resolve(Candidate.daily(current), bookings, blocks, blackouts)
            result.append(
                {
                    "date": current,
                    "status": verdict.status.value,
                    "reason": verdict.reason,
                }
            )
            current = current + timedelta(days=1)
        return result


def build_availability_service() -> AvailabilityService:
    return AvailabilityService(store=AvailabilityStore())


__all__ = [
    "Availability",
    "AvailabilityService",
    "Candidate",
    "ConflictError",
    "build_availability_service",
]
