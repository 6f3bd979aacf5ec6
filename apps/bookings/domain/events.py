"""
Booking Domain Events

Things that happened to a booking. Each event is stored as a BookingEvent
row, with ``to_dict()`` as its metadata.
"""

from dataclasses import dataclass
from typing import Optional

from shared.domain.base import DomainEvent


@dataclass
class BookingCreated(DomainEvent):
    event_type = "booking_created"
    booking_type: str
    event_date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass
class LifecycleChanged(DomainEvent):
    """
    Event: lifecycle phase moved forward

    ``event_type`` is overridden per trigger so automatic moves stay
    distinguishable from admin actions in the audit trail.
    """
    from_lifecycle: str
    to_lifecycle: str
    trigger: str = "admin"

    @property
    def event_type(self) -> str:  # type: ignore[override]
        if self.trigger == "auto":
            return f"auto_lifecycle_{self.to_lifecycle}"
        return f"lifecycle_{self.to_lifecycle}"


@dataclass
class BookingRescheduled(DomainEvent):
    event_type = "booking_rescheduled"
    old_event_date: str
    new_event_date: str
    old_window: Optional[str]
    new_window: Optional[str]
    date_shift_days: int
    strategy: str
    jobs_updated: int = 0
    jobs_cancelled: int = 0


@dataclass
class BookingCancelled(DomainEvent):
    event_type = "booking_cancelled"
    previous_status: str
    previous_lifecycle: str
    reason: str = ""
    jobs_cancelled: int = 0


@dataclass
class StandingJobsEnqueueFailed(DomainEvent):
    event_type = "standing_jobs_enqueue_failed"
    error: str
