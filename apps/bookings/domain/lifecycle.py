"""
Booking Lifecycle State Machine

Operational phase of a booking, independent of its administrative status.

Happy path:
    pending -> confirmed -> pre_event_ready -> in_progress -> post_event
        -> closed_review_complete

Every non-terminal phase may also move to cancelled. cancelled and
closed_review_complete are terminal; nothing ever moves backward except
into cancelled.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class LifecycleStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    CONFIRMED = "confirmed", _("Confirmed")
    PRE_EVENT_READY = "pre_event_ready", _("Pre-event ready")
    IN_PROGRESS = "in_progress", _("In progress")
    POST_EVENT = "post_event", _("Post event")
    CLOSED_REVIEW_COMPLETE = "closed_review_complete", _("Closed, review complete")
    CANCELLED = "cancelled", _("Cancelled")


HAPPY_PATH = (
    LifecycleStatus.PENDING,
    LifecycleStatus.CONFIRMED,
    LifecycleStatus.PRE_EVENT_READY,
    LifecycleStatus.IN_PROGRESS,
    LifecycleStatus.POST_EVENT,
    LifecycleStatus.CLOSED_REVIEW_COMPLETE,
)

TERMINAL = frozenset({LifecycleStatus.CANCELLED, LifecycleStatus.CLOSED_REVIEW_COMPLETE})


def _build_transitions() -> dict[str, frozenset]:
    table = {}
    for index, current in enumerate(HAPPY_PATH):
        targets = set()
        if index + 1 < len(HAPPY_PATH):
            targets.add(HAPPY_PATH[index + 1])
        if current not in TERMINAL:
            targets.add(LifecycleStatus.CANCELLED)
        table[current] = frozenset(targets)
    table[LifecycleStatus.CANCELLED] = frozenset()
    return table


TRANSITIONS = _build_transitions()


class LifecycleTransitionError(ValueError):
    """Raised when a lifecycle move is not in the transition table."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move booking lifecycle from {current} to {target}")


def rank(status: str) -> int:
    """Position on the happy path; cancelled ranks after everything."""
    if status == LifecycleStatus.CANCELLED:
        return len(HAPPY_PATH)
    return HAPPY_PATH.index(LifecycleStatus(status))


def can_transition(current: str, target: str) -> bool:
    return LifecycleStatus(target) in TRANSITIONS[LifecycleStatus(current)]


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise LifecycleTransitionError(current, target)


def is_terminal(status: str) -> bool:
    return LifecycleStatus(status) in TERMINAL
