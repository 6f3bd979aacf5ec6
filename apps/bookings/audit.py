"""Audit trail helpers for bookings."""

from __future__ import annotations

import logging
from typing import Optional

from shared.domain.base import DomainEvent

from .models import Booking, BookingEvent

logger = logging.getLogger(__name__)


def record_event(
    booking: Booking,
    event: DomainEvent | str,
    *,
    channel: str = BookingEvent.Channel.SYSTEM,
    metadata: Optional[dict] = None,
) -> BookingEvent:
    """Append an audit row; a DomainEvent supplies its own type and payload."""

    if isinstance(event, DomainEvent):
        event_type = event.event_type
        payload = {**event.to_dict(), **(metadata or {})}
    else:
        event_type = event
        payload = dict(metadata or {})

    logger.debug(f"Booking {booking.reservation_code}: {event_type} {payload}")
    return BookingEvent.objects.create(
        booking=booking,
        event_type=event_type,
        channel=channel,
        metadata=payload,
    )
