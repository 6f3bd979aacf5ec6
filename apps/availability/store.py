"""ORM-backed reads feeding the availability resolver."""

from __future__ import annotations

from datetime import date
from typing import Optional

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from shared.domain.value_objects import DateSpan, TimeWindow

from .domain.resolver import Hold, HoldKind
from .models import AvailabilityBlock, BlackoutDate


def lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class AvailabilityStore:
    """Loads holds for a date range as resolver value objects."""

    def booking_holds(
        self,
        start: date,
        end: date,
        *,
        exclude_booking_id: Optional[int] = None,
        lock: bool = False,
    ) -> list[Hold]:
        from apps.bookings.models import Booking  # Local import to prevent circular dependency

        qs = Booking.objects.committed().filter(event_date__gte=start, event_date__lte=end)
        if exclude_booking_id is not None:
            qs = qs.exclude(pk=exclude_booking_id)
        if lock:
            qs = lock_queryset_if_possible(qs)

        holds = []
        for booking in qs.order_by("event_date", "start_time"):
            window = None
            if not booking.is_daily and booking.start_time and booking.end_time:
                window = TimeWindow(booking.start_time, booking.end_time)
            holds.append(
                Hold(
                    kind=HoldKind.BOOKING,
                    reference=booking.reservation_code,
                    span=DateSpan.single(booking.event_date),
                    window=window,
                )
            )
        return holds

    def block_holds(
        self,
        start: date,
        end: date,
        *,
        exclude_booking_id: Optional[int] = None,
        lock: bool = False,
    ) -> list[Hold]:
        qs = AvailabilityBlock.objects.filter(start_date__lte=end, end_date__gte=start)
        if exclude_booking_id is not None:
            # Blocks held on behalf of the booking move with it
            qs = qs.exclude(booking_id=exclude_booking_id)
        if lock:
            qs = lock_queryset_if_possible(qs)

        return [
            Hold(
                kind=HoldKind.BLOCK,
                reference=f"#{block.pk}",
                span=block.date_span,
                window=block.time_window,
            )
            for block in qs.order_by("start_date", "start_time")
        ]

    def blackout_spans(self, start: date, end: date) -> list[DateSpan]:
        qs = BlackoutDate.objects.filter(start_date__lte=end, end_date__gte=start)
        return [blackout.date_span for blackout in qs]
