"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .domain.lifecycle import LifecycleStatus
from .models import Booking
from .services import build_booking_service

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.advance_lifecycle")
def advance_lifecycle() -> dict[str, int]:
    """
    Move bookings along the lifecycle as time passes.

    pre_event_ready bookings whose event has started become in_progress;
    in_progress bookings with a submitted host report become post_event
    once 24h have passed since the event ended.

    Runs hourly.
    """
    return build_booking_service().advance_lifecycle()


@shared_task(name="bookings.reconcile_standing_jobs")
def reconcile_standing_jobs() -> dict[str, int]:
    """
    Re-run the idempotent standing-job enqueue for pre_event_ready bookings.

    Picks up bookings whose enqueue failed when they became ready.

    Runs daily.
    """
    service = build_booking_service(crm=None)
    checked = 0
    for booking in Booking.objects.active().filter(lifecycle_status=LifecycleStatus.PRE_EVENT_READY):
        checked += 1
        try:
            service.scheduler.enqueue_standing_jobs(booking)
        except Exception as e:
            logger.error(f"Error reconciling jobs for booking {booking.pk}: {e}", exc_info=True)

    return {"checked": checked}


# ============================================================================
# ON-DEMAND TASKS
# ============================================================================

@shared_task(name="bookings.sync_booking_to_crm")
def sync_booking_to_crm(booking_id: int) -> bool:
    """Push one booking to the CRM webhook."""
    from apps.integrations.crm import CrmSyncClient

    try:
        booking = Booking.objects.get(pk=booking_id)
    except Booking.DoesNotExist:
        logger.error(f"Booking {booking_id} not found for CRM sync")
        return False

    return bool(CrmSyncClient().push_booking(booking).get("success"))
