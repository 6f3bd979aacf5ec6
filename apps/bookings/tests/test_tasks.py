"""Periodic booking task tests."""

from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from apps.bookings.domain.lifecycle import LifecycleStatus
from apps.bookings.tasks import reconcile_standing_jobs
from apps.jobs.job_types import JobType
from apps.jobs.models import ScheduledJob


def pending_types(booking):
    return sorted(
        ScheduledJob.objects.filter(booking=booking, status=ScheduledJob.Status.PENDING).values_list(
            "job_type", flat=True
        )
    )


@pytest.mark.django_db
def test_reconcile_enqueues_jobs_missed_at_pre_event_ready(booking_service, make_booking):
    booking = make_booking(timezone.localdate() + timedelta(days=30))
    with mock.patch.object(
        booking_service.scheduler, "enqueue_standing_jobs", side_effect=RuntimeError("database unavailable")
    ):
        booking_service.mark_pre_event_ready(booking)
    assert not ScheduledJob.objects.filter(booking=booking).exists()

    result = reconcile_standing_jobs()

    assert result == {"checked": 1}
    assert pending_types(booking) == [
        JobType.BALANCE_RETRY_1,
        JobType.HOST_REPORT_PRE_START,
        JobType.SET_LIFECYCLE_IN_PROGRESS,
    ]


@pytest.mark.django_db
def test_reconcile_is_idempotent_and_skips_other_lifecycles(booking_service, make_booking):
    ready = make_booking(timezone.localdate() + timedelta(days=30))
    booking_service.mark_pre_event_ready(ready)
    make_booking(timezone.localdate() + timedelta(days=40), email="other@example.com")

    result = reconcile_standing_jobs()

    assert result == {"checked": 1}
    assert ScheduledJob.objects.filter(booking=ready).count() == 3
    ready.refresh_from_db()
    assert ready.lifecycle_status == LifecycleStatus.PRE_EVENT_READY
