"""Booking service tests: acceptance, lifecycle moves, reschedule and cancel."""

from __future__ import annotations

from datetime import time, timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.utils import timezone

from apps.availability.models import AvailabilityBlock
from apps.availability.services import ConflictError
from apps.bookings.domain.lifecycle import LifecycleStatus, LifecycleTransitionError
from apps.bookings.models import Booking, BookingEvent, HostReport
from apps.bookings.services import BookingDetails, BookingStateError
from apps.jobs.job_types import JobType
from apps.jobs.models import ScheduledJob


def today(clock):
    return timezone.localtime(clock()).date()


def details(event_date, booking_type=Booking.BookingType.HOURLY, start=time(9, 0), end=time(13, 0)):
    if booking_type == Booking.BookingType.DAILY:
        start = end = None
    return BookingDetails(
        full_name="Katherine Johnson",
        email="katherine@example.com",
        event_date=event_date,
        booking_type=booking_type,
        start_time=start,
        end_time=end,
        deposit_amount=Decimal("250.00"),
        balance_amount=Decimal("750.00"),
    )


def pending_types(booking):
    return sorted(
        ScheduledJob.objects.filter(booking=booking, status=ScheduledJob.Status.PENDING).values_list(
            "job_type", flat=True
        )
    )


# ----------------------------------------------------------------------------
# Acceptance
# ----------------------------------------------------------------------------


@pytest.mark.django_db
def test_create_booking_starts_pending(booking_service, clock):
    booking = booking_service.create_booking(details(today(clock) + timedelta(days=20)))

    assert booking.reservation_code.startswith("VB-")
    assert booking.status == Booking.Status.PENDING_REVIEW
    assert booking.lifecycle_status == LifecycleStatus.PENDING
    assert booking.payment_status == Booking.PaymentStatus.PENDING
    assert booking.events.filter(event_type="booking_created").exists()


@pytest.mark.django_db
def test_create_booking_rejects_committed_overlap(booking_service, make_booking, clock):
    day = today(clock) + timedelta(days=20)
    existing = make_booking(day, start_time=time(9, 0), end_time=time(13, 0))

    with pytest.raises(ConflictError) as excinfo:
        booking_service.create_booking(details(day, start=time(12, 0), end=time(16, 0)))

    assert excinfo.value.conflict["reference"] == existing.reservation_code
    assert Booking.objects.count() == 1


@pytest.mark.django_db
def test_create_booking_rejects_past_date(booking_service, clock):
    with pytest.raises(BookingStateError):
        booking_service.create_booking(details(today(clock) - timedelta(days=1)))


@pytest.mark.django_db
def test_daily_booking_rejected_when_date_has_hourly_activity(booking_service, make_booking, clock):
    day = today(clock) + timedelta(days=20)
    make_booking(day, start_time=time(18, 0), end_time=time(19, 0))

    with pytest.raises(ConflictError):
        booking_service.create_booking(details(day, booking_type=Booking.BookingType.DAILY))


@pytest.mark.django_db
def test_record_deposit_confirms_and_rechecks_availability(booking_service, make_booking, clock, crm):
    day = today(clock) + timedelta(days=20)
    first = booking_service.create_booking(details(day))
    second = booking_service.create_booking(details(day, start=time(10, 0), end=time(12, 0)))

    booking_service.record_deposit(first)

    first.refresh_from_db()
    assert first.status == Booking.Status.CONFIRMED
    assert first.lifecycle_status == LifecycleStatus.CONFIRMED
    assert first.payment_status == Booking.PaymentStatus.DEPOSIT_PAID
    assert first.confirmed_at == clock()
    assert crm.pushed == [first.reservation_code]

    with pytest.raises(ConflictError):
        booking_service.record_deposit(second)
    second.refresh_from_db()
    assert second.payment_status == Booking.PaymentStatus.PENDING


# ----------------------------------------------------------------------------
# pre_event_ready and standing jobs
# ----------------------------------------------------------------------------


@pytest.mark.django_db
def test_pre_event_ready_enqueues_once_per_family(booking_service, make_booking, clock):
    booking = make_booking(today(clock) + timedelta(days=30))

    booking_service.mark_pre_event_ready(booking)
    booking_service.mark_pre_event_ready(booking)

    booking.refresh_from_db()
    assert booking.lifecycle_status == LifecycleStatus.PRE_EVENT_READY
    assert pending_types(booking) == [
        JobType.BALANCE_RETRY_1,
        JobType.HOST_REPORT_PRE_START,
        JobType.SET_LIFECYCLE_IN_PROGRESS,
    ]
    assert ScheduledJob.objects.filter(booking=booking).count() == 3


@pytest.mark.django_db
def test_pre_event_ready_requires_deposit(booking_service, make_booking, clock):
    booking = make_booking(today(clock) + timedelta(days=30), payment_status=Booking.PaymentStatus.PENDING)

    with pytest.raises(BookingStateError):
        booking_service.mark_pre_event_ready(booking)


@pytest.mark.django_db
def test_enqueue_failure_does_not_roll_back_transition(booking_service, make_booking, clock):
    booking = make_booking(today(clock) + timedelta(days=30))

    with mock.patch.object(
        booking_service.scheduler, "enqueue_standing_jobs", side_effect=RuntimeError("database unavailable")
    ):
        booking_service.mark_pre_event_ready(booking)

    booking.refresh_from_db()
    assert booking.lifecycle_status == LifecycleStatus.PRE_EVENT_READY
    event = BookingEvent.objects.get(booking=booking, event_type="standing_jobs_enqueue_failed")
    assert event.metadata["error"] == "database unavailable"


@pytest.mark.django_db
def test_balance_payment_cancels_balance_jobs_only(booking_service, make_booking, clock):
    booking = make_booking(today(clock) + timedelta(days=30))
    booking_service.mark_pre_event_ready(booking)

    booking_service.record_balance_payment(booking)

    booking.refresh_from_db()
    assert booking.payment_status == Booking.PaymentStatus.FULLY_PAID
    assert pending_types(booking) == [JobType.HOST_REPORT_PRE_START, JobType.SET_LIFECYCLE_IN_PROGRESS]
    cancelled = ScheduledJob.objects.get(booking=booking, job_type=JobType.BALANCE_RETRY_1)
    assert cancelled.status == ScheduledJob.Status.CANCELLED
    assert cancelled.last_error == "balance_paid"


# ----------------------------------------------------------------------------
# Periodic lifecycle sweep
# ----------------------------------------------------------------------------


@pytest.mark.django_db
def test_started_events_move_to_in_progress(booking_service, make_booking, clock):
    booking = make_booking(
        today(clock),
        start_time=time(10, 0),
        end_time=time(11, 0),
        lifecycle_status=LifecycleStatus.PRE_EVENT_READY,
    )
    later = make_booking(
        today(clock),
        start_time=time(15, 0),
        end_time=time(16, 0),
        lifecycle_status=LifecycleStatus.PRE_EVENT_READY,
    )

    results = booking_service.advance_lifecycle()

    booking.refresh_from_db()
    later.refresh_from_db()
    assert results["started"] == 1
    assert booking.lifecycle_status == LifecycleStatus.IN_PROGRESS
    assert later.lifecycle_status == LifecycleStatus.PRE_EVENT_READY
    assert booking.events.filter(event_type="auto_lifecycle_in_progress").exists()


@pytest.mark.django_db
def test_post_event_needs_report_and_full_grace_period(booking_service, make_booking, clock):
    booking = make_booking(
        today(clock) - timedelta(days=2),
        start_time=time(18, 0),
        end_time=time(22, 0),
        lifecycle_status=LifecycleStatus.IN_PROGRESS,
    )
    event_end = booking.event_end

    results = booking_service.advance_lifecycle(now=event_end + timedelta(days=1, hours=1))
    assert results["pending_host_report"] == 1
    booking.refresh_from_db()
    assert booking.lifecycle_status == LifecycleStatus.IN_PROGRESS

    HostReport.objects.create(booking=booking, status=HostReport.Status.SUBMITTED, submitted_at=event_end)

    results = booking_service.advance_lifecycle(now=event_end + timedelta(hours=23, minutes=59))
    booking.refresh_from_db()
    assert results["pending_24h"] == 1
    assert booking.lifecycle_status == LifecycleStatus.IN_PROGRESS

    results = booking_service.advance_lifecycle(now=event_end + timedelta(hours=24, minutes=1))
    booking.refresh_from_db()
    assert results["transitioned"] == 1
    assert booking.lifecycle_status == LifecycleStatus.POST_EVENT
    assert booking.events.filter(event_type="auto_lifecycle_post_event").exists()


@pytest.mark.django_db
def test_complete_review_closes_booking(booking_service, make_booking, clock):
    booking = make_booking(today(clock) - timedelta(days=5), lifecycle_status=LifecycleStatus.POST_EVENT)

    booking_service.complete_review(booking)

    booking.refresh_from_db()
    assert booking.lifecycle_status == LifecycleStatus.CLOSED_REVIEW_COMPLETE
    assert booking.status == Booking.Status.COMPLETED


@pytest.mark.django_db
def test_complete_review_requires_post_event(booking_service, make_booking, clock):
    booking = make_booking(today(clock) + timedelta(days=5), lifecycle_status=LifecycleStatus.CONFIRMED)

    with pytest.raises(LifecycleTransitionError):
        booking_service.complete_review(booking)


@pytest.mark.django_db
def test_host_report_submission_cancels_reminders(booking_service, make_booking, clock):
    booking = make_booking(today(clock) + timedelta(days=30))
    booking_service.mark_pre_event_ready(booking)

    report = booking_service.submit_host_report(booking, has_issue=True, issue_description="Broken projector")

    assert report.status == HostReport.Status.SUBMITTED
    assert report.submitted_at == clock()
    assert booking.host_report_submitted()
    assert pending_types(booking) == [JobType.BALANCE_RETRY_1, JobType.SET_LIFECYCLE_IN_PROGRESS]


# ----------------------------------------------------------------------------
# Cancellation
# ----------------------------------------------------------------------------


@pytest.mark.django_db
def test_cancel_is_idempotent_and_keeps_completed_jobs(booking_service, make_booking, clock, notifier):
    booking = make_booking(today(clock) + timedelta(days=30))
    booking_service.mark_pre_event_ready(booking)
    done = ScheduledJob.objects.create(
        booking=booking,
        job_type=JobType.CREATE_BALANCE_PAYMENT_LINK,
        run_at=clock() - timedelta(days=1),
        status=ScheduledJob.Status.COMPLETED,
    )

    booking_service.cancel_booking(booking, "Client changed plans")
    booking_service.cancel_booking(booking, "Second click")

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CANCELLED
    assert booking.lifecycle_status == LifecycleStatus.CANCELLED
    assert booking.cancellation_reason == "Client changed plans"
    assert pending_types(booking) == []
    assert ScheduledJob.objects.get(pk=done.pk).status == ScheduledJob.Status.COMPLETED
    assert booking.events.filter(event_type="booking_cancelled").count() == 1
    assert notifier.sent == [("cancellation", booking.pk)]


@pytest.mark.django_db
def test_completed_booking_cannot_be_cancelled(booking_service, make_booking, clock):
    booking = make_booking(
        today(clock) - timedelta(days=10),
        status=Booking.Status.COMPLETED,
        lifecycle_status=LifecycleStatus.CLOSED_REVIEW_COMPLETE,
    )

    with pytest.raises(BookingStateError):
        booking_service.cancel_booking(booking)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.COMPLETED


@pytest.mark.django_db
def test_post_event_booking_can_still_be_cancelled(booking_service, make_booking, clock):
    booking = make_booking(today(clock) - timedelta(days=3), lifecycle_status=LifecycleStatus.POST_EVENT)

    booking_service.cancel_booking(booking)

    assert booking.lifecycle_status == LifecycleStatus.CANCELLED


# ----------------------------------------------------------------------------
# Reschedule
# ----------------------------------------------------------------------------


@pytest.mark.django_db
def test_reschedule_excludes_own_window(booking_service, make_booking, clock):
    day = today(clock) + timedelta(days=30)
    booking = make_booking(day, start_time=time(9, 0), end_time=time(13, 0))

    booking_service.reschedule_booking(booking, day, time(11, 0), time(15, 0))

    booking.refresh_from_db()
    assert booking.start_time == time(11, 0)
    assert booking.end_time == time(15, 0)


@pytest.mark.django_db
def test_reschedule_into_conflict_leaves_booking_unchanged(booking_service, make_booking, clock):
    day = today(clock) + timedelta(days=30)
    booking = make_booking(day, start_time=time(9, 0), end_time=time(13, 0))
    make_booking(day + timedelta(days=1), email="other@example.com")

    with pytest.raises(ConflictError):
        booking_service.reschedule_booking(booking, day + timedelta(days=1), time(9, 0), time(13, 0))

    booking.refresh_from_db()
    assert booking.event_date == day


@pytest.mark.django_db
def test_reschedule_keeps_booking_type(booking_service, make_booking, clock):
    booking = make_booking(today(clock) + timedelta(days=30))

    with pytest.raises(BookingStateError):
        booking_service.reschedule_booking(booking, today(clock) + timedelta(days=31), time(9, 0), time(10, 0))


@pytest.mark.django_db
def test_reschedule_later_shifts_pending_jobs(booking_service, make_booking, clock):
    day = today(clock) + timedelta(days=30)
    booking = make_booking(day)
    booking_service.mark_pre_event_ready(booking)
    before = dict(ScheduledJob.objects.filter(booking=booking).values_list("job_type", "run_at"))

    booking_service.reschedule_booking(booking, day + timedelta(days=7))

    after = dict(ScheduledJob.objects.filter(booking=booking).values_list("job_type", "run_at"))
    for job_type, run_at in before.items():
        assert after[job_type] == run_at + timedelta(days=7)
    event = booking.events.get(event_type="booking_rescheduled")
    assert event.metadata["strategy"] == "shift"
    assert event.metadata["jobs_updated"] == 3
    assert event.metadata["date_shift_days"] == 7


@pytest.mark.django_db
def test_reschedule_sooner_reenqueues_stale_jobs(booking_service, make_booking, clock):
    day = today(clock) + timedelta(days=30)
    booking = make_booking(day)
    booking_service.mark_pre_event_ready(booking)

    booking_service.reschedule_booking(booking, today(clock) + timedelta(days=3))

    booking.refresh_from_db()
    superseded = ScheduledJob.objects.filter(booking=booking, last_error="superseded_by_reschedule")
    assert superseded.count() == 3
    assert pending_types(booking) == [
        JobType.CREATE_BALANCE_PAYMENT_LINK,
        JobType.HOST_REPORT_DURING,
        JobType.SET_LIFECYCLE_IN_PROGRESS,
    ]
    assert booking.host_report_step == Booking.HostReportStep.PRE_START
    event = booking.events.get(event_type="booking_rescheduled")
    assert event.metadata["strategy"] == "reenqueue"
    assert event.metadata["jobs_cancelled"] == 3


@pytest.mark.django_db
def test_cancelled_booking_cannot_be_rescheduled(booking_service, make_booking, clock):
    booking = make_booking(today(clock) + timedelta(days=30), status=Booking.Status.CANCELLED)

    with pytest.raises(BookingStateError):
        booking_service.reschedule_booking(booking, today(clock) + timedelta(days=31))


@pytest.mark.django_db
def test_reschedule_sooner_resumes_balance_chain(booking_service, make_booking, job_store, clock):
    booking = make_booking(today(clock) + timedelta(days=10))
    booking_service.mark_pre_event_ready(booking)
    ScheduledJob.objects.filter(booking=booking, job_type=JobType.CREATE_BALANCE_PAYMENT_LINK).update(
        status=ScheduledJob.Status.COMPLETED, completed_at=clock()
    )
    job_store.enqueue(booking, JobType.BALANCE_RETRY_2, clock() + timedelta(hours=48))

    booking_service.reschedule_booking(booking, today(clock) + timedelta(days=3))

    assert pending_types(booking) == [
        JobType.BALANCE_RETRY_2,
        JobType.HOST_REPORT_DURING,
        JobType.SET_LIFECYCLE_IN_PROGRESS,
    ]
    retry = ScheduledJob.objects.get(
        booking=booking, job_type=JobType.BALANCE_RETRY_2, status=ScheduledJob.Status.PENDING
    )
    assert retry.run_at == clock() + timedelta(hours=48)


@pytest.mark.django_db
def test_reschedule_ignores_system_hold_of_same_booking(booking_service, make_booking, clock):
    day = today(clock) + timedelta(days=30)
    booking = make_booking(day, start_time=time(9, 0), end_time=time(13, 0))
    AvailabilityBlock.objects.create(
        source=AvailabilityBlock.Source.SYSTEM,
        booking=booking,
        block_type=AvailabilityBlock.BlockType.HOURLY,
        start_date=day,
        end_date=day,
        start_time=time(9, 0),
        end_time=time(13, 0),
    )

    booking_service.reschedule_booking(booking, day, time(10, 0), time(14, 0))

    booking.refresh_from_db()
    assert booking.start_time == time(10, 0)
    assert booking.end_time == time(14, 0)


@pytest.mark.django_db
def test_reschedule_still_blocked_by_unrelated_hold(booking_service, make_booking, clock):
    day = today(clock) + timedelta(days=30)
    booking = make_booking(day, start_time=time(9, 0), end_time=time(13, 0))
    AvailabilityBlock.objects.create(
        block_type=AvailabilityBlock.BlockType.HOURLY,
        start_date=day,
        end_date=day,
        start_time=time(13, 0),
        end_time=time(15, 0),
    )

    with pytest.raises(ConflictError):
        booking_service.reschedule_booking(booking, day, time(10, 0), time(14, 0))


@pytest.mark.django_db
@pytest.mark.parametrize("lifecycle_status", [LifecycleStatus.IN_PROGRESS, LifecycleStatus.POST_EVENT])
def test_started_booking_cannot_be_rescheduled(booking_service, make_booking, job_store, clock, lifecycle_status):
    booking = make_booking(today(clock), lifecycle_status=lifecycle_status)
    job = job_store.enqueue(booking, JobType.HOST_REPORT_POST, clock() + timedelta(hours=3))

    with pytest.raises(BookingStateError):
        booking_service.reschedule_booking(booking, today(clock) + timedelta(days=7))

    booking.refresh_from_db()
    job.refresh_from_db()
    assert booking.event_date == today(clock)
    assert job.status == ScheduledJob.Status.PENDING
    assert job.run_at == clock() + timedelta(hours=3)
    assert not booking.events.filter(event_type="booking_rescheduled").exists()
