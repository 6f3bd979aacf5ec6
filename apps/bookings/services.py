"""Domain services for booking workflows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable, Optional

from django.core.exceptions import ValidationError  # type: ignore
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.availability.domain.resolver import Candidate
from apps.availability.services import AvailabilityService, ConflictError
from apps.jobs.job_types import JobFamily, types_in
from apps.jobs.models import ScheduledJob
from apps.jobs.store import JobStore

from .audit import record_event
from .domain.events import (
    BookingCancelled,
    BookingCreated,
    BookingRescheduled,
    LifecycleChanged,
    StandingJobsEnqueueFailed,
)
from .domain.lifecycle import LifecycleStatus, ensure_transition, rank
from .models import Booking, BookingEvent, HostReport
from .scheduling import StandingJobScheduler

logger = logging.getLogger(__name__)


class BookingStateError(Exception):
    """Raised when an operation is not allowed in the booking's current state."""


@dataclass
class BookingDetails:
    """Validated input for a new booking."""
    full_name: str
    email: str
    event_date: date
    booking_type: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    phone: str = ""
    event_type: str = ""
    number_of_guests: int = 1
    deposit_amount: Decimal = Decimal("0.00")
    balance_amount: Decimal = Decimal("0.00")


def candidate_for(booking_type: str, event_date: date, start_time=None, end_time=None) -> Candidate:
    if booking_type == Booking.BookingType.DAILY:
        if start_time or end_time:
            raise BookingStateError("Daily bookings cover the whole day and take no times")
        return Candidate.daily(event_date)
    if not start_time or not end_time:
        raise BookingStateError("Hourly bookings need a start and end time")
    try:
        return Candidate.hourly(event_date, start_time, end_time)
    except ValueError as e:
        raise BookingStateError(str(e)) from e


class BookingService:
    """
    Booking lifecycle operations.

    Collaborators are passed in so tests and tasks can swap them:
    ``availability`` checks windows, ``jobs`` is the job store handle,
    ``crm`` and ``notifier`` are best-effort remote calls.
    """

    def __init__(
        self,
        availability: AvailabilityService,
        jobs: JobStore,
        *,
        crm=None,
        notifier=None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.availability = availability
        self.jobs = jobs
        self.crm = crm
        self.notifier = notifier
        self.clock = clock
        self.scheduler = StandingJobScheduler(jobs, clock=clock)

    # ------------------------------------------------------------------
    # Acceptance
    # ------------------------------------------------------------------

    def create_booking(self, details: BookingDetails) -> Booking:
        self._reject_past(details.event_date)
        candidate = candidate_for(details.booking_type, details.event_date, details.start_time, details.end_time)

        with transaction.atomic():
            self.availability.ensure_available(candidate)
            booking = Booking(
                full_name=details.full_name,
                email=details.email,
                phone=details.phone,
                event_type=details.event_type,
                number_of_guests=details.number_of_guests,
                event_date=details.event_date,
                booking_type=details.booking_type,
                start_time=details.start_time,
                end_time=details.end_time,
                deposit_amount=details.deposit_amount,
                balance_amount=details.balance_amount,
            )
            try:
                booking.full_clean(exclude=["reservation_code"])
            except ValidationError as e:
                raise BookingStateError("; ".join(e.messages)) from e
            booking.save()
            record_event(
                booking,
                BookingCreated(
                    booking_type=booking.booking_type,
                    event_date=booking.event_date.isoformat(),
                    start_time=booking.start_time.strftime("%H:%M") if booking.start_time else None,
                    end_time=booking.end_time.strftime("%H:%M") if booking.end_time else None,
                ),
                channel=BookingEvent.Channel.WEBSITE,
            )

        logger.info(f"Booking {booking.reservation_code} created for {candidate}")
        return booking

    def record_deposit(self, booking: Booking) -> Booking:
        """Initial payment step: the booking now holds its window."""

        self._ensure_not_cancelled(booking)
        if booking.deposit_is_paid:
            return booking

        with transaction.atomic():
            self.availability.ensure_available(self._candidate(booking), exclude_booking_id=booking.pk)
            now = self.clock()
            booking.payment_status = Booking.PaymentStatus.DEPOSIT_PAID
            booking.status = Booking.Status.CONFIRMED
            booking.confirmed_at = now
            fields = ["payment_status", "status", "confirmed_at", "updated_at"]
            if booking.lifecycle_status == LifecycleStatus.PENDING:
                self._advance(booking, LifecycleStatus.CONFIRMED, trigger="payment", save=False)
                fields.append("lifecycle_status")
            booking.save(update_fields=fields)
            record_event(booking, "deposit_paid", metadata={"amount": str(booking.deposit_amount)})

        self._sync_crm(booking)
        return booking

    def record_balance_payment(self, booking: Booking) -> Booking:
        self._ensure_not_cancelled(booking)
        if booking.payment_status == Booking.PaymentStatus.FULLY_PAID:
            return booking

        with transaction.atomic():
            booking.payment_status = Booking.PaymentStatus.FULLY_PAID
            booking.balance_paid_at = self.clock()
            booking.save(update_fields=["payment_status", "balance_paid_at", "updated_at"])
            cancelled = self.jobs.cancel_for_booking(
                booking,
                "balance_paid",
                statuses=[ScheduledJob.Status.PENDING],
                job_types=types_in(JobFamily.BALANCE),
            )
            record_event(booking, "balance_paid", metadata={"jobs_cancelled": cancelled})

        self._sync_crm(booking)
        return booking

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def mark_pre_event_ready(self, booking: Booking) -> Booking:
        """Enter pre_event_ready and enqueue the standing job families.

        Calling this again on a pre_event_ready booking only re-runs the
        idempotent enqueue. A failed enqueue is audited and left for the
        reconciliation sweep; the transition itself stands.
        """
        if booking.lifecycle_status != LifecycleStatus.PRE_EVENT_READY:
            if not booking.deposit_is_paid:
                raise BookingStateError("The deposit must be paid before the booking is pre-event ready")
            with transaction.atomic():
                booking.pre_event_ready_at = self.clock()
                self._advance(booking, LifecycleStatus.PRE_EVENT_READY)
                booking.save(update_fields=["lifecycle_status", "pre_event_ready_at", "updated_at"])

        try:
            with transaction.atomic():
                summary = self.scheduler.enqueue_standing_jobs(booking)
        except Exception as e:
            logger.error(f"Standing jobs for {booking.reservation_code} were not enqueued: {e}", exc_info=True)
            record_event(booking, StandingJobsEnqueueFailed(error=str(e)))
        else:
            logger.info(
                f"Standing jobs for {booking.reservation_code}: "
                f"balance={getattr(summary['balance'], 'job_type', None)}, "
                f"lifecycle={getattr(summary['lifecycle'], 'job_type', None)}, "
                f"host_report={getattr(summary['host_report'], 'job_type', None)}"
            )

        self._sync_crm(booking)
        return booking

    def advance_lifecycle(self, now: Optional[datetime] = None) -> dict:
        """Periodic sweep: start events that began, close out events that ended."""

        now = now or self.clock()
        results = {
            "started": 0,
            "checked": 0,
            "transitioned": 0,
            "pending_host_report": 0,
            "pending_24h": 0,
            "errors": 0,
        }

        ready = Booking.objects.active().filter(
            lifecycle_status=LifecycleStatus.PRE_EVENT_READY,
            event_date__lte=timezone.localtime(now).date(),
        )
        for booking in ready:
            try:
                if booking.event_start <= now:
                    self.start_event(booking)
                    results["started"] += 1
            except Exception as e:
                results["errors"] += 1
                logger.error(f"Error starting booking {booking.pk}: {e}", exc_info=True)

        in_progress = Booking.objects.active().filter(lifecycle_status=LifecycleStatus.IN_PROGRESS)
        for booking in in_progress:
            results["checked"] += 1
            try:
                if not booking.host_report_submitted():
                    results["pending_host_report"] += 1
                    continue
                if now < booking.post_event_due_at():
                    results["pending_24h"] += 1
                    continue
                with transaction.atomic():
                    self._advance(booking, LifecycleStatus.POST_EVENT, trigger="auto")
                    booking.save(update_fields=["lifecycle_status", "updated_at"])
                results["transitioned"] += 1
                self._sync_crm(booking)
            except Exception as e:
                results["errors"] += 1
                logger.error(f"Error closing out booking {booking.pk}: {e}", exc_info=True)

        if results["started"] or results["transitioned"]:
            logger.info(f"Lifecycle sweep: {results}")
        return results

    def start_event(self, booking: Booking, *, trigger: str = "auto") -> Booking:
        """pre_event_ready -> in_progress; shared by the start job and the hourly sweep."""

        with transaction.atomic():
            self._advance(booking, LifecycleStatus.IN_PROGRESS, trigger=trigger)
            booking.save(update_fields=["lifecycle_status", "updated_at"])
        self._sync_crm(booking)
        return booking

    def complete_review(self, booking: Booking) -> Booking:
        with transaction.atomic():
            self._advance(booking, LifecycleStatus.CLOSED_REVIEW_COMPLETE)
            booking.status = Booking.Status.COMPLETED
            booking.save(update_fields=["lifecycle_status", "status", "updated_at"])
        self._sync_crm(booking)
        return booking

    def submit_host_report(self, booking: Booking, **fields) -> HostReport:
        self._ensure_not_cancelled(booking)
        with transaction.atomic():
            report, _ = HostReport.objects.get_or_create(booking=booking)
            for name in ("has_issue", "issue_description", "notes"):
                if name in fields:
                    setattr(report, name, fields[name])
            if not report.is_submitted:
                report.status = HostReport.Status.SUBMITTED
                report.submitted_at = self.clock()
            report.save()
            cancelled = self.jobs.cancel_for_booking(
                booking,
                "host_report_already_completed",
                statuses=[ScheduledJob.Status.PENDING],
                job_types=types_in(JobFamily.HOST_REPORT),
            )
            record_event(
                booking,
                "host_report_submitted",
                metadata={"has_issue": report.has_issue, "jobs_cancelled": cancelled},
            )
        return report

    # ------------------------------------------------------------------
    # Reschedule / cancel
    # ------------------------------------------------------------------

    def reschedule_booking(
        self,
        booking: Booking,
        event_date: date,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
    ) -> Booking:
        self._ensure_not_cancelled(booking)
        if booking.status == Booking.Status.COMPLETED:
            raise BookingStateError("Completed bookings cannot be rescheduled")
        if rank(booking.lifecycle_status) >= rank(LifecycleStatus.IN_PROGRESS):
            raise BookingStateError(f"Bookings cannot be rescheduled once {booking.lifecycle_status}")
        self._reject_past(event_date)

        candidate = candidate_for(booking.booking_type, event_date, start_time, end_time)
        old_date = booking.event_date
        old_window = str(booking.time_window) if booking.time_window else None
        old_start = booking.event_start
        now = self.clock()

        with transaction.atomic():
            self.availability.ensure_available(candidate, exclude_booking_id=booking.pk)

            booking.event_date = event_date
            booking.start_time = start_time
            booking.end_time = end_time
            booking.save(update_fields=["event_date", "start_time", "end_time", "updated_at"])

            delta = booking.event_start - old_start
            pending = list(self.jobs.pending_for_booking(booking))
            jobs_updated = jobs_cancelled = 0

            if all(job.run_at + delta > now for job in pending):
                strategy = "shift"
                jobs_updated = self.jobs.shift_pending(booking, delta) if delta else 0
            else:
                strategy = "reenqueue"
                jobs_cancelled = self.jobs.cancel_for_booking(
                    booking,
                    "superseded_by_reschedule",
                    statuses=[ScheduledJob.Status.PENDING],
                )
                booking.host_report_step = None
                booking.save(update_fields=["host_report_step", "updated_at"])

            record_event(
                booking,
                BookingRescheduled(
                    old_event_date=old_date.isoformat(),
                    new_event_date=event_date.isoformat(),
                    old_window=old_window,
                    new_window=str(candidate.window) if candidate.window else None,
                    date_shift_days=(event_date - old_date).days,
                    strategy=strategy,
                    jobs_updated=jobs_updated,
                    jobs_cancelled=jobs_cancelled,
                ),
                channel=BookingEvent.Channel.ADMIN,
            )

        if strategy == "reenqueue" and booking.lifecycle_status == LifecycleStatus.PRE_EVENT_READY:
            self.mark_pre_event_ready(booking)
        else:
            self._sync_crm(booking)

        logger.info(f"Booking {booking.reservation_code} rescheduled to {candidate} ({strategy})")
        return booking

    def cancel_booking(self, booking: Booking, reason: str = "") -> Booking:
        """Idempotent: cancelling a cancelled booking is a no-op."""

        if booking.is_cancelled:
            return booking
        if booking.status == Booking.Status.COMPLETED:
            raise BookingStateError("Completed bookings cannot be cancelled")

        previous_status = booking.status
        previous_lifecycle = booking.lifecycle_status

        with transaction.atomic():
            self._advance(booking, LifecycleStatus.CANCELLED)
            booking.status = Booking.Status.CANCELLED
            booking.cancelled_at = self.clock()
            booking.cancellation_reason = reason
            booking.save(
                update_fields=["status", "lifecycle_status", "cancelled_at", "cancellation_reason", "updated_at"]
            )
            jobs_cancelled = self.jobs.cancel_for_booking(booking, "booking_cancelled")
            record_event(
                booking,
                BookingCancelled(
                    previous_status=previous_status,
                    previous_lifecycle=previous_lifecycle,
                    reason=reason,
                    jobs_cancelled=jobs_cancelled,
                ),
                channel=BookingEvent.Channel.ADMIN,
            )

        logger.info(f"Booking {booking.reservation_code} cancelled, {jobs_cancelled} jobs cancelled")

        if self.notifier is not None and not self.notifier.cancellation(booking):
            logger.warning(f"Cancellation email for {booking.reservation_code} was not delivered")
        self._sync_crm(booking)
        return booking

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _advance(self, booking: Booking, target: str, *, trigger: str = "admin", save: bool = False) -> None:
        current = booking.lifecycle_status
        ensure_transition(current, target)
        booking.lifecycle_status = target
        if save:
            booking.save(update_fields=["lifecycle_status", "updated_at"])
        record_event(
            booking,
            LifecycleChanged(from_lifecycle=current, to_lifecycle=target, trigger=trigger),
        )

    def _candidate(self, booking: Booking) -> Candidate:
        return candidate_for(booking.booking_type, booking.event_date, booking.start_time, booking.end_time)

    def _reject_past(self, event_date: date) -> None:
        if event_date < timezone.localtime(self.clock()).date():
            raise BookingStateError("Event date is in the past")

    @staticmethod
    def _ensure_not_cancelled(booking: Booking) -> None:
        if booking.is_cancelled:
            raise BookingStateError("Booking is cancelled")

    def _sync_crm(self, booking: Booking) -> None:
        if self.crm is None:
            return
        try:
            result = self.crm.push_booking(booking)
        except Exception as e:
            logger.warning(f"CRM sync raised for {booking.reservation_code}: {e}", exc_info=True)
            return
        if not result.get("success"):
            logger.warning(f"CRM sync failed for {booking.reservation_code}: {result.get('error')}")


def build_booking_service(**overrides) -> BookingService:
    from apps.availability.services import build_availability_service
    from apps.integrations.crm import CrmSyncClient
    from apps.notifications.services import EmailNotifier

    options = {"crm": CrmSyncClient(), "notifier": EmailNotifier()}
    options.update(overrides)
    return BookingService(build_availability_service(), JobStore(), **options)


__all__ = [
    "BookingDetails",
    "BookingService",
    "BookingStateError",
    "ConflictError",
    "build_booking_service",
    "candidate_for",
]
