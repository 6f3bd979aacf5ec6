"""
Job handlers

A handler performs the side effect behind one or more job types and reports
what happened. The processor owns retries and terminal states; handlers only
decide the outcome of a single attempt:

- return JobOutcome.done()            -> completed
- return JobOutcome.skipped(reason)   -> completed, reason kept in last_error
- return JobOutcome.cancelled(reason) -> cancelled, the work is moot
- raise TransientJobError / any error -> retried until attempts run out
- raise JobConfigurationError         -> failed at once, no retry
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from .job_types import BALANCE_ATTEMPT_NUMBER, JobType
from .models import ScheduledJob

logger = logging.getLogger(__name__)


class TransientJobError(Exception):
    """External call failed; worth another attempt."""


class JobConfigurationError(Exception):
    """The job can never succeed as stored; retrying will not help."""


@dataclass(frozen=True)
class JobOutcome:
    COMPLETED = "completed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"

    status: str
    reason: Optional[str] = None

    @classmethod
    def done(cls) -> 'JobOutcome':
        return cls(cls.COMPLETED)

    @classmethod
    def skipped(cls, reason: str) -> 'JobOutcome':
        return cls(cls.SKIPPED, reason)

    @classmethod
    def cancelled(cls, reason: str) -> 'JobOutcome':
        return cls(cls.CANCELLED, reason)


class JobHandler(ABC):
    """
    Base class for job handlers

    Execution is at-least-once: the processor counts the attempt before
    calling ``handle``, and a crash or a transient failure after the side
    effect but before the outcome is stored means the same job runs again.
    Implementations must therefore make their external effect idempotent
    (reuse an existing link, pass an idempotency key, re-check state first).
    """

    job_types: tuple[JobType, ...] = ()

    @abstractmethod
    def handle(self, job: ScheduledJob) -> JobOutcome:
        raise NotImplementedError

    @staticmethod
    def require_booking(job: ScheduledJob):
        if job.booking_id is None:
            raise JobConfigurationError(f"{job.job_type} requires a booking")
        booking = job.booking
        if booking is None:
            raise JobConfigurationError("Booking not found")
        return booking


class BalancePaymentHandler(JobHandler):
    """Creates (or re-sends) the balance payment link and schedules the next reminder."""

    job_types = (
        JobType.CREATE_BALANCE_PAYMENT_LINK,
        JobType.BALANCE_RETRY_1,
        JobType.BALANCE_RETRY_2,
        JobType.BALANCE_RETRY_3,
    )

    def __init__(self, payments, notifier, scheduler, clock: Callable[[], datetime] = timezone.now):
        self.payments = payments
        self.notifier = notifier
        self.scheduler = scheduler
        self.clock = clock

    def handle(self, job: ScheduledJob) -> JobOutcome:
        from apps.bookings.audit import record_event
        from apps.bookings.models import Booking

        booking = self.require_booking(job)
        booking.refresh_from_db()
        if booking.is_cancelled:
            return JobOutcome.cancelled("booking_cancelled")

        if booking.payment_status == Booking.PaymentStatus.FULLY_PAID:
            record_event(
                booking,
                "balance_payment_retry_skipped_already_paid",
                metadata={"job_id": job.pk, "job_type": job.job_type, "reason": "already_fully_paid"},
            )
            return JobOutcome.skipped("Skipped: already fully paid")

        if booking.payment_status != Booking.PaymentStatus.DEPOSIT_PAID:
            raise JobConfigurationError(
                f"Cannot create balance link: payment_status is {booking.payment_status}"
            )

        now = self.clock()
        attempt = BALANCE_ATTEMPT_NUMBER[JobType(job.job_type)]

        if booking.balance_payment_url and booking.balance_link_expires_at and booking.balance_link_expires_at > now:
            url = booking.balance_payment_url
        else:
            result = self.payments.create_payment_link(
                booking,
                amount=booking.balance_amount,
                idempotency_key=f"{booking.reservation_code}-{job.job_type}",
            )
            if not result.get("success"):
                if result.get("already_paid"):
                    return JobOutcome.skipped(result.get("error") or "Skipped: already fully paid")
                raise TransientJobError(result.get("error") or "Payment link creation failed")
            url = result["url"]
            booking.balance_payment_url = url
            booking.balance_link_expires_at = now + timedelta(
                hours=settings.VENUE_SCHEDULING["BALANCE_LINK_TTL_HOURS"]
            )
            booking.save(update_fields=["balance_payment_url", "balance_link_expires_at", "updated_at"])

        if not self.notifier.balance_payment(booking, url, attempt):
            logger.warning(f"Balance email for {booking.reservation_code} was not delivered")

        record_event(
            booking,
            "balance_payment_retry_executed",
            metadata={"job_id": job.pk, "job_type": job.job_type, "attempt": attempt, "payment_url": url},
        )
        self.scheduler.enqueue_follow_up(booking, job.job_type)
        return JobOutcome.done()


class HostReportReminderHandler(JobHandler):
    """Moves ``host_report_step`` forward and reminds the host."""

    job_types = (
        JobType.HOST_REPORT_PRE_START,
        JobType.HOST_REPORT_DURING,
        JobType.HOST_REPORT_POST,
    )

    def __init__(self, notifier, scheduler):
        self.notifier = notifier
        self.scheduler = scheduler

    def handle(self, job: ScheduledJob) -> JobOutcome:
        from apps.bookings.audit import record_event
        from apps.bookings.scheduling import STEP_FOR_JOB

        booking = self.require_booking(job)
        booking.refresh_from_db()
        if booking.is_cancelled:
            return JobOutcome.cancelled("booking_cancelled_before_host_report")
        if booking.host_report_submitted():
            return JobOutcome.cancelled("host_report_already_completed")

        step = STEP_FOR_JOB[JobType(job.job_type)]
        if booking.host_report_step != step:
            booking.host_report_step = step
            booking.save(update_fields=["host_report_step", "updated_at"])

        if not self.notifier.host_report_reminder(booking, step):
            raise TransientJobError(f"Host report reminder email failed for {booking.reservation_code}")

        record_event(
            booking,
            "host_report_reminder_sent",
            metadata={"job_id": job.pk, "job_type": job.job_type, "step": step},
        )
        self.scheduler.enqueue_follow_up(booking, job.job_type)
        return JobOutcome.done()


class LifecycleHandler(JobHandler):
    """Starts the event: pre_event_ready -> in_progress at event start.

    Re-running is harmless because a booking that already left
    pre_event_ready cancels the job instead of moving again.
    """

    job_types = (JobType.SET_LIFECYCLE_IN_PROGRESS,)

    def __init__(self, bookings):
        self.bookings = bookings

    def handle(self, job: ScheduledJob) -> JobOutcome:
        from apps.bookings.domain.lifecycle import LifecycleStatus

        booking = self.require_booking(job)
        booking.refresh_from_db()
        if booking.is_cancelled:
            return JobOutcome.cancelled("booking_cancelled")
        if booking.lifecycle_status != LifecycleStatus.PRE_EVENT_READY:
            return JobOutcome.cancelled(f"lifecycle_is_{booking.lifecycle_status}")

        self.bookings.start_event(booking)
        return JobOutcome.done()


def build_dispatch_table(*handlers: JobHandler) -> dict[JobType, JobHandler]:
    """Map every JobType to exactly one handler.

    Raises ImproperlyConfigured when a type is unhandled or claimed twice,
    so a new JobType cannot ship without a handler.
    """
    from django.core.exceptions import ImproperlyConfigured  # type: ignore

    table: dict[JobType, JobHandler] = {}
    for handler in handlers:
        for job_type in handler.job_types:
            if job_type in table:
                raise ImproperlyConfigured(f"{job_type} is handled twice")
            table[job_type] = handler

    missing = set(JobType) - set(table)
    if missing:
        raise ImproperlyConfigured(f"No handler for job types: {sorted(missing)}")
    return table


def build_handlers(*, payments=None, notifier=None, jobs=None, clock=timezone.now) -> dict[JobType, JobHandler]:
    from apps.bookings.scheduling import StandingJobScheduler
    from apps.bookings.services import build_booking_service
    from apps.integrations.payments import PaymentLinkClient
    from apps.notifications.services import EmailNotifier

    from .store import JobStore

    notifier = notifier or EmailNotifier()
    scheduler = StandingJobScheduler(jobs or JobStore(), clock=clock)
    return build_dispatch_table(
        BalancePaymentHandler(payments or PaymentLinkClient(), notifier, scheduler, clock=clock),
        HostReportReminderHandler(notifier, scheduler),
        LifecycleHandler(build_booking_service(notifier=notifier, clock=clock)),
    )
