"""
Standing job planning for bookings.

Three job families run for every booking that reaches pre_event_ready:

- balance: a payment link for the outstanding balance, then reminders
  48h apart (at most three sends in total)
- host_report: reminders at event-7d, event-1d and event-3h that move
  ``host_report_step`` forward
- lifecycle: a single job at event start that moves the booking to
  in_progress (the hourly sweep catches anything it misses)

Each family is a chain: only the next job is ever pending, and a job that
runs enqueues its successor. Enqueueing is idempotent per job type and
booking, so repeating a transition never produces duplicates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from apps.jobs.job_types import NEXT_IN_CHAIN, JobFamily, JobType, family_of, types_in
from apps.jobs.store import JobStore

from .domain.lifecycle import LifecycleStatus, rank
from .models import Booking, venue_datetime

logger = logging.getLogger(__name__)

HOST_REPORT_OFFSETS = (
    (Booking.HostReportStep.PRE_START, JobType.HOST_REPORT_PRE_START, timedelta(days=7)),
    (Booking.HostReportStep.DURING_EVENT, JobType.HOST_REPORT_DURING, timedelta(days=1)),
    (Booking.HostReportStep.POST_EVENT, JobType.HOST_REPORT_POST, timedelta(hours=3)),
)

STEP_FOR_JOB = {job_type: step for step, job_type, _ in HOST_REPORT_OFFSETS}


@dataclass(frozen=True)
class JobPlan:
    job_type: JobType
    run_at: datetime


def _knob(key: str):
    return settings.VENUE_SCHEDULING[key]


def plan_balance(booking: Booking, now: datetime) -> Optional[JobPlan]:
    """First job of the balance chain, or None when nothing is owed."""

    if booking.payment_status == Booking.PaymentStatus.FULLY_PAID:
        return None

    due_days = _knob("BALANCE_DUE_DAYS")
    days_until_event = (booking.event_date - timezone.localtime(now).date()).days
    if days_until_event <= due_days:
        return JobPlan(JobType.CREATE_BALANCE_PAYMENT_LINK, now)

    first_run = time.fromisoformat(_knob("BALANCE_FIRST_RUN_TIME"))
    run_at = venue_datetime(booking.event_date - timedelta(days=due_days), first_run)
    return JobPlan(JobType.BALANCE_RETRY_1, run_at)


def next_balance(booking: Booking, completed: JobType, now: datetime) -> Optional[JobPlan]:
    successor = NEXT_IN_CHAIN.get(completed)
    if successor is None:
        return None
    run_at = now + timedelta(hours=_knob("BALANCE_RETRY_INTERVAL_HOURS"))
    if run_at >= booking.event_start:
        logger.info(f"No {successor} for {booking.reservation_code}: would run after the event starts")
        return None
    return JobPlan(successor, run_at)


def resume_balance(booking: Booking, completed: JobType, completed_at: datetime, now: datetime) -> Optional[JobPlan]:
    """Successor of the last balance step that ran, for chains cut short by a reschedule."""

    if booking.payment_status == Booking.PaymentStatus.FULLY_PAID:
        return None
    plan = next_balance(booking, completed, completed_at)
    if plan is not None and plan.run_at < now:
        return JobPlan(plan.job_type, now)
    return plan


def plan_lifecycle(booking: Booking, now: datetime) -> Optional[JobPlan]:
    if rank(booking.lifecycle_status) >= rank(LifecycleStatus.IN_PROGRESS):
        return None
    return JobPlan(JobType.SET_LIFECYCLE_IN_PROGRESS, max(booking.event_start, now))


def host_report_timeline(booking: Booking) -> list[tuple[str, JobType, datetime]]:
    anchor = booking.report_anchor
    return [(step, job_type, anchor - offset) for step, job_type, offset in HOST_REPORT_OFFSETS]


def plan_host_report(booking: Booking, now: datetime) -> tuple[Optional[str], Optional[JobPlan]]:
    """Catch-up aware plan: (step to set right away, next job to enqueue)."""

    immediate_step = None
    for step, job_type, run_at in host_report_timeline(booking):
        if now >= run_at:
            immediate_step = step
            continue
        return immediate_step, JobPlan(job_type, run_at)
    return immediate_step, None


def next_host_report(booking: Booking, completed: JobType) -> Optional[JobPlan]:
    successor = NEXT_IN_CHAIN.get(completed)
    if successor is None:
        return None
    for _, job_type, run_at in host_report_timeline(booking):
        if job_type == successor:
            return JobPlan(job_type, run_at)
    return None


class StandingJobScheduler:
    """Enqueues the standing job families through the job store."""

    def __init__(self, jobs: JobStore, clock: Callable[[], datetime] = timezone.now):
        self.jobs = jobs
        self.clock = clock

    def enqueue_standing_jobs(self, booking: Booking) -> dict:
        """Idempotent: families with a pending job are left alone."""

        now = self.clock()
        summary = {
            "balance": None,
            "lifecycle": None,
            "host_report": None,
            "host_report_step": booking.host_report_step,
        }

        if not self.jobs.has_pending_in_family(booking, JobFamily.BALANCE):
            plan = self._plan_balance(booking, now)
            if plan is not None:
                summary["balance"] = self.jobs.enqueue_once(booking, plan.job_type, plan.run_at)

        if not self.jobs.has_pending_in_family(booking, JobFamily.LIFECYCLE):
            plan = plan_lifecycle(booking, now)
            if plan is not None:
                summary["lifecycle"] = self.jobs.enqueue_once(booking, plan.job_type, plan.run_at)

        if booking.host_report_submitted():
            return summary

        if not self.jobs.has_pending_in_family(booking, JobFamily.HOST_REPORT):
            step, plan = plan_host_report(booking, now)
            if step and booking.host_report_step != step:
                booking.host_report_step = step
                booking.save(update_fields=["host_report_step", "updated_at"])
                summary["host_report_step"] = step
            if plan is not None:
                summary["host_report"] = self.jobs.enqueue_once(booking, plan.job_type, plan.run_at)

        return summary

    def _plan_balance(self, booking: Booking, now: datetime) -> Optional[JobPlan]:
        last = self.jobs.last_completed(booking, types_in(JobFamily.BALANCE))
        if last is None:
            return plan_balance(booking, now)
        return resume_balance(booking, JobType(last.job_type), last.completed_at or now, now)

    def enqueue_follow_up(self, booking: Booking, completed: str):
        completed = JobType(completed)
        family = family_of(completed)
        if family == JobFamily.BALANCE:
            plan = next_balance(booking, completed, self.clock())
        elif family == JobFamily.HOST_REPORT:
            plan = next_host_report(booking, completed)
        else:
            plan = None
        if plan is None:
            return None
        return self.jobs.enqueue_once(booking, plan.job_type, plan.run_at)
