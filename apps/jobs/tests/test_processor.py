"""Job processor tests: retry budget, dispatch and outcome bookkeeping."""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from apps.jobs.handlers import (
    JobConfigurationError,
    JobHandler,
    JobOutcome,
    TransientJobError,
    build_dispatch_table,
)
from apps.jobs.job_types import JobType
from apps.jobs.models import ScheduledJob
from apps.jobs.processor import JobProcessor
from apps.jobs.store import JobStore


class ScriptedHandler(JobHandler):
    """Handles every job type with a fixed behaviour."""

    job_types = tuple(JobType)

    def __init__(self, behaviour):
        self.behaviour = behaviour
        self.calls = []

    def handle(self, job):
        self.calls.append(job.pk)
        return self.behaviour(job)


def always_fail(job):
    raise TransientJobError("Payment provider unavailable")


def make_processor(behaviour, **kwargs):
    handler = ScriptedHandler(behaviour)
    return JobProcessor(JobStore(), build_dispatch_table(handler), **kwargs), handler


def due_job(booking=None, job_type=JobType.CREATE_BALANCE_PAYMENT_LINK, minutes_ago=1):
    return ScheduledJob.objects.create(
        booking=booking,
        job_type=job_type,
        run_at=timezone.now() - timedelta(minutes=minutes_ago),
    )


@pytest.mark.django_db
def test_always_failing_job_fails_after_three_passes():
    job = due_job()
    processor, handler = make_processor(always_fail)

    for expected_attempts in (1, 2):
        results = processor.process_due()
        job.refresh_from_db()
        assert results["retrying"] == 1
        assert job.status == ScheduledJob.Status.PENDING
        assert job.attempts == expected_attempts

    results = processor.process_due()
    job.refresh_from_db()
    assert results["failed"] == 1
    assert job.status == ScheduledJob.Status.FAILED
    assert job.attempts == 3
    assert job.last_error == "Payment provider unavailable"

    results = processor.process_due()
    job.refresh_from_db()
    assert results["processed"] == 0
    assert job.attempts == 3
    assert len(handler.calls) == 3


@pytest.mark.django_db
def test_success_completes_job():
    job = due_job()
    processor, _ = make_processor(lambda job: JobOutcome.done())

    results = processor.process_due()

    job.refresh_from_db()
    assert results["succeeded"] == 1
    assert job.status == ScheduledJob.Status.COMPLETED
    assert job.completed_at is not None
    assert job.last_error is None
    assert job.attempts == 1


@pytest.mark.django_db
def test_benign_skip_completes_with_reason():
    job = due_job()
    processor, _ = make_processor(lambda job: JobOutcome.skipped("Skipped: already fully paid"))

    results = processor.process_due()

    job.refresh_from_db()
    assert results["skipped"] == 1
    assert job.status == ScheduledJob.Status.COMPLETED
    assert job.last_error == "Skipped: already fully paid"


@pytest.mark.django_db
def test_configuration_error_fails_without_retry():
    def misconfigured(job):
        raise JobConfigurationError("Booking not found")

    job = due_job()
    processor, _ = make_processor(misconfigured)

    processor.process_due()

    job.refresh_from_db()
    assert job.status == ScheduledJob.Status.FAILED
    assert job.attempts == 1


@pytest.mark.django_db
def test_unknown_job_type_fails_immediately():
    job = due_job()
    ScheduledJob.objects.filter(pk=job.pk).update(job_type="send_fax")
    processor, handler = make_processor(lambda job: JobOutcome.done())

    results = processor.process_due()

    job.refresh_from_db()
    assert results["failed"] == 1
    assert job.status == ScheduledJob.Status.FAILED
    assert job.last_error == "Unknown job type: send_fax"
    assert handler.calls == []


@pytest.mark.django_db
def test_one_failure_does_not_stop_the_batch():
    failing = due_job(minutes_ago=10)
    succeeding = due_job(job_type=JobType.HOST_REPORT_PRE_START, minutes_ago=5)

    def behaviour(job):
        if job.pk == failing.pk:
            raise RuntimeError("boom")
        return JobOutcome.done()

    processor, _ = make_processor(behaviour)
    results = processor.process_due()

    assert results["processed"] == 2
    assert results["retrying"] == 1
    assert results["succeeded"] == 1
    assert ScheduledJob.objects.get(pk=succeeding.pk).status == ScheduledJob.Status.COMPLETED


@pytest.mark.django_db
def test_due_jobs_run_oldest_first_and_respect_batch_limit():
    later = due_job(minutes_ago=1)
    earlier = due_job(minutes_ago=30)
    not_due = ScheduledJob.objects.create(
        job_type=JobType.BALANCE_RETRY_2,
        run_at=timezone.now() + timedelta(hours=1),
    )
    processor, handler = make_processor(lambda job: JobOutcome.done())

    processor.process_due(batch_limit=1)
    assert handler.calls == [earlier.pk]

    processor.process_due()
    assert handler.calls == [earlier.pk, later.pk]
    assert ScheduledJob.objects.get(pk=not_due.pk).attempts == 0


@pytest.mark.django_db
def test_claim_attempt_refuses_exhausted_job():
    job = due_job()
    ScheduledJob.objects.filter(pk=job.pk).update(attempts=3)
    job.refresh_from_db()

    assert not JobStore().claim_attempt(job, max_attempts=3)


@pytest.mark.django_db
def test_claimed_job_stays_pending_for_overlapping_runs():
    store = JobStore()
    job = due_job()
    overlapping = ScheduledJob.objects.get(pk=job.pk)

    assert store.claim_attempt(job, max_attempts=3)
    assert store.claim_attempt(overlapping, max_attempts=3)

    job.refresh_from_db()
    assert job.status == ScheduledJob.Status.PENDING
    assert job.attempts == 2


def test_dispatch_table_must_cover_every_job_type():
    class BalanceOnly(JobHandler):
        job_types = (JobType.CREATE_BALANCE_PAYMENT_LINK,)

        def handle(self, job):
            return JobOutcome.done()

    with pytest.raises(ImproperlyConfigured):
        build_dispatch_table(BalanceOnly())

    with pytest.raises(ImproperlyConfigured):
        build_dispatch_table(ScriptedHandler(always_fail), BalanceOnly())
