"""Scheduled job processor."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Mapping, Optional

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from .handlers import JobConfigurationError, JobHandler, JobOutcome
from .job_types import JobType
from .models import ScheduledJob
from .store import JobStore

logger = logging.getLogger(__name__)


class JobProcessor:
    """
    Runs due jobs with bounded retries.

    The processor knows nothing about what a job does. For each due job it
    counts the attempt first, dispatches by job type and records the outcome:
    success and benign skips complete the job, transient errors keep it
    pending until ``max_attempts`` is reached, configuration errors and
    unknown job types fail it immediately. One job's failure never stops the
    rest of the batch.
    """

    def __init__(
        self,
        store: JobStore,
        handlers: Mapping[JobType, JobHandler],
        *,
        max_attempts: Optional[int] = None,
        batch_size: Optional[int] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        knobs = settings.VENUE_SCHEDULING
        self.store = store
        self.handlers = dict(handlers)
        self.max_attempts = max_attempts or knobs["JOB_MAX_ATTEMPTS"]
        self.batch_size = batch_size or knobs["JOB_BATCH_SIZE"]
        self.clock = clock

    def process_due(self, batch_limit: Optional[int] = None) -> dict:
        results = {
            "processed": 0,
            "succeeded": 0,
            "failed": 0,
            "retrying": 0,
            "skipped": 0,
            "cancelled": 0,
            "details": [],
        }

        due_jobs = self.store.due(self.clock(), batch_limit or self.batch_size, self.max_attempts)
        if not due_jobs:
            logger.debug("No pending jobs to process")
            return results

        logger.info(f"Found {len(due_jobs)} pending jobs to process")

        for job in due_jobs:
            if not self.store.claim_attempt(job, self.max_attempts):
                logger.info(f"Job {job.pk} was taken by another run, skipping")
                continue

            results["processed"] += 1
            status, error = self._run(job)
            results[status] += 1
            results["details"].append(
                {"job_id": job.pk, "job_type": job.job_type, "status": status, "error": error}
            )

        logger.info(
            f"Processed {results['processed']} jobs: {results['succeeded']} succeeded, "
            f"{results['skipped']} skipped, {results['cancelled']} cancelled, "
            f"{results['retrying']} retrying, {results['failed']} failed"
        )
        return results

    def _run(self, job: ScheduledJob) -> tuple[str, Optional[str]]:
        handler = self._handler_for(job.job_type)
        if handler is None:
            error = f"Unknown job type: {job.job_type}"
            logger.error(f"Job {job.pk}: {error}")
            self.store.mark_failed(job, error)
            return "failed", error

        try:
            with transaction.atomic():
                outcome = handler.handle(job)
        except JobConfigurationError as e:
            logger.error(f"Job {job.pk} ({job.job_type}) cannot run: {e}")
            self.store.mark_failed(job, str(e))
            return "failed", str(e)
        except Exception as e:
            logger.error(f"Job {job.pk} ({job.job_type}) attempt {job.attempts} failed: {e}", exc_info=True)
            status = self.store.record_failure(job, str(e) or e.__class__.__name__, self.max_attempts)
            return ("failed" if status == ScheduledJob.Status.FAILED else "retrying"), str(e)

        if outcome.status == JobOutcome.CANCELLED:
            logger.info(f"Job {job.pk} ({job.job_type}) cancelled: {outcome.reason}")
            self.store.mark_cancelled(job, outcome.reason)
            return "cancelled", outcome.reason

        if outcome.status == JobOutcome.SKIPPED:
            logger.warning(f"Job {job.pk} ({job.job_type}) completed without action: {outcome.reason}")
            self.store.mark_completed(job, note=outcome.reason)
            return "skipped", outcome.reason

        self.store.mark_completed(job)
        logger.info(f"Job {job.pk} ({job.job_type}) completed")
        return "succeeded", None

    def _handler_for(self, job_type: str) -> Optional[JobHandler]:
        try:
            return self.handlers.get(JobType(job_type))
        except ValueError:
            return None


def build_job_processor(**overrides) -> JobProcessor:
    from .handlers import build_handlers

    store = JobStore()
    return JobProcessor(store, build_handlers(jobs=store), **overrides)
