"""Celery tasks for the job queue."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .processor import build_job_processor

logger = logging.getLogger(__name__)


@shared_task(name="jobs.process_due_jobs")
def process_due_jobs(batch_limit: int | None = None) -> dict:
    """
    Run every scheduled job whose time has come.

    Runs every 5 minutes through Celery Beat. The conditional update that
    claims an attempt only bounds the attempt count; the job stays pending
    while it runs, so overlapping runs may execute it twice. Execution is
    at-least-once and relies on idempotent handlers.

    Returns:
        dict: counters from the processor, without per-job details
    """
    results = build_job_processor().process_due(batch_limit=batch_limit)
    return {key: value for key, value in results.items() if key != "details"}
