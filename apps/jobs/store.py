"""Persistence operations for scheduled jobs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from .job_types import JobFamily, JobType, types_in
from .models import ScheduledJob

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (ScheduledJob.Status.PENDING, ScheduledJob.Status.COMPLETED)


class JobStore:
    """Store handle for the job queue.

    Every status change is a single UPDATE so concurrent processor runs rely
    on row-level atomicity of the database rather than on an in-process lock.
    """

    def enqueue(self, booking, job_type: JobType, run_at: datetime) -> ScheduledJob:
        job = ScheduledJob.objects.create(
            booking=booking,
            job_type=job_type,
            run_at=run_at,
        )
        logger.info(f"Enqueued {job_type} for booking {getattr(booking, 'pk', None)} at {run_at.isoformat()}")
        return job

    def exists(self, booking, job_types: Iterable[str], statuses: Iterable[str] = ACTIVE_STATUSES) -> bool:
        return ScheduledJob.objects.filter(
            booking=booking,
            job_type__in=list(job_types),
            status__in=list(statuses),
        ).exists()

    def has_pending_in_family(self, booking, family: JobFamily) -> bool:
        return self.exists(booking, types_in(family), statuses=[ScheduledJob.Status.PENDING])

    def enqueue_once(self, booking, job_type: JobType, run_at: datetime) -> Optional[ScheduledJob]:
        """Enqueue unless a pending or completed job of this type exists for the booking."""

        if self.exists(booking, [job_type]):
            logger.info(f"Skipping {job_type} for booking {booking.pk}: already scheduled or done")
            return None
        return self.enqueue(booking, job_type, run_at)

    def due(self, now: datetime, limit: int, max_attempts: int) -> list[ScheduledJob]:
        return list(
            ScheduledJob.objects.filter(
                status=ScheduledJob.Status.PENDING,
                run_at__lte=now,
                attempts__lt=max_attempts,
            )
            .select_related("booking")
            .order_by("run_at", "id")[:limit]
        )

    def claim_attempt(self, job: ScheduledJob, max_attempts: int) -> bool:
        """Count an attempt before the handler runs.

        Returns False when another processor run already used up the
        remaining attempts or moved the job out of pending.
        """
        updated = ScheduledJob.objects.filter(
            pk=job.pk,
            status=ScheduledJob.Status.PENDING,
            attempts__lt=max_attempts,
        ).update(attempts=F("attempts") + 1, updated_at=timezone.now())
        if not updated:
            return False
        job.refresh_from_db(fields=["attempts"])
        return True

    def mark_completed(self, job: ScheduledJob, note: Optional[str] = None) -> None:
        now = timezone.now()
        job.status = ScheduledJob.Status.COMPLETED
        job.completed_at = now
        job.last_error = note
        job.save(update_fields=["status", "completed_at", "last_error", "updated_at"])

    def mark_cancelled(self, job: ScheduledJob, reason: str) -> None:
        job.status = ScheduledJob.Status.CANCELLED
        job.last_error = reason
        job.save(update_fields=["status", "last_error", "updated_at"])

    def mark_failed(self, job: ScheduledJob, error: str) -> None:
        job.status = ScheduledJob.Status.FAILED
        job.last_error = error
        job.save(update_fields=["status", "last_error", "updated_at"])

    def record_failure(self, job: ScheduledJob, error: str, max_attempts: int) -> str:
        """Keep the job pending for another pass, or fail it once the budget is spent."""

        if job.attempts >= max_attempts:
            self.mark_failed(job, error)
        else:
            job.last_error = error
            job.save(update_fields=["last_error", "updated_at"])
        return job.status

    def requeue(self, job: ScheduledJob, run_at: Optional[datetime] = None) -> ScheduledJob:
        """Manual intervention: give a failed job a fresh retry budget."""

        job.status = ScheduledJob.Status.PENDING
        job.attempts = 0
        job.run_at = run_at or timezone.now()
        job.save(update_fields=["status", "attempts", "run_at", "updated_at"])
        return job

    def last_completed(self, booking, job_types: Iterable[str]) -> Optional[ScheduledJob]:
        return (
            ScheduledJob.objects.filter(
                booking=booking,
                job_type__in=list(job_types),
                status=ScheduledJob.Status.COMPLETED,
            )
            .order_by("-completed_at", "-id")
            .first()
        )

    def pending_for_booking(self, booking):
        return ScheduledJob.objects.filter(booking=booking, status=ScheduledJob.Status.PENDING)

    def cancel_for_booking(
        self,
        booking,
        reason: str,
        *,
        statuses: Iterable[str] = (ScheduledJob.Status.PENDING, ScheduledJob.Status.FAILED),
        job_types: Optional[Iterable[str]] = None,
    ) -> int:
        qs = ScheduledJob.objects.filter(booking=booking, status__in=list(statuses))
        if job_types is not None:
            qs = qs.filter(job_type__in=list(job_types))
        count = qs.update(
            status=ScheduledJob.Status.CANCELLED,
            last_error=reason,
            updated_at=timezone.now(),
        )
        if count:
            logger.info(f"Cancelled {count} jobs for booking {booking.pk}: {reason}")
        return count

    def shift_pending(self, booking, delta: timedelta) -> int:
        return self.pending_for_booking(booking).update(
            run_at=F("run_at") + delta,
            updated_at=timezone.now(),
        )
