"""Operator-facing health numbers for the job queue."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings  # type: ignore
from django.db.models import Count, Q  # type: ignore
from django.utils import timezone  # type: ignore

from .models import ScheduledJob

WINDOWS = {
    "last_24h": timedelta(hours=24),
    "last_7d": timedelta(days=7),
    "last_30d": timedelta(days=30),
}

RECENT_FAILURES_LIMIT = 10


def _status_counts(since: datetime) -> dict[str, int]:
    counts = {value: 0 for value in ScheduledJob.Status.values}
    rows = (
        ScheduledJob.objects.filter(created_at__gte=since)
        .values("status")
        .annotate(total=Count("id"))
    )
    for row in rows:
        counts[row["status"]] = row["total"]
    counts["total"] = sum(counts.values())
    return counts


def _by_type(since: datetime) -> dict[str, dict]:
    rows = (
        ScheduledJob.objects.filter(created_at__gte=since)
        .values("job_type")
        .annotate(
            total=Count("id"),
            completed=Count("id", filter=Q(status=ScheduledJob.Status.COMPLETED)),
            failed=Count("id", filter=Q(status=ScheduledJob.Status.FAILED)),
        )
    )
    result = {}
    for row in rows:
        finished = row["completed"] + row["failed"]
        result[row["job_type"]] = {
            "total": row["total"],
            "completed": row["completed"],
            "failed": row["failed"],
            "success_rate": round(row["completed"] / finished * 100, 1) if finished else None,
        }
    return result


def _recent_failures() -> list[dict]:
    jobs = (
        ScheduledJob.objects.filter(status=ScheduledJob.Status.FAILED)
        .select_related("booking")
        .order_by("-updated_at")[:RECENT_FAILURES_LIMIT]
    )
    return [
        {
            "id": job.pk,
            "reservation_code": job.booking.reservation_code if job.booking else None,
            "job_type": job.job_type,
            "error": job.last_error,
            "attempts": job.attempts,
            "failed_at": job.updated_at,
        }
        for job in jobs
    ]


def job_health(now: Optional[datetime] = None) -> dict:
    from apps.bookings.domain.lifecycle import LifecycleStatus
    from apps.bookings.models import Booking

    now = now or timezone.now()
    overdue_after = timedelta(minutes=settings.VENUE_SCHEDULING["OVERDUE_JOB_MINUTES"])

    overdue = ScheduledJob.objects.filter(
        status=ScheduledJob.Status.PENDING,
        run_at__lt=now - overdue_after,
    ).count()

    stuck = Booking.objects.active().filter(
        lifecycle_status=LifecycleStatus.PRE_EVENT_READY,
        event_date__lt=timezone.localtime(now).date() - timedelta(days=1),
    ).count()

    return {
        "generated_at": now,
        "windows": {name: _status_counts(now - span) for name, span in WINDOWS.items()},
        "by_type_7d": _by_type(now - WINDOWS["last_7d"]),
        "recent_failures": _recent_failures(),
        "overdue_pending": overdue,
        "processor_status": "likely_active" if overdue == 0 else "possibly_down",
        "bookings_stuck_pre_event": stuck,
    }
