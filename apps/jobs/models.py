"""Scheduled job model."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .job_types import JobType


class ScheduledJob(models.Model):
    """Deferred unit of work, retried at most ``JOB_MAX_ATTEMPTS`` times."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        COMPLETED = "completed", _("Completed")
        FAILED = "failed", _("Failed")
        CANCELLED = "cancelled", _("Cancelled")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="scheduled_jobs",
    )
    job_type = models.CharField(max_length=50, choices=JobType.choices)
    run_at = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    attempts = models.PositiveSmallIntegerField(default=0)
    last_error = models.TextField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Scheduled job")
        verbose_name_plural = _("Scheduled jobs")
        ordering = ["run_at", "id"]
        indexes = [
            models.Index(fields=["status", "run_at"]),
            models.Index(fields=["booking", "job_type", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.job_type} for {self.booking_id} at {self.run_at:%Y-%m-%d %H:%M} ({self.status})"
