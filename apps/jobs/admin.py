"""Admin registration for scheduled jobs."""

from __future__ import annotations

from django.contrib import admin

from .models import ScheduledJob
from .store import JobStore


@admin.register(ScheduledJob)
class ScheduledJobAdmin(admin.ModelAdmin):
    list_display = ("id", "job_type", "booking", "run_at", "status", "attempts", "completed_at")
    list_filter = ("status", "job_type", "run_at")
    search_fields = ("booking__reservation_code", "last_error")
    readonly_fields = ("attempts", "last_error", "completed_at", "created_at", "updated_at")
    actions = ["requeue_failed"]

    @admin.action(description="Requeue selected failed jobs")
    def requeue_failed(self, request, queryset):  # type: ignore
        store = JobStore()
        count = 0
        for job in queryset.filter(status=ScheduledJob.Status.FAILED):
            store.requeue(job)
            count += 1
        self.message_user(request, f"Requeued {count} jobs")
