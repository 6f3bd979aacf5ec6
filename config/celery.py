import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("venue_project")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Scheduled jobs (balance links, host report reminders) - every 5 minutes
    "process-due-jobs": {
        "task": "jobs.process_due_jobs",
        "schedule": crontab(minute="*/5"),
        "options": {"expires": 240},
    },
    # Lifecycle sweep - every hour
    "advance-booking-lifecycle": {
        "task": "bookings.advance_lifecycle",
        "schedule": crontab(minute=0),
    },
    # Re-enqueue standing jobs that failed to enqueue - daily
    "reconcile-standing-jobs": {
        "task": "bookings.reconcile_standing_jobs",
        "schedule": crontab(minute=30, hour=3),
    },
}
