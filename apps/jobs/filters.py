"""FilterSet definitions for the job queue."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import ScheduledJob


class ScheduledJobFilterSet(django_filters.FilterSet):
    run_after = django_filters.IsoDateTimeFilter(field_name="run_at", lookup_expr="gte")
    run_before = django_filters.IsoDateTimeFilter(field_name="run_at", lookup_expr="lte")
    reservation_code = django_filters.CharFilter(field_name="booking__reservation_code")

    class Meta:
        model = ScheduledJob
        fields = ["status", "job_type", "booking"]
