"""FilterSet definitions for calendar holds."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import AvailabilityBlock, BlackoutDate


class DateRangeFilterSet(django_filters.FilterSet):
    """``start``/``end`` select holds that touch the inclusive range."""

    start = django_filters.DateFilter(field_name="end_date", lookup_expr="gte")
    end = django_filters.DateFilter(field_name="start_date", lookup_expr="lte")


class AvailabilityBlockFilterSet(DateRangeFilterSet):
    class Meta:
        model = AvailabilityBlock
        fields = ["source", "block_type", "booking"]


class BlackoutDateFilterSet(DateRangeFilterSet):
    class Meta:
        model = BlackoutDate
        fields: list[str] = []
