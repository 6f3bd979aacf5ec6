"""Serializers for scheduled jobs."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import ScheduledJob


class ScheduledJobSerializer(serializers.ModelSerializer):
    reservation_code = serializers.ReadOnlyField(source="booking.reservation_code")

    class Meta:
        model = ScheduledJob
        fields = [
            "id",
            "booking",
            "reservation_code",
            "job_type",
            "run_at",
            "status",
            "attempts",
            "last_error",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RetrySerializer(serializers.Serializer):
    run_at = serializers.DateTimeField(required=False, allow_null=True, default=None)
