"""Serializers for the booking domain."""

from __future__ import annotations

from datetime import date

from django.utils import timezone  # type: ignore

from rest_framework import serializers  # type: ignore

from .models import Booking, BookingEvent, HostReport
from .services import BookingDetails


class BookingCreateSerializer(serializers.Serializer):
    """Booking request from the website."""

    full_name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    event_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    number_of_guests = serializers.IntegerField(min_value=1, default=1)
    event_date = serializers.DateField()
    booking_type = serializers.ChoiceField(choices=Booking.BookingType.choices)
    start_time = serializers.TimeField(required=False, allow_null=True, default=None)
    end_time = serializers.TimeField(required=False, allow_null=True, default=None)
    deposit_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, default=0)
    balance_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, default=0)

    def validate(self, attrs):  # type: ignore
        event_date: date = attrs["event_date"]
        if event_date < timezone.localdate():
            raise serializers.ValidationError({"event_date": "Event date is in the past."})

        start, end = attrs.get("start_time"), attrs.get("end_time")
        if attrs["booking_type"] == Booking.BookingType.HOURLY:
            if not start or not end:
                raise serializers.ValidationError("Hourly bookings need a start and end time.")
            if start >= end:
                raise serializers.ValidationError("End time must be after start time.")
        elif start or end:
            raise serializers.ValidationError("Daily bookings cover the whole day and take no times.")
        return attrs

    def to_details(self) -> BookingDetails:
        return BookingDetails(**self.validated_data)


class RescheduleSerializer(serializers.Serializer):
    event_date = serializers.DateField()
    start_time = serializers.TimeField(required=False, allow_null=True, default=None)
    end_time = serializers.TimeField(required=False, allow_null=True, default=None)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class HostReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = HostReport
        fields = ["id", "status", "has_issue", "issue_description", "notes", "submitted_at", "created_at"]
        read_only_fields = ["id", "status", "submitted_at", "created_at"]


class BookingEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = BookingEvent
        fields = ["id", "event_type", "channel", "metadata", "created_at"]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    host_report_submitted = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "reservation_code",
            "full_name",
            "email",
            "phone",
            "event_type",
            "number_of_guests",
            "event_date",
            "booking_type",
            "start_time",
            "end_time",
            "status",
            "lifecycle_status",
            "payment_status",
            "host_report_step",
            "host_report_submitted",
            "deposit_amount",
            "balance_amount",
            "balance_payment_url",
            "balance_link_expires_at",
            "cancellation_reason",
            "confirmed_at",
            "pre_event_ready_at",
            "balance_paid_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_host_report_submitted(self, obj: Booking) -> bool:
        return obj.host_report_submitted()
