"""Serializers for calendar checks and holds."""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from rest_framework import serializers  # type: ignore

from apps.bookings.models import Booking

from .models import AvailabilityBlock, BlackoutDate


class AvailabilityCheckSerializer(serializers.Serializer):
    booking_type = serializers.ChoiceField(choices=Booking.BookingType.choices)
    event_date = serializers.DateField()
    start_time = serializers.TimeField(required=False, allow_null=True, default=None)
    end_time = serializers.TimeField(required=False, allow_null=True, default=None)

    def validate(self, attrs):  # type: ignore
        start, end = attrs.get("start_time"), attrs.get("end_time")
        if attrs["booking_type"] == Booking.BookingType.HOURLY:
            if not start or not end:
                raise serializers.ValidationError("Hourly checks need a start and end time.")
            if start >= end:
                raise serializers.ValidationError("End time must be after start time.")
        elif start or end:
            raise serializers.ValidationError("Daily checks take no times.")
        return attrs


class CalendarQuerySerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()

    def validate(self, attrs):  # type: ignore
        if attrs["end"] < attrs["start"]:
            raise serializers.ValidationError("End date must not be before start date.")
        return attrs


class AvailabilityBlockSerializer(serializers.ModelSerializer):
    created_by = serializers.ReadOnlyField(source="created_by_id")
    source_display = serializers.ReadOnlyField(source="get_source_display")

    class Meta:
        model = AvailabilityBlock
        fields = [
            "id",
            "source",
            "source_display",
            "block_type",
            "booking",
            "start_date",
            "end_date",
            "start_time",
            "end_time",
            "reason",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["created_by", "created_at", "updated_at", "source_display"]

    def validate(self, attrs):  # type: ignore
        fields = ("block_type", "start_date", "end_date", "start_time", "end_time")
        values = {name: getattr(self.instance, name, None) for name in fields}
        values.update({name: attrs[name] for name in fields if name in attrs})
        try:
            AvailabilityBlock(**{k: v for k, v in values.items() if v is not None}).clean()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.messages) from exc
        return attrs


class BlackoutDateSerializer(serializers.ModelSerializer):
    class Meta:
        model = BlackoutDate
        fields = ["id", "start_date", "end_date", "reason", "created_at"]
        read_only_fields = ["created_at"]

    def validate(self, attrs):  # type: ignore
        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end < start:
            raise serializers.ValidationError("End date must not be before start date.")
        return attrs
