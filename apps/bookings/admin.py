"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, BookingEvent, HostReport


class BookingEventInline(admin.TabularInline):
    model = BookingEvent
    extra = 0
    can_delete = False
    readonly_fields = ("event_type", "channel", "metadata", "created_at")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "reservation_code",
        "full_name",
        "event_date",
        "booking_type",
        "start_time",
        "end_time",
        "status",
        "lifecycle_status",
        "payment_status",
        "created_at",
    )
    list_filter = ("status", "lifecycle_status", "payment_status", "booking_type", "event_date")
    search_fields = ("reservation_code", "full_name", "email")
    readonly_fields = (
        "reservation_code",
        "lifecycle_status",
        "host_report_step",
        "created_at",
        "updated_at",
    )
    inlines = [BookingEventInline]


@admin.register(HostReport)
class HostReportAdmin(admin.ModelAdmin):
    list_display = ("booking", "status", "has_issue", "submitted_at")
    list_filter = ("status", "has_issue")
    search_fields = ("booking__reservation_code",)
