"""Admin registration for calendar holds."""

from __future__ import annotations

from django.contrib import admin

from .models import AvailabilityBlock, BlackoutDate


@admin.register(AvailabilityBlock)
class AvailabilityBlockAdmin(admin.ModelAdmin):
    list_display = ("start_date", "end_date", "block_type", "start_time", "end_time", "source", "reason")
    list_filter = ("source", "block_type", "start_date")
    search_fields = ("reason", "booking__reservation_code")
    readonly_fields = ("created_at", "updated_at")


@admin.register(BlackoutDate)
class BlackoutDateAdmin(admin.ModelAdmin):
    list_display = ("start_date", "end_date", "reason")
    search_fields = ("reason",)
