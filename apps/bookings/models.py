"""Booking domain models for the venue."""

from __future__ import annotations

import secrets
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.lifecycle import LifecycleStatus
from shared.domain.value_objects import TimeWindow

END_OF_DAY = time(23, 59, 59)


def _setting_time(key: str) -> time:
    return time.fromisoformat(settings.VENUE_SCHEDULING[key])


def venue_datetime(day, at: time) -> datetime:
    """Aware datetime for a wall-clock time at the venue."""
    return timezone.make_aware(datetime.combine(day, at), timezone.get_default_timezone())


class BookingQuerySet(models.QuerySet):
    def committed(self):
        """Bookings that hold capacity: deposit or full payment, or an accepted invoice."""
        return self.exclude(
            status__in=[Booking.Status.CANCELLED, Booking.Status.DECLINED],
        ).exclude(
            lifecycle_status=LifecycleStatus.CANCELLED,
        ).filter(
            models.Q(
                payment_status__in=[
                    Booking.PaymentStatus.DEPOSIT_PAID,
                    Booking.PaymentStatus.FULLY_PAID,
                ]
            )
            | models.Q(
                payment_status=Booking.PaymentStatus.INVOICED,
                status=Booking.Status.CONFIRMED,
            )
        )

    def active(self):
        return self.exclude(status=Booking.Status.CANCELLED).exclude(
            lifecycle_status=LifecycleStatus.CANCELLED
        )


class Booking(models.Model):
    """Single reservation of the venue."""

    class Status(models.TextChoices):
        PENDING_REVIEW = "pending_review", _("Pending review")
        CONFIRMED = "confirmed", _("Confirmed")
        NEEDS_INFO = "needs_info", _("Needs info")
        NEEDS_PAYMENT = "needs_payment", _("Needs payment")
        DECLINED = "declined", _("Declined")
        CANCELLED = "cancelled", _("Cancelled")
        COMPLETED = "completed", _("Completed")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        DEPOSIT_PAID = "deposit_paid", _("Deposit paid")
        FULLY_PAID = "fully_paid", _("Fully paid")
        INVOICED = "invoiced", _("Invoiced")
        FAILED = "failed", _("Failed")
        REFUNDED = "refunded", _("Refunded")

    class BookingType(models.TextChoices):
        HOURLY = "hourly", _("Hourly")
        DAILY = "daily", _("Daily")

    class HostReportStep(models.TextChoices):
        PRE_START = "pre_start", _("Pre start")
        DURING_EVENT = "during_event", _("During event")
        POST_EVENT = "post_event", _("Post event")

    reservation_code = models.CharField(max_length=20, unique=True, editable=False)
    full_name = models.CharField(max_length=255)
    email = models.EmailField()
    phone = models.CharField(max_length=32, blank=True)
    event_type = models.CharField(max_length=100, blank=True)
    number_of_guests = models.PositiveIntegerField(default=1)

    event_date = models.DateField()
    booking_type = models.CharField(max_length=10, choices=BookingType.choices)
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING_REVIEW,
    )
    lifecycle_status = models.CharField(
        max_length=30,
        choices=LifecycleStatus.choices,
        default=LifecycleStatus.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    host_report_step = models.CharField(
        max_length=20,
        choices=HostReportStep.choices,
        null=True,
        blank=True,
    )

    deposit_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    balance_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    balance_payment_url = models.URLField(max_length=500, blank=True)
    balance_link_expires_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.CharField(max_length=255, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    pre_event_ready_at = models.DateTimeField(null=True, blank=True)
    balance_paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event_date", "payment_status"]),
            models.Index(fields=["lifecycle_status"]),
            models.Index(fields=["reservation_code"]),
        ]

    def __str__(self) -> str:
        return f"Booking {self.reservation_code} on {self.event_date}"

    def clean(self) -> None:
        if self.booking_type == self.BookingType.HOURLY:
            if not self.start_time or not self.end_time:
                raise ValidationError(_("Hourly bookings need a start and end time."))
            if self.start_time >= self.end_time:
                raise ValidationError(_("End time must be after start time."))
        elif self.booking_type == self.BookingType.DAILY:
            if self.start_time or self.end_time:
                raise ValidationError(_("Daily bookings cover the whole day and take no times."))
        else:
            raise ValidationError(_("Unknown booking type."))

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.reservation_code:
            self.reservation_code = self.generate_reservation_code(self.event_date)
        super().save(*args, **kwargs)

    @staticmethod
    def generate_reservation_code(event_date) -> str:
        return f"VB-{event_date:%Y%m%d}-{secrets.token_hex(2).upper()}"

    @property
    def is_daily(self) -> bool:
        return self.booking_type == self.BookingType.DAILY

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.Status.CANCELLED or self.lifecycle_status == LifecycleStatus.CANCELLED

    @property
    def deposit_is_paid(self) -> bool:
        return self.payment_status in (self.PaymentStatus.DEPOSIT_PAID, self.PaymentStatus.FULLY_PAID)

    @property
    def time_window(self) -> TimeWindow | None:
        if self.is_daily:
            return None
        return TimeWindow(self.start_time, self.end_time)

    @property
    def event_start(self) -> datetime:
        if self.is_daily or not self.start_time:
            return venue_datetime(self.event_date, _setting_time("DAILY_EVENT_START"))
        return venue_datetime(self.event_date, self.start_time)

    @property
    def event_end(self) -> datetime:
        if self.is_daily or not self.end_time:
            return venue_datetime(self.event_date, END_OF_DAY)
        return venue_datetime(self.event_date, self.end_time)

    @property
    def report_anchor(self) -> datetime:
        """Reference point for host report reminders."""
        if self.is_daily or not self.start_time:
            return venue_datetime(self.event_date, _setting_time("DAILY_REPORT_ANCHOR"))
        return venue_datetime(self.event_date, self.start_time)

    def post_event_due_at(self) -> datetime:
        grace = timedelta(hours=settings.VENUE_SCHEDULING["POST_EVENT_GRACE_HOURS"])
        return self.event_end + grace

    def host_report_submitted(self) -> bool:
        return HostReport.objects.filter(
            booking=self,
            status__in=[HostReport.Status.SUBMITTED, HostReport.Status.REVIEWED],
        ).exists()


class HostReport(models.Model):
    """Operational report the host files after the event."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        SUBMITTED = "submitted", _("Submitted")
        REVIEWED = "reviewed", _("Reviewed")

    booking = models.OneToOneField(
        Booking,
        on_delete=models.CASCADE,
        related_name="host_report",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    has_issue = models.BooleanField(default=False)
    issue_description = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Host report")
        verbose_name_plural = _("Host reports")

    def __str__(self) -> str:
        return f"Host report for {self.booking_id} ({self.status})"

    @property
    def is_submitted(self) -> bool:
        return self.status in (self.Status.SUBMITTED, self.Status.REVIEWED)


class BookingEvent(models.Model):
    """Append-only audit record of what happened to a booking."""

    class Channel(models.TextChoices):
        SYSTEM = "system", _("System")
        ADMIN = "admin", _("Admin")
        WEBSITE = "website", _("Website")

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="events")
    event_type = models.CharField(max_length=100)
    channel = models.CharField(max_length=20, choices=Channel.choices, default=Channel.SYSTEM)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["booking", "event_type"]),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} for {self.booking_id}"
