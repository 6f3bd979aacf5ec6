"""Calendar hold models for the venue."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import DateSpan, TimeWindow


class AvailabilityBlock(models.Model):
    """Manual hold on the calendar that is not backed by a paid booking."""

    class Source(models.TextChoices):
        INTERNAL_ADMIN = "internal_admin", _("Internal admin hold")
        BLACKOUT = "blackout", _("Blackout-adjacent block")
        SYSTEM = "system", _("System hold")

    class BlockType(models.TextChoices):
        DAILY = "daily", _("Whole day")
        HOURLY = "hourly", _("Time window")

    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.INTERNAL_ADMIN,
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="availability_blocks",
        help_text=_("Optional back-reference, the block does not belong to the booking."),
    )
    block_type = models.CharField(
        max_length=10,
        choices=BlockType.choices,
        default=BlockType.DAILY,
    )
    start_date = models.DateField()
    end_date = models.DateField()
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_availability_blocks",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Availability block")
        verbose_name_plural = _("Availability blocks")
        ordering = ["start_date", "start_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="availability_block_valid_date_range",
            ),
        ]
        indexes = [
            models.Index(fields=["start_date", "end_date"]),
        ]

    def __str__(self) -> str:
        if self.block_type == self.BlockType.HOURLY and self.start_time and self.end_time:
            return f"{self.get_source_display()} {self.start_date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"
        return f"{self.get_source_display()} {self.start_date} - {self.end_date}"

    def clean(self) -> None:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError(_("End date must not be before start date."))
        if self.block_type == self.BlockType.HOURLY:
            if not self.start_time or not self.end_time:
                raise ValidationError(_("Hourly blocks need a start and end time."))
            if self.start_time >= self.end_time:
                raise ValidationError(_("End time must be after start time."))
            if self.start_date != self.end_date:
                raise ValidationError(_("An hourly block covers a single date."))
        elif self.start_time or self.end_time:
            raise ValidationError(_("Daily blocks cover the whole day and take no times."))

    @property
    def is_daily(self) -> bool:
        return self.block_type == self.BlockType.DAILY

    @property
    def date_span(self) -> DateSpan:
        return DateSpan(self.start_date, self.end_date)

    @property
    def time_window(self) -> TimeWindow | None:
        if self.is_daily:
            return None
        return TimeWindow(self.start_time, self.end_time)


class BlackoutDate(models.Model):
    """Hard-closed date range: no bookings of any kind."""

    start_date = models.DateField()
    end_date = models.DateField()
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Blackout date")
        verbose_name_plural = _("Blackout dates")
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="blackout_valid_date_range",
            ),
        ]

    def __str__(self) -> str:
        return f"Blackout {self.start_date} - {self.end_date}"

    def clean(self) -> None:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError(_("End date must not be before start date."))

    @property
    def date_span(self) -> DateSpan:
        return DateSpan(self.start_date, self.end_date)
