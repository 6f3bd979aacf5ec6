"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.availability.services import AvailabilityService
from apps.bookings.domain.lifecycle import LifecycleStatus
from apps.bookings.models import Booking, venue_datetime
from apps.bookings.services import BookingService
from apps.jobs.store import JobStore


class FakeClock:
    """Mutable ``now`` for services that take a clock callable."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakePayments:
    def __init__(self, *, fail: bool = False, already_paid: bool = False):
        self.fail = fail
        self.already_paid = already_paid
        self.calls: list[dict] = []

    def create_payment_link(self, booking, amount, idempotency_key):
        self.calls.append({"booking": booking.pk, "amount": amount, "idempotency_key": idempotency_key})
        if self.already_paid:
            return {"success": False, "already_paid": True, "error": "Booking is already paid"}
        if self.fail:
            return {"success": False, "error": "Payment provider unavailable"}
        return {"success": True, "url": f"https://pay.example.com/{idempotency_key}"}


class FakeNotifier:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple] = []

    def balance_payment(self, booking, payment_url, attempt=1):
        self.sent.append(("balance_payment", booking.pk, payment_url, attempt))
        return not self.fail

    def host_report_reminder(self, booking, step):
        self.sent.append(("host_report_reminder", booking.pk, step))
        return not self.fail

    def cancellation(self, booking):
        self.sent.append(("cancellation", booking.pk))
        return not self.fail


class FakeCrm:
    def __init__(self):
        self.pushed: list[str] = []

    def push_booking(self, booking):
        self.pushed.append(booking.reservation_code)
        return {"success": True}


@pytest.fixture
def clock():
    return FakeClock(venue_datetime(timezone.localdate(), time(12, 0)))


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def crm():
    return FakeCrm()


@pytest.fixture
def job_store():
    return JobStore()


@pytest.fixture
def booking_service(job_store, crm, notifier, clock):
    return BookingService(AvailabilityService(), job_store, crm=crm, notifier=notifier, clock=clock)


@pytest.fixture
def make_booking(db):
    """Create a booking row directly, bypassing the service layer."""

    def factory(
        event_date: date,
        *,
        booking_type: str = Booking.BookingType.DAILY,
        start_time: time | None = None,
        end_time: time | None = None,
        payment_status: str = Booking.PaymentStatus.DEPOSIT_PAID,
        status: str = Booking.Status.CONFIRMED,
        lifecycle_status: str = LifecycleStatus.CONFIRMED,
        **extra,
    ) -> Booking:
        if start_time is not None:
            booking_type = Booking.BookingType.HOURLY
        return Booking.objects.create(
            full_name=extra.pop("full_name", "Ada Lovelace"),
            email=extra.pop("email", "ada@example.com"),
            event_date=event_date,
            booking_type=booking_type,
            start_time=start_time,
            end_time=end_time,
            payment_status=payment_status,
            status=status,
            lifecycle_status=lifecycle_status,
            deposit_amount=extra.pop("deposit_amount", Decimal("500.00")),
            balance_amount=extra.pop("balance_amount", Decimal("1500.00")),
            **extra,
        )

    return factory
