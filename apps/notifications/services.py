"""Email notifications for venue bookings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils.html import strip_tags  # type: ignore

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking

logger = logging.getLogger(__name__)


def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str | None,
    context: dict,
    *,
    html_message: str | None = None,
) -> bool:
    """
    Send one email.

    Args:
        recipient_email: Recipient address
        subject: Subject line
        template_name: Django template path (optional)
        context: Template context; ``message`` is used when there is no template
        html_message: Pre-rendered HTML body (optional)

    Returns:
        bool: True if the relay accepted the message
    """
    if not recipient_email:
        logger.warning(f"No recipient for email '{subject}', skipping")
        return False

    try:
        if html_message:
            text_message = strip_tags(html_message)
        elif template_name:
            html_message = render_to_string(template_name, context)
            text_message = strip_tags(html_message)
        else:
            text_message = context.get("message", "")
            html_message = None

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


def _when(booking: "Booking") -> str:
    if booking.is_daily:
        return f"{booking.event_date:%B %d, %Y} (full day)"
    return f"{booking.event_date:%B %d, %Y} {booking.start_time:%H:%M}-{booking.end_time:%H:%M}"


def send_balance_payment_email(booking: "Booking", payment_url: str, attempt: int = 1) -> bool:
    """Balance link for the event; later attempts read as reminders."""
    if attempt > 1:
        subject = f"Reminder: balance due for booking {booking.reservation_code}"
    else:
        subject = f"Balance payment for booking {booking.reservation_code}"

    html_message = f"""
    <html>
    <body>
        <h2>Hello, {booking.full_name}!</h2>
        <p>Your event on <strong>{_when(booking)}</strong> is coming up.</p>
        <p>The remaining balance of <strong>{booking.balance_amount}</strong> can be paid here:</p>
        <p><a href="{payment_url}">{payment_url}</a></p>
        <p>Reservation code: {booking.reservation_code}</p>
    </body>
    </html>
    """

    return send_email_notification(
        recipient_email=booking.email,
        subject=subject,
        template_name=None,
        context={"booking": booking},
        html_message=html_message,
    )


HOST_REPORT_COPY = {
    "pre_start": "Your event is one week away. Please review the host checklist you will file after the event.",
    "during_event": "Your event is tomorrow. Remember to complete the host report when you wrap up.",
    "post_event": "Your event starts soon. Once it is over, please submit the host report so we can close out the booking.",
}


def send_host_report_reminder_email(booking: "Booking", step: str) -> bool:
    html_message = f"""
    <html>
    <body>
        <h2>Hello, {booking.full_name}!</h2>
        <p>{HOST_REPORT_COPY.get(step, HOST_REPORT_COPY["post_event"])}</p>
        <p>Event: {_when(booking)}<br>Reservation code: {booking.reservation_code}</p>
    </body>
    </html>
    """

    return send_email_notification(
        recipient_email=booking.email,
        subject=f"Host report reminder for booking {booking.reservation_code}",
        template_name=None,
        context={"booking": booking, "step": step},
        html_message=html_message,
    )


def send_cancellation_email(booking: "Booking") -> bool:
    html_message = f"""
    <html>
    <body>
        <h2>Hello, {booking.full_name}!</h2>
        <p>Your booking <strong>{booking.reservation_code}</strong> for {_when(booking)} has been cancelled.</p>
        <p>If you did not expect this, please reply to this email.</p>
    </body>
    </html>
    """

    return send_email_notification(
        recipient_email=booking.email,
        subject=f"Booking {booking.reservation_code} cancelled",
        template_name=None,
        context={"booking": booking},
        html_message=html_message,
    )


class EmailNotifier:
    """Groups the booking emails so services can take a fake in tests."""

    def balance_payment(self, booking: "Booking", payment_url: str, attempt: int = 1) -> bool:
        return send_balance_payment_email(booking, payment_url, attempt)

    def host_report_reminder(self, booking: "Booking", step: str) -> bool:
        return send_host_report_reminder_email(booking, step)

    def cancellation(self, booking: "Booking") -> bool:
        return send_cancellation_email(booking)
