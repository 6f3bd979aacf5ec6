"""
Payment processor integration

Creates hosted payment links for the outstanding balance of a booking.
Without an API key the client emulates the processor so development and
staging environments keep working.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

import requests
from django.conf import settings  # type: ignore

logger = logging.getLogger(__name__)

ALREADY_PAID_MARKERS = ("already fully paid", "already_paid")


class PaymentLinkError(Exception):
    """Raised for malformed processor responses."""


class PaymentLinkClient:
    """Thin HTTP client for the payment link endpoint."""

    def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout: int | None = None):
        self.base_url = (base_url if base_url is not None else settings.PAYMENT_API_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.PAYMENT_API_KEY
        self.timeout = timeout or settings.EXTERNAL_API_TIMEOUT

    def create_payment_link(self, booking, amount: Decimal, idempotency_key: str) -> dict:
        """
        Create a payment link for ``amount`` against ``booking``.

        The idempotency key makes repeated calls for the same job return the
        same link instead of charging twice.

        Returns:
            dict: {"success": True, "url": ...} or {"success": False, "error": ..., "already_paid": bool}
        """
        logger.info(f"Creating payment link for {booking.reservation_code}, amount {amount}")

        if not self.api_key:
            logger.warning("Payment API key missing, returning an emulated payment link")
            token = uuid.uuid5(uuid.NAMESPACE_URL, idempotency_key).hex[:16]
            return {"success": True, "url": f"{self.base_url}/pay/{token}", "emulated": True}

        payload = {
            "reference": booking.reservation_code,
            "amount": str(amount),
            "customer_email": booking.email,
            "customer_name": booking.full_name,
            "description": f"Balance for booking {booking.reservation_code}",
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Idempotency-Key": idempotency_key,
            "Accept": "application/json",
        }

        try:
            response = requests.post(
                f"{self.base_url}/payment-links",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Network error while creating payment link: {e}")
            return {"success": False, "error": f"Payment processor unreachable: {e}", "already_paid": False}

        try:
            result = response.json()
        except ValueError:
            result = {}

        if not response.ok:
            error = result.get("error") or f"HTTP {response.status_code}"
            already_paid = any(marker in str(error).lower() for marker in ALREADY_PAID_MARKERS)
            logger.error(f"Payment processor rejected link for {booking.reservation_code}: {error}")
            return {"success": False, "error": str(error), "already_paid": already_paid}

        url = result.get("url")
        if not url:
            raise PaymentLinkError(f"Payment processor returned no url for {booking.reservation_code}")

        logger.info(f"Payment link created for {booking.reservation_code}")
        return {"success": True, "url": url}
