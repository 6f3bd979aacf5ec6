"""External CRM/calendar sync.

Push-only and best-effort: the booking status and window are mirrored to the
CRM, and a failed push is logged without affecting the caller.
"""

from __future__ import annotations

import logging

import requests
from django.conf import settings  # type: ignore

logger = logging.getLogger(__name__)


class CrmSyncClient:
    def __init__(self, webhook_url: str | None = None, api_key: str | None = None, timeout: int | None = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.CRM_WEBHOOK_URL
        self.api_key = api_key if api_key is not None else settings.CRM_API_KEY
        self.timeout = timeout or settings.EXTERNAL_API_TIMEOUT

    @staticmethod
    def booking_payload(booking) -> dict:
        return {
            "reservation_code": booking.reservation_code,
            "event_date": booking.event_date.isoformat(),
            "booking_type": booking.booking_type,
            "start_time": booking.start_time.strftime("%H:%M") if booking.start_time else None,
            "end_time": booking.end_time.strftime("%H:%M") if booking.end_time else None,
            "status": booking.status,
            "lifecycle_status": booking.lifecycle_status,
            "payment_status": booking.payment_status,
            "email": booking.email,
            "full_name": booking.full_name,
        }

    def push_booking(self, booking) -> dict:
        if not self.webhook_url:
            logger.debug(f"CRM sync disabled, skipping {booking.reservation_code}")
            return {"success": True, "skipped": True}

        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = requests.post(
                self.webhook_url,
                json=self.booking_payload(booking),
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"CRM sync failed for {booking.reservation_code}: {e}")
            return {"success": False, "error": str(e)}

        logger.info(f"CRM sync completed for {booking.reservation_code}")
        return {"success": True}
