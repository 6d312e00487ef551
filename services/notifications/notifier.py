"""
Booking notifier: fans each booking event out to email, push and a stored
notification record.

For every event the recipient's contact profile is fetched from the auth
service, then the three side effects are issued concurrently and awaited
together. A failure in one channel is logged and does not affect the other
two. Nothing is retried and nothing propagates to whoever raised the event:
by the time a notification is sent the booking mutation has already been
committed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from services.notifications.templates import RenderedNotification, render
from shared.config.service_config import ServiceConfig
from shared.errors import NotificationDeliveryError, RecipientLookupError
from shared.messages.booking_events import BookingEvent, parse_booking_event
from shared.messages.events import EventType
from shared.messages.notifications import (
    ContactProfile,
    EmailRequest,
    NotificationRecord,
    PushRequest,
    RecipientType,
)
from shared.messages.service_message import ServiceMessage

logger = logging.getLogger("petpro.notifications")

CHANNELS = ("email", "push", "store")


def select_recipient(event: BookingEvent) -> tuple[RecipientType, str]:
    """Who gets notified about an event.

    New bookings go to the vendor, status updates to the customer, and
    cancellations to the party that did not cancel.
    """
    if event.kind == EventType.BOOKING_CREATED:
        return "vendor", event.vendor_id
    if event.kind == EventType.BOOKING_STATUS_UPDATED:
        return "customer", event.customer_id
    if event.kind == EventType.BOOKING_CANCELLED:
        if event.cancelled_by == "vendor":
            return "customer", event.customer_id
        return "vendor", event.vendor_id
    raise ValueError(f"Unknown booking event kind: {event.kind!r}")


@dataclass
class NotificationOutcome:
    """What happened to one notification attempt."""
    booking_id: str
    kind: str
    recipient_type: RecipientType
    recipient_id: str
    delivered: dict[str, bool] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failures


class BookingNotifier:
    """Sends booking notifications through the email, push and notification services."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        auth_url: Optional[str] = None,
        email_url: Optional[str] = None,
        push_url: Optional[str] = None,
        notifications_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s or ServiceConfig.HTTP_TIMEOUT_S)
        self._auth_url = (auth_url or ServiceConfig.AUTH_SERVICE_URL).rstrip("/")
        self._email_url = (email_url or ServiceConfig.EMAIL_SERVICE_URL).rstrip("/")
        self._push_url = (push_url or ServiceConfig.PUSH_NOTIFICATION_SERVICE_URL).rstrip("/")
        self._notifications_url = (notifications_url or ServiceConfig.NOTIFICATIONS_SERVICE_URL).rstrip("/")

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------

    async def handle_message(self, message: ServiceMessage) -> Optional[NotificationOutcome]:
        """Bus entry point: parse the booking event in ``message`` and notify."""
        data = message.data if isinstance(message.data, dict) else {}
        try:
            event = parse_booking_event(data, kind=message.type)
        except ValidationError as e:
            logger.error("Dropping malformed %s event from %s: %s", message.type, message.service, e)
            return None
        return await self.handle(event)

    async def handle(self, event: BookingEvent) -> NotificationOutcome:
        """Notify the relevant party about a booking event. Never raises."""
        recipient_type, recipient_id = select_recipient(event)
        outcome = NotificationOutcome(event.booking_id, event.kind, recipient_type, recipient_id)
        logger.info("Handling %s notification for booking %s", event.kind, event.booking_id)

        try:
            contact = await self.fetch_contact(recipient_type, recipient_id)
        except RecipientLookupError as e:
            logger.error("auth-service lookup failed for booking %s: %s", event.booking_id, e)
            outcome.error = str(e)
            return outcome

        try:
            rendered = render(event, contact, recipient_type)
        except Exception as e:
            logger.error("Could not render %s notification for booking %s: %s", event.kind, event.booking_id, e)
            outcome.error = str(e)
            return outcome

        results = await asyncio.gather(
            self.send_email(contact.email, rendered.email_subject, rendered.email_html),
            self.send_push(contact.device_tokens, rendered.push_title, rendered.push_body),
            self.store_notification(event, recipient_type, recipient_id, rendered),
            return_exceptions=True,
        )
        for channel, result in zip(CHANNELS, results):
            if isinstance(result, Exception):
                logger.error("%s notification failed for booking %s: %s", channel, event.booking_id, result)
                outcome.failures[channel] = str(result)
            else:
                outcome.delivered[channel] = bool(result)

        if outcome.ok:
            logger.info(
                "Sent %s notifications for booking %s to %s %s",
                event.kind, event.booking_id, recipient_type, recipient_id,
            )
        return outcome

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    async def fetch_contact(self, recipient_type: RecipientType, recipient_id: str) -> ContactProfile:
        """Resolve a vendor or customer's contact profile from the auth service."""
        path = "vendors" if recipient_type == "vendor" else "users"
        try:
            r = await self._client.get(f"{self._auth_url}/api/{path}/{recipient_id}")
            r.raise_for_status()
            return ContactProfile.model_validate(r.json())
        except (httpx.HTTPError, ValueError) as e:
            raise RecipientLookupError(recipient_type, recipient_id, str(e)) from e

    async def send_email(self, to: Optional[str], subject: str, html: str) -> bool:
        if not to:
            raise NotificationDeliveryError("email", "recipient has no email address")
        body = EmailRequest(to=to, subject=subject, html=html)
        await self._post("email", f"{self._email_url}/api/email/send", body.model_dump())
        logger.info("Email notification sent to %s", to)
        return True

    async def send_push(self, tokens: list[str], title: str, body: str) -> bool:
        """Returns False when skipped because the recipient has no devices."""
        if not tokens:
            logger.warning("No device tokens provided for push notification")
            return False
        payload = PushRequest(tokens=tokens, title=title, body=body)
        await self._post("push", f"{self._push_url}/api/push/send", payload.model_dump())
        logger.info("Push notification sent to %d devices", len(tokens))
        return True

    async def store_notification(
        self,
        event: BookingEvent,
        recipient_type: RecipientType,
        recipient_id: str,
        rendered: RenderedNotification,
    ) -> bool:
        record = NotificationRecord(
            recipient_type=recipient_type,
            recipient_id=recipient_id,
            type=event.kind,
            title=rendered.title,
            message=rendered.message,
            metadata=event.metadata(),
        )
        await self._post("store", f"{self._notifications_url}/api/notifications", record.model_dump(by_alias=True))
        logger.info("Notification stored for %s %s", recipient_type, recipient_id)
        return True

    async def _post(self, channel: str, url: str, payload: dict[str, Any]) -> None:
        try:
            r = await self._client.post(url, json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationDeliveryError(channel, str(e), e.response.status_code) from e
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(channel, str(e)) from e
