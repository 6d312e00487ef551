"""
Booking notifications for PetPro.

Consumes booking lifecycle events from the message bus and tells the
affected vendor or customer by email, push and a stored notification.

Quick start:
    from services.notifications import BookingNotifier
    from shared.messages import BookingCreatedEvent

    notifier = BookingNotifier()
    outcome = await notifier.handle(BookingCreatedEvent(...))
    await notifier.close()
"""

from .notifier import BookingNotifier, NotificationOutcome, select_recipient
from .templates import RenderedNotification, render

__all__ = [
    "BookingNotifier",
    "NotificationOutcome",
    "select_recipient",
    "RenderedNotification",
    "render",
]
