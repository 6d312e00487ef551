"""Notification text and HTML email templates for booking events."""

from dataclasses import dataclass
from html import escape

from shared.config.service_config import ServiceConfig
from shared.messages.booking_events import (
    BookingCancelledEvent,
    BookingCreatedEvent,
    BookingEvent,
    BookingStatusUpdatedEvent,
)
from shared.messages.events import EventType
from shared.messages.notifications import ContactProfile, RecipientType


@dataclass(frozen=True)
class RenderedNotification:
    """Everything sent for one event: stored title/message, push text, email."""
    title: str
    message: str
    push_title: str
    push_body: str
    email_subject: str
    email_html: str


_FOOTER = (
    '<p style="margin-top: 30px; font-size: 12px; color: #757575; text-align: center;">'
    "This is an automated message, please do not reply to this email.</p>"
)


def _frame(heading: str, greeting_name: str, intro: str, rows: list[tuple[str, str]],
           outro: str, link: str, link_label: str, color: str) -> str:
    details = "".join(f"<p><strong>{escape(k)}:</strong> {escape(v)}</p>" for k, v in rows)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; '
        'padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;">'
        f'<h2 style="color: #4a4a4a; text-align: center;">{escape(heading)}</h2>'
        f"<p>Hello {escape(greeting_name or 'there')},</p>"
        f"<p>{intro}</p>"
        f'<div style="background-color: #f9f9f9; padding: 15px; border-radius: 5px; margin: 20px 0;">{details}</div>'
        f"<p>{escape(outro)}</p>"
        '<div style="text-align: center; margin-top: 30px;">'
        f'<a href="{escape(link, quote=True)}" style="background-color: {color}; color: white; '
        f'padding: 10px 20px; text-decoration: none; border-radius: 5px;">{escape(link_label)}</a>'
        "</div>"
        f"{_FOOTER}"
    )


def _created(event: BookingCreatedEvent, contact: ContactProfile) -> RenderedNotification:
    rows = [
        ("Service", event.service_type),
        ("Date", event.date),
        ("Time", event.time),
        ("Pet Name", event.pet_name),
        ("Pet Type", event.pet_type),
        ("Special Requests", event.notes or "None"),
    ]
    return RenderedNotification(
        title="New Booking Request",
        message=f"New booking request for {event.service_type} on {event.date} at {event.time}",
        push_title="New Booking",
        push_body=f"You have a new booking request for {event.service_type} on {event.date} at {event.time}",
        email_subject="New Booking Received",
        email_html=_frame(
            "New Booking Request", contact.name,
            "You have received a new booking request with the following details:",
            rows,
            "Please log in to your vendor dashboard to accept or manage this booking.",
            f"{ServiceConfig.VENDOR_DASHBOARD_URL}/bookings", "View Booking", "#4CAF50",
        ),
    )


def _status_updated(event: BookingStatusUpdatedEvent, contact: ContactProfile) -> RenderedNotification:
    rows = [
        ("Service", event.service_type),
        ("Date", event.date),
        ("Time", event.time),
        ("Previous Status", event.previous_status),
        ("New Status", event.new_status),
    ]
    if event.notes:
        rows.append(("Additional Notes", event.notes))
    return RenderedNotification(
        title=f"Booking Status: {event.new_status}",
        message=(
            f"Booking status updated from {event.previous_status} to {event.new_status} "
            f"for {event.service_type} on {event.date}"
        ),
        push_title="Booking Update",
        push_body=f"Your booking for {event.service_type} has been updated to {event.new_status}",
        email_subject=f"Booking Status Updated: {event.new_status}",
        email_html=_frame(
            "Booking Status Updated", contact.name,
            f"Your booking has been updated with the following status: <strong>{escape(event.new_status)}</strong>",
            rows,
            "You can check the details and updates on your booking through our mobile app.",
            f"{ServiceConfig.MOBILE_APP_URL}/bookings/{event.booking_id}", "View Booking Details", "#2196F3",
        ),
    )


def _cancelled(event: BookingCancelledEvent, contact: ContactProfile,
               recipient_type: RecipientType) -> RenderedNotification:
    canceller = {"customer": "The customer", "vendor": "The service provider"}.get(event.cancelled_by, "The system")
    rows = [
        ("Service", event.service_type),
        ("Date", event.date),
        ("Time", event.time),
        ("Cancelled By", canceller),
    ]
    if event.cancellation_reason:
        rows.append(("Reason", event.cancellation_reason))

    message = f"Booking for {event.service_type} on {event.date} has been cancelled by {event.cancelled_by}"
    if event.cancellation_reason:
        message += f": {event.cancellation_reason}"

    if recipient_type == "customer":
        outro = ("We apologize for any inconvenience this may have caused. "
                 "You can reschedule this booking at your convenience through our mobile app.")
        link, label = f"{ServiceConfig.MOBILE_APP_URL}/bookings", "Schedule New Booking"
    else:
        outro = "Please update your availability calendar accordingly."
        link, label = f"{ServiceConfig.VENDOR_DASHBOARD_URL}/calendar", "View Calendar"

    return RenderedNotification(
        title="Booking Cancelled",
        message=message,
        push_title="Booking Cancelled",
        push_body=f"A booking for {event.service_type} on {event.date} has been cancelled",
        email_subject="Booking Cancellation Notice",
        email_html=_frame(
            "Booking Cancellation Notice", contact.name,
            "A booking has been cancelled with the following details:",
            rows, outro, link, label, "#9C27B0",
        ),
    )


def render(event: BookingEvent, contact: ContactProfile, recipient_type: RecipientType) -> RenderedNotification:
    """Select and fill the templates for an event."""
    if event.kind == EventType.BOOKING_CREATED:
        return _created(event, contact)
    if event.kind == EventType.BOOKING_STATUS_UPDATED:
        return _status_updated(event, contact)
    if event.kind == EventType.BOOKING_CANCELLED:
        return _cancelled(event, contact, recipient_type)
    raise ValueError(f"Unknown booking event kind: {event.kind!r}")
