"""Pydantic message schemas for inter-service communication."""

from shared.messages.events import EventType
from shared.messages.service_message import ServiceMessage
from shared.messages.service_record import ServiceRecord, ServiceStatus
from shared.messages.booking_events import (
    BOOKING_EVENT_KINDS,
    BookingCancelledEvent,
    BookingCreatedEvent,
    BookingEvent,
    BookingStatusUpdatedEvent,
    parse_booking_event,
)
from shared.messages.notifications import ContactProfile, EmailRequest, NotificationRecord, PushRequest
