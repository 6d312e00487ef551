"""Event type definitions for the message bus."""

from enum import Enum


class EventType(str, Enum):
    """Message types carried in ServiceMessage.type."""

    # Service lifecycle (published by the service registry)
    SERVICE_STARTED = "service.started"
    SERVICE_STOPPED = "service.stopped"
    SERVICE_STATUS_CHANGED = "service.status.changed"

    # Correlated request/response
    REQUEST = "request"
    RESPONSE = "response"

    # Booking lifecycle (published by the booking service)
    BOOKING_CREATED = "booking.created"
    BOOKING_STATUS_UPDATED = "booking.status.updated"
    BOOKING_CANCELLED = "booking.cancelled"

    # User lifecycle (published by the auth service)
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
