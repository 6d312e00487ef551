"""Channel name constants for the message bus.

All services should use these constants rather than hardcoded strings
to ensure consistency across the system.
"""

from shared.messages.events import EventType


class Channels:
    """Message bus channel names."""

    # Service lifecycle broadcasts (published by every service registry)
    SERVICE_EVENTS = "service-events"

    # User lifecycle broadcasts (published by the auth service)
    USER_EVENTS = "user-events"

    # Booking lifecycle (published by the booking service, consumed by notifications)
    BOOKING_CREATED = EventType.BOOKING_CREATED.value
    BOOKING_STATUS_UPDATED = EventType.BOOKING_STATUS_UPDATED.value
    BOOKING_CANCELLED = EventType.BOOKING_CANCELLED.value

    RESPONSE_INFIX = "_response_"

    @classmethod
    def booking_channels(cls) -> tuple[str, ...]:
        return (cls.BOOKING_CREATED, cls.BOOKING_STATUS_UPDATED, cls.BOOKING_CANCELLED)

    @classmethod
    def requests(cls, service_name: str) -> str:
        """Channel a service listens on for correlated requests."""
        return f"{service_name}.requests"

    @classmethod
    def response_channel(cls, channel: str, correlation_id: str) -> str:
        """Derived channel carrying the response to one correlated request."""
        return f"{channel}{cls.RESPONSE_INFIX}{correlation_id}"
