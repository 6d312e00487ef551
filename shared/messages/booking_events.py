"""Pydantic models for booking lifecycle events.

The three variants form a tagged union discriminated by ``kind``. Events are
frozen once constructed and consumed exactly once by the notifier.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from shared.messages.events import EventType

Role = Literal["vendor", "customer", "system"]


class BookingEventBase(BaseModel):
    """Fields common to every booking event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    booking_id: str
    customer_id: str
    vendor_id: str
    service_type: str = Field(description="Service label, e.g. 'Grooming'")
    date: str = Field(description="Booking date, YYYY-MM-DD")
    time: str = Field(description="Booking time, HH:MM")

    def metadata(self) -> dict[str, str]:
        """Structured metadata attached to stored notifications."""
        return {
            "bookingId": self.booking_id,
            "serviceType": self.service_type,
            "date": self.date,
            "time": self.time,
        }


class BookingCreatedEvent(BookingEventBase):
    kind: Literal["booking.created"] = EventType.BOOKING_CREATED.value
    pet_id: str
    pet_name: str
    pet_type: str
    notes: Optional[str] = None


class BookingStatusUpdatedEvent(BookingEventBase):
    kind: Literal["booking.status.updated"] = EventType.BOOKING_STATUS_UPDATED.value
    previous_status: str
    new_status: str
    updated_by: Role
    notes: Optional[str] = None


class BookingCancelledEvent(BookingEventBase):
    kind: Literal["booking.cancelled"] = EventType.BOOKING_CANCELLED.value
    cancelled_by: Role
    cancellation_reason: Optional[str] = None


BookingEvent = Annotated[
    Union[BookingCreatedEvent, BookingStatusUpdatedEvent, BookingCancelledEvent],
    Field(discriminator="kind"),
]

_booking_event_adapter = TypeAdapter(BookingEvent)

BOOKING_EVENT_KINDS = (
    EventType.BOOKING_CREATED.value,
    EventType.BOOKING_STATUS_UPDATED.value,
    EventType.BOOKING_CANCELLED.value,
)


def parse_booking_event(payload: dict[str, Any], kind: Optional[str] = None) -> BookingEvent:
    """Build the right event variant from a wire payload.

    Args:
        payload: Event fields (camelCase or snake_case)
        kind: Event kind, used when the payload itself carries none
              (e.g. taken from the channel it arrived on)

    Raises:
        pydantic.ValidationError: unknown kind or missing fields
    """
    if kind is not None and "kind" not in payload:
        payload = {**payload, "kind": kind}
    return _booking_event_adapter.validate_python(payload)
