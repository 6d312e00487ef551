"""Exception types shared across PetPro services."""

from typing import Optional


class PetProError(Exception):
    """Base class for errors raised by PetPro shared components."""


class RequestTimeoutError(PetProError, TimeoutError):
    """A correlated bus request received no response in time."""

    def __init__(self, channel: str, correlation_id: str, timeout_ms: int):
        self.channel = channel
        self.correlation_id = correlation_id
        self.timeout_ms = timeout_ms
        super().__init__(f"Request timeout on '{channel}' after {timeout_ms} ms (correlation {correlation_id})")


class RecipientLookupError(PetProError):
    """The identity service could not resolve a notification recipient."""

    def __init__(self, recipient_type: str, recipient_id: str, reason: str):
        self.recipient_type = recipient_type
        self.recipient_id = recipient_id
        self.reason = reason
        super().__init__(f"Could not retrieve {recipient_type} information for {recipient_id}: {reason}")


class NotificationDeliveryError(PetProError):
    """One notification channel (email, push, store) failed."""

    def __init__(self, channel: str, reason: str, status_code: Optional[int] = None):
        self.channel = channel
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{channel} delivery failed: {reason}")
