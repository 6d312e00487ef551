"""Envelope for every message published on the bus."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ServiceMessage(BaseModel):
    """A typed message sent between services over pub/sub.

    Messages without a correlation ID are fire-and-forget broadcasts.
    Messages with one belong to a request/response exchange.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(description="Message type tag, e.g. 'request' or 'service.started'")
    service: str = Field(description="Name of the originating service")
    data: Any = Field(default=None, description="Opaque payload")
    timestamp: datetime = Field(default_factory=utcnow, description="Set by the publisher at publish time")
    correlation_id: Optional[str] = Field(
        default=None,
        alias="correlationId",
        description="Links a request to its response",
    )

    @property
    def is_correlated(self) -> bool:
        return self.correlation_id is not None

    def to_json(self) -> str:
        """Serialize with wire (camelCase) names, omitting an absent correlation ID."""
        exclude = None if self.correlation_id is not None else {"correlation_id"}
        return self.model_dump_json(by_alias=True, exclude=exclude)
