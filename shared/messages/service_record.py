"""Pydantic models for service registry records."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.messages.service_message import utcnow


class ServiceStatus(str, Enum):
    """Advertised health of a running service instance."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


class ServiceRecord(BaseModel):
    """A running service instance's advertised state.

    Stored under ``service:{name}`` with a TTL. Presence in the store is the
    only liveness signal; an expired record is simply absent.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(description="Unique service name, e.g. 'booking-service'")
    url: str = Field(description="Base URL of the instance")
    status: ServiceStatus = Field(default=ServiceStatus.HEALTHY)
    version: str = Field(default="1.0.0", description="Semantic version")
    capabilities: list[str] = Field(default_factory=list, description="Capability tags")
    endpoints: dict[str, Any] = Field(
        default_factory=dict,
        description="Endpoint map; values are paths or nested maps of paths",
    )
    last_heartbeat: datetime = Field(default_factory=utcnow, alias="lastHeartbeat")

    def to_store(self) -> dict[str, Any]:
        """JSON-compatible dict using wire names."""
        return self.model_dump(mode="json", by_alias=True)
