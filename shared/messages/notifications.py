"""Pydantic models for notification payloads exchanged with collaborator services."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RecipientType = Literal["vendor", "customer"]


class ContactProfile(BaseModel):
    """Recipient contact details returned by the auth service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    name: str = Field(default="", description="Display name")
    email: Optional[str] = None
    device_tokens: list[str] = Field(default_factory=list, alias="deviceTokens")


class EmailRequest(BaseModel):
    """Body of POST /api/email/send."""

    to: str
    subject: str
    html: str


class PushRequest(BaseModel):
    """Body of POST /api/push/send."""

    tokens: list[str]
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=lambda: {"type": "booking_notification"})


class NotificationRecord(BaseModel):
    """Body of POST /api/notifications."""

    model_config = ConfigDict(populate_by_name=True)

    recipient_type: RecipientType = Field(alias="recipientType")
    recipient_id: str = Field(alias="recipientId")
    type: str
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = Field(default=False, alias="isRead")
