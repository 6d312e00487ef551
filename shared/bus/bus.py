"""Message bus facade owning one publisher and one subscriber connection."""

from __future__ import annotations

import logging
from typing import Any, Optional

from shared.bus.publisher import EventPublisher
from shared.bus.subscriber import EventSubscriber, MessageHandler
from shared.bus.topics import Channels
from shared.messages.service_message import ServiceMessage

logger = logging.getLogger(__name__)


class MessageBus:
    """Pub/sub transport for one service process.

    Constructed at startup and torn down at shutdown; the handler registry
    lives on the subscriber it owns. Redis pub/sub needs a dedicated
    connection for subscriptions, hence the two clients.
    """

    def __init__(
        self,
        service_name: str,
        redis_url: Optional[str] = None,
        *,
        publisher: Optional[EventPublisher] = None,
        subscriber: Optional[EventSubscriber] = None,
    ):
        self.service_name = service_name
        self.publisher = publisher or EventPublisher(redis_url)
        self.subscriber = subscriber or EventSubscriber(redis_url)

    async def connect(self) -> bool:
        """Connect both sides and start the receive loop."""
        pub_ok = await self.publisher.connect()
        sub_ok = await self.subscriber.connect()
        if sub_ok:
            await self.subscriber.listen()
        if pub_ok and sub_ok:
            logger.info("Message bus ready for %s", self.service_name)
        return pub_ok and sub_ok

    async def close(self) -> None:
        await self.subscriber.close()
        await self.publisher.close()
        logger.info("Message bus closed for %s", self.service_name)

    @property
    def is_connected(self) -> bool:
        return self.publisher.is_connected and self.subscriber.is_connected

    async def publish(self, channel: str, message: ServiceMessage | dict) -> bool:
        return await self.publisher.publish(channel, message)

    async def subscribe(self, channel: str, handler: MessageHandler) -> bool:
        return await self.subscriber.subscribe(channel, handler)

    async def unsubscribe(self, channel: str) -> bool:
        return await self.subscriber.unsubscribe(channel)

    # ------------------------------------------------------------------
    # Convenience publishers
    # ------------------------------------------------------------------

    async def publish_service_event(self, event: str, service: str, data: Any) -> bool:
        """Broadcast a service lifecycle event on 'service-events'."""
        return await self.publish(
            Channels.SERVICE_EVENTS,
            ServiceMessage(type=event, service=service, data=data),
        )

    async def publish_user_event(self, event: str, user_id: str, data: Optional[dict] = None) -> bool:
        """Broadcast a user lifecycle event on 'user-events'."""
        return await self.publish(
            Channels.USER_EVENTS,
            ServiceMessage(type=event, service=self.service_name, data={"userId": user_id, **(data or {})}),
        )

    async def publish_booking_event(self, event: Any) -> bool:
        """Publish a booking event on the channel named after its kind."""
        return await self.publish(
            event.kind,
            ServiceMessage(type=event.kind, service=self.service_name, data=event.model_dump(mode="json", by_alias=True)),
        )
