"""Event publisher for the message bus.

Wraps Redis pub/sub for publishing ServiceMessage envelopes to channels.
Falls back gracefully if Redis is unavailable (logs warning, does not crash).

Usage:
    from shared.bus import EventPublisher
    from shared.messages import ServiceMessage

    pub = EventPublisher()
    await pub.connect()
    await pub.publish("service-events", ServiceMessage(type="service.started", service="booking-service"))
    await pub.close()
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import redis.asyncio as aioredis

from shared.config.service_config import ServiceConfig
from shared.messages.service_message import ServiceMessage, utcnow

logger = logging.getLogger(__name__)


class EventPublisher:
    """Publishes ServiceMessage envelopes to the Redis message bus.

    The envelope timestamp is always assigned here, at publish time,
    replacing whatever the caller supplied.
    """

    def __init__(self, redis_url: Optional[str] = None, *, client: Any = None):
        self._redis_url = redis_url or ServiceConfig.REDIS_URL
        self._redis = client
        self._connected = False

    async def connect(self) -> bool:
        """Connect to Redis. Returns True if successful."""
        try:
            if self._redis is None:
                self._redis = aioredis.from_url(
                    self._redis_url,
                    decode_responses=True,
                    socket_connect_timeout=2.0,
                )
            await self._redis.ping()
            self._connected = True
            logger.info("EventPublisher connected to Redis at %s", self._redis_url)
            return True
        except Exception as e:
            logger.warning("Failed to connect to Redis: %s (message bus disabled)", e)
            self._connected = False
            return False

    async def publish(self, channel: str, message: ServiceMessage | dict) -> bool:
        """Publish a message to a channel.

        Args:
            channel: Channel name (e.g., 'service-events')
            message: ServiceMessage or a dict with the envelope fields

        Returns:
            True if published successfully, False otherwise.
        """
        if not self._connected or self._redis is None:
            logger.debug("Bus not connected, dropping message for %s", channel)
            return False

        try:
            if not isinstance(message, ServiceMessage):
                message = ServiceMessage.model_validate(message)
            stamped = message.model_copy(update={"timestamp": utcnow()})
            await self._redis.publish(channel, stamped.to_json())
            logger.debug("Published %s to channel %s", stamped.type, channel)
            return True
        except Exception as e:
            logger.warning("Failed to publish to %s: %s", channel, e)
            return False

    async def close(self):
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected
