"""Event subscriber for the message bus.

Wraps Redis pub/sub for subscribing to channels. The first handler on a
channel performs the Redis SUBSCRIBE; later handlers on the same channel
are only added to the local fan-out list. Falls back gracefully if Redis
is unavailable.

Usage:
    from shared.bus import EventSubscriber

    sub = EventSubscriber()
    await sub.connect()
    await sub.subscribe("service-events", my_handler)
    await sub.listen()  # starts the background receive loop
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import redis.asyncio as aioredis
from pydantic import ValidationError

from shared.config.service_config import ServiceConfig
from shared.messages.service_message import ServiceMessage

logger = logging.getLogger(__name__)

# Handlers receive the parsed envelope; they may be plain functions or coroutines
MessageHandler = Callable[[ServiceMessage], Union[None, Awaitable[None]]]


class EventSubscriber:
    """Subscribes to channels on the Redis message bus and fans messages
    out to local handlers in subscription order."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        client: Any = None,
        poll_timeout_s: float = 1.0,
    ):
        self._redis_url = redis_url or ServiceConfig.REDIS_URL
        self._redis = client
        self._pubsub = None
        self._connected = False
        self._handlers: dict[str, list[MessageHandler]] = {}
        self._listen_task: Optional[asyncio.Task] = None
        self._poll_timeout_s = poll_timeout_s

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
            self._pubsub = self._redis.pubsub()
            self._connected = True
            logger.info("EventSubscriber connected to Redis at %s", self._redis_url)
            return True
        except Exception as e:
            logger.warning("Failed to connect to Redis: %s (message bus disabled)", e)
            self._connected = False
            return False

    async def subscribe(self, channel: str, handler: MessageHandler) -> bool:
        """Subscribe a handler to a channel.

        Args:
            channel: Channel name or glob pattern (e.g., 'booking.*')
            handler: Called with each ServiceMessage delivered on the channel

        Returns:
            True if subscribed successfully.
        """
        if not self._connected or self._pubsub is None:
            return False

        if channel in self._handlers:
            self._handlers[channel].append(handler)
            return True

        # Registered before the await so a concurrent subscribe appends
        # to this list instead of replacing it.
        handlers = self._handlers[channel] = [handler]
        try:
            if _is_pattern(channel):
                await self._pubsub.psubscribe(channel)
            else:
                await self._pubsub.subscribe(channel)
        except Exception as e:
            logger.warning("Failed to subscribe to %s: %s", channel, e)
            if self._handlers.get(channel) is handlers:
                del self._handlers[channel]
            return False
        logger.info("Subscribed to channel: %s", channel)
        return True

    async def unsubscribe(self, channel: str) -> bool:
        """Drop every local handler for a channel and the Redis subscription.

        Unknown channels are a no-op, so repeated calls are safe.
        """
        if self._handlers.pop(channel, None) is None:
            return False
        if self._pubsub is None:
            return True
        try:
            if _is_pattern(channel):
                await self._pubsub.punsubscribe(channel)
            else:
                await self._pubsub.unsubscribe(channel)
            logger.debug("Unsubscribed from channel: %s", channel)
        except Exception as e:
            logger.warning("Failed to unsubscribe from %s: %s", channel, e)
        return True

    def handler_count(self, channel: str) -> int:
        return len(self._handlers.get(channel, ()))

    @property
    def channels(self) -> list[str]:
        return list(self._handlers)

    async def listen(self) -> None:
        """Start listening for messages. Runs as a background task."""
        if not self._connected or self._pubsub is None:
            return
        if self._listen_task is not None and not self._listen_task.done():
            return

        async def _listen_loop():
            while True:
                if not self._handlers:
                    await asyncio.sleep(self._poll_timeout_s / 10)
                    continue
                try:
                    message = await self._pubsub.get_message(
                        ignore_subscribe_messages=True,
                        timeout=self._poll_timeout_s,
                    )
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error("Listen loop error: %s", e)
                    await asyncio.sleep(self._poll_timeout_s)
                    continue
                if message is None or message.get("type") not in ("message", "pmessage"):
                    continue
                key = message.get("pattern") if message["type"] == "pmessage" else message.get("channel")
                await self.dispatch(key, message.get("data"))

        self._listen_task = asyncio.create_task(_listen_loop())

    async def dispatch(self, channel: str, raw: Any) -> int:
        """Parse a raw payload and deliver it to the channel's handlers.

        Handlers run in subscription order. A handler that raises is logged
        and does not stop the others. Returns the number of handlers invoked.
        """
        handlers = list(self._handlers.get(channel, ()))
        if not handlers:
            return 0

        try:
            message = ServiceMessage.model_validate(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.error("Failed to parse message from channel %s: %s", channel, e)
            return 0

        for handler in handlers:
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error("Handler error for %s: %s", channel, e, exc_info=True)
        return len(handlers)

    async def close(self):
        """Close the subscription and Redis connection."""
        if self._listen_task:
            self._listen_task.cancel()
            try:
                await self._listen_task
            except asyncio.CancelledError:
                pass
            self._listen_task = None
        self._handlers.clear()
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected


def _is_pattern(channel: str) -> bool:
    return any(c in channel for c in "*?[")
