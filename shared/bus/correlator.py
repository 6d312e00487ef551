"""Request/response over pub/sub.

Emulates a synchronous RPC on top of the message bus: the requester
subscribes to a response channel derived from the request channel and a
fresh correlation ID, publishes the request, and waits for the matching
response or a timeout, whichever comes first.

Usage:
    correlator = RequestCorrelator(bus)
    reply = await correlator.request("inventory-service.requests", {"op": "stock", "sku": "A1"})

    # on the responding side
    await correlator.serve("inventory-service.requests", handle_request)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from shared.bus.bus import MessageBus
from shared.bus.topics import Channels
from shared.config.service_config import ServiceConfig
from shared.errors import RequestTimeoutError
from shared.messages.events import EventType
from shared.messages.service_message import ServiceMessage

logger = logging.getLogger(__name__)

RequestHandler = Callable[[Any], Union[Any, Awaitable[Any]]]


@dataclass
class PendingRequest:
    """Bookkeeping for one outstanding correlated request."""
    correlation_id: str
    response_channel: str
    timeout_ms: int
    future: asyncio.Future
    created_at: float = field(default_factory=time.time)


def new_correlation_id() -> str:
    """Millisecond timestamp plus 64 random bits."""
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(8)}"


class RequestCorrelator:
    """Correlates requests and responses exchanged over a MessageBus."""

    def __init__(self, bus: MessageBus, default_timeout_ms: Optional[int] = None):
        self._bus = bus
        if default_timeout_ms is None:
            default_timeout_ms = ServiceConfig.REQUEST_TIMEOUT_MS
        self._default_timeout_ms = default_timeout_ms
        self._pending: dict[str, PendingRequest] = {}
        self._serving: set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def request(self, channel: str, data: Any, timeout_ms: Optional[int] = None) -> Any:
        """Publish a request on ``channel`` and wait for its response payload.

        Raises:
            RequestTimeoutError: no matching response within ``timeout_ms``
        """
        if timeout_ms is None:
            timeout_ms = self._default_timeout_ms
        loop = asyncio.get_running_loop()
        started = loop.time()

        correlation_id = new_correlation_id()
        while correlation_id in self._pending:
            correlation_id = new_correlation_id()
        response_channel = Channels.response_channel(channel, correlation_id)
        pending = PendingRequest(correlation_id, response_channel, timeout_ms, loop.create_future())
        self._pending[correlation_id] = pending

        def _on_response(message: ServiceMessage) -> None:
            if message.correlation_id != correlation_id:
                return
            if not pending.future.done():
                pending.future.set_result(message.data)

        try:
            if not await self._bus.subscribe(response_channel, _on_response):
                logger.warning("Could not subscribe to %s; request will time out", response_channel)
            await self._bus.publish(
                channel,
                ServiceMessage(
                    type=EventType.REQUEST.value,
                    service=self._bus.service_name,
                    data=data,
                    correlation_id=correlation_id,
                ),
            )
            remaining = max(0.0, timeout_ms / 1000 - (loop.time() - started))
            return await asyncio.wait_for(pending.future, timeout=remaining)
        except asyncio.TimeoutError:
            logger.warning("Request %s on %s timed out after %d ms", correlation_id, channel, timeout_ms)
            raise RequestTimeoutError(channel, correlation_id, timeout_ms) from None
        finally:
            self._pending.pop(correlation_id, None)
            await self._bus.unsubscribe(response_channel)

    async def respond(self, channel: str, correlation_id: str, data: Any) -> bool:
        """Publish the response to a correlated request. Fire-and-forget."""
        return await self._bus.publish(
            Channels.response_channel(channel, correlation_id),
            ServiceMessage(
                type=EventType.RESPONSE.value,
                service=self._bus.service_name,
                data=data,
                correlation_id=correlation_id,
            ),
        )

    async def serve(self, channel: str, handler: RequestHandler) -> bool:
        """Answer every correlated request on ``channel`` with ``handler``'s result.

        Each request runs in its own task so a handler may itself issue bus
        requests without stalling the receive loop. A handler error is sent
        back as ``{"error": {"code": "INTERNAL", "message": ...}}``.
        """

        async def _answer(message: ServiceMessage) -> None:
            try:
                result = handler(message.data)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.error("Request handler on %s failed: %s", channel, e, exc_info=True)
                result = {"error": {"code": "INTERNAL", "message": str(e)}}
            await self.respond(channel, message.correlation_id, result)

        def _on_request(message: ServiceMessage) -> None:
            if message.type != EventType.REQUEST.value or not message.is_correlated:
                return
            task = asyncio.create_task(_answer(message))
            self._serving.add(task)
            task.add_done_callback(self._serving.discard)

        return await self._bus.subscribe(channel, _on_request)
