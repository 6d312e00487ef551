"""
Shared test fixtures for the PetPro messaging test suite.

Provides an in-memory stand-in for the slice of the ``redis.asyncio`` client
API the services use (strings with TTL, KEYS, INCR/EXPIRE, pipelines and
pub/sub). Expiry is evaluated against a controllable clock so TTL behaviour
can be tested without sleeping.
"""

import asyncio
import fnmatch
import json
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from shared.bus import EventPublisher, EventSubscriber, MessageBus
from shared.cache import CacheClient


# ---------------------------------------------------------------------------
# In-memory Redis
# ---------------------------------------------------------------------------

class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBroker:
    """Shared server state: keyspace and pub/sub subscriptions."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.store: dict[str, tuple[str, Optional[float]]] = {}
        self.pubsubs: list["FakePubSub"] = []
        self.published: list[tuple[str, str]] = []
        self.down = False

    def live(self, key: str) -> Optional[tuple[str, Optional[float]]]:
        entry = self.store.get(key)
        if entry is None:
            return None
        if entry[1] is not None and entry[1] <= self.clock():
            del self.store[key]
            return None
        return entry

    def ttl(self, key: str) -> Optional[float]:
        entry = self.live(key)
        if entry is None or entry[1] is None:
            return None
        return entry[1] - self.clock()


class FakePipeline:
    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._ops: list[tuple[str, tuple]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def incr(self, key):
        self._ops.append(("incr", (key,)))
        return self

    def expire(self, key, ttl):
        self._ops.append(("expire", (key, ttl)))
        return self

    async def execute(self):
        return [await getattr(self._redis, name)(*a) for name, a in self._ops]


class FakePubSub:
    def __init__(self, broker: FakeBroker):
        self._broker = broker
        self.channels: set[str] = set()
        self.patterns: set[str] = set()
        self._queue: Optional[asyncio.Queue] = None
        broker.pubsubs.append(self)

    @property
    def queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    def deliver(self, channel: str, data: str) -> int:
        delivered = 0
        if channel in self.channels:
            self.queue.put_nowait({"type": "message", "pattern": None, "channel": channel, "data": data})
            delivered += 1
        for pattern in self.patterns:
            if fnmatch.fnmatchcase(channel, pattern):
                self.queue.put_nowait({"type": "pmessage", "pattern": pattern, "channel": channel, "data": data})
                delivered += 1
        return delivered

    async def subscribe(self, *channels):
        self.channels.update(channels)

    async def psubscribe(self, *patterns):
        self.patterns.update(patterns)

    async def unsubscribe(self, *channels):
        self.channels.difference_update(channels)

    async def punsubscribe(self, *patterns):
        self.patterns.difference_update(patterns)

    async def get_message(self, ignore_subscribe_messages: bool = False, timeout: float = 0.0):
        # Poll rather than wait_for(queue.get()): cancelling a listen loop
        # parked here must land on a plain sleep.
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            try:
                return self.queue.get_nowait()
            except asyncio.QueueEmpty:
                if loop.time() >= deadline:
                    return None
            await asyncio.sleep(0.005)

    async def aclose(self):
        if self in self._broker.pubsubs:
            self._broker.pubsubs.remove(self)


class FakeRedis:
    """One client connection to a FakeBroker."""

    def __init__(self, broker: FakeBroker):
        self.broker = broker

    def _check(self):
        if self.broker.down:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        entry = self.broker.live(key)
        return entry[0] if entry else None

    async def set(self, key, value):
        self._check()
        self.broker.store[key] = (value, None)
        return True

    async def setex(self, key, ttl, value):
        self._check()
        self.broker.store[key] = (value, self.broker.clock() + ttl)
        return True

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.broker.live(key) is not None:
                del self.broker.store[key]
                removed += 1
        return removed

    async def exists(self, *keys):
        self._check()
        return sum(1 for k in keys if self.broker.live(k) is not None)

    async def keys(self, pattern):
        self._check()
        return [k for k in list(self.broker.store) if self.broker.live(k) and fnmatch.fnmatchcase(k, pattern)]

    async def expire(self, key, ttl):
        self._check()
        entry = self.broker.live(key)
        if entry is None:
            return False
        self.broker.store[key] = (entry[0], self.broker.clock() + ttl)
        return True

    async def incr(self, key):
        self._check()
        entry = self.broker.live(key)
        value = int(entry[0]) + 1 if entry else 1
        self.broker.store[key] = (str(value), entry[1] if entry else None)
        return value

    async def publish(self, channel, message):
        self._check()
        self.broker.published.append((channel, message))
        return sum(ps.deliver(channel, message) for ps in list(self.broker.pubsubs))

    def pubsub(self):
        return FakePubSub(self.broker)

    def pipeline(self, transaction: bool = True):
        return FakePipeline(self)

    async def aclose(self):
        pass


def make_bus(broker: FakeBroker, service_name: str) -> MessageBus:
    return MessageBus(
        service_name,
        publisher=EventPublisher(client=FakeRedis(broker)),
        subscriber=EventSubscriber(client=FakeRedis(broker), poll_timeout_s=0.05),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def broker(clock):
    return FakeBroker(clock)


@pytest_asyncio.fixture
async def cache(broker):
    c = CacheClient(client=FakeRedis(broker))
    await c.connect()
    yield c
    await c.close()


@pytest_asyncio.fixture
async def bus_factory(broker):
    """Build connected buses on the shared broker; all are closed afterwards."""
    buses: list[MessageBus] = []

    async def _make(service_name: str = "booking-service") -> MessageBus:
        bus = make_bus(broker, service_name)
        await bus.connect()
        buses.append(bus)
        return bus

    yield _make
    for bus in buses:
        await bus.close()


@pytest_asyncio.fixture
async def bus(bus_factory):
    return await bus_factory("booking-service")


@pytest.fixture
def eventually():
    """Poll an async-free predicate until it holds or the timeout passes."""

    async def _wait(predicate, timeout: float = 1.0, interval: float = 0.01) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if predicate():
                return True
            await asyncio.sleep(interval)
        return predicate()

    return _wait


@pytest.fixture
def redis_client(broker):
    """Factory for extra client connections to the shared broker."""
    return lambda: FakeRedis(broker)


# ---------------------------------------------------------------------------
# HTTP collaborators (auth, email, push, notifications store)
# ---------------------------------------------------------------------------

class Collaborators:
    """Records every call and answers like the auth/email/push/notification services.

    Route by host: ``http://auth``, ``http://email``, ``http://push``,
    ``http://notify``. Use ``handler`` with ``httpx.MockTransport``.
    """

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.profiles: dict[str, dict[str, Any]] = {
            "/api/vendors/V1": {"id": "V1", "name": "Paws & Claws", "email": "v@x.com", "deviceTokens": ["tok1"]},
            "/api/users/C1": {"id": "C1", "name": "Dana", "email": "c@x.com", "deviceTokens": ["ctok1", "ctok2"]},
        }
        self.fail_hosts: dict[str, int] = {}
        self.unreachable: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        host = request.url.host
        if host in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if host in self.fail_hosts:
            return httpx.Response(self.fail_hosts[host], json={"error": "boom"})
        if host == "auth":
            profile = self.profiles.get(request.url.path)
            if profile is None:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(200, json=profile)
        return httpx.Response(201, json={"ok": True})

    def to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.host == host]

    def body(self, host: str) -> dict[str, Any]:
        [request] = self.to(host)
        return json.loads(request.content)


@pytest.fixture
def collaborators():
    return Collaborators()
