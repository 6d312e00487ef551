"""Redis-backed service registry with a periodic heartbeat.

Each service process owns one ServiceRegistry. On start it writes its
ServiceRecord under ``service:{name}`` with a TTL, refreshes it on a fixed
interval from a background task, and broadcasts lifecycle events on
'service-events'. On stop it cancels the refresh, announces shutdown and
deletes the record. A process that dies without stopping simply ages out.

Lifecycle:
    STARTING -> REGISTERED -> (refresh every HEARTBEAT_INTERVAL_S) -> STOPPED
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from shared.bus.bus import MessageBus
from shared.cache.client import CacheClient
from shared.config.service_config import ServiceConfig
from shared.messages.events import EventType
from shared.messages.service_message import utcnow
from shared.messages.service_record import ServiceRecord, ServiceStatus
from shared.registry.catalog import ServiceDescriptor

logger = logging.getLogger(__name__)

SERVICE_KEY_PREFIX = "service:"


def service_key(name: str) -> str:
    return f"{SERVICE_KEY_PREFIX}{name}"


class RegistrationState(str, Enum):
    STARTING = "starting"
    REGISTERED = "registered"
    STOPPED = "stopped"


class ServiceRegistry:
    """Registers one service instance and keeps its record alive."""

    def __init__(
        self,
        descriptor: ServiceDescriptor,
        cache: CacheClient,
        bus: MessageBus,
        url: Optional[str] = None,
        heartbeat_interval_s: Optional[float] = None,
        ttl_s: Optional[int] = None,
    ):
        self.descriptor = descriptor
        self.url = url or ServiceConfig.url(descriptor.name)
        self._cache = cache
        self._bus = bus
        if heartbeat_interval_s is None:
            heartbeat_interval_s = ServiceConfig.HEARTBEAT_INTERVAL_S
        if ttl_s is None:
            ttl_s = ServiceConfig.SERVICE_TTL_S
        if heartbeat_interval_s <= 0 or ttl_s <= 0:
            raise ValueError(
                f"heartbeat interval and TTL must be positive (got {heartbeat_interval_s}, {ttl_s})"
            )
        self._interval_s = heartbeat_interval_s
        self._ttl_s = ttl_s
        self._status = ServiceStatus.HEALTHY
        self._refresh_task: Optional[asyncio.Task] = None
        self.state = RegistrationState.STARTING

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def key(self) -> str:
        return service_key(self.descriptor.name)

    @property
    def status(self) -> ServiceStatus:
        return self._status

    def build_record(self) -> ServiceRecord:
        return ServiceRecord(
            name=self.descriptor.name,
            url=self.url,
            status=self._status,
            version=self.descriptor.version,
            capabilities=list(self.descriptor.capabilities),
            endpoints=self.descriptor.endpoints,
            last_heartbeat=utcnow(),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Write the initial record, start the heartbeat, announce startup."""
        if self.state is RegistrationState.REGISTERED:
            return
        await self.refresh()
        self._refresh_task = asyncio.create_task(self._refresh_loop(), name=f"registry-{self.name}")
        self.state = RegistrationState.REGISTERED
        await self._bus.publish_service_event(
            EventType.SERVICE_STARTED.value,
            self.name,
            {"serviceName": self.name, "url": self.url, "timestamp": utcnow().isoformat()},
        )
        logger.info("Service %s registered at %s (heartbeat every %.0fs)", self.name, self.url, self._interval_s)

    async def stop(self) -> None:
        """Cancel the heartbeat, announce shutdown, remove the record."""
        if self.state is RegistrationState.STOPPED:
            return
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None
        self.state = RegistrationState.STOPPED
        await self._bus.publish_service_event(
            EventType.SERVICE_STOPPED.value,
            self.name,
            {"serviceName": self.name, "timestamp": utcnow().isoformat()},
        )
        await self._cache.delete(self.key)
        logger.info("Service %s deregistered", self.name)

    async def refresh(self) -> bool:
        """Rewrite the record with a fresh heartbeat and TTL."""
        ok = await self._cache.set(self.key, self.build_record().to_store(), self._ttl_s)
        if ok:
            logger.debug("Service registered: %s", self.name)
        else:
            logger.warning("Failed to register service %s; retrying on next heartbeat", self.name)
        return ok

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            try:
                await self.refresh()
            except Exception as e:
                logger.error("Heartbeat for %s failed: %s", self.name, e)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def update_status(self, status: ServiceStatus | str) -> bool:
        """Overwrite the advertised status and broadcast the change.

        If the record has already expired there is nothing to update and the
        call is a logged no-op; the next heartbeat re-creates the record.
        """
        status = ServiceStatus(status)
        current = await self._cache.get(self.key)
        if current is None:
            logger.warning("No registry record for %s; status change to %s ignored", self.name, status.value)
            return False
        try:
            record = ServiceRecord.model_validate(current)
        except ValidationError as e:
            logger.error("Corrupt registry record for %s: %s", self.name, e)
            return False

        record = record.model_copy(update={"status": status, "last_heartbeat": utcnow()})
        if not await self._cache.set(self.key, record.to_store(), self._ttl_s):
            logger.warning("Failed to write status %s for %s", status.value, self.name)
            return False
        self._status = status

        await self._bus.publish_service_event(
            EventType.SERVICE_STATUS_CHANGED.value,
            self.name,
            {"serviceName": self.name, "status": status.value, "timestamp": utcnow().isoformat()},
        )
        logger.info("Service %s status changed to %s", self.name, status.value)
        return True

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def get_service(self, name: str) -> Optional[ServiceRecord]:
        data = await self._cache.get(service_key(name))
        if data is None:
            return None
        try:
            return ServiceRecord.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring malformed registry record for %s: %s", name, e)
            return None

    async def list_services(self) -> list[ServiceRecord]:
        """All live services, sorted by name."""
        records = []
        for key in await self._cache.keys(f"{SERVICE_KEY_PREFIX}*"):
            record = await self.get_service(key[len(SERVICE_KEY_PREFIX):])
            if record is not None:
                records.append(record)
        return sorted(records, key=lambda r: r.name)
