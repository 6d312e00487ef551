"""
Notification Server — booking notifications, service registry and bus host.

Subscribes to the booking lifecycle channels on the message bus and fans
each event out to email, push and the notifications store. Registers itself
in the Redis service registry with a 30 s heartbeat and answers correlated
requests on 'notification-service.requests'.

Port: 3006 (configurable via NOTIFICATION_SERVICE_PORT env var)

Usage:
    python -m services.notifications.server
    python -m services.notifications.server --debug
"""

import argparse
import asyncio
import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from services.notifications.notifier import BookingNotifier
from shared.bus import Channels, MessageBus, RequestCorrelator
from shared.cache import CacheClient
from shared.config.service_config import ServiceConfig
from shared.messages import ServiceMessage, ServiceStatus, parse_booking_event
from shared.registry import CATALOG, ServiceRegistry
from shared.utils.logging_config import setup_logging

SERVICE_NAME = "notification-service"

logger = logging.getLogger("petpro.notifications.server")

# ---------------------------------------------------------------------------
# CLI args
# ---------------------------------------------------------------------------

parser = argparse.ArgumentParser(description="PetPro Notification Service")
parser.add_argument("--host", default="0.0.0.0", help="Bind host")
parser.add_argument("--port", type=int, default=None, help="Bind port (default: from service config)")
parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
parser.add_argument("--log-dir", type=str, default=None, help="Custom log directory")

if "pytest" not in sys.modules:
    args = parser.parse_args()
    setup_logging(server_name=SERVICE_NAME, debug=args.debug, log_dir=args.log_dir)
else:
    args = parser.parse_args([])

# ---------------------------------------------------------------------------
# Components (built in lifespan unless pre-set)
# ---------------------------------------------------------------------------

_cache: Optional[CacheClient] = None
_bus: Optional[MessageBus] = None
_registry: Optional[ServiceRegistry] = None
_correlator: Optional[RequestCorrelator] = None
_notifier: Optional[BookingNotifier] = None
_inflight: set[asyncio.Task] = set()
_started_at: float = 0.0


def _on_booking_message(message: ServiceMessage) -> None:
    """Run the notification in its own task so the bus loop keeps moving."""
    task = asyncio.create_task(_notifier.handle_message(message))
    _inflight.add(task)
    task.add_done_callback(_inflight.discard)


async def _on_request(data: Any) -> Any:
    """Answer correlated requests sent to this service."""
    op = data.get("op") if isinstance(data, dict) else None
    if op == "ping":
        return {"pong": True, "service": SERVICE_NAME, "timestamp": time.time()}
    if op == "services":
        return [r.model_dump(mode="json", by_alias=True) for r in await _registry.list_services()]
    return {"error": {"code": "NOT_FOUND", "message": f"unknown op {op!r}"}}


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _cache, _bus, _registry, _correlator, _notifier, _started_at

    _started_at = time.time()
    _cache = _cache or CacheClient()
    _bus = _bus or MessageBus(SERVICE_NAME)
    _notifier = _notifier or BookingNotifier()

    await _cache.connect()
    if not await _bus.connect():
        logger.info("Message bus not available (operating standalone)")

    _correlator = RequestCorrelator(_bus)
    _registry = ServiceRegistry(
        CATALOG[SERVICE_NAME],
        _cache,
        _bus,
        url=ServiceConfig.url(SERVICE_NAME),
    )
    await _registry.start()

    for channel in Channels.booking_channels():
        await _bus.subscribe(channel, _on_booking_message)
    await _correlator.serve(Channels.requests(SERVICE_NAME), _on_request)

    logger.info("Notification service ready")
    yield

    await _registry.stop()
    if _inflight:
        await asyncio.gather(*_inflight, return_exceptions=True)
    await _bus.close()
    await _cache.close()
    await _notifier.close()
    _cache = _bus = _registry = _correlator = _notifier = None
    logger.info("Notification service shut down")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="PetPro Notification Service",
    description="Booking notifications, service registry and message bus host",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class StatusChangeRequest(BaseModel):
    status: ServiceStatus


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": _registry.status.value if _registry else "unhealthy",
        "service": SERVICE_NAME,
        "registry_state": _registry.state.value if _registry else None,
        "bus_connected": _bus.is_connected if _bus else False,
        "cache_connected": _cache.is_connected if _cache else False,
        "pending_requests": _correlator.pending_count if _correlator else 0,
        "inflight_notifications": len(_inflight),
        "uptime_s": round(time.time() - _started_at, 1),
        "timestamp": time.time(),
    }


# ---------------------------------------------------------------------------
# Registry API
# ---------------------------------------------------------------------------


@app.get("/api/services")
async def list_services():
    """All services with a live registry record."""
    records = await _registry.list_services()
    return {
        "services": [r.model_dump(mode="json", by_alias=True) for r in records],
        "count": len(records),
        "timestamp": time.time(),
    }


@app.get("/api/services/{name}")
async def get_service(name: str):
    record = await _registry.get_service(name)
    if record is None:
        return JSONResponse({"error": f"Service '{name}' not registered"}, status_code=404)
    return record.model_dump(mode="json", by_alias=True)


@app.post("/api/status")
async def change_status(req: StatusChangeRequest):
    """Change this instance's advertised status."""
    updated = await _registry.update_status(req.status)
    return {"service": SERVICE_NAME, "status": req.status.value, "updated": updated}


# ---------------------------------------------------------------------------
# Event intake
# ---------------------------------------------------------------------------


@app.post("/api/events", status_code=202)
async def submit_event(payload: dict, request: Request, background_tasks: BackgroundTasks):
    """Accept a booking event over HTTP and notify in the background."""
    client = request.client.host if request.client else "unknown"
    allowed = await _cache.check_rate_limit(
        f"ratelimit:events:{client}",
        ServiceConfig.EVENTS_RATE_LIMIT,
        ServiceConfig.EVENTS_RATE_WINDOW_S,
    )
    if not allowed:
        return JSONResponse({"error": "Too many events"}, status_code=429)

    try:
        event = parse_booking_event(payload)
    except ValidationError as e:
        return JSONResponse({"error": "Invalid booking event", "details": e.errors(include_url=False, include_context=False)}, status_code=422)

    background_tasks.add_task(_notifier.handle, event)
    logger.info("Accepted %s event for booking %s", event.kind, event.booking_id)
    return {"accepted": True, "kind": event.kind, "bookingId": event.booking_id}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    port = args.port or ServiceConfig.NOTIFICATION_SERVICE_PORT
    logger.info("Starting Notification service on port %d", port)
    uvicorn.run(
        app,
        host=args.host,
        port=port,
        log_level="info",
    )
