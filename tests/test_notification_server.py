"""Tests for the notification service HTTP API and bus wiring."""

import json
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from services.notifications import BookingNotifier
from services.notifications import server
from shared.bus import EventPublisher, EventSubscriber, MessageBus, RequestCorrelator
from shared.cache import CacheClient
from shared.config.service_config import ServiceConfig
from shared.messages import BookingCreatedEvent

EVENT = {
    "kind": "booking.created",
    "bookingId": "B1",
    "customerId": "C1",
    "vendorId": "V1",
    "serviceType": "Grooming",
    "date": "2025-08-20",
    "time": "10:00",
    "petId": "P1",
    "petName": "Rex",
    "petType": "dog",
}


def wait_until(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def doubles(monkeypatch, redis_client, collaborators):
    """Swap the server's Redis and HTTP collaborators for in-memory doubles."""
    monkeypatch.setattr(server, "_cache", CacheClient(client=redis_client()))
    monkeypatch.setattr(
        server,
        "_bus",
        MessageBus(
            server.SERVICE_NAME,
            publisher=EventPublisher(client=redis_client()),
            subscriber=EventSubscriber(client=redis_client(), poll_timeout_s=0.05),
        ),
    )
    monkeypatch.setattr(
        server,
        "_notifier",
        BookingNotifier(
            httpx.AsyncClient(transport=httpx.MockTransport(collaborators.handler)),
            auth_url="http://auth",
            email_url="http://email",
            push_url="http://push",
            notifications_url="http://notify",
        ),
    )


@pytest.fixture
def client(doubles):
    with TestClient(server.app) as c:
        yield c


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "healthy"
        assert body["service"] == "notification-service"
        assert body["registry_state"] == "registered"
        assert body["bus_connected"] is True
        assert body["cache_connected"] is True
        assert body["pending_requests"] == 0


class TestRegistryApi:
    def test_lists_itself(self, client):
        body = client.get("/api/services").json()
        assert body["count"] == 1
        record = body["services"][0]
        assert record["name"] == "notification-service"
        assert record["url"] == ServiceConfig.url("notification-service")
        assert record["status"] == "healthy"
        assert "booking-notifications" in record["capabilities"]
        assert "lastHeartbeat" in record

    def test_get_service(self, client):
        r = client.get("/api/services/notification-service")
        assert r.status_code == 200
        assert r.json()["endpoints"]["events"] == "/api/events"

    def test_get_unknown_service(self, client):
        r = client.get("/api/services/ghost-service")
        assert r.status_code == 404

    def test_status_change(self, client, broker):
        r = client.post("/api/status", json={"status": "degraded"})
        assert r.status_code == 200
        assert r.json()["updated"] is True
        assert client.get("/health").json()["status"] == "degraded"
        assert client.get("/api/services/notification-service").json()["status"] == "degraded"
        types = [json.loads(raw)["type"] for channel, raw in broker.published if channel == "service-events"]
        assert "service.status.changed" in types

    def test_invalid_status(self, client):
        assert client.post("/api/status", json={"status": "sleepy"}).status_code == 422

    def test_shutdown_deregisters(self, doubles, broker):
        with TestClient(server.app) as c:
            assert c.get("/api/services").json()["count"] == 1
        assert broker.live("service:notification-service") is None
        types = [json.loads(raw)["type"] for channel, raw in broker.published if channel == "service-events"]
        assert types == ["service.started", "service.stopped"]


class TestEventIntake:
    def test_accepts_and_notifies(self, client, collaborators):
        r = client.post("/api/events", json=EVENT)

        assert r.status_code == 202
        assert r.json() == {"accepted": True, "kind": "booking.created", "bookingId": "B1"}
        assert len(collaborators.to("email")) == 1
        assert len(collaborators.to("push")) == 1
        assert collaborators.body("notify")["metadata"]["bookingId"] == "B1"

    def test_invalid_event(self, client, collaborators):
        r = client.post("/api/events", json={**EVENT, "kind": "booking.teleported"})
        assert r.status_code == 422
        assert r.json()["error"] == "Invalid booking event"
        assert collaborators.calls == []

    def test_rate_limited(self, client, monkeypatch, collaborators):
        monkeypatch.setattr(ServiceConfig, "EVENTS_RATE_LIMIT", 1)
        assert client.post("/api/events", json=EVENT).status_code == 202
        r = client.post("/api/events", json=EVENT)
        assert r.status_code == 429
        assert len(collaborators.to("notify")) == 1


class TestBusWiring:
    def test_booking_event_on_bus_is_notified(self, client, collaborators):
        event = BookingCreatedEvent.model_validate(EVENT)
        assert client.portal.call(server._bus.publish_booking_event, event) is True

        assert wait_until(lambda: len(collaborators.to("notify")) == 1)
        assert collaborators.body("notify")["recipientId"] == "V1"

    def test_answers_ping_request(self, client):
        correlator = RequestCorrelator(server._bus)
        reply = client.portal.call(correlator.request, "notification-service.requests", {"op": "ping"}, 1000)
        assert reply["pong"] is True
        assert reply["service"] == "notification-service"

    def test_answers_services_request(self, client):
        correlator = RequestCorrelator(server._bus)
        reply = client.portal.call(correlator.request, "notification-service.requests", {"op": "services"}, 1000)
        assert [r["name"] for r in reply] == ["notification-service"]

    def test_unknown_op(self, client):
        correlator = RequestCorrelator(server._bus)
        reply = client.portal.call(correlator.request, "notification-service.requests", {"op": "reboot"}, 1000)
        assert reply["error"]["code"] == "NOT_FOUND"
