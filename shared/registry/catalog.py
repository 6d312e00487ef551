"""Self-descriptions advertised by PetPro services in the registry."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ServiceDescriptor:
    """Static part of a ServiceRecord: what a service is and what it offers."""
    name: str
    version: str = "1.0.0"
    capabilities: tuple[str, ...] = ()
    endpoints: dict[str, Any] = field(default_factory=dict)


AUTH_SERVICE = ServiceDescriptor(
    name="auth-service",
    capabilities=(
        "authentication",
        "user-management",
        "jwt-tokens",
        "password-reset",
        "user-profiles",
    ),
    endpoints={
        "health": "/api/v1/health",
        "docs": "/api/v1/docs",
        "auth": {
            "login": "/api/v1/auth/login",
            "register": "/api/v1/auth/register",
            "refresh": "/api/v1/auth/refresh-token",
            "me": "/api/v1/auth/me",
        },
        "users": {
            "list": "/api/v1/users",
            "get": "/api/v1/users/:id",
            "update": "/api/v1/users/:id",
            "search": "/api/v1/users/search",
        },
        "internal": {
            "getUser": "/api/v1/api/internal/users/:id",
            "bulkUsers": "/api/v1/api/internal/users/bulk",
        },
    },
)

BOOKING_SERVICE = ServiceDescriptor(
    name="booking-service",
    capabilities=(
        "booking-management",
        "service-booking",
        "availability-checking",
        "pet-management",
        "review-system",
    ),
    endpoints={
        "health": "/api/v1/health",
        "docs": "/api/v1/docs",
        "bookings": {
            "list": "/api/v1/bookings",
            "create": "/api/v1/bookings",
            "get": "/api/v1/bookings/:id",
            "update": "/api/v1/bookings/:id",
            "cancel": "/api/v1/bookings/:id/cancel",
            "confirm": "/api/v1/bookings/:id/confirm",
        },
        "services": {
            "list": "/api/v1/services",
            "get": "/api/v1/services/:id",
            "search": "/api/v1/services/search",
        },
        "availability": {
            "check": "/api/v1/availability/slots/:serviceId",
            "list": "/api/v1/availability",
        },
    },
)

VENDOR_SERVICE = ServiceDescriptor(
    name="vendor-service",
    capabilities=(
        "vendor-management",
        "vendor-search",
        "vendor-services",
        "vendor-status",
    ),
    endpoints={
        "health": "/api/v1/health",
        "docs": "/api/v1/docs",
        "vendors": {
            "list": "/api/v1/vendors",
            "search": "/api/v1/vendors/search",
            "get": "/api/v1/vendors/:id",
            "byUser": "/api/v1/vendors/user/:userId",
            "create": "/api/v1/vendors",
            "update": "/api/v1/vendors/:id",
            "status": "/api/v1/vendors/:id/status",
        },
        "services": {
            "byVendor": "/api/v1/vendors/:vendorId/services",
            "get": "/api/v1/vendors/services/:id",
            "create": "/api/v1/vendors/services",
            "update": "/api/v1/vendors/services/:id",
        },
    },
)

NOTIFICATION_SERVICE = ServiceDescriptor(
    name="notification-service",
    capabilities=(
        "booking-notifications",
        "email-dispatch",
        "push-dispatch",
        "notification-records",
    ),
    endpoints={
        "health": "/health",
        "services": "/api/services",
        "events": "/api/events",
    },
)

CATALOG: dict[str, ServiceDescriptor] = {
    d.name: d for d in (AUTH_SERVICE, BOOKING_SERVICE, VENDOR_SERVICE, NOTIFICATION_SERVICE)
}
