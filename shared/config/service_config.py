"""
Central service configuration for PetPro.

All service URLs, ports, and bus/registry timings in one place.
Services use environment variables for configuration, with sensible defaults.
A ``.env`` file in the project root is loaded first; variables already set
in the environment always win.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")


class ServiceConfig:
    """Configuration for all PetPro services.

    Port assignments:
        3000 — API Gateway
        3001 — Auth (identity, user and vendor profiles)
        3002 — Booking
        3003 — Vendor
        3004 — Inventory
        3005 — Admin
        3006 — Notification
        6379 — Redis (cache, registry, message bus)
    """

    SERVICE_HOST = os.getenv("SERVICE_HOST", "localhost")

    API_GATEWAY_PORT = int(os.getenv("API_GATEWAY_PORT", "3000"))
    AUTH_SERVICE_PORT = int(os.getenv("AUTH_SERVICE_PORT", "3001"))
    BOOKING_SERVICE_PORT = int(os.getenv("BOOKING_SERVICE_PORT", "3002"))
    VENDOR_SERVICE_PORT = int(os.getenv("VENDOR_SERVICE_PORT", "3003"))
    INVENTORY_SERVICE_PORT = int(os.getenv("INVENTORY_SERVICE_PORT", "3004"))
    ADMIN_SERVICE_PORT = int(os.getenv("ADMIN_SERVICE_PORT", "3005"))
    NOTIFICATION_SERVICE_PORT = int(os.getenv("NOTIFICATION_SERVICE_PORT", "3006"))

    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")

    # Collaborator services reached over HTTP by the notifier
    AUTH_SERVICE_URL = os.getenv("AUTH_SERVICE_URL", "http://localhost:3001")
    EMAIL_SERVICE_URL = os.getenv("EMAIL_SERVICE_URL", "http://localhost:3010")
    PUSH_NOTIFICATION_SERVICE_URL = os.getenv("PUSH_NOTIFICATION_SERVICE_URL", "http://localhost:3011")
    NOTIFICATIONS_SERVICE_URL = os.getenv("NOTIFICATIONS_SERVICE_URL", "http://localhost:3012")
    VENDOR_DASHBOARD_URL = os.getenv("VENDOR_DASHBOARD_URL", "http://localhost:3100")
    MOBILE_APP_URL = os.getenv("MOBILE_APP_URL", "http://localhost:3200")

    # Registry and bus timings
    HEARTBEAT_INTERVAL_S = float(os.getenv("HEARTBEAT_INTERVAL_S", "30"))
    SERVICE_TTL_S = int(os.getenv("SERVICE_TTL_S", "60"))
    REQUEST_TIMEOUT_MS = int(os.getenv("REQUEST_TIMEOUT_MS", "5000"))
    HTTP_TIMEOUT_S = float(os.getenv("HTTP_TIMEOUT_S", "10"))

    # Per-client limit on the notification service's event intake
    EVENTS_RATE_LIMIT = int(os.getenv("EVENTS_RATE_LIMIT", "120"))
    EVENTS_RATE_WINDOW_S = int(os.getenv("EVENTS_RATE_WINDOW_S", "60"))

    @classmethod
    def url(cls, service: str, path: str = "") -> str:
        """Get the URL for a service.

        Args:
            service: Service name (e.g., 'booking_service', 'auth_service')
            path: Optional URL path to append (e.g., '/api/v1/health')

        Returns:
            Full URL like 'http://localhost:3002/api/v1/health'
        """
        key = service.upper().replace("-", "_")
        host = os.getenv(f"{key}_HOST", cls.SERVICE_HOST)
        port = getattr(cls, f"{key}_PORT", cls.API_GATEWAY_PORT)
        base = f"http://{host}:{port}"
        if path:
            return f"{base}{path}"
        return base

    @classmethod
    def all_services(cls) -> dict[str, int]:
        """Return a dict of service name -> port for all known services."""
        return {
            "api-gateway": cls.API_GATEWAY_PORT,
            "auth-service": cls.AUTH_SERVICE_PORT,
            "booking-service": cls.BOOKING_SERVICE_PORT,
            "vendor-service": cls.VENDOR_SERVICE_PORT,
            "inventory-service": cls.INVENTORY_SERVICE_PORT,
            "admin-service": cls.ADMIN_SERVICE_PORT,
            "notification-service": cls.NOTIFICATION_SERVICE_PORT,
        }
