"""Service discovery through heartbeat records in Redis."""

from shared.registry.catalog import CATALOG, ServiceDescriptor
from shared.registry.service_registry import RegistrationState, ServiceRegistry, service_key
