"""Message bus client library for inter-service communication."""

from shared.bus.publisher import EventPublisher
from shared.bus.subscriber import EventSubscriber
from shared.bus.topics import Channels
from shared.bus.bus import MessageBus
from shared.bus.correlator import PendingRequest, RequestCorrelator, new_correlation_id
