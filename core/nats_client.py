"""
NATS JetStream Client for the Concierge Microservices
Provides event-driven communication between services

Wraps nats-py. Event types are namespaced by service prefix and each
prefix maps to its own JetStream stream (credit.* -> credit-stream).
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union, TYPE_CHECKING

import nats
from nats.errors import Error as NATSError

if TYPE_CHECKING:
    from core.config_manager import ConfigManager


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and datetime values"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Platform event types"""

    # Credit Events
    CREDIT_ALLOCATED = "credit.allocated"
    CREDIT_CONSUMED = "credit.consumed"
    CREDIT_ADDED = "credit.added"
    CREDIT_REFUNDED = "credit.refunded"
    CREDIT_RESET = "credit.reset"

    # Service Request Events
    SERVICE_REQUEST_STATUS_CHANGED = "service_request.status_changed"
    SERVICE_REQUEST_PARTNER_ASSIGNED = "service_request.partner_assigned"

    # Booking Events
    BOOKING_CREATED = "booking.created"
    BOOKING_CANCELLED = "booking.cancelled"

    # Membership Events
    MEMBERSHIP_CHECKOUT_STARTED = "membership.checkout_started"
    MEMBERSHIP_UPGRADE_RECOMMENDED = "membership.upgrade_recommended"


class ServiceSource(Enum):
    """Publishing services"""

    MEMBERSHIP_SERVICE = "membership_service"
    CREDIT_SERVICE = "credit_service"
    SERVICE_REQUEST_SERVICE = "service_request_service"
    BOOKING_SERVICE = "booking_service"


# Stream per subject prefix
STREAMS = {
    "credit": "credit-stream",
    "service_request": "service-request-stream",
    "booking": "booking-stream",
    "membership": "membership-stream",
}


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: Union[EventType, str],
        source: Union[ServiceSource, str],
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value if isinstance(event_type, Enum) else event_type
        self.source = source.value if isinstance(source, Enum) else source
        self.data = data
        self.subject = subject
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        event = cls.__new__(cls)
        event.id = data.get("id")
        event.type = data.get("type")
        event.source = data.get("source")
        event.subject = data.get("subject")
        event.timestamp = data.get("timestamp")
        event.data = data.get("data", {})
        event.metadata = data.get("metadata", {})
        event.version = data.get("version", "1.0.0")
        return event


EventHandler = Callable[[Event], Awaitable[None]]


class NATSEventBus:
    """NATS JetStream event bus"""

    def __init__(
        self,
        service_name: str,
        config: Optional["ConfigManager"] = None,
    ):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service (used as the client name)
            config: Optional ConfigManager instance for service discovery
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name

        if config is None:
            config = ConfigManager(service_name)
        infra = config.settings.infra

        self.host, self.port = config.discover_service(
            service_name="nats",
            default_host=infra.nats_host,
            default_port=infra.nats_port,
            env_host_key="NATS_HOST",
            env_port_key="NATS_PORT",
        )
        self.url = infra.nats_url or f"nats://{self.host}:{self.port}"

        self._nc = None
        self._js = None
        self._subscriptions: Dict[str, Any] = {}
        self._ensured_streams: set = set()

        logger.info(f"NATS EventBus initialized: {self.url}")

    async def connect(self):
        """Connect to NATS and open a JetStream context"""
        self._nc = await nats.connect(servers=[self.url], name=self.service_name)
        self._js = self._nc.jetstream()
        logger.info(f"Connected to NATS as {self.service_name}")

    def _get_stream_name_for_event(self, event_type: str) -> str:
        prefix = event_type.split(".")[0]
        return STREAMS.get(prefix, f"{prefix.replace('_', '-')}-stream")

    async def _ensure_stream(self, event_type: str) -> str:
        prefix = event_type.split(".")[0]
        stream_name = self._get_stream_name_for_event(event_type)
        if stream_name not in self._ensured_streams:
            try:
                await self._js.add_stream(name=stream_name, subjects=[f"{prefix}.>"])
            except NATSError as e:
                # Already exists with a compatible config
                logger.debug(f"Stream creation note for {stream_name}: {e}")
            self._ensured_streams.add(stream_name)
        return stream_name

    async def publish_event(self, event: Event) -> bool:
        """
        Publish an event to its JetStream stream.

        Returns False instead of raising so that publishing never fails the
        business operation that triggered it.
        """
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return False

        try:
            stream_name = await self._ensure_stream(event.type)
            payload = json.dumps(event.to_dict(), cls=DecimalEncoder).encode()
            ack = await self._js.publish(event.type, payload)
            logger.info(f"Published event {event.type} [{event.id}] to stream {stream_name}, seq={ack.seq}")
            return True
        except NATSError as e:
            logger.error(f"Error publishing event {event.id}: {e}")
            return False

    async def subscribe_to_events(
        self,
        pattern: str,
        handler: EventHandler,
        durable: Optional[str] = None,
    ) -> Optional[str]:
        """
        Subscribe a handler to a subject pattern with a durable consumer.

        Args:
            pattern: Subject pattern (e.g. "booking.*")
            handler: Async callable receiving an Event
            durable: Durable consumer name

        Returns:
            Subscription key or None on failure
        """
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return None

        async def _on_message(msg):
            try:
                event = Event.from_dict(json.loads(msg.data.decode()))
                await handler(event)
                await msg.ack()
            except Exception as e:
                # Left unacked for redelivery
                logger.error(f"Error handling message on {msg.subject}: {e}", exc_info=True)

        try:
            await self._ensure_stream(pattern)
            sub = await self._js.subscribe(pattern, durable=durable, cb=_on_message)
            key = durable or pattern
            self._subscriptions[key] = sub
            logger.info(f"Subscribed to {pattern} (JetStream consumer)")
            return key
        except NATSError as e:
            logger.error(f"Error subscribing to {pattern}: {e}")
            return None

    async def close(self):
        """Drain subscriptions and close the connection"""
        for sub in self._subscriptions.values():
            try:
                await sub.unsubscribe()
            except NATSError as e:
                logger.debug(f"Unsubscribe note: {e}")
        self._subscriptions.clear()

        if self._nc is not None:
            await self._nc.drain()
            self._nc = None
            self._js = None

        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return self._nc is not None and self._nc.is_connected


# Singleton instance
_event_bus: Optional[NATSEventBus] = None


async def get_event_bus(
    service_name: str,
    config: Optional["ConfigManager"] = None,
) -> NATSEventBus:
    """
    Get or create event bus instance.

    Args:
        service_name: Name of the service using the event bus
        config: Optional ConfigManager instance for service discovery

    Returns:
        Connected NATSEventBus instance
    """
    global _event_bus

    if _event_bus is None:
        bus = NATSEventBus(service_name=service_name, config=config)
        await bus.connect()
        _event_bus = bus

    return _event_bus


__all__ = [
    "EventType",
    "ServiceSource",
    "Event",
    "EventHandler",
    "NATSEventBus",
    "get_event_bus",
]
