from typing import Optional

from common.core.config import settings
from common.core.constants import EventPublisherType
from common.core.otel_axiom_exporter import get_logger

from .interface import EventPublisherInterface
from .memory_publisher import InMemoryEventPublisher
from .rabbitmq_publisher import RabbitMQEventPublisher

logger = get_logger(__name__)

# Global instance
_event_publisher: Optional[EventPublisherInterface] = None


def get_event_publisher() -> EventPublisherInterface:
    """Get the configured event publisher."""
    global _event_publisher

    if _event_publisher is None:
        if settings.event_publisher == EventPublisherType.RABBITMQ:
            _event_publisher = RabbitMQEventPublisher()
        else:
            _event_publisher = InMemoryEventPublisher()
        logger.info(f"Initialized {settings.event_publisher.value} event publisher")

    return _event_publisher


def set_event_publisher(publisher: Optional[EventPublisherInterface]) -> None:
    """Replace the global publisher (None resets to the configured default)."""
    global _event_publisher
    _event_publisher = publisher


async def publish_event(event_name: str, payload: dict) -> None:
    """Fire-and-forget publish. Failures are logged and never raised."""
    try:
        published = await get_event_publisher().publish(event_name, payload)
    except Exception as e:
        logger.warning(
            f"Event {event_name} publish raised: {e}",
            extra={"event_name": event_name},
            exc_info=True,
        )
        return
    if not published:
        logger.warning(
            f"Event {event_name} was not published", extra={"event_name": event_name}
        )
