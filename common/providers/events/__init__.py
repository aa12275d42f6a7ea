from .interface import EventPublisherInterface
from .factory import get_event_publisher, set_event_publisher, publish_event

__all__ = [
    "EventPublisherInterface",
    "get_event_publisher",
    "set_event_publisher",
    "publish_event",
]
