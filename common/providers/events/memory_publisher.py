from typing import Any, Dict, List, Tuple

from common.core.otel_axiom_exporter import get_logger
from .interface import EventPublisherInterface

logger = get_logger(__name__)


class InMemoryEventPublisher(EventPublisherInterface):
    """Keeps published events in order; used locally and in tests."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    async def publish(self, event_name: str, payload: Dict[str, Any]) -> bool:
        self.events.append((event_name, dict(payload)))
        logger.debug(f"Recorded event {event_name}", extra={"payload": payload})
        return True

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def clear(self) -> None:
        self.events.clear()
