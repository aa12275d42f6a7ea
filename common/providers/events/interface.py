from abc import ABC, abstractmethod
from typing import Any, Dict


class EventPublisherInterface(ABC):
    """Outbound channel for domain events such as `invoice.paid`.

    Publishing happens after the owning transaction commits. Subscribers
    (notifications, payment follow-up) live outside this service.
    """

    async def connect(self) -> bool:
        return True

    async def disconnect(self) -> None:
        return None

    @abstractmethod
    async def publish(self, event_name: str, payload: Dict[str, Any]) -> bool:
        """Publish one event. Returns False when the event could not be sent."""
        pass
