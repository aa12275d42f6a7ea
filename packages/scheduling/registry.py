"""
Registry of periodic billing triggers.

Each trigger has a cadence and an async handler that takes the current
time and returns how many items it processed. The registry tracks when
each trigger last ran; the worker that drives it owns the clock.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)

TriggerHandler = Callable[[datetime], Awaitable[int]]


@dataclass
class Trigger:
    """A periodic job."""

    name: str
    cadence: timedelta
    handler: TriggerHandler
    last_run: Optional[datetime] = field(default=None, compare=False)

    def is_due(self, now: datetime) -> bool:
        return self.last_run is None or now - self.last_run >= self.cadence


class TriggerRegistry:
    """Ordered set of triggers. Triggers run in registration order."""

    def __init__(self):
        self._triggers: Dict[str, Trigger] = {}

    def register(
        self, name: str, cadence: timedelta, handler: TriggerHandler
    ) -> Trigger:
        if name in self._triggers:
            raise ValueError(f"Trigger already registered: {name}")
        trigger = Trigger(name=name, cadence=cadence, handler=handler)
        self._triggers[name] = trigger
        logger.info(f"Registered trigger {name} (every {cadence})")
        return trigger

    @property
    def triggers(self) -> List[Trigger]:
        return list(self._triggers.values())

    def get(self, name: str) -> Trigger:
        return self._triggers[name]

    def due(self, now: datetime) -> List[Trigger]:
        return [t for t in self._triggers.values() if t.is_due(now)]

    async def run_due(self, now: datetime) -> Dict[str, int]:
        """
        Run every due trigger once.

        A failing handler is logged and counted as 0; its last run is still
        recorded so it waits a full cadence before the next attempt.

        Returns:
            Mapping of trigger name to the count its handler returned
        """
        results: Dict[str, int] = {}
        for trigger in self.due(now):
            try:
                results[trigger.name] = await trigger.handler(now)
            except Exception as e:
                logger.error(f"Trigger {trigger.name} failed: {e}", exc_info=True)
                results[trigger.name] = 0
            trigger.last_run = now
            logger.info(
                f"Trigger {trigger.name} processed {results[trigger.name]} item(s)",
                extra={"trigger": trigger.name, "count": results[trigger.name]},
            )
        return results
