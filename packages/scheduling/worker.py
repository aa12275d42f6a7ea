"""
Worker that drives the billing trigger registry.
"""

import asyncio
from typing import Optional

from common.core.clock import utcnow
from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from common.providers.events import get_event_publisher
from common.providers.locking import get_lock_provider
from packages.scheduling.registry import TriggerRegistry
from packages.scheduling.triggers import build_default_registry

logger = get_logger(__name__)


class SchedulerWorker:
    """Runs due triggers every tick until stopped."""

    def __init__(
        self,
        registry: Optional[TriggerRegistry] = None,
        tick_seconds: Optional[int] = None,
    ):
        self.registry = registry or build_default_registry()
        self.tick_seconds = (
            tick_seconds
            if tick_seconds is not None
            else settings.scheduler_tick_seconds
        )
        self.running = False

    async def tick(self) -> dict:
        return await self.registry.run_due(utcnow())

    async def start(self):
        await get_lock_provider().connect()
        await get_event_publisher().connect()

        self.running = True
        logger.info(
            f"Scheduler started with {len(self.registry.triggers)} trigger(s), "
            f"tick {self.tick_seconds}s"
        )
        while self.running:
            await self.tick()
            await asyncio.sleep(self.tick_seconds)

    async def stop(self):
        self.running = False
        await get_event_publisher().disconnect()
        await get_lock_provider().disconnect()
        logger.info("Scheduler stopped")
