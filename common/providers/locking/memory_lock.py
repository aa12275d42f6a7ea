import time
import uuid
from typing import Dict, Optional, Tuple

from .interface import DistributedLockInterface
from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)


class InMemoryLock(DistributedLockInterface):
    """Process-local lock table for single-process deployments and tests."""

    def __init__(self):
        # resource_key -> (token, monotonic expiry)
        self._locks: Dict[str, Tuple[str, float]] = {}

    def _live_token(self, resource_key: str) -> Optional[str]:
        entry = self._locks.get(resource_key)
        if entry is None:
            return None
        token, expires_at = entry
        if expires_at <= time.monotonic():
            del self._locks[resource_key]
            return None
        return token

    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        if self._live_token(resource_key) is not None:
            logger.info(f"Lock for {resource_key} is held elsewhere")
            return None
        token = str(uuid.uuid4())
        self._locks[resource_key] = (token, time.monotonic() + timeout_seconds)
        return token

    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        if self._live_token(resource_key) != lock_token:
            return False
        del self._locks[resource_key]
        return True

    async def extend_lock(
        self, resource_key: str, lock_token: str, additional_seconds: int
    ) -> bool:
        if self._live_token(resource_key) != lock_token:
            return False
        self._locks[resource_key] = (
            lock_token,
            time.monotonic() + additional_seconds,
        )
        return True

    async def is_locked(self, resource_key: str) -> bool:
        return self._live_token(resource_key) is not None
