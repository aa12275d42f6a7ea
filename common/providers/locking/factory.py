from typing import Optional

from common.core.config import settings
from common.core.constants import LockProviderType
from common.core.otel_axiom_exporter import get_logger

from .interface import DistributedLockInterface
from .memory_lock import InMemoryLock
from .redis_lock import RedisLock

logger = get_logger(__name__)

# Global instance
_lock_provider: Optional[DistributedLockInterface] = None


def get_lock_provider() -> DistributedLockInterface:
    """
    Get the configured lock provider.

    Returns:
        DistributedLockInterface: Redis outside local environments,
        an in-process lock table locally
    """
    global _lock_provider

    if _lock_provider is None:
        if settings.lock_provider == LockProviderType.REDIS:
            _lock_provider = RedisLock()
        else:
            _lock_provider = InMemoryLock()
        logger.info(f"Initialized {settings.lock_provider.value} lock provider")

    return _lock_provider


def set_lock_provider(provider: Optional[DistributedLockInterface]) -> None:
    """Replace the global provider (None resets to the configured default)."""
    global _lock_provider
    _lock_provider = provider
