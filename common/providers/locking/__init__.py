from .interface import DistributedLockInterface
from .factory import get_lock_provider, set_lock_provider

__all__ = ["DistributedLockInterface", "get_lock_provider", "set_lock_provider"]
