import asyncio
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class DistributedLockInterface(ABC):
    """Interface for distributed lock providers.

    Locks are advisory and expire after their TTL, so a crashed holder never
    blocks a resource forever.
    """

    async def connect(self) -> bool:
        return True

    async def disconnect(self) -> None:
        return None

    @abstractmethod
    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        """
        Acquire a lock for a resource without waiting.

        Args:
            resource_key: The resource to lock (e.g., "subscription:123")
            timeout_seconds: Lock expiration time in seconds

        Returns:
            Lock token if acquired, None if the resource is already held
        """
        pass

    @abstractmethod
    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        """Release a lock; False if the token no longer owns it."""
        pass

    @abstractmethod
    async def extend_lock(
        self, resource_key: str, lock_token: str, additional_seconds: int
    ) -> bool:
        """Reset the lock's TTL; False if the token no longer owns it."""
        pass

    @abstractmethod
    async def is_locked(self, resource_key: str) -> bool:
        pass

    @asynccontextmanager
    async def hold(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> AsyncIterator[Optional[str]]:
        """
        Try to take the lock for the duration of the block.

        Yields the token, or None when another holder has the resource. The
        lock is released on exit only if it was acquired here.

        Usage:
            async with lock_provider.hold(f"subscription:{sub_id}") as token:
                if token is None:
                    return  # contended, try again on the next run
                ...
        """
        token = await self.acquire_lock(resource_key, timeout_seconds)
        try:
            yield token
        finally:
            if token is not None:
                await self.release_lock(resource_key, token)

    async def acquire_lock_with_retry(
        self,
        resource_key: str,
        lock_ttl_seconds: int = 30,
        acquire_timeout_seconds: float = 5.0,
        retry_interval_ms: int = 50,
    ) -> Optional[str]:
        """
        Acquire a lock, retrying until acquire_timeout_seconds elapses.

        Returns:
            Lock token if acquired, None if timeout exceeded
        """
        end_time = time.time() + acquire_timeout_seconds
        while time.time() < end_time:
            token = await self.acquire_lock(resource_key, lock_ttl_seconds)
            if token:
                return token
            await asyncio.sleep(retry_interval_ms / 1000)
        return None
