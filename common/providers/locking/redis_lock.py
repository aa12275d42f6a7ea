import uuid
from typing import Optional
import redis.asyncio as redis

from common.core.config import settings
from .interface import DistributedLockInterface
from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)


class RedisLock(DistributedLockInterface):
    """Redis-based lock: SET NX EX to acquire, token-checked Lua to release."""

    _RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    _EXTEND_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("expire", KEYS[1], ARGV[2])
    else
        return 0
    end
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.redis_connection_url
        self._client: Optional[redis.Redis] = None
        self._lock_prefix = "billing:lock:"

    async def connect(self) -> bool:
        """Connect to Redis."""
        try:
            self._client = redis.from_url(self.url, decode_responses=True)
            await self._client.ping()
            logger.info("Redis lock provider connected")
            return True
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._client = None
            return False

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis lock provider disconnected")

    async def _ensure_connected(self) -> None:
        if self._client is None:
            await self.connect()

    def _key(self, resource_key: str) -> str:
        return f"{self._lock_prefix}{resource_key}"

    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        await self._ensure_connected()
        lock_token = str(uuid.uuid4())

        try:
            acquired = await self._client.set(
                self._key(resource_key), lock_token, nx=True, ex=timeout_seconds
            )
        except (redis.RedisError, AttributeError) as e:
            # An unreachable lock store reads as contended; the item stays due.
            logger.error(f"Error acquiring lock for {resource_key}: {e}")
            return None

        if acquired:
            logger.debug(f"Acquired lock for {resource_key}")
            return lock_token
        logger.info(f"Lock for {resource_key} is held elsewhere")
        return None

    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        await self._ensure_connected()
        try:
            result = await self._client.eval(
                self._RELEASE_SCRIPT, 1, self._key(resource_key), lock_token
            )
        except (redis.RedisError, AttributeError) as e:
            logger.error(f"Error releasing lock for {resource_key}: {e}")
            return False

        if not result:
            logger.warning(
                f"Cannot release lock for {resource_key} - token mismatch or lock expired"
            )
        return bool(result)

    async def extend_lock(
        self, resource_key: str, lock_token: str, additional_seconds: int
    ) -> bool:
        await self._ensure_connected()
        try:
            result = await self._client.eval(
                self._EXTEND_SCRIPT,
                1,
                self._key(resource_key),
                lock_token,
                additional_seconds,
            )
        except (redis.RedisError, AttributeError) as e:
            logger.error(f"Error extending lock for {resource_key}: {e}")
            return False
        return bool(result)

    async def is_locked(self, resource_key: str) -> bool:
        await self._ensure_connected()
        try:
            return bool(await self._client.exists(self._key(resource_key)))
        except (redis.RedisError, AttributeError) as e:
            logger.error(f"Error checking lock for {resource_key}: {e}")
            return False
