"""
Redis client for Assessment Service.
Per-test booking locks and the booking telemetry channel.
"""

import asyncio
import time
import uuid
from typing import Optional
import redis.asyncio as redis
from redis.asyncio import Redis
import logging

from assessment_service.core.config import config

logger = logging.getLogger(__name__)

LOCK_NAMESPACE = "assessment:lock"

# Quiet period after a failed connection attempt
RECONNECT_INTERVAL_SECONDS = 60

# Delete the key only while it still holds our token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisManager:
    """
    Lazily connected Redis client.

    Redis is optional for this service: the booking workflow only needs it
    when distributed locks are enabled, and telemetry tolerates it being down.
    """

    def __init__(self):
        self.redis_client: Optional[Redis] = None
        self._initialized = False
        self._last_failure: Optional[float] = None

    async def initialize(self):
        """
        Connect and verify the server answers PING.

        After a failed attempt, further attempts within
        ``RECONNECT_INTERVAL_SECONDS`` raise ConnectionError without dialing.
        """
        if self._initialized:
            return

        if self._last_failure is not None:
            remaining = RECONNECT_INTERVAL_SECONDS - (time.monotonic() - self._last_failure)
            if remaining > 0:
                raise ConnectionError(f"Redis unavailable, next connection attempt in {remaining:.0f}s")

        try:
            self.redis_client = redis.from_url(
                await config.get_redis_url(),
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )
            await self.redis_client.ping()
            self._initialized = True
            self._last_failure = None
            logger.info("Redis client initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Redis client: {e}")
            self.redis_client = None
            self._last_failure = time.monotonic()
            raise

    async def close(self):
        if self.redis_client:
            await self.redis_client.close()
            self.redis_client = None
        self._initialized = False
        logger.info("Redis connection closed")

    async def publish(self, channel: str, message: str) -> int:
        """
        Publish a serialized payload on a pub/sub channel.

        Returns:
            Number of subscribers that received the message
        """
        await self.initialize()
        return await self.redis_client.publish(channel, message)

    async def acquire_lock(self, lock_key: str, token: str, timeout: int, blocking_timeout: int) -> bool:
        """
        Try to take ``lock_key`` for ``token`` until ``blocking_timeout`` elapses.

        Args:
            lock_key: Key to lock
            token: Value identifying the holder
            timeout: Seconds before the lock expires on its own
            blocking_timeout: Seconds to keep retrying

        Returns:
            True if the lock is held by ``token``
        """
        await self.initialize()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + blocking_timeout

        while True:
            if await self.redis_client.set(lock_key, token, nx=True, ex=timeout):
                logger.debug(f"Lock acquired: {lock_key}")
                return True
            if loop.time() >= deadline:
                logger.warning(f"Timed out waiting {blocking_timeout}s for lock {lock_key}")
                return False
            await asyncio.sleep(0.1)

    async def release_lock(self, lock_key: str, token: str) -> bool:
        """Release ``lock_key`` if ``token`` still holds it."""
        try:
            released = await self.redis_client.eval(RELEASE_LOCK_SCRIPT, 1, lock_key, token)
        except Exception as e:
            logger.error(f"Error releasing lock {lock_key}: {e}")
            return False

        if not released:
            logger.warning(f"Lock {lock_key} expired before release")
        return bool(released)

    async def health_check(self) -> bool:
        try:
            await self.initialize()
            return await self.redis_client.ping() is True
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return False


# Global Redis manager instance
redis_manager = RedisManager()


class DistributedLock:
    """
    Async context manager holding a Redis lock for the duration of a block.

    Raises RuntimeError on entry when the lock cannot be taken in time.
    """

    def __init__(self, manager: RedisManager, name: str, timeout: int = 30, blocking_timeout: int = 10):
        self.manager = manager
        self.lock_key = f"{LOCK_NAMESPACE}:{name}"
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.token = uuid.uuid4().hex
        self.acquired = False

    async def __aenter__(self):
        self.acquired = await self.manager.acquire_lock(
            self.lock_key, self.token, self.timeout, self.blocking_timeout
        )
        if not self.acquired:
            raise RuntimeError(f"Failed to acquire lock: {self.lock_key}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.acquired:
            await self.manager.release_lock(self.lock_key, self.token)
            self.acquired = False


def get_distributed_lock(name: str, timeout: int = 30, blocking_timeout: int = 10) -> DistributedLock:
    """Lock named ``name`` on the global Redis manager."""
    return DistributedLock(redis_manager, name, timeout, blocking_timeout)
