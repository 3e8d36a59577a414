"""
Redis connection with a bounded reconnection policy
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

import redis.asyncio as redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.exceptions import ConnectionRefusedFatalError, QueueUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_connection_refused(error: BaseException) -> bool:
    """True when the error chain shows the server actively refused the connection"""
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ConnectionRefusedError):
            return True
        if "connection refused" in str(current).lower():
            return True
        current = current.__cause__ or current.__context__
    return False


class RedisConnection:
    """Owns the Redis client for one process.

    Transient connection errors are retried with exponential backoff capped at
    ``backoff_cap`` seconds per attempt. Retrying stops after ``max_attempts``
    attempts or ``max_retry_time`` seconds in total, whichever comes first.
    A refused connection is never retried.
    """

    def __init__(
        self,
        url: str,
        max_attempts: int = 10,
        backoff_base: float = 0.1,
        backoff_cap: float = 3.0,
        max_retry_time: float = 3600.0,
        client: Optional[redis.Redis] = None,
    ) -> None:
        self.url = url
        self.max_attempts = max_attempts
        self.max_retry_time = max_retry_time
        self.backoff = ExponentialBackoff(cap=backoff_cap, base=backoff_base)
        self.client: Optional[redis.Redis] = client

    async def connect(self) -> None:
        """Create the client and verify the server answers"""
        if self.client is None:
            self.client = redis.from_url(self.url, decode_responses=True)
        await self.execute(lambda client: client.ping())
        logger.info("Connected to Redis")

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
        logger.info("Disconnected from Redis")

    async def execute(self, operation: Callable[[redis.Redis], Awaitable[T]]) -> T:
        """Run one Redis operation under the reconnection policy"""
        if self.client is None:
            raise QueueUnavailableError("Redis client is not connected")

        started = time.monotonic()
        attempt = 0
        while True:
            try:
                return await operation(self.client)
            except (RedisConnectionError, RedisTimeoutError, OSError) as e:
                if is_connection_refused(e):
                    logger.error("Redis server connection refused")
                    raise ConnectionRefusedFatalError("Redis server connection refused", original_error=e) from e

                attempt += 1
                elapsed = time.monotonic() - started
                if attempt >= self.max_attempts:
                    logger.error("Redis max retry attempts reached (%d)", attempt)
                    raise QueueUnavailableError("Redis max retry attempts reached", original_error=e) from e
                if elapsed > self.max_retry_time:
                    logger.error("Redis retry time exhausted after %.1fs", elapsed)
                    raise QueueUnavailableError("Redis retry time exhausted", original_error=e) from e

                delay = self.backoff.compute(attempt)
                logger.warning("Redis error (attempt %d/%d), retrying in %.2fs: %s", attempt, self.max_attempts, delay, e)
                await asyncio.sleep(delay)
