"""
Async Redis Key-Value Store
===========================
Named buckets backed by Redis, opened once per message.

Each bucket name maps to a Redis URL in `StoreConfig.buckets`. Opening a
bucket creates a dedicated client that is closed when the message is done;
handles are never cached across messages.

Uses `redis.asyncio` for native asyncio support.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NoPermissionError,
    RedisError,
)

from .config import StoreConfig
from .exceptions import (
    AccessDeniedError,
    NoSuchStoreError,
    StoreError,
    StoreOtherError,
)


def map_redis_error(bucket: str, operation: str, exc: Exception) -> StoreError:
    """
    Map a redis-py exception onto the store error taxonomy.

    Authentication and ACL failures become AccessDeniedError; everything
    else (connection loss, timeouts, protocol errors) becomes StoreOtherError.
    """
    ctx = {"bucket": bucket, "operation": operation, "original_exception": type(exc).__name__}
    if isinstance(exc, (AuthenticationError, AuthorizationError, NoPermissionError)):
        return AccessDeniedError(bucket, ctx)
    detail = str(exc) or type(exc).__name__
    return StoreOtherError(f"{operation} failed: {detail}", ctx)


class RedisBucket:
    """One opened bucket: unconditional get/set on raw byte values."""

    def __init__(self, name: str, client: redis.Redis):
        self.name = name
        self.client = client

    async def set(self, key: str, value: bytes) -> None:
        """Overwrite `key` with `value`. No TTL, no existence check."""
        try:
            await self.client.set(key, value)
        except RedisError as e:
            raise map_redis_error(self.name, "set", e) from e

    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None if the key does not exist."""
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise map_redis_error(self.name, "get", e) from e

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self.client.exists(key))
        except RedisError as e:
            raise map_redis_error(self.name, "exists", e) from e

    async def close(self) -> None:
        try:
            await self.client.aclose()
        except RedisError as e:
            logger.warning(f"Closing bucket '{self.name}' failed: {e}")


class RedisKeyValueStore:
    """
    Opens named Redis-backed buckets.

    Args:
        config: Store configuration (bucket name -> Redis URL mapping).
        client_factory: Optional callable building a client from a URL
            (for testing/DI). Defaults to `redis.Redis.from_url`.
    """

    def __init__(
        self,
        config: StoreConfig,
        client_factory: Optional[Callable[[str], redis.Redis]] = None,
    ):
        self.config = config
        self._client_factory = client_factory or self._default_client

    def _default_client(self, url: str) -> redis.Redis:
        kwargs = {
            "socket_timeout": self.config.socket_timeout,
            "decode_responses": False,
        }
        if self.config.password:
            kwargs["password"] = self.config.password
        return redis.Redis.from_url(url, **kwargs)

    @asynccontextmanager
    async def open(self, name: str) -> AsyncIterator[RedisBucket]:
        """
        Open the named bucket for the duration of one message.

        Raises:
            NoSuchStoreError: `name` is not a configured bucket.
        """
        url = self.config.buckets.get(name)
        if url is None:
            raise NoSuchStoreError(name, {"known_buckets": sorted(self.config.buckets)})

        bucket = RedisBucket(name, self._client_factory(url))
        try:
            yield bucket
        finally:
            await bucket.close()
