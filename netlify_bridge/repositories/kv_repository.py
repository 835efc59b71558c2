"""
Key-Value Base Repository
=========================

Base repository for the flat key-value records the bridge keeps in
Redis. Subclasses decide the key layout; this class owns namespacing
and turns Redis failures into repository errors.
"""

from typing import Callable, List, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .exceptions import ConnectionError


class KVRepository:
    """
    Base repository for key-value operations

    Provides:
    - Key namespace management
    - get/set/delete/consume primitives
    - Key scanning by suffix
    """

    def __init__(
        self,
        redis_client: Redis,
        key_prefix: str = "",
        default_ttl: Optional[int] = None
    ):
        """
        Initialize repository

        Args:
            redis_client: Redis client instance
            key_prefix: Prefix for all keys (for namespacing)
            default_ttl: Default TTL for keys in seconds
        """
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.default_ttl = default_ttl
        self.logger = structlog.get_logger(self.__class__.__name__)

    def build_key(self, key: str) -> str:
        """Apply the namespace prefix to a record key."""
        return f"{self.key_prefix}{key}"

    def strip_prefix(self, key: str) -> str:
        if self.key_prefix and key.startswith(self.key_prefix):
            return key[len(self.key_prefix):]
        return key

    async def get_value(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(self.build_key(key))
        except RedisError as e:
            self.logger.error("KV get failed", key=key, error=str(e))
            raise ConnectionError(f"Failed to read key {key}", original_error=e) from e

    async def set_value(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expiry = ttl if ttl is not None else self.default_ttl
        try:
            await self.redis.set(self.build_key(key), value, ex=expiry)
        except RedisError as e:
            self.logger.error("KV set failed", key=key, error=str(e))
            raise ConnectionError(f"Failed to write key {key}", original_error=e) from e

    async def delete_value(self, key: str) -> bool:
        """
        Delete a record

        Returns:
            True if a record was removed
        """
        try:
            return bool(await self.redis.delete(self.build_key(key)))
        except RedisError as e:
            self.logger.error("KV delete failed", key=key, error=str(e))
            raise ConnectionError(f"Failed to delete key {key}", original_error=e) from e

    async def update_value(
        self,
        key: str,
        update: Callable[[Optional[str]], Optional[str]],
        ttl: Optional[int] = None
    ) -> Optional[str]:
        """
        Read-modify-write a record inside a WATCH/MULTI transaction

        The transaction is retried when another client writes the key
        between the read and the commit.

        Args:
            key: Record key
            update: Maps the current value to the new one; None deletes the record
            ttl: Expiry of the written value in seconds

        Returns:
            The value written, or None if the record was deleted
        """
        redis_key = self.build_key(key)
        expiry = ttl if ttl is not None else self.default_ttl

        async def apply(pipe) -> Optional[str]:
            new_value = update(await pipe.get(redis_key))
            pipe.multi()
            if new_value is None:
                pipe.delete(redis_key)
            else:
                pipe.set(redis_key, new_value, ex=expiry)
            return new_value

        try:
            return await self.redis.transaction(apply, redis_key, value_from_callable=True)
        except RedisError as e:
            self.logger.error("KV update failed", key=key, error=str(e))
            raise ConnectionError(f"Failed to update key {key}", original_error=e) from e

    async def consume_value(self, key: str) -> Optional[str]:
        """Read and delete a record in one atomic step."""
        try:
            return await self.redis.getdel(self.build_key(key))
        except RedisError as e:
            self.logger.error("KV getdel failed", key=key, error=str(e))
            raise ConnectionError(f"Failed to consume key {key}", original_error=e) from e

    async def keys_with_suffix(self, suffix: str, count: int = 100) -> List[str]:
        """
        Scan for record keys ending with suffix

        Args:
            suffix: Record key suffix
            count: Number of keys to request per scan iteration

        Returns:
            Matching record keys without the namespace prefix
        """
        pattern = self.build_key(f"*{suffix}")
        try:
            return [
                self.strip_prefix(key)
                async for key in self.redis.scan_iter(match=pattern, count=count)
            ]
        except RedisError as e:
            self.logger.error("KV scan failed", pattern=pattern, error=str(e))
            raise ConnectionError(f"Failed to scan keys {pattern}", original_error=e) from e
