"""
Redis Connection Management
==========================

Connection management for the Redis instance backing the bridge's
key-value store: connection pooling, startup verification and health
reporting.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError, RedisError

from netlify_bridge.config.settings import Settings

logger = structlog.get_logger(__name__)


@dataclass
class RedisConfig:
    """Redis configuration with secure defaults"""
    url: str = "redis://localhost:6379/0"
    max_connections: int = 20
    socket_connect_timeout: float = 5.0
    socket_timeout: float = 5.0
    retry_on_timeout: bool = True
    health_check_interval: int = 30
    decode_responses: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisConfig":
        return cls(
            url=settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )

    def get_pool_kwargs(self) -> Dict[str, Any]:
        """
        Get connection pool parameters

        Returns:
            Dictionary of pool parameters
        """
        return {
            "max_connections": self.max_connections,
            "socket_connect_timeout": self.socket_connect_timeout,
            "socket_timeout": self.socket_timeout,
            "retry_on_timeout": self.retry_on_timeout,
            "health_check_interval": self.health_check_interval,
            "decode_responses": self.decode_responses,
        }


class RedisConnectionManager:
    """
    Redis connection manager owning the pool and client
    """

    def __init__(self, config: RedisConfig):
        self.config = config
        self.client: Optional[Redis] = None
        self.pool: Optional[ConnectionPool] = None
        self._connection_lock = asyncio.Lock()

    async def connect(self) -> Redis:
        """
        Establish connection to Redis

        Returns:
            Redis client instance

        Raises:
            RedisConnectionError: If connection cannot be established
        """
        async with self._connection_lock:
            if self.client is None:
                try:
                    logger.info("Connecting to Redis", max_connections=self.config.max_connections)

                    self.pool = ConnectionPool.from_url(self.config.url, **self.config.get_pool_kwargs())
                    self.client = Redis(connection_pool=self.pool)
                    await self.client.ping()

                    logger.info("Successfully connected to Redis")

                except RedisError as e:
                    logger.error("Failed to connect to Redis", error=str(e))
                    await self._release()
                    raise RedisConnectionError(f"Failed to connect to Redis: {e}") from e

            return self.client

    async def disconnect(self) -> None:
        """Disconnect from Redis"""
        async with self._connection_lock:
            await self._release()
            logger.info("Disconnected from Redis")

    async def _release(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

        if self.pool is not None:
            await self.pool.disconnect()
            self.pool = None

    async def health_check(self) -> Dict[str, Any]:
        """
        Ping Redis and report latency

        Returns:
            Health status information
        """
        if self.client is None:
            return {"connected": False, "healthy": False}

        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            await self.client.ping()
        except RedisError as e:
            logger.warning("Redis health check failed", error=str(e))
            return {"connected": True, "healthy": False, "error": str(e)}

        return {
            "connected": True,
            "healthy": True,
            "latency_ms": round((loop.time() - started) * 1000, 2),
        }


# Global connection manager instance
_connection_manager: Optional[RedisConnectionManager] = None


async def initialize_redis(config: RedisConfig) -> Redis:
    """
    Initialize Redis connection

    Args:
        config: Redis configuration

    Returns:
        Redis client instance
    """
    global _connection_manager

    if _connection_manager is None:
        _connection_manager = RedisConnectionManager(config)

    return await _connection_manager.connect()


async def get_redis() -> Redis:
    """
    Get Redis client instance

    Raises:
        RuntimeError: If Redis is not initialized
    """
    if _connection_manager is None or _connection_manager.client is None:
        raise RuntimeError("Redis is not initialized")

    return _connection_manager.client


async def close_redis() -> None:
    """Close Redis connection"""
    global _connection_manager

    if _connection_manager:
        await _connection_manager.disconnect()
        _connection_manager = None


async def redis_health_check() -> Dict[str, Any]:
    """
    Get Redis health status

    Returns:
        Health check results
    """
    if _connection_manager:
        return await _connection_manager.health_check()

    return {
        "connected": False,
        "healthy": False,
        "error": "Redis not initialized"
    }
