"""
Database package for Netlify Bridge.

Redis is the only backing store; it holds the key-value records of
access tokens, OAuth states and channel subscriptions.
"""

from netlify_bridge.database.redis_client import (
    RedisConfig,
    RedisConnectionManager,
    initialize_redis,
    get_redis,
    close_redis,
    redis_health_check,
)

__all__ = [
    "RedisConfig",
    "RedisConnectionManager",
    "initialize_redis",
    "get_redis",
    "close_redis",
    "redis_health_check",
]
