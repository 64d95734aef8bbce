"""
Redis client utilities for fitcore.

Provides a lazy-initialized asyncio Redis client to avoid import-time connections.
The Redis database doubles as the document store of the fitness modules.
"""

import functools
from typing import Any

import redis.asyncio as redis

from fitcore.settings import get_settings


@functools.lru_cache()
def get_redis_client() -> redis.Redis:
    """
    Get Redis client (cached).

    This function lazily initializes the Redis client to avoid import-time connections.
    """
    return redis.from_url(get_settings().REDIS_URL, decode_responses=True)


def redis_key(prefix: str, *parts: Any) -> str:
    """Build a namespaced key, e.g. redis_key("fitness", "outbox", "pending")."""
    return ":".join([prefix, *(str(part) for part in parts)])


async def publish_to_stream(
    client: redis.Redis,
    stream_name: str,
    data: dict[str, Any],
    max_len: int | None = 10000,
) -> str:
    """
    Publish a message to a Redis stream.

    Args:
        client: Redis client
        stream_name: Name of the Redis stream
        data: Dictionary of field-value pairs to publish
        max_len: Maximum stream length (approximate trim)

    Returns:
        Message ID assigned by Redis
    """
    # Redis stream fields are flat strings; None becomes an empty string
    string_data = {
        k: "" if v is None else (v if isinstance(v, str) else str(v))
        for k, v in data.items()
    }

    if max_len:
        return await client.xadd(stream_name, string_data, maxlen=max_len, approximate=True)
    return await client.xadd(stream_name, string_data)
