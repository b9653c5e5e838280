# common/cache.py
"""
Best-effort JSON cache backed by redis.

Caching is optional: with ``REDIS_URL`` unset every lookup is a miss and
every write is dropped. A redis error at any point is logged and treated the
same way; the client is discarded and a new connection is tried on the next
call.
"""
import json
import logging
import os
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """
    Return a connected Redis client if REDIS_URL is configured, otherwise None.
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        return None

    try:
        client = redis.from_url(redis_url, decode_responses=True)
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis unavailable at %s, caching disabled: %s", redis_url, exc)
        return None

    _redis_client = client
    return _redis_client


def _discard_client(operation: str, key: str, exc: redis.RedisError) -> None:
    global _redis_client
    logger.warning("Redis %s failed for %r, skipping cache: %s", operation, key, exc)
    _redis_client = None


def get_cached_json(key: str) -> Optional[Any]:
    client = get_redis_client()
    if client is None:
        return None

    try:
        raw = client.get(key)
    except redis.RedisError as exc:
        _discard_client("get", key, exc)
        return None
    return None if raw is None else json.loads(raw)


def set_cached_json(key: str, value: Any, ttl_seconds: int = 60) -> None:
    client = get_redis_client()
    if client is None:
        return

    try:
        client.setex(key, ttl_seconds, json.dumps(value, default=str))
    except redis.RedisError as exc:
        _discard_client("set", key, exc)


def delete_prefix(prefix: str) -> None:
    """
    Invalidate every key under ``prefix`` (e.g. 'facilities:').

    Entries that cannot be deleted during an outage expire with their TTL.
    """
    client = get_redis_client()
    if client is None:
        return

    try:
        keys = list(client.scan_iter(prefix + "*"))
        if keys:
            client.delete(*keys)
    except redis.RedisError as exc:
        _discard_client("delete", prefix + "*", exc)
