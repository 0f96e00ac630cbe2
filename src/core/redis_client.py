"""Lazily created Redis client backing the access-token blocklist."""

import logging

import redis
from django.conf import settings

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Return the process-wide Redis client built from ``settings.REDIS_URL``."""

    global _client
    if _client is None:
        logger.info("Connecting token blocklist to %s", settings.REDIS_URL)
        _client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
        )
    return _client


def reset_redis_client() -> None:
    """Drop the cached client so the next call reconnects (settings changes, forks)."""

    global _client
    if _client is not None:
        _client.close()
    _client = None


__all__ = ["get_redis_client", "reset_redis_client"]
