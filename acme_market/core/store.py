"""Redis connection helpers shared by every process that touches the order queue."""

import logging

import redis

from acme_market.core.config import Settings


def create_client(settings: Settings) -> redis.Redis:
    """Build a Redis client for REDIS_ADDRESS without contacting the server."""

    host, port = settings.redis_endpoint()
    return redis.Redis(
        host=host,
        port=port,
        db=settings.REDIS_DB,
        password=settings.REDIS_PASSWORD or None,
        decode_responses=True,
    )


def connect(settings: Settings, logger: logging.Logger) -> redis.Redis:
    """Return a client that has answered PING.

    Raises ``redis.RedisError`` when the server cannot be reached; callers treat
    that as fatal at startup.
    """

    client = create_client(settings)
    logger.info("redis_connecting", extra={"address": settings.REDIS_ADDRESS})
    client.ping()
    return client
