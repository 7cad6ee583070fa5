"""Redis client for the shared lockout store.

The lockout ledger fails closed, so a slow Redis turns directly into slow
(or refused) logins. Connect and command timeouts are therefore short and
configurable; a startup ping that fails leaves no half-open client behind.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from loginguard.core.config import RedisConfig, get_settings

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None


def create_client(config: RedisConfig) -> redis.Redis:
    return redis.from_url(  # type: ignore[no-untyped-call]
        config.url,
        decode_responses=True,
        socket_connect_timeout=config.socket_timeout,
        socket_timeout=config.socket_timeout,
        health_check_interval=30,
    )


async def init_redis(config: RedisConfig | None = None) -> redis.Redis:
    """Connect and verify with a ping.

    Raises:
        RedisError: Redis did not answer the ping
    """
    global _redis_client
    if config is None:
        config = get_settings().redis

    client = create_client(config)
    try:
        await client.ping()  # type: ignore[misc]
    except RedisError:
        await client.aclose()
        logger.error("Redis unreachable at %s", config.url.split("@")[-1])
        raise

    _redis_client = client
    logger.info("Redis connection established")
    return client


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")


def get_redis() -> redis.Redis:
    """Get the shared client.

    Raises:
        RuntimeError: If Redis is not initialized.
    """
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client
