"""Process-wide Redis client, shared by the change feed and sign-out.

Created on first use and closed from the app lifespan. Tests swap
`_redis_client` for an in-memory fake.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from stemtrack.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=settings.redis_max_connections,
        )
        logger.info("Connected change feed broker at %s", settings.redis_url.rsplit("@", 1)[-1])
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    client, _redis_client = _redis_client, None
    if client is not None:
        await client.aclose()
        logger.info("Change feed broker closed")
