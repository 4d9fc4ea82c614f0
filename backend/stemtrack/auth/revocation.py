"""Signed-out tokens, kept in Redis until they would have expired.

A JWT cannot be recalled, so sign-out stores its digest under
`stemtrack:revoked:<sha256>` with a TTL equal to the token's remaining
lifetime. Lookups fail closed: if Redis cannot answer, the token is
treated as revoked.
"""

import hashlib
import logging
import time

import redis.asyncio as redis

from stemtrack.realtime.broker import get_redis

logger = logging.getLogger(__name__)


def _key(token: str) -> str:
    digest = hashlib.sha256(token.encode()).hexdigest()
    return f"stemtrack:revoked:{digest}"


async def revoke(token: str, expires_at: float) -> bool:
    """Blacklist a token until `expires_at` (unix seconds). False if Redis is down."""
    remaining = int(expires_at - time.time())
    if remaining <= 0:
        return True
    try:
        client = await get_redis()
        await client.set(_key(token), "1", ex=remaining)
    except redis.RedisError as e:
        logger.error(f"Sign-out could not revoke token: {e}")
        return False
    return True


async def is_revoked(token: str) -> bool:
    try:
        client = await get_redis()
        return bool(await client.exists(_key(token)))
    except redis.RedisError as e:
        logger.error(f"Revocation lookup failed, rejecting token: {e}")
        return True
