"""Row-level change events, published over Redis pub/sub.

Services call record_change() next to each write; the events sit on the
session until get_db() commits, then publish_changes() sends one message
per event to `<prefix>:<table>`. A rolled-back transaction publishes
nothing.

Subscribers (the websocket endpoint, or any in-process consumer) use
iter_changes() to stream the JSON messages.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from typing import Any, AsyncIterator, Iterable

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.config import settings
from stemtrack.realtime.broker import get_redis
from stemtrack.schemas.changes import FEED_TABLES, ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)

PENDING_KEY = "pending_changes"


def channel_for(table: str) -> str:
    return f"{settings.change_channel_prefix}:{table}"


def record_change(
    db: AsyncSession,
    table: str,
    event_type: ChangeKind,
    *,
    new: dict[str, Any] | None = None,
    old: dict[str, Any] | None = None,
) -> ChangeEvent:
    """Queue a change event on the session until the transaction commits."""
    event = ChangeEvent(table=table, event_type=event_type, new=new, old=old)
    db.info.setdefault(PENDING_KEY, []).append(event)
    return event


def take_pending(db: AsyncSession) -> list[ChangeEvent]:
    return db.info.pop(PENDING_KEY, [])


def discard_pending(db: AsyncSession) -> None:
    dropped = db.info.pop(PENDING_KEY, [])
    if dropped:
        logger.info("Dropped %d change events from rolled-back transaction", len(dropped))


async def publish_changes(events: Iterable[ChangeEvent]) -> int:
    """Publish committed change events. Returns the number sent.

    The rows are already committed at this point, so a Redis failure is
    logged rather than raised.
    """
    sent = 0
    try:
        client = await get_redis()
        for event in events:
            await client.publish(channel_for(event.table), event.model_dump_json())
            sent += 1
    except redis.RedisError as e:
        logger.warning(f"Change feed publish failed after {sent} events: {e}")
    return sent


async def iter_changes(
    tables: Iterable[str] | None = None,
    poll_timeout: float = 1.0,
) -> AsyncIterator[str]:
    """Yield raw JSON change events for the given tables as they arrive."""
    channels = [channel_for(t) for t in (tables or FEED_TABLES)]
    client = await get_redis()
    pubsub = client.pubsub()
    await pubsub.subscribe(*channels)
    try:
        while True:
            message = await pubsub.get_message(
                ignore_subscribe_messages=True, timeout=poll_timeout
            )
            if not message or message.get("type") != "message":
                continue
            data = message.get("data")
            if isinstance(data, bytes):
                yield data.decode()
            else:
                yield str(data)
    finally:
        with suppress(Exception):
            await pubsub.unsubscribe(*channels)
        with suppress(AttributeError):
            await pubsub.aclose()
