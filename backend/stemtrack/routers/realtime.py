"""Websocket change feed.

    WS /ws/changes?token=<jwt>&tables=inventory,production_lines

Streams every committed change event for the requested tables (all feed
tables by default) as JSON text frames, in publish order. The token is
passed in the query string because browsers cannot set headers on a
websocket handshake.

The Redis subscription lives exactly as long as the socket: a client
that goes away while its tables are quiet is noticed on its disconnect
message, not on the next publish.
"""

import asyncio
import logging
from contextlib import suppress

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from stemtrack.auth.deps import resolve_user
from stemtrack import database
from stemtrack.realtime.changes import iter_changes
from stemtrack.schemas.changes import FEED_TABLES

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_tables(raw: str | None) -> list[str] | None:
    """Split a comma-separated table filter. None means every feed table."""
    if not raw:
        return None
    tables = [t.strip() for t in raw.split(",") if t.strip()]
    unknown = [t for t in tables if t not in FEED_TABLES]
    if unknown:
        raise ValueError(f"Unknown table(s): {', '.join(unknown)}")
    return tables or None


async def _relay(websocket: WebSocket, tables: list[str] | None) -> None:
    async for data in iter_changes(tables):
        await websocket.send_text(data)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    """Drain client frames; the feed is one-way, so only the disconnect matters."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/changes")
async def change_feed(
    websocket: WebSocket,
    token: str = Query(""),
    tables: str | None = Query(None),
):
    async with database.async_session() as db:
        user = await resolve_user(token, db) if token else None
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        selected = parse_tables(tables)
    except ValueError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e))
        return

    await websocket.accept()
    logger.info("Change feed opened for %s (%s)", user.email, tables or "all tables")

    relay = asyncio.create_task(_relay(websocket, selected))
    watcher = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        await asyncio.wait({relay, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (relay, watcher):
            task.cancel()
        relay_result, _ = await asyncio.gather(relay, watcher, return_exceptions=True)

    if isinstance(relay_result, Exception) and not isinstance(relay_result, WebSocketDisconnect):
        logger.error(f"Change feed relay failed for {user.email}: {relay_result}")
        with suppress(RuntimeError):
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    logger.info("Change feed closed for %s", user.email)
