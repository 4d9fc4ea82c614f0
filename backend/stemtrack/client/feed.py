"""Change-feed listener: keeps a LocalStore current from pushed events.

The listener is transport-agnostic: it consumes any async iterable of
JSON change events. websocket_messages() is the network source (the
server's /ws/changes endpoint); a process with Redis access can pass
stemtrack.realtime.changes.iter_changes() instead.
"""

import logging
from typing import AsyncIterable, AsyncIterator, Callable, Iterable
from urllib.parse import urlencode

import websockets
from pydantic import ValidationError as PydanticValidationError

from stemtrack.client.store import LocalStore
from stemtrack.schemas.changes import ChangeEvent

logger = logging.getLogger(__name__)


def feed_url(base_url: str, token: str, tables: Iterable[str] | None = None) -> str:
    """ws(s):// URL of the change feed for an http(s):// API base URL."""
    url = base_url.rstrip("/")
    if url.startswith("https://"):
        url = "wss://" + url[len("https://"):]
    elif url.startswith("http://"):
        url = "ws://" + url[len("http://"):]
    params = {"token": token}
    if tables:
        params["tables"] = ",".join(tables)
    return f"{url}/ws/changes?{urlencode(params)}"


async def websocket_messages(
    base_url: str,
    token: str,
    tables: Iterable[str] | None = None,
) -> AsyncIterator[str]:
    """Yield text frames from the server's change feed until it closes."""
    async with websockets.connect(feed_url(base_url, token, tables)) as ws:
        async for message in ws:
            yield message if isinstance(message, str) else message.decode()


class ChangeFeedListener:
    """Apply every event from a message source to a LocalStore.

    `on_change` is called with each event that changed the store, which is
    where a screen would re-render.
    """

    def __init__(
        self,
        store: LocalStore,
        on_change: Callable[[ChangeEvent], None] | None = None,
    ):
        self.store = store
        self.on_change = on_change
        self.applied = 0

    def handle(self, message: str) -> bool:
        try:
            event = ChangeEvent.model_validate_json(message)
        except PydanticValidationError as e:
            logger.warning(f"Skipping malformed change event: {e}")
            return False

        changed = self.store.apply_change_event(event)
        if changed:
            self.applied += 1
            if self.on_change is not None:
                self.on_change(event)
        return changed

    async def run(self, messages: AsyncIterable[str]) -> int:
        """Consume the source until it ends. Returns events applied."""
        async for message in messages:
            self.handle(message)
        return self.applied
