"""Change feed: queuing on the session, publish after commit, streaming."""

import asyncio
import json
from urllib.parse import urlencode

import pytest
import redis.asyncio as redis

from stemtrack import database
from stemtrack.client import feed
from stemtrack.client.feed import ChangeFeedListener
from stemtrack.client.store import LocalStore
from stemtrack.main import app
from stemtrack.realtime import broker
from stemtrack.realtime.changes import (
    PENDING_KEY,
    channel_for,
    discard_pending,
    iter_changes,
    publish_changes,
    record_change,
    take_pending,
)
from stemtrack.routers.realtime import parse_tables
from stemtrack.schemas.changes import ChangeEvent, ChangeKind


def _event(table="inventory", kind=ChangeKind.INSERT, **row) -> ChangeEvent:
    return ChangeEvent(table=table, event_type=kind, new={"id": "BOX1", **row})


@pytest.mark.realtime
@pytest.mark.asyncio
class TestPendingEvents:

    async def test_record_take_discard(self, db_session):
        record_change(db_session, "inventory", ChangeKind.INSERT, new={"id": "BOX1"})
        record_change(db_session, "recipes", ChangeKind.INSERT, new={"id": "R1"})

        events = take_pending(db_session)
        assert [e.table for e in events] == ["inventory", "recipes"]
        assert take_pending(db_session) == []

        record_change(db_session, "inventory", ChangeKind.UPDATE, new={"id": "BOX1"})
        discard_pending(db_session)
        assert PENDING_KEY not in db_session.info

    async def test_event_key_prefers_new_image(self):
        update = ChangeEvent(table="inventory", event_type="UPDATE", new={"id": "A"}, old={"id": "A"})
        delete = ChangeEvent(table="inventory", event_type="DELETE", old={"id": "B"})
        assert update.key == "A"
        assert delete.key == "B"


@pytest.mark.realtime
@pytest.mark.asyncio
class TestGetDbPublishing:

    async def test_commit_publishes(self, session_factory, published):
        gen = database.get_db()
        session = await gen.__anext__()
        record_change(session, "inventory", ChangeKind.INSERT, new={"id": "BOX1"})
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        assert [e.key for e in published] == ["BOX1"]

    async def test_rollback_publishes_nothing(self, session_factory, published):
        gen = database.get_db()
        session = await gen.__anext__()
        record_change(session, "inventory", ChangeKind.INSERT, new={"id": "BOX1"})
        with pytest.raises(RuntimeError):
            await gen.athrow(RuntimeError("scan failed"))

        assert published == []
        assert PENDING_KEY not in session.info


@pytest.mark.realtime
@pytest.mark.asyncio
class TestRedisFeed:

    async def test_publish_reaches_table_channel(self, fake_redis):
        listener = fake_redis.pubsub()
        await listener.subscribe(channel_for("inventory"))
        try:
            sent = await publish_changes([_event(location="inventory")])
            assert sent == 1

            async def _receive():
                while True:
                    message = await listener.get_message(ignore_subscribe_messages=True, timeout=1.0)
                    if message:
                        return message
                    await asyncio.sleep(0.05)

            message = await asyncio.wait_for(_receive(), timeout=5.0)
            payload = json.loads(message["data"])
            assert payload["table"] == "inventory"
            assert payload["event_type"] == "INSERT"
            assert payload["new"]["location"] == "inventory"
        finally:
            await listener.unsubscribe(channel_for("inventory"))
            await listener.aclose()

    async def test_iter_changes_filters_tables(self, fake_redis):
        stream = iter_changes(["recipes"], poll_timeout=0.1)
        first = asyncio.create_task(stream.__anext__())
        await asyncio.sleep(0.2)  # let the subscription register

        await publish_changes([_event("inventory"), _event("recipes", id="R1")])
        raw = await asyncio.wait_for(first, timeout=5.0)
        await stream.aclose()

        event = ChangeEvent.model_validate_json(raw)
        assert event.table == "recipes"
        assert event.key == "R1"

    async def test_publish_failure_is_logged_not_raised(self, monkeypatch, caplog):
        class DownRedis:
            async def publish(self, channel, message):
                raise redis.ConnectionError("connection refused")

        monkeypatch.setattr(broker, "_redis_client", DownRedis())

        assert await publish_changes([_event()]) == 0
        assert "publish failed" in caplog.text


@pytest.mark.realtime
class TestTableFilter:

    def test_all_tables_by_default(self):
        assert parse_tables(None) is None
        assert parse_tables("") is None

    def test_known_tables(self):
        assert parse_tables("inventory, production_lines") == ["inventory", "production_lines"]

    def test_unknown_table(self):
        with pytest.raises(ValueError, match="activity_log"):
            parse_tables("inventory,activity_log")


class FeedSocket:
    """Drives /ws/changes over raw ASGI messages on the test's event loop."""

    def __init__(self, query: str):
        self.to_app: asyncio.Queue = asyncio.Queue()
        self.from_app: asyncio.Queue = asyncio.Queue()
        scope = {
            "type": "websocket",
            "asgi": {"version": "3.0"},
            "scheme": "ws",
            "http_version": "1.1",
            "path": "/ws/changes",
            "raw_path": b"/ws/changes",
            "root_path": "",
            "query_string": query.encode(),
            "headers": [(b"host", b"test")],
            "client": ("127.0.0.1", 50000),
            "server": ("test", 80),
            "subprotocols": [],
            "state": {},
        }
        self.to_app.put_nowait({"type": "websocket.connect"})
        self.task = asyncio.create_task(app(scope, self.to_app.get, self.from_app.put))

    async def next_message(self, timeout: float = 5.0) -> dict:
        return await asyncio.wait_for(self.from_app.get(), timeout=timeout)

    async def disconnect(self) -> None:
        await self.to_app.put({"type": "websocket.disconnect", "code": 1000})
        await asyncio.wait_for(self.task, timeout=5.0)


@pytest.mark.realtime
@pytest.mark.asyncio
class TestChangeFeedSocket:

    async def test_missing_or_bad_token_rejected(self, client):
        for query in ("", "token=not-a-jwt"):
            socket = FeedSocket(query)
            message = await socket.next_message()
            assert message["type"] == "websocket.close"
            assert message["code"] == 1008
            await asyncio.wait_for(socket.task, timeout=5.0)

    async def test_unknown_table_rejected(self, client, auth_token):
        socket = FeedSocket(urlencode({"token": auth_token, "tables": "inventory,activity_log"}))
        message = await socket.next_message()

        assert message["type"] == "websocket.close"
        assert message["code"] == 1008
        assert "activity_log" in message["reason"]
        await asyncio.wait_for(socket.task, timeout=5.0)

    async def test_intake_scan_reaches_connected_client(self, client, auth_token, auth_headers):
        socket = FeedSocket(urlencode({"token": auth_token, "tables": "inventory"}))
        assert (await socket.next_message())["type"] == "websocket.accept"
        await asyncio.sleep(0.2)  # let the subscription register

        response = await client.post(
            "/api/inventory/scan", json={"barcode": "LILIES|WHITE|100|STEMS"}, headers=auth_headers
        )
        assert response.status_code == 201
        box_id = response.json()["box"]["id"]

        frame = await socket.next_message()
        assert frame["type"] == "websocket.send"
        event = ChangeEvent.model_validate_json(frame["text"])
        assert (event.table, event.event_type, event.key) == ("inventory", ChangeKind.INSERT, box_id)

        store = LocalStore()
        ChangeFeedListener(store).handle(frame["text"])
        assert store.get("inventory", box_id)["flower_type"] == "Lilies"

        await socket.disconnect()

    async def test_idle_disconnect_releases_subscription(self, client, auth_token):
        socket = FeedSocket(urlencode({"token": auth_token}))
        assert (await socket.next_message())["type"] == "websocket.accept"
        await asyncio.sleep(0.2)

        # Nothing is published; the endpoint must still finish on disconnect
        await socket.disconnect()
        assert socket.task.done() and socket.task.exception() is None


@pytest.mark.realtime
@pytest.mark.asyncio
class TestWebsocketMessages:

    async def test_yields_text_frames_and_closes(self, monkeypatch):
        opened = {}
        insert = ChangeEvent(table="recipes", event_type="INSERT", new={"id": "R1", "name": "A"})
        update = ChangeEvent(table="recipes", event_type="UPDATE", new={"id": "R1", "name": "B"})

        class StubConnection:
            def __init__(self, url):
                opened["url"] = url

            async def __aenter__(self):
                return self

            async def __aexit__(self, *exc):
                opened["closed"] = True

            async def __aiter__(self):
                yield insert.model_dump_json()
                yield update.model_dump_json().encode()

        monkeypatch.setattr(feed.websockets, "connect", StubConnection)

        store = LocalStore()
        source = feed.websocket_messages("https://floor.example.com", "t0k", ["recipes"])
        applied = await ChangeFeedListener(store).run(source)

        assert opened == {
            "url": "wss://floor.example.com/ws/changes?token=t0k&tables=recipes",
            "closed": True,
        }
        assert applied == 2
        assert store.get("recipes", "R1")["name"] == "B"
