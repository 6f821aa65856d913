import asyncio
import json

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from src.client.adapter import BoardEventAdapter
from src.client.event_bus import ALL_EVENTS, RECONNECTED, EventBusClient, TransportClosed
from src.client.store import MergeResult
from src.schemas.item import ItemResponse

CLOSE = object()


class MemoryTransport:
    """In-memory connection: frames pushed by the test, commands recorded"""

    def __init__(self, url):
        self.url = url
        self.sent = []
        self.inbox = asyncio.Queue()
        self.closed = False

    async def send(self, message):
        if self.closed:
            raise TransportClosed("closed")
        self.sent.append(json.loads(message))

    async def recv(self):
        frame = await self.inbox.get()
        if frame is CLOSE:
            raise TransportClosed("server went away")
        return frame if isinstance(frame, str) else json.dumps(frame)

    async def close(self):
        self.closed = True

    def push(self, event, data):
        self.inbox.put_nowait({"event": event, "data": data})

    def drop(self):
        self.inbox.put_nowait(CLOSE)


class MemoryServer:
    def __init__(self):
        self.transports = []

    async def connect(self, url):
        transport = MemoryTransport(url)
        self.transports.append(transport)
        return transport

    @property
    def current(self):
        return self.transports[-1]


async def settle(predicate=lambda: False, rounds=50):
    """Let the connection loop run until ``predicate`` holds"""
    for _ in range(rounds):
        if predicate():
            return
        await asyncio.sleep(0)


@pytest.fixture
def server():
    return MemoryServer()


@pytest_asyncio.fixture
async def bus(server):
    client = EventBusClient(
        credentials=lambda: "token-1",
        url="ws://test/api/v1/ws/updates",
        transport_factory=server.connect,
        reconnect_delay=0,
        reconnect_max_delay=0,
    )
    yield client
    await client.disconnect()


class TestConnection:
    """Тесты для подключения"""

    @pytest.mark.asyncio
    async def test_no_credentials_no_connection(self, server):
        """Без учетных данных соединение не открывается"""
        client = EventBusClient(credentials=lambda: None, transport_factory=server.connect)

        assert await client.connect() is False
        await settle()

        assert server.transports == []
        assert not client.connected

    @pytest.mark.asyncio
    async def test_connect_passes_token(self, bus, server):
        assert await bus.connect()
        await bus.wait_connected(timeout=1)

        assert bus.connected
        assert server.current.url == "ws://test/api/v1/ws/updates?token=token-1"

    @pytest.mark.asyncio
    async def test_disconnect_closes_transport(self, bus, server):
        await bus.connect()
        await bus.wait_connected(timeout=1)

        await bus.disconnect()

        assert server.current.closed
        assert not bus.connected

    @pytest.mark.asyncio
    async def test_rejoin_rooms_after_reconnect(self, bus, server):
        """После переподключения комнаты присоединяются заново"""
        reconnected = MagicMock()
        bus.subscribe(RECONNECTED, reconnected)

        await bus.connect()
        await bus.wait_connected(timeout=1)
        await bus.join("project_1")
        assert server.current.sent == [{"command": "join_entity", "data": {"room": "project_1"}}]

        server.current.drop()
        await settle(lambda: len(server.transports) == 2 and bus.connected)

        assert bus.connection_count == 2
        assert server.current.sent == [{"command": "join_entity", "data": {"room": "project_1"}}]
        reconnected.assert_called_once_with(RECONNECTED, {})


class TestRooms:
    """Тесты для комнат"""

    @pytest.mark.asyncio
    async def test_rooms_are_reference_counted(self, bus, server):
        await bus.connect()
        await bus.wait_connected(timeout=1)

        await bus.join("project_1")
        await bus.join("project_1")
        await bus.leave("project_1")
        assert bus.rooms == {"project_1"}
        assert len(server.current.sent) == 1

        await bus.leave("project_1")
        assert bus.rooms == set()
        assert server.current.sent[-1] == {"command": "leave_entity", "data": {"room": "project_1"}}

    @pytest.mark.asyncio
    async def test_join_before_connect_is_sent_on_connect(self, bus, server):
        await bus.join("project_7")
        await bus.connect()
        await bus.wait_connected(timeout=1)

        assert server.current.sent == [{"command": "join_entity", "data": {"room": "project_7"}}]


class TestSubscriptions:
    """Тесты для подписок"""

    @pytest.mark.asyncio
    async def test_dispatch_by_topic(self, bus, server):
        item_handler = MagicMock()
        any_handler = AsyncMock()
        bus.subscribe("item_updated", item_handler)
        bus.subscribe(ALL_EVENTS, any_handler)

        await bus.connect()
        await bus.wait_connected(timeout=1)
        server.current.push("item_updated", {"project_id": 1})
        server.current.push("column_deleted", {"project_id": 1, "column_id": 2})
        await settle(lambda: any_handler.await_count == 2)

        item_handler.assert_called_once_with("item_updated", {"project_id": 1})
        assert [c.args[0] for c in any_handler.await_args_list] == ["item_updated", "column_deleted"]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, bus, server):
        handler = MagicMock()
        token = bus.subscribe("item_updated", handler)
        assert bus.unsubscribe(token)
        assert not bus.unsubscribe(token)

        await bus.connect()
        await bus.wait_connected(timeout=1)
        server.current.push("item_updated", {"project_id": 1})
        await settle(lambda: server.current.inbox.empty())
        await settle()

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_scoped_subscription_released_on_error(self, bus):
        handler = MagicMock()
        with pytest.raises(RuntimeError):
            async with bus.subscription("item_updated", handler):
                raise RuntimeError("boom")

        await bus._dispatch("item_updated", {})
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self, bus):
        failing = MagicMock(side_effect=ValueError("bad"))
        healthy = MagicMock()
        bus.subscribe("item_updated", failing)
        bus.subscribe("item_updated", healthy)

        await bus._dispatch("item_updated", {"project_id": 1})

        healthy.assert_called_once()

    @pytest.mark.asyncio
    async def test_bad_frames_dropped(self, bus):
        handler = MagicMock()
        bus.subscribe(ALL_EVENTS, handler)

        await bus._dispatch_frame("not json")
        await bus._dispatch_frame(json.dumps({"data": {}}))
        await bus._dispatch_frame(json.dumps(["item_updated"]))

        handler.assert_not_called()


def item_payload(item_id, column_id, project_id=1):
    return ItemResponse(
        id=item_id, project_id=project_id, column_id=column_id, task_id=item_id + 100, order=0
    ).model_dump(mode="json")


@pytest.fixture
def store():
    board_store = MagicMock()
    board_store.project_id = 1
    board_store.apply_remote_event = MagicMock(return_value=MergeResult.APPLIED)
    board_store.load = AsyncMock()
    return board_store


class TestBoardEventAdapter:
    """Тесты для адаптера событий доски"""

    @pytest.mark.asyncio
    async def test_attach_joins_project_room(self, bus, store):
        adapter = BoardEventAdapter(bus, store)
        await adapter.attach(1)

        assert adapter.room == "project_1"
        assert bus.rooms == {"project_1"}

        await adapter.detach()
        assert bus.rooms == set()
        assert adapter.project_id is None

    @pytest.mark.asyncio
    async def test_events_merged_into_store(self, bus, server, store):
        adapter = BoardEventAdapter(bus, store)
        await bus.connect()
        await bus.wait_connected(timeout=1)

        async with adapter.watching(1):
            data = {"project_id": 1, "item": item_payload(10, 2)}
            server.current.push("item_updated", data)
            await settle(lambda: store.apply_remote_event.called)

        store.apply_remote_event.assert_called_once_with("item_updated", data)
        assert bus.rooms == set()

    @pytest.mark.asyncio
    async def test_foreign_project_ignored(self, bus, store):
        adapter = BoardEventAdapter(bus, store)
        await adapter.attach(1)

        result = await adapter.handle_event("item_updated", {"project_id": 2, "item": item_payload(10, 2, 2)})

        assert result == MergeResult.IGNORED
        store.apply_remote_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_refetch_reloads_store(self, bus, store):
        store.apply_remote_event.return_value = MergeResult.REFETCH
        adapter = BoardEventAdapter(bus, store)
        await adapter.attach(1)

        result = await adapter.handle_event("board_refetch_needed", {"project_id": 1})

        assert result == MergeResult.REFETCH
        store.load.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_reload_on_reconnect(self, bus, server, store):
        adapter = BoardEventAdapter(bus, store, refetch_on_reconnect=True)
        await adapter.attach(1)
        await bus.connect()
        await bus.wait_connected(timeout=1)

        server.current.drop()
        await settle(lambda: store.load.await_count == 1)

        store.load.assert_awaited_once_with(1)
