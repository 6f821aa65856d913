"""Real-time channel client.

One ``EventBusClient`` owns one WebSocket connection. It connects only while
the credentials provider yields a token, re-joins every open room after a
reconnect and dispatches inbound ``{"event", "data"}`` frames to topic
subscribers, one frame at a time.
"""
import asyncio
import inspect
import itertools
import json
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed

from src.core import get_settings
from src.logs.server_log import client_logger
from src.schemas.websocket import WebSocketCommandType

settings = get_settings()

ALL_EVENTS = "*"
RECONNECTED = "reconnected"

Handler = Callable[[str, Dict[str, Any]], Any]
CredentialsProvider = Callable[[], Optional[str]]


class TransportClosed(Exception):
    """The underlying connection went away"""


class Transport(Protocol):
    async def send(self, message: str) -> None: ...

    async def recv(self) -> str: ...

    async def close(self) -> None: ...


TransportFactory = Callable[[str], Awaitable[Transport]]


class WebSocketTransport:
    """Transport over the ``websockets`` client"""

    def __init__(self, connection):
        self.connection = connection

    @classmethod
    async def open(cls, url: str) -> "WebSocketTransport":
        try:
            connection = await websockets.connect(url)
        except (OSError, websockets.exceptions.WebSocketException) as e:
            raise TransportClosed(str(e)) from e
        return cls(connection)

    async def send(self, message: str) -> None:
        try:
            await self.connection.send(message)
        except ConnectionClosed as e:
            raise TransportClosed(str(e)) from e

    async def recv(self) -> str:
        try:
            return await self.connection.recv()
        except ConnectionClosed as e:
            raise TransportClosed(str(e)) from e

    async def close(self) -> None:
        await self.connection.close()


@dataclass(frozen=True)
class SubscriptionToken:
    id: int
    topic: str


class EventBusClient:
    """Explicitly managed, dependency-injected channel client"""

    def __init__(
        self,
        credentials: CredentialsProvider,
        url: Optional[str] = None,
        transport_factory: Optional[TransportFactory] = None,
        reconnect_delay: Optional[float] = None,
        reconnect_max_delay: Optional[float] = None,
    ):
        self.credentials = credentials
        self.url = url or settings.WS_URL
        self.transport_factory = transport_factory or WebSocketTransport.open
        self.reconnect_delay = settings.RECONNECT_DELAY if reconnect_delay is None else reconnect_delay
        self.reconnect_max_delay = settings.RECONNECT_MAX_DELAY if reconnect_max_delay is None else reconnect_max_delay

        self._subscriptions: Dict[str, Dict[int, Handler]] = {}
        self._ids = itertools.count(1)
        self._rooms: Dict[str, int] = {}
        self._transport: Optional[Transport] = None
        self._task: Optional[asyncio.Task] = None
        self._connected = asyncio.Event()
        self.connection_count = 0

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    @property
    def rooms(self):
        return set(self._rooms)

    # Lifecycle

    async def connect(self) -> bool:
        """Start the connection loop if credentials are present"""
        if self._task is not None and not self._task.done():
            return True
        if not self.credentials():
            client_logger.info("EventBus: no credentials, staying disconnected")
            return False
        self._task = asyncio.create_task(self._run())
        return True

    async def wait_connected(self, timeout: Optional[float] = None):
        await asyncio.wait_for(self._connected.wait(), timeout)

    async def disconnect(self):
        """Stop the loop and close the transport"""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._close_transport()
        client_logger.info("EventBus: disconnected")

    async def _close_transport(self):
        transport, self._transport = self._transport, None
        self._connected.clear()
        if transport is not None:
            try:
                await transport.close()
            except Exception as e:
                client_logger.warning(f"EventBus: error while closing transport: {str(e)}")

    def _connection_url(self, token: str) -> str:
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode({'token': token})}"

    async def _run(self):
        delay = self.reconnect_delay
        while True:
            token = self.credentials()
            if not token:
                client_logger.info("EventBus: credentials gone, stopping")
                return

            try:
                self._transport = await self.transport_factory(self._connection_url(token))
                self.connection_count += 1
                self._connected.set()
                delay = self.reconnect_delay
                client_logger.info(f"EventBus: connected (connection #{self.connection_count})")

                for room in list(self._rooms):
                    await self._send_command(WebSocketCommandType.JOIN_ENTITY, {"room": room})
                if self.connection_count > 1:
                    await self._dispatch(RECONNECTED, {})

                while True:
                    await self._dispatch_frame(await self._transport.recv())
            except (TransportClosed, OSError) as e:
                client_logger.warning(f"EventBus: connection lost ({str(e)}), retrying in {delay}s")
            finally:
                await self._close_transport()

            await asyncio.sleep(delay)
            delay = min(delay * 2, self.reconnect_max_delay) if delay else self.reconnect_delay

    # Rooms

    async def _send_command(self, command: WebSocketCommandType, data: dict):
        if self._transport is None:
            return
        await self._transport.send(json.dumps({"command": command.value, "data": data}))

    async def join(self, room: str):
        """Join a room; rooms are reference counted across callers"""
        self._rooms[room] = self._rooms.get(room, 0) + 1
        if self._rooms[room] == 1 and self.connected:
            try:
                await self._send_command(WebSocketCommandType.JOIN_ENTITY, {"room": room})
            except TransportClosed:
                client_logger.warning(f"EventBus: join of {room} deferred to the next connection")

    async def leave(self, room: str):
        count = self._rooms.get(room, 0)
        if count <= 1:
            self._rooms.pop(room, None)
            if count == 1 and self.connected:
                try:
                    await self._send_command(WebSocketCommandType.LEAVE_ENTITY, {"room": room})
                except TransportClosed:
                    pass  # server forgets rooms of closed connections anyway
        else:
            self._rooms[room] = count - 1

    # Subscriptions

    def subscribe(self, topic: str, handler: Handler) -> SubscriptionToken:
        """Register ``handler(event, data)`` for ``topic`` (an event kind or ``*``)"""
        token = SubscriptionToken(next(self._ids), topic)
        self._subscriptions.setdefault(topic, {})[token.id] = handler
        return token

    def unsubscribe(self, token: SubscriptionToken) -> bool:
        handlers = self._subscriptions.get(token.topic, {})
        removed = handlers.pop(token.id, None) is not None
        if not handlers:
            self._subscriptions.pop(token.topic, None)
        return removed

    @asynccontextmanager
    async def subscription(self, topic: str, handler: Handler):
        """Scoped subscription, released on exit even when the body raises"""
        token = self.subscribe(topic, handler)
        try:
            yield token
        finally:
            self.unsubscribe(token)

    # Dispatch

    async def _dispatch_frame(self, raw: str):
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            client_logger.warning("EventBus: dropped non-JSON frame")
            return
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            client_logger.warning("EventBus: dropped frame without event")
            return
        data = message.get("data")
        await self._dispatch(message["event"], data if isinstance(data, dict) else {})

    async def _dispatch(self, event: str, data: Dict[str, Any]):
        handlers = list(self._subscriptions.get(event, {}).values())
        if event != RECONNECTED:
            handlers += list(self._subscriptions.get(ALL_EVENTS, {}).values())

        for handler in handlers:
            try:
                result = handler(event, data)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                client_logger.error(f"EventBus: handler for '{event}' failed: {str(e)}")
