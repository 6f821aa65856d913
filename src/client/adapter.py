from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from src.client.event_bus import ALL_EVENTS, RECONNECTED, EventBusClient, SubscriptionToken
from src.client.store import BoardStateStore, MergeResult
from src.logs.server_log import client_logger
from src.schemas.websocket import project_room


class BoardEventAdapter:
    """Merges the events of one project room into a BoardStateStore

    Self-originated events are not filtered: the server echoes every
    successful mutation and merges are idempotent, so the committing client
    converges like every other observer.
    """

    def __init__(self, bus: EventBusClient, store: BoardStateStore, refetch_on_reconnect: bool = False):
        self.bus = bus
        self.store = store
        self.refetch_on_reconnect = refetch_on_reconnect
        self.project_id: Optional[int] = None
        self._tokens: list[SubscriptionToken] = []

    @property
    def room(self) -> Optional[str]:
        return project_room(self.project_id) if self.project_id is not None else None

    async def attach(self, project_id: int):
        """Join ``project_<id>`` and start merging its events"""
        if self.project_id is not None:
            await self.detach()
        self.project_id = project_id
        self._tokens.append(self.bus.subscribe(ALL_EVENTS, self.handle_event))
        self._tokens.append(self.bus.subscribe(RECONNECTED, self._on_reconnected))
        await self.bus.join(self.room)
        client_logger.info(f"Adapter: attached to {self.room}")

    async def detach(self):
        """Leave the room and release every subscription"""
        if self.project_id is None:
            return
        room = self.room
        for token in self._tokens:
            self.bus.unsubscribe(token)
        self._tokens.clear()
        await self.bus.leave(room)
        self.project_id = None
        client_logger.info(f"Adapter: detached from {room}")

    @asynccontextmanager
    async def watching(self, project_id: int):
        """Scoped attach; the room is left on exit even when the body raises"""
        await self.attach(project_id)
        try:
            yield self
        finally:
            await self.detach()

    async def handle_event(self, event: str, data: Dict[str, Any]) -> MergeResult:
        """Merge one event; malformed or foreign events are dropped"""
        if self.project_id is None or not isinstance(data, dict) or data.get("project_id") != self.project_id:
            return MergeResult.IGNORED
        if self.store.project_id != self.project_id:
            return MergeResult.IGNORED

        result = self.store.apply_remote_event(event, data)
        if result == MergeResult.REFETCH:
            client_logger.info(f"Adapter: '{event}' requires a full reload of project {self.project_id}")
            await self.store.load(self.project_id)
        return result

    async def _on_reconnected(self, event: str, data: Dict[str, Any]):
        if self.refetch_on_reconnect and self.project_id is not None:
            await self.store.load(self.project_id)
