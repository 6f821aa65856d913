"""Client-local drag state machine.

Pointer gestures become speculative store mutations while hovering and a
single persistence call on drop::

    IDLE -> DRAGGING -> (HOVERING)* -> COMMITTING -> IDLE
                                    -> CANCELLED  -> IDLE
"""
import enum
import inspect
import uuid
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, Optional, Tuple, Union

from src.client.api import BoardAPIError
from src.client.store import BoardStateStore, EntityKind
from src.logs.server_log import client_logger


class DragState(str, enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    HOVERING = "hovering"
    COMMITTING = "committing"
    CANCELLED = "cancelled"


class DragStateError(Exception):
    """Gesture callback received in a state that does not accept it"""


@dataclass(frozen=True)
class DropTarget:
    """What the pointer is over: a column or an item"""
    kind: EntityKind
    id: int

    @classmethod
    def column(cls, column_id: int) -> "DropTarget":
        return cls(EntityKind.COLUMN, column_id)

    @classmethod
    def item(cls, item_id: int) -> "DropTarget":
        return cls(EntityKind.ITEM, item_id)


@dataclass
class DragSession:
    kind: EntityKind
    entity_id: int
    source_column_id: Optional[int]
    source_order: int


Confirm = Callable[[str], Union[bool, Awaitable[bool]]]


class DragController:
    """Turns drag gestures into optimistic store updates and persistence calls"""

    def __init__(self, store: BoardStateStore, api, confirm: Optional[Confirm] = None):
        self.store = store
        self.api = api
        self.confirm = confirm
        self.state = DragState.IDLE
        self.session: Optional[DragSession] = None

    def _transition(self, state: DragState):
        client_logger.debug(f"Drag: {self.state.value} -> {state.value}")
        self.state = state

    # Gestures

    def start(self, kind: EntityKind, entity_id: int) -> DragSession:
        """Gesture start: remember the dragged entity and where it came from"""
        if self.state != DragState.IDLE:
            raise DragStateError(f"Cannot start a drag while {self.state.value}")

        if kind == EntityKind.COLUMN:
            column = self.store.get_column(entity_id)
            if column is None:
                raise DragStateError(f"Unknown column {entity_id}")
            self.session = DragSession(kind, entity_id, None, column.order)
        else:
            item = self.store.get_item(entity_id)
            if item is None:
                raise DragStateError(f"Unknown item {entity_id}")
            self.session = DragSession(kind, entity_id, item.column_id, item.order)

        self._transition(DragState.DRAGGING)
        return self.session

    def destination_column(self, target: Optional[DropTarget]) -> Optional[int]:
        """Column under the pointer: the hovered column or the hovered item's column"""
        if target is None:
            return None
        if target.kind == EntityKind.COLUMN:
            return target.id if self.store.get_column(target.id) is not None else None
        item = self.store.get_item(target.id)
        return item.column_id if item is not None else None

    def hover(self, target: Optional[DropTarget]) -> Optional[int]:
        """Pointer-over change; items follow the pointer across columns locally"""
        if self.state not in (DragState.DRAGGING, DragState.HOVERING):
            raise DragStateError(f"Cannot hover while {self.state.value}")
        self._transition(DragState.HOVERING)

        destination = self.destination_column(target)
        if self.session.kind == EntityKind.ITEM and destination is not None:
            self.store.set_item_column(self.session.entity_id, destination)
        return destination

    def cancel(self):
        """Abort the drag; hover speculation is reverted and nothing is persisted"""
        if self.state not in (DragState.DRAGGING, DragState.HOVERING):
            raise DragStateError(f"Cannot cancel while {self.state.value}")
        self._transition(DragState.CANCELLED)

        session = self.session
        if session.kind == EntityKind.ITEM and self.store.get_column(session.source_column_id) is not None:
            self.store.move_item_local(session.entity_id, session.source_column_id, session.source_order)

        self.session = None
        self._transition(DragState.IDLE)

    async def drop(self, target: Optional[DropTarget]) -> bool:
        """Gesture end. Returns True when a persistence call was issued

        The controller is back in IDLE before the call is awaited, so a new
        gesture can start while the move is still being saved.
        """
        if self.state not in (DragState.DRAGGING, DragState.HOVERING):
            raise DragStateError(f"Cannot drop while {self.state.value}")

        if self.destination_column(target) is None:
            self.cancel()
            return False

        self._transition(DragState.COMMITTING)
        session = self.session
        try:
            if session.kind == EntityKind.COLUMN:
                pending = self._commit_column(session, target)
            else:
                pending = self._commit_item(session, target)
        finally:
            self.session = None
            self._transition(DragState.IDLE)

        if pending is None:
            return False
        await self._persist(*pending)
        return True

    # Commit

    def _commit_column(self, session: DragSession, target: DropTarget) -> Optional[Tuple[str, Callable]]:
        new_index = self.store.column_index(self.destination_column(target))
        old_index = self.store.column_index(session.entity_id)
        if old_index is None or new_index == old_index:
            return None

        self.store.move_column_local(session.entity_id, new_index)
        intent_id = self._begin_intent(EntityKind.COLUMN, session.entity_id)
        return intent_id, partial(self.api.move_column, session.entity_id, new_index, intent_id=intent_id)

    def _commit_item(self, session: DragSession, target: DropTarget) -> Optional[Tuple[str, Callable]]:
        item_id = session.entity_id
        item = self.store.get_item(item_id)
        if item is None:
            return None

        destination = self.destination_column(target)
        # Drop without any hover event still lands in the target column
        self.store.set_item_column(item_id, destination)

        ordered = self.store.ordered_items(destination)
        old_index = next(i for i, sibling in enumerate(ordered) if sibling.id == item_id)
        if target.kind == EntityKind.ITEM and target.id != item_id:
            new_index = next((i for i, sibling in enumerate(ordered) if sibling.id == target.id), len(ordered) - 1)
        elif target.kind == EntityKind.ITEM:
            new_index = old_index
        else:
            new_index = len(ordered) - 1

        if destination == session.source_column_id and new_index == session.source_order:
            # Вернули на исходное место
            self.store.move_item_local(item_id, destination, new_index)
            return None

        self.store.move_item_local(item_id, destination, new_index)
        intent_id = self._begin_intent(EntityKind.ITEM, item_id)
        return intent_id, partial(self.api.move_item, item_id, destination, new_index, intent_id=intent_id)

    def _begin_intent(self, kind: EntityKind, entity_id: int) -> str:
        intent_id = uuid.uuid4().hex
        self.store.begin_intent(intent_id, kind, entity_id)
        return intent_id

    async def _persist(self, intent_id: str, call: Callable[[], Awaitable]):
        try:
            await call()
        except BoardAPIError as e:
            client_logger.error(f"Drag: persisting move failed ({e.message}), reloading project {self.store.project_id}")
            self.store.discard_intents()
            try:
                await self.store.load(self.store.project_id)
            except BoardAPIError as reload_error:
                client_logger.error(f"Drag: reloading project {self.store.project_id} failed: {reload_error.message}")
            return
        self.store.resolve_intent(intent_id)

    # Destructive actions

    async def _confirmed(self, message: str) -> bool:
        if self.confirm is None:
            return False
        answer = self.confirm(message)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def delete_item(self, item_id: int) -> bool:
        """Remove an item from the board after confirmation"""
        if self.store.get_item(item_id) is None:
            return False
        if not await self._confirmed("Are you sure you want to remove this ticket from the board?"):
            return False

        self.store.remove_item(item_id)
        try:
            await self.api.delete_item(item_id)
        except BoardAPIError as e:
            client_logger.error(f"Drag: deleting item {item_id} failed: {e.message}")
        return True

    async def delete_column(self, column_id: int) -> bool:
        """Delete a column and its items after confirmation"""
        if self.store.get_column(column_id) is None:
            return False

        message = "Are you sure you want to delete this column?"
        if self.store.ordered_items(column_id):
            message = "This column contains tickets. Deleting it will delete all tickets within it. Continue?"
        if not await self._confirmed(message):
            return False

        self.store.remove_column(column_id)
        try:
            await self.api.delete_column(column_id)
        except BoardAPIError as e:
            client_logger.error(f"Drag: deleting column {column_id} failed: {e.message}")
        return True
