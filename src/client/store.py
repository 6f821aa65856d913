"""In-memory board state of one project.

The store is pure data plus accessors. It performs no I/O of its own except
``load``, which delegates to the injected ``BoardAPI``. Remote events are
merged by entity id and every merge is idempotent.
"""
import asyncio
import enum
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from src.logs.server_log import client_logger
from src.schemas.column import ColumnResponse
from src.schemas.item import ItemResponse
from src.schemas.task import TaskResponse
from src.schemas.websocket import WebSocketEventType
from src.services.ordering import array_move, clamp_index, renumber


class MergeResult(str, enum.Enum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    IGNORED = "ignored"
    REFETCH = "refetch"


class EntityKind(str, enum.Enum):
    COLUMN = "column"
    ITEM = "item"


@dataclass
class PendingIntent:
    """An optimistic move waiting for the server echo"""
    intent_id: str
    kind: EntityKind
    entity_id: int
    created_at: float = field(default_factory=time.monotonic)


Listener = Callable[[], None]


class BoardStateStore:
    """Ordered columns, items and tasks of the currently viewed project"""

    def __init__(self, api):
        self.api = api
        self.project_id: Optional[int] = None
        self.columns: List[ColumnResponse] = []
        self.items: Dict[int, ItemResponse] = {}
        self.tasks: Dict[int, TaskResponse] = {}
        self.pending_intents: Dict[str, PendingIntent] = {}
        self._listeners: List[Listener] = []
        self._handlers = {
            WebSocketEventType.COLUMN_CREATED: self._on_column_created,
            WebSocketEventType.COLUMN_DELETED: self._on_column_deleted,
            WebSocketEventType.COLUMNS_REORDERED: self._on_columns_reordered,
            WebSocketEventType.ITEM_CREATED: self._on_item_created,
            WebSocketEventType.ITEM_UPDATED: self._on_item_updated,
            WebSocketEventType.ITEM_DELETED: self._on_item_deleted,
            WebSocketEventType.TASK_CREATED: self._on_task_created,
            WebSocketEventType.TASK_UPDATED: self._on_task_updated,
            WebSocketEventType.TASK_DELETED: self._on_task_deleted,
        }

    # Loading

    async def load(self, project_id: int) -> None:
        """Replace local state wholesale with the server's canonical state"""
        board, tasks = await asyncio.gather(
            self.api.get_board(project_id),
            self.api.get_tasks(project_id),
        )

        self.project_id = project_id
        self.columns = sorted(board.columns, key=lambda c: (c.order, c.id))
        self.items = {item.id: item for item in board.items}
        self.tasks = {task.id: task for task in tasks}
        self.pending_intents.clear()
        client_logger.info(
            f"Store: loaded project {project_id} with {len(self.columns)} columns, "
            f"{len(self.items)} items, {len(self.tasks)} tasks"
        )
        self._notify()

    # Listeners

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every state change; returns a remover"""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                client_logger.error(f"Store: listener failed: {str(e)}")

    # Accessors

    def ordered_columns(self) -> List[ColumnResponse]:
        return list(self.columns)

    def get_column(self, column_id: int) -> Optional[ColumnResponse]:
        return next((c for c in self.columns if c.id == column_id), None)

    def column_index(self, column_id: int) -> Optional[int]:
        return next((i for i, c in enumerate(self.columns) if c.id == column_id), None)

    def get_item(self, item_id: int) -> Optional[ItemResponse]:
        return self.items.get(item_id)

    def ordered_items(self, column_id: int) -> List[ItemResponse]:
        """Items of a column sorted by order ascending"""
        return sorted(
            (item for item in self.items.values() if item.column_id == column_id),
            key=lambda item: (item.order, item.id),
        )

    def item_for_task(self, task_id: int) -> Optional[ItemResponse]:
        return next((item for item in self.items.values() if item.task_id == task_id), None)

    # Local (optimistic) mutations

    def move_column_local(self, column_id: int, new_index: int) -> bool:
        """Array-move a column and renumber all columns"""
        old_index = self.column_index(column_id)
        if old_index is None:
            return False
        self.columns = array_move(self.columns, old_index, new_index)
        changed = renumber(self.columns)
        if changed:
            self._notify()
        return bool(changed)

    def set_item_column(self, item_id: int, column_id: int) -> bool:
        """Reassign an item to the end of another column, leaving the source dense"""
        item = self.items.get(item_id)
        if item is None or item.column_id == column_id:
            return False
        source_id = item.column_id
        item.order = len(self.ordered_items(column_id))
        item.column_id = column_id
        renumber(self.ordered_items(source_id))
        self._notify()
        return True

    def move_item_local(self, item_id: int, column_id: int, new_index: int) -> bool:
        """Place an item at ``new_index`` of ``column_id`` and renumber affected columns"""
        item = self.items.get(item_id)
        if item is None:
            return False
        source_id = item.column_id
        siblings = [i for i in self.ordered_items(column_id) if i.id != item_id]
        before = (item.column_id, item.order)

        item.column_id = column_id
        siblings.insert(clamp_index(new_index, len(siblings)), item)
        changed = renumber(siblings)
        if source_id != column_id:
            changed += renumber(self.ordered_items(source_id))

        if not changed and before == (item.column_id, item.order):
            return False
        self._notify()
        return True

    def remove_item(self, item_id: int) -> bool:
        """Drop an item, unlink its task and close the gap in its column"""
        item = self.items.pop(item_id, None)
        if item is None:
            return False
        self._unlink_task(item.task_id, item_id)
        renumber(self.ordered_items(item.column_id))
        self._notify()
        return True

    def remove_column(self, column_id: int) -> bool:
        """Drop a column with all its items"""
        if self.get_column(column_id) is None:
            return False
        self.columns = [c for c in self.columns if c.id != column_id]
        renumber(self.columns)
        self._drop_items_of_column(column_id)
        self._notify()
        return True

    def _drop_items_of_column(self, column_id: int) -> List[int]:
        removed = [item for item in self.items.values() if item.column_id == column_id]
        for item in removed:
            del self.items[item.id]
            self._unlink_task(item.task_id, item.id)
        return [item.id for item in removed]

    def _unlink_task(self, task_id: int, item_id: int):
        task = self.tasks.get(task_id)
        if task is not None and task.item_id in (item_id, None) and task.is_on_board:
            task.is_on_board = False
            task.item_id = None

    def _link_task(self, item: ItemResponse):
        task = self.tasks.get(item.task_id)
        if task is not None:
            task.is_on_board = True
            task.item_id = item.id

    # Intents

    def begin_intent(self, intent_id: str, kind: EntityKind, entity_id: int) -> PendingIntent:
        intent = PendingIntent(intent_id=intent_id, kind=kind, entity_id=entity_id)
        self.pending_intents[intent_id] = intent
        return intent

    def resolve_intent(self, intent_id: Optional[str]) -> bool:
        if not intent_id:
            return False
        return self.pending_intents.pop(intent_id, None) is not None

    def discard_intents(self):
        self.pending_intents.clear()

    def _superseded(self, kind: EntityKind, entity_id: Optional[int], intent_id: Optional[str]) -> bool:
        """An event without our intent id about an entity we are still moving

        The echo of our own move follows it on the channel, so applying it
        would only make the entity snap back and forth.
        """
        for intent in self.pending_intents.values():
            if intent.kind != kind or intent.intent_id == intent_id:
                continue
            if entity_id is None or intent.entity_id == entity_id:
                return True
        return False

    # Remote events

    def apply_remote_event(self, event: str, data: dict) -> MergeResult:
        """Merge one inbound channel event into local state"""
        if not isinstance(data, dict) or "project_id" not in data:
            return MergeResult.IGNORED
        if self.project_id is None or data["project_id"] != self.project_id:
            return MergeResult.IGNORED

        try:
            event_type = WebSocketEventType(event)
        except ValueError:
            client_logger.warning(f"Store: unknown event '{event}', falling back to full reload")
            return MergeResult.REFETCH

        if event_type == WebSocketEventType.BOARD_REFETCH_NEEDED:
            return MergeResult.REFETCH

        handler = self._handlers.get(event_type)
        if handler is None:
            return MergeResult.IGNORED

        try:
            changed = handler(data)
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            client_logger.warning(f"Store: dropped malformed '{event}' event: {str(e)}")
            return MergeResult.IGNORED

        self.resolve_intent(data.get("intent_id"))
        if changed is None:
            return MergeResult.IGNORED
        if changed:
            self._notify()
            return MergeResult.APPLIED
        return MergeResult.UNCHANGED

    def _on_column_created(self, data: dict) -> Optional[bool]:
        column = ColumnResponse.model_validate(data["column"])
        if column.project_id != self.project_id:
            return None
        if self.get_column(column.id) is not None:
            return False
        self.columns = sorted(self.columns + [column], key=lambda c: (c.order, c.id))
        return True

    def _on_column_deleted(self, data: dict) -> bool:
        column_id = data["column_id"]
        if self.get_column(column_id) is None:
            return False
        self.columns = [c for c in self.columns if c.id != column_id]
        self._drop_items_of_column(column_id)
        return True

    def _on_columns_reordered(self, data: dict) -> Optional[bool]:
        columns = [ColumnResponse.model_validate(column) for column in data["columns"]]
        columns = sorted(
            (c for c in columns if c.project_id == self.project_id),
            key=lambda c: (c.order, c.id),
        )
        if self._superseded(EntityKind.COLUMN, None, data.get("intent_id")):
            return None
        if columns == self.columns:
            return False
        self.columns = columns
        # Карточки без колонки нарушают инвариант доски
        known = {c.id for c in columns}
        for item_id in [i.id for i in self.items.values() if i.column_id not in known]:
            item = self.items.pop(item_id)
            self._unlink_task(item.task_id, item.id)
        return True

    def _on_item_created(self, data: dict) -> Optional[bool]:
        item = ItemResponse.model_validate(data["item"])
        if item.project_id != self.project_id:
            return None
        if item.id in self.items:
            return False
        self.items[item.id] = item
        self._link_task(item)
        return True

    def _on_item_updated(self, data: dict) -> Optional[bool]:
        item = ItemResponse.model_validate(data["item"])
        if item.project_id != self.project_id:
            return None
        if self._superseded(EntityKind.ITEM, item.id, data.get("intent_id")):
            return None
        current = self.items.get(item.id)
        if current == item:
            return False
        if current is None and self.get_column(item.column_id) is None:
            return None
        self.items[item.id] = item
        self._link_task(item)
        return True

    def _on_item_deleted(self, data: dict) -> bool:
        item = self.items.pop(data["item_id"], None)
        if item is None:
            return False
        self._unlink_task(item.task_id, item.id)
        return True

    def _on_task_created(self, data: dict) -> Optional[bool]:
        task = TaskResponse.model_validate(data["task"])
        if task.project_id != self.project_id:
            return None
        if task.id in self.tasks:
            return False
        self.tasks[task.id] = task
        return True

    def _on_task_updated(self, data: dict) -> Optional[bool]:
        task = TaskResponse.model_validate(data["task"])
        if task.project_id != self.project_id:
            return None
        if self.tasks.get(task.id) == task:
            return False
        self.tasks[task.id] = task
        return True

    def _on_task_deleted(self, data: dict) -> bool:
        return self.tasks.pop(data["task_id"], None) is not None
