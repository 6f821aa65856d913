import pytest
from unittest.mock import AsyncMock, MagicMock

from src.client.store import BoardStateStore, EntityKind, MergeResult
from src.schemas.board import BoardResponse
from src.schemas.column import ColumnResponse
from src.schemas.item import ItemResponse
from src.schemas.task import TaskResponse


def column(column_id, order, project_id=1):
    return ColumnResponse(id=column_id, project_id=project_id, name=f"Column {column_id}", order=order)


def item(item_id, column_id, order, task_id=None, project_id=1):
    return ItemResponse(
        id=item_id,
        project_id=project_id,
        column_id=column_id,
        task_id=task_id or item_id + 100,
        order=order,
    )


def task(task_id, item_id=None):
    return TaskResponse(
        id=task_id,
        project_id=1,
        title=f"Task {task_id}",
        is_on_board=item_id is not None,
        item_id=item_id,
    )


@pytest.fixture
def store():
    """Доска: колонки 1, 2, 3; карточки 10, 11 в колонке 1 и 12 в колонке 2"""
    board_store = BoardStateStore(MagicMock())
    board_store.project_id = 1
    board_store.columns = [column(1, 0), column(2, 1), column(3, 2)]
    board_store.items = {
        10: item(10, 1, 0),
        11: item(11, 1, 1),
        12: item(12, 2, 0),
    }
    board_store.tasks = {
        110: task(110, item_id=10),
        111: task(111, item_id=11),
        112: task(112, item_id=12),
    }
    return board_store


class TestLoad:
    """Тесты для загрузки состояния"""

    @pytest.mark.asyncio
    async def test_load_replaces_state(self):
        """Загрузка полностью заменяет локальное состояние"""
        api = MagicMock()
        api.get_board = AsyncMock(return_value=BoardResponse(
            columns=[column(2, 1), column(1, 0)],
            items=[item(10, 1, 0)],
        ))
        api.get_tasks = AsyncMock(return_value=[task(110, item_id=10)])

        board_store = BoardStateStore(api)
        board_store.begin_intent("stale", EntityKind.ITEM, 10)
        listener = MagicMock()
        board_store.add_listener(listener)

        await board_store.load(1)

        assert board_store.project_id == 1
        assert [c.id for c in board_store.ordered_columns()] == [1, 2]
        assert list(board_store.items) == [10]
        assert list(board_store.tasks) == [110]
        assert board_store.pending_intents == {}
        listener.assert_called_once()
        api.get_board.assert_awaited_once_with(1)
        api.get_tasks.assert_awaited_once_with(1)


class TestAccessors:
    """Тесты для выборок"""

    def test_ordered_items(self, store):
        store.items[10].order = 1
        store.items[11].order = 0
        assert [i.id for i in store.ordered_items(1)] == [11, 10]

    def test_item_for_task(self, store):
        assert store.item_for_task(112).id == 12
        assert store.item_for_task(999) is None

    def test_remove_listener(self, store):
        listener = MagicMock()
        remove = store.add_listener(listener)
        remove()
        store.remove_item(10)
        listener.assert_not_called()


class TestLocalMutations:
    """Тесты для локальных (оптимистичных) изменений"""

    def test_move_column_local(self, store):
        """Перемещение колонки перенумеровывает все колонки"""
        assert store.move_column_local(1, 2)
        assert [c.id for c in store.ordered_columns()] == [2, 3, 1]
        assert [c.order for c in store.ordered_columns()] == [0, 1, 2]

    def test_set_item_column(self, store):
        """Карточка уходит в конец другой колонки, исходная остается плотной"""
        assert store.set_item_column(10, 2)
        assert store.items[10].column_id == 2
        assert store.items[10].order == 1
        assert store.items[11].order == 0

    def test_set_item_column_same_column(self, store):
        assert not store.set_item_column(10, 1)

    def test_move_item_local_within_column(self, store):
        assert store.move_item_local(10, 1, 1)
        assert [i.id for i in store.ordered_items(1)] == [11, 10]

    def test_move_item_local_to_empty_column(self, store):
        """В пустой колонке карточка получает позицию 0"""
        assert store.move_item_local(12, 3, 5)
        assert store.items[12].column_id == 3
        assert store.items[12].order == 0

    def test_move_item_local_noop(self, store):
        assert not store.move_item_local(10, 1, 0)

    def test_remove_item_unlinks_task(self, store):
        assert store.remove_item(10)
        assert 10 not in store.items
        assert store.tasks[110].is_on_board is False
        assert store.tasks[110].item_id is None
        assert store.items[11].order == 0

    def test_remove_column_drops_items(self, store):
        assert store.remove_column(1)
        assert [c.id for c in store.ordered_columns()] == [2, 3]
        assert [c.order for c in store.ordered_columns()] == [0, 1]
        assert set(store.items) == {12}


class TestApplyRemoteEvent:
    """Тесты для слияния событий канала"""

    def test_item_updated_is_idempotent(self, store):
        """Повторное событие не меняет состояние"""
        data = {"project_id": 1, "item": item(10, 3, 0).model_dump(mode="json")}

        assert store.apply_remote_event("item_updated", data) == MergeResult.APPLIED
        snapshot = {k: v.model_copy() for k, v in store.items.items()}
        assert store.apply_remote_event("item_updated", data) == MergeResult.UNCHANGED
        assert store.items == snapshot
        assert store.items[10].column_id == 3

    def test_item_updated_inserts_missing_item(self, store):
        data = {"project_id": 1, "item": item(20, 3, 0).model_dump(mode="json")}
        assert store.apply_remote_event("item_updated", data) == MergeResult.APPLIED
        assert store.items[20].column_id == 3

    def test_item_updated_for_unknown_column_ignored(self, store):
        data = {"project_id": 1, "item": item(20, 99, 0).model_dump(mode="json")}
        assert store.apply_remote_event("item_updated", data) == MergeResult.IGNORED
        assert 20 not in store.items

    def test_foreign_project_ignored(self, store):
        """Событие другого проекта игнорируется"""
        data = {"project_id": 2, "item": item(10, 3, 0, project_id=2).model_dump(mode="json")}
        assert store.apply_remote_event("item_updated", data) == MergeResult.IGNORED
        assert store.items[10].column_id == 1

    def test_event_without_project_ignored(self, store):
        """Событие без project_id игнорируется"""
        data = {"item": item(10, 3, 0).model_dump(mode="json")}
        assert store.apply_remote_event("item_updated", data) == MergeResult.IGNORED
        assert store.items[10].column_id == 1

    def test_malformed_payload_ignored(self, store):
        assert store.apply_remote_event("item_updated", {"project_id": 1}) == MergeResult.IGNORED
        assert store.apply_remote_event("item_updated", {"project_id": 1, "item": {"id": "x"}}) == MergeResult.IGNORED

    def test_unknown_event_requests_refetch(self, store):
        assert store.apply_remote_event("something_new", {"project_id": 1}) == MergeResult.REFETCH

    def test_board_refetch_needed(self, store):
        assert store.apply_remote_event("board_refetch_needed", {"project_id": 1}) == MergeResult.REFETCH

    def test_column_created(self, store):
        data = {"project_id": 1, "column": column(4, 3).model_dump(mode="json")}
        assert store.apply_remote_event("column_created", data) == MergeResult.APPLIED
        assert store.apply_remote_event("column_created", data) == MergeResult.UNCHANGED
        assert [c.id for c in store.ordered_columns()] == [1, 2, 3, 4]

    def test_column_deleted_removes_its_items(self, store):
        """Удаление колонки удаляет ровно ее карточки"""
        result = store.apply_remote_event("column_deleted", {"project_id": 1, "column_id": 1})

        assert result == MergeResult.APPLIED
        assert set(store.items) == {12}
        assert store.tasks[110].is_on_board is False
        assert store.tasks[112].is_on_board is True
        assert store.apply_remote_event("column_deleted", {"project_id": 1, "column_id": 1}) == MergeResult.UNCHANGED

    def test_columns_reordered(self, store):
        columns = [column(3, 0), column(1, 1), column(2, 2)]
        data = {"project_id": 1, "columns": [c.model_dump(mode="json") for c in columns]}
        assert store.apply_remote_event("columns_reordered", data) == MergeResult.APPLIED
        assert [c.id for c in store.ordered_columns()] == [3, 1, 2]

    def test_item_created_links_task(self, store):
        store.tasks[120] = task(120)
        data = {"project_id": 1, "item": item(20, 3, 0, task_id=120).model_dump(mode="json")}

        assert store.apply_remote_event("item_created", data) == MergeResult.APPLIED
        assert store.tasks[120].is_on_board is True
        assert store.tasks[120].item_id == 20

    def test_item_deleted(self, store):
        assert store.apply_remote_event("item_deleted", {"project_id": 1, "item_id": 12}) == MergeResult.APPLIED
        assert store.apply_remote_event("item_deleted", {"project_id": 1, "item_id": 12}) == MergeResult.UNCHANGED
        assert store.tasks[112].is_on_board is False

    def test_task_events(self, store):
        created = {"project_id": 1, "task": task(130).model_dump(mode="json")}
        assert store.apply_remote_event("task_created", created) == MergeResult.APPLIED

        renamed = task(130).model_copy(update={"title": "Renamed"})
        updated = {"project_id": 1, "task": renamed.model_dump(mode="json")}
        assert store.apply_remote_event("task_updated", updated) == MergeResult.APPLIED
        assert store.tasks[130].title == "Renamed"

        assert store.apply_remote_event("task_deleted", {"project_id": 1, "task_id": 130}) == MergeResult.APPLIED
        assert 130 not in store.tasks

    def test_listener_notified_on_change_only(self, store):
        listener = MagicMock()
        store.add_listener(listener)
        data = {"project_id": 1, "item": item(10, 1, 0).model_dump(mode="json")}

        assert store.apply_remote_event("item_updated", data) == MergeResult.UNCHANGED
        listener.assert_not_called()


class TestIntents:
    """Тесты для незавершенных перемещений"""

    def test_foreign_event_superseded_by_pending_move(self, store):
        """Чужое событие о перемещаемой карточке не применяется"""
        store.begin_intent("mine", EntityKind.ITEM, 10)
        data = {"project_id": 1, "item": item(10, 3, 0).model_dump(mode="json"), "intent_id": "theirs"}

        assert store.apply_remote_event("item_updated", data) == MergeResult.IGNORED
        assert store.items[10].column_id == 1
        assert "mine" in store.pending_intents

    def test_own_echo_resolves_intent(self, store):
        """Эхо собственного перемещения применяется и снимает намерение"""
        store.begin_intent("mine", EntityKind.ITEM, 10)
        data = {"project_id": 1, "item": item(10, 3, 0).model_dump(mode="json"), "intent_id": "mine"}

        assert store.apply_remote_event("item_updated", data) == MergeResult.APPLIED
        assert store.items[10].column_id == 3
        assert store.pending_intents == {}

    def test_other_items_not_superseded(self, store):
        store.begin_intent("mine", EntityKind.ITEM, 10)
        data = {"project_id": 1, "item": item(12, 3, 0).model_dump(mode="json")}
        assert store.apply_remote_event("item_updated", data) == MergeResult.APPLIED

    def test_column_order_superseded(self, store):
        store.begin_intent("mine", EntityKind.COLUMN, 1)
        columns = [column(3, 0), column(1, 1), column(2, 2)]
        data = {"project_id": 1, "columns": [c.model_dump(mode="json") for c in columns]}

        assert store.apply_remote_event("columns_reordered", data) == MergeResult.IGNORED
        assert [c.id for c in store.ordered_columns()] == [1, 2, 3]

    def test_resolve_unknown_intent(self, store):
        assert not store.resolve_intent("missing")
        assert not store.resolve_intent(None)
