"""Weighted project completion derived from board position.

Each column gets a weight from its position: the first column is 0, the last
is 100 and interior columns are spaced evenly in between. A countable task
placed on the board takes the weight of its item's column; any other
countable task falls back to its own status.
"""
import math
from typing import Dict, Iterable, Optional, Sequence, Set

from src.models.task import TaskType, TaskStatus
from src.schemas.column import ColumnResponse
from src.schemas.item import ItemResponse
from src.schemas.progress import ProgressCategory, ProgressNode, ProgressReport
from src.schemas.task import TaskResponse

STATUS_PROGRESS = {
    TaskStatus.DONE: (100, ProgressCategory.CLOSED),
    TaskStatus.IN_PROGRESS: (50, ProgressCategory.IN_PROGRESS),
    TaskStatus.PENDING: (0, ProgressCategory.NOT_STARTED),
}


def round_half_up(value: float) -> int:
    """Round halves up (2.5 -> 3)"""
    return int(math.floor(value + 0.5))


def column_weight(index: int, count: int) -> float:
    """Weight of the column at 0-based ``index`` among ``count`` columns"""
    if count <= 1:
        return 0
    return index * 100 / (count - 1)


def classify_column(index: int, count: int) -> ProgressCategory:
    """Category of an item sitting in the column at ``index``"""
    if index == 0:
        return ProgressCategory.NOT_STARTED
    if index == count - 1:
        return ProgressCategory.CLOSED
    return ProgressCategory.IN_PROGRESS


def is_countable(task: TaskResponse, parent_ids: Set[int]) -> bool:
    """Whether a task contributes to the aggregate

    Tasks on the board and leaf tasks always count; headings count only when
    they have no children.
    """
    if task.is_on_board:
        return True
    if task.type == TaskType.TASK:
        return True
    return task.id not in parent_ids


def _status_progress(status: TaskStatus):
    return STATUS_PROGRESS.get(status, STATUS_PROGRESS[TaskStatus.PENDING])


def compute_progress(
    columns: Sequence[ColumnResponse],
    items: Iterable[ItemResponse],
    tasks: Iterable[TaskResponse],
) -> ProgressReport:
    """Aggregate percentage plus not started / in progress / closed buckets"""
    ordered_columns = sorted(columns, key=lambda c: (c.order, c.id))
    count = len(ordered_columns)
    positions: Dict[int, int] = {column.id: index for index, column in enumerate(ordered_columns)}

    items_by_task: Dict[int, ItemResponse] = {item.task_id: item for item in items}
    tasks = list(tasks)
    parent_ids = {task.parent_task_id for task in tasks if task.parent_task_id is not None}

    report = ProgressReport()
    buckets = {
        ProgressCategory.NOT_STARTED: report.not_started,
        ProgressCategory.IN_PROGRESS: report.in_progress,
        ProgressCategory.CLOSED: report.closed,
    }
    total = 0.0

    for task in tasks:
        if not is_countable(task, parent_ids):
            continue

        item: Optional[ItemResponse] = items_by_task.get(task.id) if task.is_on_board else None
        position = positions.get(item.column_id) if item else None

        if position is not None:
            progress = column_weight(position, count)
            category = classify_column(position, count)
        else:
            progress, category = _status_progress(task.status)

        total += progress
        node = ProgressNode(**task.model_dump(), progress=progress, category=category)
        buckets[category].append(node)

    report.total_count = len(report.not_started) + len(report.in_progress) + len(report.closed)
    # Пустое дерево задач: явная защита от деления на ноль
    report.aggregate = round_half_up(total / report.total_count) if report.total_count else 0
    return report

