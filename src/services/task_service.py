from typing import Dict, List, Optional, Set, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from src.models.item import Item
from src.models.task import Task, TaskType, TaskStatus
from src.schemas.task import TaskCreate
from src.services.exceptions import InvalidParentError
from src.services.ordering import renumber
from src.logs.debug_log import debug_logger, log_function


def collect_subtree(tasks: List[Task], root_id: int) -> List[int]:
    """Ids of ``root_id`` and all its descendants, parents before children"""
    children: Dict[int, List[int]] = {}
    for task in tasks:
        if task.parent_task_id is not None:
            children.setdefault(task.parent_task_id, []).append(task.id)

    ordered = [root_id]
    seen: Set[int] = {root_id}
    index = 0
    while index < len(ordered):
        for child_id in children.get(ordered[index], []):
            if child_id not in seen:
                seen.add(child_id)
                ordered.append(child_id)
        index += 1
    return ordered


class TaskService:
    """CRUD operations service for the task hierarchy"""

    @staticmethod
    async def _check_parent(
        db: AsyncSession,
        project_id: int,
        parent_task_id: Optional[int],
        task_id: Optional[int] = None
    ) -> None:
        if parent_task_id is None:
            return
        parent = await TaskService.get_by_id(db, parent_task_id)
        if not parent or parent.project_id != project_id:
            raise InvalidParentError("Parent task does not belong to the specified project")
        if task_id is None:
            return
        tasks = await TaskService.get_by_project_id(db, project_id)
        if parent_task_id in collect_subtree(tasks, task_id):
            raise InvalidParentError("Parent task would create a cycle")

    @staticmethod
    async def create(db: AsyncSession, data: TaskCreate) -> Task:
        """Create a task under an optional parent"""
        await TaskService._check_parent(db, data.project_id, data.parent_task_id)

        task = Task(
            project_id=data.project_id,
            parent_task_id=data.parent_task_id,
            type=data.type,
            title=data.title,
            description=data.description,
            status=data.status,
            is_on_board=False,
        )
        db.add(task)
        await db.commit()
        await db.refresh(task)
        return task

    @staticmethod
    async def get_by_id(db: AsyncSession, task_id: int) -> Optional[Task]:
        """Get task by id"""
        result = await db.execute(select(Task).where(Task.id == task_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_project_id(db: AsyncSession, project_id: int) -> List[Task]:
        """Get all tasks of a project"""
        query = select(Task).where(Task.project_id == project_id).order_by(Task.id)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def update(db: AsyncSession, task: Task, fields: dict) -> Task:
        """Apply a partial update in place"""
        if "parent_task_id" in fields:
            await TaskService._check_parent(db, task.project_id, fields["parent_task_id"], task.id)
            task.parent_task_id = fields["parent_task_id"]
        if fields.get("title") is not None:
            task.title = fields["title"]
        if "description" in fields:
            task.description = fields["description"]
        if fields.get("type") is not None:
            task.type = TaskType(fields["type"])
        if fields.get("status") is not None:
            task.status = TaskStatus(fields["status"])

        await db.commit()
        await db.refresh(task)
        return task

    @staticmethod
    @log_function()
    async def delete(db: AsyncSession, task: Task) -> Tuple[List[int], List[Item], List[Item]]:
        """Delete a task with its whole subtree

        Items linked to deleted tasks are removed from the board. Returns the
        deleted task ids (parents first), the deleted items and the remaining
        items whose order changed.
        """
        tasks = await TaskService.get_by_project_id(db, task.project_id)
        task_ids = collect_subtree(tasks, task.id)

        items_result = await db.execute(select(Item).where(Item.task_id.in_(task_ids)))
        items = list(items_result.scalars().all())

        renumbered: List[Item] = []
        if items:
            item_ids = [item.id for item in items]
            await db.execute(delete(Item).where(Item.id.in_(item_ids)))
            for column_id in {item.column_id for item in items}:
                result = await db.execute(
                    select(Item)
                    .where(Item.column_id == column_id, Item.id.notin_(item_ids))
                    .order_by(Item.order, Item.id)
                )
                renumbered.extend(renumber(list(result.scalars().all())))

        # Дети удаляются раньше родителей
        for task_id in reversed(task_ids):
            await db.execute(delete(Task).where(Task.id == task_id))

        await db.commit()
        debug_logger.info(f"Задача {task.id} удалена вместе с {len(task_ids) - 1} подзадачами")
        return task_ids, items, renumbered
