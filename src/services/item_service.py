from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from src.models.column import BoardColumn
from src.models.item import Item, ItemPriority
from src.models.task import Task
from src.services.column_service import ColumnService
from src.services.exceptions import EmptyBoardError, ProjectMismatchError, TaskAlreadyOnBoardError
from src.services.ordering import insert_at, renumber
from src.logs.debug_log import debug_logger, log_function
from src.logs.server_log import api_logger


class ItemService:
    """CRUD and ordering operations service for Item model"""

    @staticmethod
    @log_function()
    async def create(
        db: AsyncSession,
        task: Task,
        project_id: int,
        column_id: Optional[int] = None
    ) -> Item:
        """Place a task on the board, appended at the end of the target column

        The first column is used when ``column_id`` is not given.
        """
        if task.project_id != project_id:
            raise ProjectMismatchError("Task does not belong to the specified project")
        if task.is_on_board or task.item_id is not None:
            raise TaskAlreadyOnBoardError("Task is already on the board")

        if column_id is None:
            columns = await ColumnService.get_by_project_id(db, project_id)
            if not columns:
                raise EmptyBoardError("Board has no columns")
            column = columns[0]
        else:
            column = await ColumnService.get_by_id(db, column_id)
            if not column or column.project_id != project_id:
                raise ProjectMismatchError("Column does not belong to the specified project")

        query = select(func.count(Item.id)).where(Item.column_id == column.id)
        result = await db.execute(query)
        order = result.scalar() or 0

        item = Item(
            project_id=project_id,
            column_id=column.id,
            task_id=task.id,
            order=order
        )
        db.add(item)
        await db.flush()

        task.is_on_board = True
        task.item_id = item.id

        await db.commit()
        await db.refresh(item)
        debug_logger.info(f"Задача {task.id} размещена на доске: карточка {item.id} в колонке {column.id}")
        return item

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        item_id: int
    ) -> Optional[Item]:
        """Get item by id"""
        result = await db.execute(select(Item).where(Item.id == item_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_column_id(
        db: AsyncSession,
        column_id: int
    ) -> List[Item]:
        """Get items of a column sorted by order"""
        query = select(Item).where(Item.column_id == column_id).order_by(Item.order, Item.id)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_by_project_id(
        db: AsyncSession,
        project_id: int
    ) -> List[Item]:
        """Get all items of a project sorted by column position and order"""
        query = (
            select(Item)
            .join(BoardColumn, BoardColumn.id == Item.column_id)
            .where(Item.project_id == project_id)
            .order_by(BoardColumn.order, Item.order, Item.id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    @log_function()
    async def move(
        db: AsyncSession,
        item: Item,
        new_column: BoardColumn,
        new_order: int
    ) -> List[Item]:
        """Move an item into ``new_column`` at ``new_order``

        Both the source and the destination column are renumbered. Returns the
        moved item followed by every other item whose position changed.
        """
        if new_column.project_id != item.project_id:
            raise ProjectMismatchError("Column does not belong to the item's project")

        old_column_id = item.column_id
        source = [i for i in await ItemService.get_by_column_id(db, old_column_id) if i.id != item.id]

        if new_column.id == old_column_id:
            destination = insert_at(source, item, new_order)
            changed = renumber(destination)
        else:
            destination = insert_at(
                [i for i in await ItemService.get_by_column_id(db, new_column.id) if i.id != item.id],
                item,
                new_order
            )
            item.column_id = new_column.id
            changed = renumber(source) + renumber(destination)

        if not changed and item.column_id == old_column_id:
            debug_logger.debug(f"Карточка {item.id} уже на позиции {new_order} в колонке {old_column_id}")
            return [item]

        try:
            await db.commit()
        except Exception as e:
            await db.rollback()
            api_logger.error(f"Failed to move item {item.id} to column {new_column.id}: {str(e)}")
            raise

        debug_logger.info(
            f"Карточка {item.id} перемещена из колонки {old_column_id} в колонку {new_column.id} на позицию {item.order}"
        )
        return [item] + [i for i in changed if i.id != item.id]

    @staticmethod
    async def update(
        db: AsyncSession,
        item: Item,
        fields: dict
    ) -> Item:
        """Update ticket attributes (priority, assignee)"""
        if "priority" in fields:
            priority = fields["priority"]
            item.priority = ItemPriority(priority) if priority is not None else None
        if "assignee_id" in fields:
            item.assignee_id = fields["assignee_id"]

        await db.commit()
        await db.refresh(item)
        return item

    @staticmethod
    @log_function()
    async def delete(
        db: AsyncSession,
        item: Item
    ) -> Tuple[Optional[Task], List[Item]]:
        """Remove an item from the board without deleting its task

        Returns the unlinked task and the renumbered remaining items of the column.
        """
        result = await db.execute(select(Task).where(Task.id == item.task_id))
        task = result.scalars().first()
        if task:
            task.is_on_board = False
            task.item_id = None

        column_id = item.column_id
        await db.delete(item)
        await db.flush()

        remaining = await ItemService.get_by_column_id(db, column_id)
        changed = renumber(remaining)

        await db.commit()
        debug_logger.info(f"Карточка {item.id} удалена с доски")
        return task, changed
