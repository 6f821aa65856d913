from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func

from src.models.column import BoardColumn
from src.models.item import Item
from src.models.task import Task
from src.services.ordering import array_move, renumber
from src.logs.debug_log import debug_logger, log_function


class ColumnService:
    """CRUD and ordering operations service for BoardColumn model"""

    @staticmethod
    async def create(
        db: AsyncSession,
        name: str,
        project_id: int
    ) -> BoardColumn:
        """Create a new column appended at the end of the board"""
        query = select(func.max(BoardColumn.order)).where(BoardColumn.project_id == project_id)
        result = await db.execute(query)
        max_order = result.scalar()
        order = 0 if max_order is None else max_order + 1

        column = BoardColumn(
            name=name,
            project_id=project_id,
            order=order
        )

        db.add(column)
        await db.commit()
        await db.refresh(column)
        return column

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        column_id: int
    ) -> Optional[BoardColumn]:
        """Get column by id"""
        result = await db.execute(select(BoardColumn).where(BoardColumn.id == column_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_project_id(
        db: AsyncSession,
        project_id: int
    ) -> List[BoardColumn]:
        """Get all columns of a project ordered left to right"""
        query = (
            select(BoardColumn)
            .where(BoardColumn.project_id == project_id)
            .order_by(BoardColumn.order, BoardColumn.id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    @log_function()
    async def move(
        db: AsyncSession,
        column: BoardColumn,
        new_order: int
    ) -> List[BoardColumn]:
        """Move a column to ``new_order`` and renumber every column of the project

        Returns the full ordered column list after the move.
        """
        columns = await ColumnService.get_by_project_id(db, column.project_id)
        old_index = next(i for i, c in enumerate(columns) if c.id == column.id)

        reordered = array_move(columns, old_index, new_order)
        changed = renumber(reordered)
        if not changed:
            debug_logger.debug(f"Колонка {column.id} уже на позиции {new_order}")
            return reordered

        await db.commit()
        debug_logger.info(f"Колонка {column.id} перемещена на позицию {column.order}")
        return reordered

    @staticmethod
    @log_function()
    async def delete(
        db: AsyncSession,
        column: BoardColumn
    ) -> Tuple[List[int], List[Task], List[BoardColumn]]:
        """Delete a column with all its items

        Linked tasks lose their board placement. Returns the deleted item ids,
        the unlinked tasks and the renumbered remaining columns.
        """
        items_result = await db.execute(select(Item).where(Item.column_id == column.id))
        items = list(items_result.scalars().all())
        item_ids = [item.id for item in items]

        unlinked_tasks: List[Task] = []
        if items:
            tasks_result = await db.execute(
                select(Task).where(Task.id.in_([item.task_id for item in items]))
            )
            unlinked_tasks = list(tasks_result.scalars().all())
            for task in unlinked_tasks:
                task.is_on_board = False
                task.item_id = None
            await db.execute(delete(Item).where(Item.id.in_(item_ids)))

        project_id = column.project_id
        await db.delete(column)
        await db.flush()

        # Сжимаем порядок оставшихся колонок
        remaining = await ColumnService.get_by_project_id(db, project_id)
        renumber(remaining)

        await db.commit()
        debug_logger.info(f"Колонка {column.id} удалена вместе с {len(item_ids)} карточками")
        return item_ids, unlinked_tasks, remaining
