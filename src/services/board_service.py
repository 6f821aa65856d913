from sqlalchemy.ext.asyncio import AsyncSession

from src.schemas.board import BoardResponse
from src.schemas.column import ColumnResponse
from src.schemas.item import ItemResponse
from src.schemas.progress import ProgressReport
from src.schemas.task import TaskResponse
from src.services.column_service import ColumnService
from src.services.item_service import ItemService
from src.services.progress_service import compute_progress
from src.services.task_service import TaskService


class BoardService:
    """Read model of a whole project board"""

    @staticmethod
    async def get_board(db: AsyncSession, project_id: int) -> BoardResponse:
        """Canonical columns (by order) and items (by column position, order)"""
        columns = await ColumnService.get_by_project_id(db, project_id)
        items = await ItemService.get_by_project_id(db, project_id)
        return BoardResponse(
            columns=[ColumnResponse.model_validate(column) for column in columns],
            items=[ItemResponse.model_validate(item) for item in items],
        )

    @staticmethod
    async def get_progress(db: AsyncSession, project_id: int) -> ProgressReport:
        """Weighted completion computed from the canonical board and task tree"""
        board = await BoardService.get_board(db, project_id)
        tasks = await TaskService.get_by_project_id(db, project_id)
        return compute_progress(
            board.columns,
            board.items,
            [TaskResponse.model_validate(task) for task in tasks],
        )
