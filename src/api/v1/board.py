from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_current_user_id
from src.api.dependencies.projects import get_project_or_404, board_error_to_http
from src.services.column_service import ColumnService
from src.services.item_service import ItemService
from src.services.board_service import BoardService
from src.services.task_service import TaskService
from src.services.exceptions import BoardError
from src.services.websocket_service import (
    notify_column_created,
    notify_column_deleted,
    notify_columns_reordered,
    notify_item_created,
    notify_item_updated,
    notify_item_deleted,
    notify_task_updated,
    notify_board_refetch_needed,
)
from src.schemas.board import BoardResponse
from src.schemas.column import ColumnCreate, ColumnMove, ColumnResponse
from src.schemas.item import ItemCreate, ItemMove, ItemResponse, ItemUpdate
from src.schemas.task import TaskResponse
from src.logs.server_log import api_logger

router = APIRouter(
    prefix="/board",
    tags=["board"],
)


def column_data(column) -> dict:
    return ColumnResponse.model_validate(column).model_dump(mode="json")


def item_data(item) -> dict:
    return ItemResponse.model_validate(item).model_dump(mode="json")


def task_data(task) -> dict:
    return TaskResponse.model_validate(task).model_dump(mode="json")


async def get_column_or_404(db: AsyncSession, column_id: int):
    column = await ColumnService.get_by_id(db=db, column_id=column_id)
    if not column:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Column not found"
        )
    return column


async def get_item_or_404(db: AsyncSession, item_id: int):
    item = await ItemService.get_by_id(db=db, item_id=item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found"
        )
    return item


@router.get("/{project_id}", response_model=BoardResponse)
async def get_board(
    project_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Get the canonical columns and items of a project"""
    await get_project_or_404(project_id, db)
    return await BoardService.get_board(db=db, project_id=project_id)


@router.post("/column", response_model=ColumnResponse, status_code=status.HTTP_201_CREATED)
async def create_column(
    column_create: ColumnCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Append a new column at the end of the board"""
    await get_project_or_404(column_create.project_id, db)

    column = await ColumnService.create(
        db=db,
        name=column_create.name,
        project_id=column_create.project_id
    )

    await notify_column_created(column.project_id, column_data(column))
    return column


@router.patch("/column/move", response_model=List[ColumnResponse])
async def move_column(
    column_move: ColumnMove,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Move a column and renumber the board; returns the new column order"""
    column = await get_column_or_404(db, column_move.column_id)

    columns = await ColumnService.move(db=db, column=column, new_order=column_move.new_order)

    columns_data = [column_data(c) for c in columns]
    await notify_columns_reordered(column.project_id, columns_data, column_move.intent_id)
    return columns


@router.delete("/column/{column_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_column(
    column_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Delete a column with all its items; linked tasks leave the board"""
    column = await get_column_or_404(db, column_id)
    project_id = column.project_id

    item_ids, unlinked_tasks, remaining = await ColumnService.delete(db=db, column=column)
    api_logger.info(f"Column {column_id} deleted with items {item_ids}")

    await notify_column_deleted(project_id, column_id)
    for task in unlinked_tasks:
        await notify_task_updated(project_id, task_data(task))
    if remaining:
        await notify_columns_reordered(project_id, [column_data(c) for c in remaining])


@router.post("/item", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    item_create: ItemCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Place a task on the board"""
    await get_project_or_404(item_create.project_id, db)

    task = await TaskService.get_by_id(db=db, task_id=item_create.task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )

    try:
        item = await ItemService.create(
            db=db,
            task=task,
            project_id=item_create.project_id,
            column_id=item_create.column_id
        )
    except BoardError as e:
        raise board_error_to_http(e)

    await notify_item_created(item.project_id, item_data(item))
    await notify_task_updated(item.project_id, task_data(task))
    return item


@router.patch("/item/move", response_model=List[ItemResponse])
async def move_item(
    item_move: ItemMove,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Move an item to a column and position; returns every repositioned item"""
    item = await get_item_or_404(db, item_move.item_id)
    new_column = await get_column_or_404(db, item_move.new_column_id)

    try:
        changed = await ItemService.move(
            db=db,
            item=item,
            new_column=new_column,
            new_order=item_move.new_order
        )
    except BoardError as e:
        raise board_error_to_http(e)

    for moved in changed:
        await notify_item_updated(moved.project_id, item_data(moved), item_move.intent_id)
    return changed


@router.patch("/item/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: int,
    item_update: ItemUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Edit ticket priority or assignee"""
    item = await get_item_or_404(db, item_id)

    item = await ItemService.update(db=db, item=item, fields=item_update.model_dump(exclude_unset=True))

    await notify_item_updated(item.project_id, item_data(item))
    return item


@router.delete("/item/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Remove an item from the board; its task is kept"""
    item = await get_item_or_404(db, item_id)
    project_id = item.project_id

    task, renumbered = await ItemService.delete(db=db, item=item)

    await notify_item_deleted(project_id, item_id)
    if task:
        await notify_task_updated(project_id, task_data(task))
    for sibling in renumbered:
        await notify_item_updated(project_id, item_data(sibling))


@router.post("/{project_id}/refetch", status_code=status.HTTP_202_ACCEPTED)
async def request_refetch(
    project_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Ask every observer of the project to reload its board"""
    await get_project_or_404(project_id, db)
    await notify_board_refetch_needed(project_id)
    return {"message": "Refetch requested"}
