from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_current_user_id
from src.api.dependencies.projects import get_project_or_404, board_error_to_http
from src.services.task_service import TaskService
from src.services.exceptions import BoardError
from src.services.websocket_service import (
    notify_task_created,
    notify_task_updated,
    notify_task_deleted,
    notify_item_deleted,
    notify_item_updated,
)
from src.schemas.item import ItemResponse
from src.schemas.task import TaskCreate, TaskResponse, TaskUpdate

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)


async def get_task_or_404(db: AsyncSession, task_id: int):
    task = await TaskService.get_by_id(db=db, task_id=task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.get("/project/{project_id}", response_model=List[TaskResponse])
async def get_project_tasks(
    project_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Get the whole task tree of a project as a flat list"""
    await get_project_or_404(project_id, db)
    return await TaskService.get_by_project_id(db=db, project_id=project_id)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_create: TaskCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Create a task under an optional parent"""
    await get_project_or_404(task_create.project_id, db)

    try:
        task = await TaskService.create(db=db, data=task_create)
    except BoardError as e:
        raise board_error_to_http(e)

    await notify_task_created(task.project_id, TaskResponse.model_validate(task).model_dump(mode="json"))
    return task


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_update: TaskUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Partially update a task"""
    task = await get_task_or_404(db, task_id)

    try:
        task = await TaskService.update(db=db, task=task, fields=task_update.model_dump(exclude_unset=True))
    except BoardError as e:
        raise board_error_to_http(e)

    await notify_task_updated(task.project_id, TaskResponse.model_validate(task).model_dump(mode="json"))
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Delete a task with its subtree and any items linked to them"""
    task = await get_task_or_404(db, task_id)
    project_id = task.project_id

    task_ids, items, renumbered = await TaskService.delete(db=db, task=task)

    for item in items:
        await notify_item_deleted(project_id, item.id)
    for sibling in renumbered:
        await notify_item_updated(project_id, ItemResponse.model_validate(sibling).model_dump(mode="json"))
    for deleted_id in task_ids:
        await notify_task_deleted(project_id, deleted_id)
