from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from src.models.task import TaskType, TaskStatus


class TaskCreate(BaseModel):
    """Schema for task creation"""
    project_id: int
    title: str = Field(..., min_length=1)
    parent_task_id: Optional[int] = None
    type: TaskType = TaskType.TASK
    status: TaskStatus = TaskStatus.PENDING
    description: Optional[str] = None


class TaskUpdate(BaseModel):
    """Schema for partial task update; only fields that were sent are applied"""
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[TaskType] = None
    status: Optional[TaskStatus] = None
    parent_task_id: Optional[int] = None


class TaskResponse(BaseModel):
    """Schema for task response"""
    id: int
    project_id: int
    title: str
    parent_task_id: Optional[int] = None
    type: TaskType = TaskType.TASK
    status: TaskStatus = TaskStatus.PENDING
    description: Optional[str] = None
    is_on_board: bool = False
    item_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
