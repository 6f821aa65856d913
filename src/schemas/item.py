from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from src.models.item import ItemPriority


class ItemCreate(BaseModel):
    """Schema for placing a task on the board"""
    task_id: int
    project_id: int
    column_id: Optional[int] = None  # first column when omitted


class ItemUpdate(BaseModel):
    """Schema for ticket attribute update"""
    priority: Optional[ItemPriority] = None
    assignee_id: Optional[int] = None


class ItemResponse(BaseModel):
    """Schema for item response"""
    id: int
    project_id: int
    column_id: int
    task_id: int
    order: int
    priority: Optional[ItemPriority] = None
    assignee_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ItemMove(BaseModel):
    """Schema for moving an item to a column and position"""
    item_id: int
    new_column_id: int
    new_order: int = Field(..., ge=0)
    intent_id: Optional[str] = None
