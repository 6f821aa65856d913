from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ColumnCreate(BaseModel):
    """Schema for column creation, always appended at the end"""
    project_id: int
    name: str = Field(..., min_length=1)


class ColumnResponse(BaseModel):
    """Schema for column response"""
    id: int
    project_id: int
    name: str
    order: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ColumnMove(BaseModel):
    """Schema for moving a column to a new position"""
    column_id: int
    new_order: int = Field(..., ge=0)
    intent_id: Optional[str] = None
