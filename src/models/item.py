from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum
import enum

from src.db.base import Base


class ItemPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Item(Base):
    """A task placed on the board (ticket)"""

    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    column_id = Column(Integer, ForeignKey("columns.id", ondelete="CASCADE"), nullable=False, index=True)
    # Одна задача - не более одной карточки
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, unique=True)
    order = Column(Integer, nullable=False, default=0)  # 0..n-1 внутри колонки
    priority = Column(Enum(ItemPriority), nullable=True)
    assignee_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
