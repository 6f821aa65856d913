from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Enum
import enum

from src.db.base import Base


class TaskType(str, enum.Enum):
    HEADING = "Heading"
    SUB_HEADING = "Sub-Heading"
    TASK = "Task"  # leaf


class TaskStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class Task(Base):
    """Work-breakdown node; may be placed on the board as an Item"""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(Enum(TaskType), nullable=False, default=TaskType.TASK)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(TaskStatus), nullable=False, default=TaskStatus.PENDING)
    is_on_board = Column(Boolean, nullable=False, default=False)
    # Обратная ссылка на карточку поддерживается сервисами (без FK, чтобы избежать цикла)
    item_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
