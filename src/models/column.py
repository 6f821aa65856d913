from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from src.db.base import Base


class BoardColumn(Base):
    """Ordered lane of a project board"""

    __tablename__ = "columns"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    order = Column(Integer, nullable=False, default=0)  # 0..n-1 внутри проекта
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
