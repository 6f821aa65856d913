from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from src.db.base import Base


class Project(Base):
    """Identity root scoping columns, items and tasks"""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
