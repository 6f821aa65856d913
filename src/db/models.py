# Import all models here for Alembic to discover them
from src.db.base import Base
from src.models.project import Project
from src.models.column import Column
from src.models.item import Item
from src.models.task import Task, TaskType, TaskStatus
