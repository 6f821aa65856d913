from typing import List
from enum import Enum
from pydantic import BaseModel

from src.schemas.project import ProjectResponse
from src.schemas.task import TaskResponse


class ProgressCategory(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class ProgressNode(TaskResponse):
    """Countable task annotated with its own computed progress"""
    progress: float = 0
    category: ProgressCategory = ProgressCategory.NOT_STARTED


class ProgressReport(BaseModel):
    """Weighted completion of a project"""
    aggregate: int = 0
    not_started: List[ProgressNode] = []
    in_progress: List[ProgressNode] = []
    closed: List[ProgressNode] = []
    total_count: int = 0


class ProjectProgress(BaseModel):
    """One row of the multi-project progress overview"""
    project: ProjectResponse
    aggregate: int = 0
