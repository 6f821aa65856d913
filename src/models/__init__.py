from src.models.project import Project
from src.models.column import BoardColumn
from src.models.item import Item, ItemPriority
from src.models.task import Task, TaskType, TaskStatus
