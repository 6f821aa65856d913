from typing import List
from pydantic import BaseModel

from src.schemas.column import ColumnResponse
from src.schemas.item import ItemResponse


class BoardResponse(BaseModel):
    """Canonical board state of one project"""
    columns: List[ColumnResponse] = []
    items: List[ItemResponse] = []
