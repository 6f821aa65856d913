from pydantic import BaseModel
from typing import Dict, Any, Optional
from enum import Enum


class WebSocketEventType(str, Enum):
    """Types of WebSocket events"""
    COLUMN_CREATED = "column_created"
    COLUMN_DELETED = "column_deleted"
    COLUMNS_REORDERED = "columns_reordered"
    ITEM_CREATED = "item_created"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    BOARD_REFETCH_NEEDED = "board_refetch_needed"
    ERROR = "error"
    PING = "ping"
    PONG = "pong"


class WebSocketCommandType(str, Enum):
    """Commands accepted from clients"""
    JOIN_ENTITY = "join_entity"
    LEAVE_ENTITY = "leave_entity"
    PING = "ping"


class WebSocketMessage(BaseModel):
    """Base message for WebSocket communication"""
    event: WebSocketEventType
    data: Dict[str, Any]


class WebSocketCommand(BaseModel):
    """Commands from client to server"""
    command: WebSocketCommandType
    data: Dict[str, Any] = {}


class WebSocketErrorMessage(BaseModel):
    """Error message for WebSocket communication"""
    message: str
    code: Optional[int] = None


def project_room(project_id: int) -> str:
    """Room name of the real-time channel of one project"""
    return f"project_{project_id}"
