from fastapi import WebSocket
from typing import Dict, List, Set, Optional, Any

from src.schemas.websocket import WebSocketEventType, WebSocketMessage, project_room
from src.logs.server_log import api_logger


REQUIRED_FIELDS = {
    WebSocketEventType.COLUMN_CREATED: ["project_id", "column"],
    WebSocketEventType.COLUMN_DELETED: ["project_id", "column_id"],
    WebSocketEventType.COLUMNS_REORDERED: ["project_id", "columns"],
    WebSocketEventType.ITEM_CREATED: ["project_id", "item"],
    WebSocketEventType.ITEM_UPDATED: ["project_id", "item"],
    WebSocketEventType.ITEM_DELETED: ["project_id", "item_id"],
    WebSocketEventType.TASK_CREATED: ["project_id", "task"],
    WebSocketEventType.TASK_UPDATED: ["project_id", "task"],
    WebSocketEventType.TASK_DELETED: ["project_id", "task_id"],
    WebSocketEventType.BOARD_REFETCH_NEEDED: ["project_id"],
}


class ConnectionManager:
    """WebSocket connection manager for room-scoped real-time updates"""

    def __init__(self):
        # {user_id: set(connections)}
        self.active_connections: Dict[int, Set[WebSocket]] = {}
        # {room: set(connections)}
        self.rooms: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: int):
        """Accept a new WebSocket client"""
        await websocket.accept()
        self.active_connections.setdefault(user_id, set()).add(websocket)

        client_host = websocket.client.host if websocket.client else "unknown"
        api_logger.info(f"WebSocket: User {user_id} connected from {client_host}")

    def disconnect(self, websocket: WebSocket, user_id: int):
        """Forget a client and every room it joined"""
        if user_id in self.active_connections:
            self.active_connections[user_id].discard(websocket)
            if not self.active_connections[user_id]:
                del self.active_connections[user_id]

        for room in list(self.rooms):
            self._leave(websocket, room)

        api_logger.info(f"WebSocket: User {user_id} disconnected")

    def join(self, websocket: WebSocket, room: str):
        """Add a connection to a room"""
        self.rooms.setdefault(room, set()).add(websocket)
        api_logger.info(f"WebSocket: Connection joined room {room}")

    def leave(self, websocket: WebSocket, room: str):
        """Remove a connection from a room"""
        if self._leave(websocket, room):
            api_logger.info(f"WebSocket: Connection left room {room}")

    def _leave(self, websocket: WebSocket, room: str) -> bool:
        members = self.rooms.get(room)
        if not members or websocket not in members:
            return False
        members.discard(websocket)
        if not members:
            del self.rooms[room]
        return True

    async def broadcast_to_room(self, room: str, message: WebSocketMessage):
        """Send a message to every connection of a room"""
        if room not in self.rooms:
            return

        try:
            self._validate_message_data(message)
        except ValueError as e:
            api_logger.error(f"WebSocket: Invalid message data for event {message.event}: {str(e)}")
            return

        json_message = message.model_dump_json()
        members = list(self.rooms[room])
        api_logger.info(f"WebSocket: Broadcasting event '{message.event.value}' to {len(members)} connections of {room}")

        disconnected = []
        for websocket in members:
            try:
                await websocket.send_text(json_message)
            except Exception as e:
                api_logger.error(f"WebSocket: Failed to send message to {room}: {str(e)}")
                disconnected.append(websocket)

        for websocket in disconnected:
            self._leave(websocket, room)

    def _validate_message_data(self, message: WebSocketMessage):
        """Validate message data structure based on event type"""
        for field in REQUIRED_FIELDS.get(message.event, []):
            if field not in message.data:
                raise ValueError(f"Missing required field '{field}' for event '{message.event.value}'")


# Create global connection manager
manager = ConnectionManager()


async def notify(project_id: int, event_type: WebSocketEventType, data: dict, log_details: str = None):
    """Universal notification function for project events"""
    message = WebSocketMessage(event=event_type, data={"project_id": project_id, **data})
    await manager.broadcast_to_room(project_room(project_id), message)

    log_msg = f"WebSocket: Notified {event_type.value} for project {project_id}"
    if log_details:
        log_msg += f", {log_details}"
    api_logger.info(log_msg)


async def notify_column_created(project_id: int, column_data: Dict[str, Any]):
    """Notify project subscribers that a column has been created"""
    await notify(project_id, WebSocketEventType.COLUMN_CREATED, {"column": column_data})


async def notify_column_deleted(project_id: int, column_id: int):
    """Notify project subscribers that a column has been deleted"""
    await notify(project_id, WebSocketEventType.COLUMN_DELETED, {"column_id": column_id}, f"column {column_id}")


async def notify_columns_reordered(project_id: int, columns_data: List[Dict[str, Any]], intent_id: Optional[str] = None):
    """Notify project subscribers of the authoritative column order"""
    data = {"columns": columns_data, "intent_id": intent_id}
    await notify(project_id, WebSocketEventType.COLUMNS_REORDERED, data)


async def notify_item_created(project_id: int, item_data: Dict[str, Any]):
    """Notify project subscribers that a task has been placed on the board"""
    await notify(project_id, WebSocketEventType.ITEM_CREATED, {"item": item_data})


async def notify_item_updated(project_id: int, item_data: Dict[str, Any], intent_id: Optional[str] = None):
    """Notify project subscribers that an item has been moved or edited"""
    data = {"item": item_data, "intent_id": intent_id}
    await notify(project_id, WebSocketEventType.ITEM_UPDATED, data, f"item {item_data.get('id')}")


async def notify_item_deleted(project_id: int, item_id: int):
    """Notify project subscribers that an item has been removed from the board"""
    await notify(project_id, WebSocketEventType.ITEM_DELETED, {"item_id": item_id}, f"item {item_id}")


async def notify_task_created(project_id: int, task_data: Dict[str, Any]):
    """Notify project subscribers that a task has been created"""
    await notify(project_id, WebSocketEventType.TASK_CREATED, {"task": task_data})


async def notify_task_updated(project_id: int, task_data: Dict[str, Any]):
    """Notify project subscribers that a task has been updated"""
    await notify(project_id, WebSocketEventType.TASK_UPDATED, {"task": task_data}, f"task {task_data.get('id')}")


async def notify_task_deleted(project_id: int, task_id: int):
    """Notify project subscribers that a task has been deleted"""
    await notify(project_id, WebSocketEventType.TASK_DELETED, {"task_id": task_id}, f"task {task_id}")


async def notify_board_refetch_needed(project_id: int):
    """Ask every observer of a project to reload the board"""
    await notify(project_id, WebSocketEventType.BOARD_REFETCH_NEEDED, {})
