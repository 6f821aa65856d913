import json
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, HTTPException, status
from pydantic import ValidationError

from src.api.dependencies.auth import get_user_id_from_token
from src.services.websocket_service import manager
from src.logs.server_log import api_logger
from src.schemas.websocket import (
    WebSocketCommand,
    WebSocketCommandType,
    WebSocketErrorMessage,
    WebSocketEventType,
    WebSocketMessage,
)

router = APIRouter(tags=["websockets"])


async def send_event(websocket: WebSocket, event: WebSocketEventType, data: dict):
    message = WebSocketMessage(event=event, data=data)
    await websocket.send_text(message.model_dump_json())


async def send_error(websocket: WebSocket, message: str, code: int = 400):
    error = WebSocketErrorMessage(message=message, code=code)
    await send_event(websocket, WebSocketEventType.ERROR, error.model_dump())


async def handle_command(websocket: WebSocket, user_id: int, command: WebSocketCommand):
    """Execute one client command"""
    api_logger.info(f"WebSocket: Received command '{command.command.value}' from user {user_id}")

    if command.command == WebSocketCommandType.PING:
        await send_event(websocket, WebSocketEventType.PONG, {})
        return

    room = command.data.get("room")
    if not room or not isinstance(room, str) or not room.startswith("project_"):
        await send_error(websocket, "Missing or invalid room")
        api_logger.warning(f"WebSocket: User {user_id} sent {command.command.value} without a valid room")
        return

    if command.command == WebSocketCommandType.JOIN_ENTITY:
        manager.join(websocket, room)
        await send_event(websocket, WebSocketEventType.PING, {"message": f"Joined {room}", "room": room})
    else:
        manager.leave(websocket, room)
        await send_event(websocket, WebSocketEventType.PING, {"message": f"Left {room}", "room": room})


@router.websocket("/ws/updates")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = None,
):
    """
    WebSocket endpoint for real-time updates.

    Authentication is done via token query parameter:
    ws://example.com/api/v1/ws/updates?token=your_access_token

    Commands from client:
    - {"command": "join_entity", "data": {"room": "project_123"}}
    - {"command": "leave_entity", "data": {"room": "project_123"}}
    - {"command": "ping", "data": {}}
    """
    client_host = websocket.client.host if websocket.client else "unknown"
    api_logger.info(f"WebSocket: New connection attempt from {client_host}")

    try:
        user_id = get_user_id_from_token(token or websocket.query_params.get("token"))
    except HTTPException as e:
        api_logger.warning(f"WebSocket: Authentication failed from {client_host}: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(websocket, user_id)
    await send_event(websocket, WebSocketEventType.PING, {"message": "Connected to the updates stream"})

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                command = WebSocketCommand.model_validate(json.loads(raw))
            except (ValueError, ValidationError):
                await send_error(websocket, "Invalid message format")
                api_logger.warning(f"WebSocket: User {user_id} sent an invalid message")
                continue

            await handle_command(websocket, user_id, command)

    except WebSocketDisconnect:
        api_logger.info(f"WebSocket: User {user_id} disconnected (normal)")
    except Exception as e:
        api_logger.error(f"WebSocket: Error for user {user_id}: {str(e)}")
    finally:
        manager.disconnect(websocket, user_id)
