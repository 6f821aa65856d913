from fastapi import APIRouter
from src.api.v1.projects import router as projects_router
from src.api.v1.board import router as board_router
from src.api.v1.tasks import router as tasks_router
from src.api.v1.websockets import router as websocket_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(projects_router)
api_router.include_router(board_router)
api_router.include_router(tasks_router)
api_router.include_router(websocket_router)
