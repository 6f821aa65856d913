from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.models.project import Project
from src.services.exceptions import BoardError
from src.services.project_service import ProjectService


async def get_project_or_404(project_id: int, db: AsyncSession) -> Project:
    """Load a project or answer 404"""
    project = await ProjectService.get_by_id(db=db, project_id=project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    return project


async def project_dependency(
    project_id: int,
    db: AsyncSession = Depends(get_async_session),
) -> Project:
    """Path dependency variant of get_project_or_404"""
    return await get_project_or_404(project_id, db)


def board_error_to_http(error: BoardError) -> HTTPException:
    """Map a service rule violation to an HTTP error"""
    return HTTPException(status_code=error.status_code, detail=error.message)
