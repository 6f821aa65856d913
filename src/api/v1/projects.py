from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.database import get_async_session
from src.api.dependencies.auth import get_current_user_id
from src.api.dependencies.projects import project_dependency
from src.models.project import Project
from src.services.board_service import BoardService
from src.services.project_service import ProjectService
from src.schemas.progress import ProgressReport, ProjectProgress
from src.schemas.project import ProjectCreate, ProjectResponse

router = APIRouter(
    prefix="/projects",
    tags=["projects"],
)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_create: ProjectCreate,
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Create a new project"""
    return await ProjectService.create(db=db, name=project_create.name)


@router.get("", response_model=List[ProjectResponse])
async def get_projects(
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """List all projects"""
    return await ProjectService.get_all(db=db)


# Объявлен раньше /{project_id}, иначе "progress" попадет в project_id
@router.get("/progress", response_model=List[ProjectProgress])
async def get_projects_progress(
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Aggregate completion of every project"""
    overview = []
    for project in await ProjectService.get_all(db=db):
        report = await BoardService.get_progress(db=db, project_id=project.id)
        overview.append(ProjectProgress(
            project=ProjectResponse.model_validate(project),
            aggregate=report.aggregate,
        ))
    return overview


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project: Project = Depends(project_dependency),
    current_user_id: int = Depends(get_current_user_id),
):
    """Get a project by ID"""
    return project


@router.get("/{project_id}/progress", response_model=ProgressReport)
async def get_project_progress(
    project: Project = Depends(project_dependency),
    db: AsyncSession = Depends(get_async_session),
    current_user_id: int = Depends(get_current_user_id),
):
    """Weighted completion of the project derived from board position"""
    return await BoardService.get_progress(db=db, project_id=project.id)
