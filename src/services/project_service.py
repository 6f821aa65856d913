from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from src.models.project import Project


class ProjectService:
    """CRUD operations service for Project model"""

    @staticmethod
    async def create(db: AsyncSession, name: str) -> Project:
        """Create a new project"""
        project = Project(name=name)
        db.add(project)
        await db.commit()
        await db.refresh(project)
        return project

    @staticmethod
    async def get_by_id(db: AsyncSession, project_id: int) -> Optional[Project]:
        """Get project by id"""
        result = await db.execute(select(Project).where(Project.id == project_id))
        return result.scalars().first()

    @staticmethod
    async def get_all(db: AsyncSession) -> List[Project]:
        """Get all projects ordered by id"""
        result = await db.execute(select(Project).order_by(Project.id))
        return list(result.scalars().all())
