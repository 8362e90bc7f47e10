"""
Job service functions for API endpoints.

Job postings are created once and afterwards only deactivated.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import JobNotFoundError
from database.engine import AsyncSessionLocal
from database.models.jobs import JobPosting, normalize_skills

logger = logging.getLogger(__name__)


class JobService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory

    async def create_job(
        self,
        title: str,
        description: str = "",
        required_skills: Optional[list[str]] = None,
        organization_id: Optional[str] = None,
    ) -> JobPosting:
        """
        Create a job posting.

        Args:
            title: Job title
            description: Full job description, used for screening and retrieval
            required_skills: Skills every candidate must show; cleaned and de-duplicated
            organization_id: Owning organization, scopes knowledge-base retrieval

        Returns:
            The persisted JobPosting
        """
        job = JobPosting(
            title=title.strip(),
            description=description,
            required_skills=normalize_skills(required_skills or []),
            organization_id=organization_id,
            is_active=True,
        )
        async with self.session_factory() as session:
            session.add(job)
            await session.commit()
            await session.refresh(job)

        logger.info("Created job %s (%d required skills)", job.id, len(job.required_skills))
        return job

    async def get_job(self, job_id: str) -> JobPosting:
        async with self.session_factory() as session:
            job = await session.get(JobPosting, job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    async def list_jobs(self, active_only: bool = True) -> list[JobPosting]:
        query = select(JobPosting).order_by(JobPosting.created_at.desc())
        if active_only:
            query = query.where(JobPosting.is_active.is_(True))
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def deactivate_job(self, job_id: str) -> JobPosting:
        """Soft-deactivate a posting; it stops accepting applications."""
        async with self.session_factory() as session:
            job = await session.get(JobPosting, job_id)
            if job is None:
                raise JobNotFoundError(f"Job {job_id} not found")
            job.is_active = False
            await session.commit()
            await session.refresh(job)

        logger.info("Deactivated job %s", job_id)
        return job
