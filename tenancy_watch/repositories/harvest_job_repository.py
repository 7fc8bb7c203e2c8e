import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.core.exceptions import JobConflictError
from tenancy_watch.database.models import HarvestJob
from tenancy_watch.models.enums import JobStatus
from tenancy_watch.repositories.base_repository import BaseRepository


class HarvestJobRepository(BaseRepository[HarvestJob]):
    """Repository for harvest job rows.

    Every state-changing method is conditional on the job still being
    ``running``, so a job that was cancelled (or has finished) can't be
    written to by a straggling worker.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, HarvestJob)

    async def get_running(self, source_type: str) -> Optional[HarvestJob]:
        query = select(HarvestJob).where(
            HarvestJob.source_type == source_type,
            HarvestJob.status == JobStatus.RUNNING.value,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_latest(self, source_type: str) -> Optional[HarvestJob]:
        query = (
            select(HarvestJob)
            .where(HarvestJob.source_type == source_type)
            .order_by(HarvestJob.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_status(self, job_id: uuid.UUID) -> Optional[str]:
        result = await self.session.execute(select(HarvestJob.status).where(HarvestJob.id == job_id))
        return result.scalar_one_or_none()

    async def create_running_job(self, source_type: str) -> HarvestJob:
        """Insert a running job for ``source_type`` and commit it.

        Raises:
            JobConflictError: If a job for the source type is already running.
                The partial unique index on running jobs turns a racing
                insert into the same error.
        """
        existing = await self.get_running(source_type)
        if existing is not None:
            raise JobConflictError(
                f"A {source_type} harvest is already running (job {existing.id})"
            )
        try:
            job = await self.create(source_type=source_type, status=JobStatus.RUNNING.value)
            await self.session.commit()
            return job
        except IntegrityError as e:
            await self.session.rollback()
            raise JobConflictError(
                f"A {source_type} harvest is already running", original_error=e
            )

    async def _update_if_running(self, job_id: uuid.UUID, **values) -> bool:
        try:
            stmt = (
                update(HarvestJob)
                .where(
                    HarvestJob.id == job_id,
                    HarvestJob.status == JobStatus.RUNNING.value,
                )
                .values(**values)
            )
            result = await self.session.execute(stmt)
            return result.rowcount > 0
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating harvest job {job_id}: {str(e)}", exc_info=True)
            raise

    async def update_progress(self, job_id: uuid.UUID, **progress) -> bool:
        """Persist page/count progress; False if the job is no longer running."""
        return await self._update_if_running(job_id, **progress)

    async def set_workflow_id(self, job_id: uuid.UUID, workflow_id: str) -> bool:
        return await self._update_if_running(job_id, workflow_id=workflow_id)

    async def mark_completed(self, job_id: uuid.UUID) -> bool:
        return await self._update_if_running(
            job_id,
            status=JobStatus.COMPLETED.value,
            completed_at=datetime.now(timezone.utc),
        )

    async def mark_failed(self, job_id: uuid.UUID, error_message: str) -> bool:
        return await self._update_if_running(
            job_id,
            status=JobStatus.FAILED.value,
            error_message=error_message,
            completed_at=datetime.now(timezone.utc),
        )

    async def mark_cancelled(self, job_id: uuid.UUID) -> bool:
        return await self._update_if_running(
            job_id,
            status=JobStatus.CANCELLED.value,
            completed_at=datetime.now(timezone.utc),
        )
