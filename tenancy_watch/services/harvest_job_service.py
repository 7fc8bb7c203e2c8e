"""Control operations for harvest jobs and enrichment runs."""

import uuid
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.core.config import settings
from tenancy_watch.core.exceptions import AppError, JobNotFoundError, ValidationError
from tenancy_watch.core.temporal_client import get_temporal_client
from tenancy_watch.database.models import HarvestJob
from tenancy_watch.models.enums import SourceType
from tenancy_watch.repositories.case_repository import CaseRecordRepository
from tenancy_watch.repositories.harvest_job_repository import HarvestJobRepository
from tenancy_watch.services.base_service import BaseService
from tenancy_watch.temporal.workflows.enrichment_workflow import EnrichmentBatchWorkflow
from tenancy_watch.temporal.workflows.harvest_workflow import HarvestWorkflow


def job_to_dict(job: HarvestJob) -> Dict[str, Any]:
    return {
        "job_id": str(job.id),
        "source_type": job.source_type,
        "status": job.status,
        "current_page": job.current_page,
        "total_pages": job.total_pages,
        "total_results": job.total_results,
        "total_records": job.total_records,
        "new_records": job.new_records,
        "updated_records": job.updated_records,
        "error_message": job.error_message,
        "workflow_id": job.workflow_id,
        "started_at": job.started_at.isoformat() if job.started_at else None,
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }


class HarvestJobService(BaseService):
    """Starts, inspects and cancels harvest jobs.

    The job row is the source of truth for status; the Temporal workflow
    only drives it. A job is created (and committed) before its workflow
    is started, so the running-job guard covers the whole run.
    """

    def __init__(self, session: AsyncSession, job_repo: Optional[HarvestJobRepository] = None):
        super().__init__()
        self.session = session
        self.job_repo = job_repo or HarvestJobRepository(session)
        self.case_repo = CaseRecordRepository(session)

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "start_harvest":
            return await self._start_harvest(kwargs["source_type"], kwargs.get("start_page", 1))
        elif action == "get_status":
            return await self._get_status(kwargs["source_type"])
        elif action == "cancel_harvest":
            return await self._cancel_harvest(kwargs["source_type"])
        elif action == "trigger_enrichment":
            return await self._trigger_enrichment(
                kwargs["source_type"], kwargs.get("limit"), kwargs.get("drain", False)
            )
        else:
            raise ValidationError(f"Unknown action: {action}")

    def validate(self, *args, **kwargs):
        source_type = kwargs.get("source_type")
        try:
            SourceType(source_type)
        except ValueError:
            raise ValidationError(f"Unknown source type: {source_type!r}")

        start_page = kwargs.get("start_page", 1)
        if not isinstance(start_page, int) or start_page < 1:
            raise ValidationError("start_page must be a positive integer")

        limit = kwargs.get("limit")
        if limit is not None and (not isinstance(limit, int) or limit < 1):
            raise ValidationError("limit must be a positive integer")

    async def start_harvest(self, source_type: str, start_page: int = 1) -> Dict[str, Any]:
        """Create a running job and start its workflow.

        Raises:
            JobConflictError: If a harvest for ``source_type`` is already running
        """
        return await self.execute(action="start_harvest", source_type=source_type, start_page=start_page)

    async def get_status(self, source_type: str) -> Dict[str, Any]:
        return await self.execute(action="get_status", source_type=source_type)

    async def cancel_harvest(self, source_type: str) -> Dict[str, Any]:
        """Cancel the running harvest for ``source_type``.

        Raises:
            JobNotFoundError: If no harvest is running
        """
        return await self.execute(action="cancel_harvest", source_type=source_type)

    async def trigger_enrichment(
        self, source_type: str, limit: Optional[int] = None, drain: bool = False
    ) -> Dict[str, Any]:
        return await self.execute(
            action="trigger_enrichment", source_type=source_type, limit=limit, drain=drain
        )

    async def _start_harvest(self, source_type: str, start_page: int) -> Dict[str, Any]:
        job = await self.job_repo.create_running_job(source_type)
        self.logger.info(f"Created harvest job {job.id} for {source_type}")

        payload = {
            "job_id": str(job.id),
            "source_type": source_type,
            "start_page": start_page,
            "pages_per_chunk": settings.harvest.pages_per_chunk,
            "chunk_cooldown_seconds": settings.harvest.chunk_cooldown_seconds,
            "chunks_per_run": settings.harvest.chunks_per_run,
            "auto_enrich": settings.llm.auto_process,
            "enrichment_limit": settings.llm.auto_process_limit,
        }

        try:
            temporal_client = await get_temporal_client()
            handle = await temporal_client.start_workflow(
                HarvestWorkflow.run,
                payload,
                id=f"harvest-{source_type}-{job.id}",
                task_queue=settings.temporal.task_queue,
            )
        except Exception as e:
            self.logger.error(
                f"Failed to start harvest workflow: {str(e)}",
                exc_info=True,
                extra={"job_id": str(job.id), "source_type": source_type},
            )
            await self.job_repo.mark_failed(job.id, f"Failed to start workflow: {e}")
            await self.session.commit()
            raise AppError(f"Failed to start harvest workflow: {str(e)}", original_error=e)

        await self.job_repo.set_workflow_id(job.id, handle.id)
        await self.session.commit()

        self.logger.info(f"Harvest {job.id} started (Temporal: {handle.id})")
        return {
            "job_id": str(job.id),
            "source_type": source_type,
            "workflow_id": handle.id,
            "status": job.status,
            "message": f"{source_type} harvest started",
        }

    async def _get_status(self, source_type: str) -> Dict[str, Any]:
        job = await self.job_repo.get_latest(source_type)
        pending = await self.case_repo.count_pending_enrichment(source_type)
        return {
            "source_type": source_type,
            "job": job_to_dict(job) if job else None,
            "pending_enrichment": pending,
        }

    async def _cancel_harvest(self, source_type: str) -> Dict[str, Any]:
        job = await self.job_repo.get_running(source_type)
        if job is None:
            raise JobNotFoundError(f"No running {source_type} harvest to cancel")

        job_id: uuid.UUID = job.id
        workflow_id = job.workflow_id
        cancelled = await self.job_repo.mark_cancelled(job_id)
        await self.session.commit()
        if not cancelled:
            raise JobNotFoundError(f"Harvest job {job_id} finished before it could be cancelled")

        if workflow_id:
            try:
                temporal_client = await get_temporal_client()
                await temporal_client.get_workflow_handle(workflow_id).cancel()
            except Exception as e:
                # The row is already cancelled; the worker stops at its next page check
                self.logger.warning(f"Could not cancel workflow {workflow_id}: {e}")

        self.logger.info(f"Harvest job {job_id} cancelled")
        return {"job_id": str(job_id), "source_type": source_type, "status": "cancelled"}

    async def _trigger_enrichment(self, source_type: str, limit: Optional[int], drain: bool) -> Dict[str, Any]:
        if not settings.has_ai_credentials:
            return {"source_type": source_type, "processed": 0, "error": "No AI API key configured"}

        limit = limit or settings.llm.batch_size
        temporal_client = await get_temporal_client()
        workflow_id = f"enrichment-{source_type}-{uuid.uuid4()}"
        handle = await temporal_client.start_workflow(
            EnrichmentBatchWorkflow.run,
            {"source_type": source_type, "limit": limit, "drain": drain},
            id=workflow_id,
            task_queue=settings.temporal.task_queue,
        )
        self.logger.info(f"Enrichment workflow {handle.id} started for {source_type} (limit {limit}, drain {drain})")
        return {
            "source_type": source_type,
            "workflow_id": handle.id,
            "limit": limit,
            "drain": drain,
            "status": "started",
        }
