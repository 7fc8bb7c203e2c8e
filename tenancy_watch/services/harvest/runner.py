"""Runs one page-range chunk of a harvest job."""

import uuid
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.core.exceptions import JobNotFoundError
from tenancy_watch.models.enums import JobStatus
from tenancy_watch.repositories.harvest_job_repository import HarvestJobRepository
from tenancy_watch.services.harvest.cancellation import CancellationToken
from tenancy_watch.services.harvest.harvester import Harvester
from tenancy_watch.services.harvest.ingestion import CaseIngestionService
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class ChunkResult:
    job_id: str
    start_page: int
    end_page: int
    last_page: int
    total_pages: int
    total_results: int
    total_records: int
    new_records: int
    updated_records: int
    cancelled: bool = False

    @property
    def has_more_pages(self) -> bool:
        return not self.cancelled and self.end_page < self.total_pages

    def to_dict(self) -> dict:
        data = asdict(self)
        data["has_more_pages"] = self.has_more_pages
        return data


class HarvestRunner:
    """Drives the harvester over one page window for an existing job.

    Running totals are read from the job row first, so a chunk picks up
    from whatever the previous chunk persisted. Progress is written after
    every page; once the job stops being ``running`` no more progress is
    written and the chunk stops before its next page.
    """

    def __init__(
        self,
        session: AsyncSession,
        harvester: Harvester,
        job_repo: Optional[HarvestJobRepository] = None,
        ingestion: Optional[CaseIngestionService] = None,
    ):
        self.session = session
        self.harvester = harvester
        self.job_repo = job_repo or HarvestJobRepository(session)
        self.ingestion = ingestion or CaseIngestionService(session)

    async def run_chunk(
        self,
        job_id: uuid.UUID,
        start_page: int,
        end_page: int,
        cancellation: Optional[CancellationToken] = None,
        on_page: Optional[Callable[[int], None]] = None,
    ) -> ChunkResult:
        job = await self.job_repo.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(f"Harvest job {job_id} not found")

        result = ChunkResult(
            job_id=str(job_id),
            start_page=start_page,
            end_page=end_page,
            last_page=job.current_page or 0,
            total_pages=job.total_pages or 0,
            total_results=job.total_results or 0,
            total_records=job.total_records or 0,
            new_records=job.new_records or 0,
            updated_records=job.updated_records or 0,
        )
        if job.status != JobStatus.RUNNING.value:
            LOGGER.info(f"Job {job_id} is {job.status}, skipping chunk {start_page}-{end_page}")
            result.cancelled = True
            return result

        token = cancellation or CancellationToken()

        async def job_stopped() -> bool:
            return await self.job_repo.get_status(job_id) != JobStatus.RUNNING.value

        token.add_check(job_stopped)

        async for batch in self.harvester.iter_pages(
            start_page, end_page, cancellation=token, heartbeat=on_page
        ):
            stats = await self.ingestion.ingest_batch(batch)

            result.last_page = batch.page
            result.total_pages = batch.total_pages
            result.total_results = batch.total_results
            result.total_records += stats.total
            result.new_records += stats.new
            result.updated_records += stats.updated

            still_running = await self.job_repo.update_progress(
                job_id,
                current_page=result.last_page,
                total_pages=result.total_pages,
                total_results=result.total_results,
                total_records=result.total_records,
                new_records=result.new_records,
                updated_records=result.updated_records,
            )
            await self.session.commit()

            if on_page is not None:
                on_page(batch.page)

            if not still_running:
                token.cancel("job no longer running")
                break

        # Totals are known even when every page in the window was skipped
        result.total_pages = self.harvester.total_pages or result.total_pages
        result.cancelled = await token.is_cancelled()

        LOGGER.info(
            f"Chunk {start_page}-{end_page} of job {job_id} done: last page {result.last_page}/"
            f"{result.total_pages}, {result.new_records} new, {result.updated_records} updated"
            + (" (cancelled)" if result.cancelled else "")
        )
        return result
