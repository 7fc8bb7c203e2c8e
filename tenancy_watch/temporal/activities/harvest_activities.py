"""Harvest activities that wrap the chunk runner and job bookkeeping.

These activities provide Temporal-compatible wrappers around:
- tenancy_watch/services/harvest/runner.py - One page window of a harvest
- tenancy_watch/repositories/harvest_job_repository.py - Terminal job states
"""

from typing import Dict
from uuid import UUID

from temporalio import activity


@activity.defn
async def harvest_chunk(job_id: str, source_type: str, start_page: int, end_page: int) -> Dict:
    """
    Harvest pages ``start_page``..``end_page`` for a running job.

    Heartbeats after every page. The chunk stops before its next page when
    Temporal cancels the activity or the job row leaves ``running``.

    Returns:
        Serialized ChunkResult
    """
    activity.logger.info(f"Harvesting {source_type} pages {start_page}-{end_page} for job {job_id}")

    # Import inside function to avoid sandbox issues
    from tenancy_watch.core.database import async_session_maker
    from tenancy_watch.services.harvest.cancellation import CancellationToken
    from tenancy_watch.services.harvest.client import ListingClient
    from tenancy_watch.services.harvest.harvester import Harvester
    from tenancy_watch.services.harvest.runner import HarvestRunner
    from tenancy_watch.services.harvest.sources import get_listing_source

    async def activity_cancelled() -> bool:
        return activity.is_cancelled()

    token = CancellationToken([activity_cancelled])
    source = get_listing_source(source_type)

    try:
        async with ListingClient() as client, async_session_maker() as session:
            runner = HarvestRunner(session, Harvester(client, source))
            result = await runner.run_chunk(
                UUID(job_id),
                start_page,
                end_page,
                cancellation=token,
                on_page=lambda page: activity.heartbeat(page),
            )
    except Exception as e:
        activity.logger.error(f"Harvest chunk {start_page}-{end_page} failed for job {job_id}: {e}")
        raise

    return result.to_dict()


@activity.defn
async def complete_harvest_job(job_id: str) -> bool:
    """Mark the job completed; False if it was no longer running."""
    from tenancy_watch.core.database import async_session_maker
    from tenancy_watch.repositories.harvest_job_repository import HarvestJobRepository

    async with async_session_maker() as session:
        completed = await HarvestJobRepository(session).mark_completed(UUID(job_id))
        await session.commit()

    activity.logger.info(f"Harvest job {job_id} {'completed' if completed else 'was not running'}")
    return completed


@activity.defn
async def fail_harvest_job(job_id: str, error_message: str) -> bool:
    """Mark the job failed, keeping its partial counts."""
    from tenancy_watch.core.database import async_session_maker
    from tenancy_watch.repositories.harvest_job_repository import HarvestJobRepository

    async with async_session_maker() as session:
        failed = await HarvestJobRepository(session).mark_failed(UUID(job_id), error_message[:2000])
        await session.commit()

    activity.logger.warning(f"Harvest job {job_id} marked failed: {error_message}")
    return failed
