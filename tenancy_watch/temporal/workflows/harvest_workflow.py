"""Chunked harvest workflow.

Each chunk of listing pages is one activity call that reads the job's
persisted progress, so the workflow history stays small and a failed or
restarted worker resumes from the last saved page. After a fixed number of
chunks the workflow continues as new with the next start page.

Activities are referenced by name to keep service modules out of the
workflow sandbox.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError, is_cancelled_exception

JOB_ACTIVITY_TIMEOUT = timedelta(minutes=1)


@workflow.defn
class HarvestWorkflow:
    """Drives one harvest job from its start page to the last listing page."""

    def __init__(self):
        self._status = "initialized"
        self._job_id: Optional[str] = None
        self._current_page = 0
        self._total_pages = 0
        self._new_records = 0

    @workflow.query
    def get_status(self) -> dict:
        """Query handler for real-time status updates."""
        return {
            "status": self._status,
            "job_id": self._job_id,
            "current_page": self._current_page,
            "total_pages": self._total_pages,
            "new_records": self._new_records,
        }

    @workflow.run
    async def run(self, payload: Dict[str, Any]) -> dict:
        """Harvest pages chunk by chunk.

        Args:
            payload: ``job_id``, ``source_type``, ``start_page``,
                ``pages_per_chunk``, ``chunk_cooldown_seconds``,
                ``chunks_per_run``, ``auto_enrich``, ``enrichment_limit``

        Returns:
            Final job counts, plus the enrichment result when one ran
        """
        job_id = payload["job_id"]
        source_type = payload["source_type"]
        start_page = payload.get("start_page", 1)
        pages_per_chunk = payload.get("pages_per_chunk", 20)
        cooldown = timedelta(seconds=payload.get("chunk_cooldown_seconds", 2))
        chunks_per_run = payload.get("chunks_per_run", 10)

        self._job_id = job_id
        self._status = "harvesting"
        workflow.logger.info(f"Harvest {job_id} ({source_type}) resuming at page {start_page}")

        chunks_done = 0
        try:
            while True:
                end_page = start_page + pages_per_chunk - 1
                chunk = await workflow.execute_activity(
                    "harvest_chunk",
                    args=[job_id, source_type, start_page, end_page],
                    start_to_close_timeout=timedelta(hours=2),
                    heartbeat_timeout=timedelta(minutes=5),
                    retry_policy=RetryPolicy(maximum_attempts=1),
                )
                self._current_page = chunk["last_page"]
                self._total_pages = chunk["total_pages"]
                self._new_records = chunk["new_records"]

                if chunk["cancelled"]:
                    self._status = "cancelled"
                    workflow.logger.info(f"Harvest {job_id} cancelled at page {self._current_page}")
                    return {**chunk, "status": "cancelled"}

                if not chunk["has_more_pages"]:
                    break

                start_page = end_page + 1
                chunks_done += 1
                await workflow.sleep(cooldown)

                if chunks_done >= chunks_per_run:
                    workflow.logger.info(f"Harvest {job_id} continuing as new from page {start_page}")
                    workflow.continue_as_new({**payload, "start_page": start_page})

        except ActivityError as e:
            if is_cancelled_exception(e):
                self._status = "cancelled"
                raise
            self._status = "failed"
            message = str(e.cause) if e.cause else str(e)
            workflow.logger.error(f"Harvest {job_id} failed: {message}")
            await workflow.execute_activity(
                "fail_harvest_job",
                args=[job_id, message],
                start_to_close_timeout=JOB_ACTIVITY_TIMEOUT,
            )
            raise

        completed = await workflow.execute_activity(
            "complete_harvest_job",
            job_id,
            start_to_close_timeout=JOB_ACTIVITY_TIMEOUT,
        )
        self._status = "completed" if completed else "cancelled"

        result = {**chunk, "status": self._status}
        if completed and payload.get("auto_enrich") and self._new_records > 0:
            self._status = "enriching"
            result["enrichment"] = await workflow.execute_activity(
                "run_enrichment_batch",
                args=[source_type, payload.get("enrichment_limit", 20)],
                start_to_close_timeout=timedelta(hours=1),
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
            self._status = "completed"

        workflow.logger.info(f"Harvest {job_id} finished: {result['status']}")
        return result
