"""Temporal worker service for harvesting and enrichment.

This worker:
- Connects to the configured Temporal server, retrying until it is reachable
- Registers the harvest, enrichment and party merge workflows and activities
- Polls the configured task queue
"""

import asyncio

from temporalio.client import Client
from temporalio.worker import Worker

from tenancy_watch.core.config import settings
from tenancy_watch.temporal.activities.enrichment_activities import (
    count_pending_enrichment,
    run_enrichment_batch,
)
from tenancy_watch.temporal.activities.entity_activities import merge_duplicate_parties
from tenancy_watch.temporal.activities.harvest_activities import (
    complete_harvest_job,
    fail_harvest_job,
    harvest_chunk,
)
from tenancy_watch.temporal.workflows import (
    EnrichmentBatchWorkflow,
    HarvestWorkflow,
    PartyMergeWorkflow,
)
from tenancy_watch.utils.logging import get_logger

logger = get_logger(__name__)

WORKFLOWS = [HarvestWorkflow, EnrichmentBatchWorkflow, PartyMergeWorkflow]
ACTIVITIES = [
    harvest_chunk,
    complete_harvest_job,
    fail_harvest_job,
    run_enrichment_batch,
    count_pending_enrichment,
    merge_duplicate_parties,
]

MAX_CONCURRENT_ACTIVITIES = 5
MAX_CONCURRENT_WORKFLOW_TASKS = 10
CONNECT_ATTEMPTS = 10
CONNECT_RETRY_SECONDS = 5


async def connect_with_retries(address: str) -> Client:
    for attempt in range(1, CONNECT_ATTEMPTS + 1):
        try:
            return await Client.connect(address, namespace=settings.temporal.namespace)
        except RuntimeError as e:
            if attempt == CONNECT_ATTEMPTS:
                raise
            logger.warning(
                f"Temporal not reachable at {address} (attempt {attempt}/{CONNECT_ATTEMPTS}): {e}"
            )
            await asyncio.sleep(CONNECT_RETRY_SECONDS)


async def main():
    """Start the Temporal worker."""
    address = settings.temporal_address
    task_queue = settings.temporal.task_queue

    logger.info(f"Connecting to Temporal server at {address}")
    client = await connect_with_retries(address)
    logger.info("Successfully connected to Temporal server")

    worker = Worker(
        client,
        task_queue=task_queue,
        workflows=WORKFLOWS,
        activities=ACTIVITIES,
        max_concurrent_activities=MAX_CONCURRENT_ACTIVITIES,
        max_concurrent_workflow_tasks=MAX_CONCURRENT_WORKFLOW_TASKS,
    )

    logger.info("=" * 60)
    logger.info("Temporal Worker Started Successfully")
    logger.info("=" * 60)
    logger.info(f"Connected to: {address}")
    logger.info(f"Task Queue: {task_queue}")
    logger.info(f"Max Concurrent Activities: {MAX_CONCURRENT_ACTIVITIES}")
    logger.info(f"Max Concurrent Workflow Tasks: {MAX_CONCURRENT_WORKFLOW_TASKS}")
    logger.info(f"Registered Workflows: {len(WORKFLOWS)}")
    logger.info(f"Registered Activities: {len(ACTIVITIES)}")
    logger.info("=" * 60)
    logger.info("Worker is now polling for tasks...")
    logger.info("Press Ctrl+C to stop")
    logger.info("=" * 60)

    await worker.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("\nWorker stopped by user")
    except Exception as e:
        logger.error(f"Worker failed: {e}", exc_info=True)
        raise
