"""Enrichment batch workflow with optional queue draining."""

from datetime import timedelta
from typing import Any, Dict

from temporalio import workflow
from temporalio.common import RetryPolicy

BATCHES_PER_RUN = 25


@workflow.defn
class EnrichmentBatchWorkflow:
    """Runs enrichment batches for one source type.

    With ``drain`` set, batches repeat until nothing is pending or a batch
    makes no progress; the history is reset by continuing as new every
    ``BATCHES_PER_RUN`` batches.
    """

    def __init__(self):
        self._batches = 0
        self._processed = 0
        self._failed = 0

    @workflow.query
    def get_status(self) -> dict:
        return {"batches": self._batches, "processed": self._processed, "failed": self._failed}

    @workflow.run
    async def run(self, payload: Dict[str, Any]) -> dict:
        source_type = payload["source_type"]
        limit = payload.get("limit", 20)
        drain = payload.get("drain", False)
        self._processed = payload.get("processed", 0)
        self._failed = payload.get("failed", 0)

        while True:
            batch = await workflow.execute_activity(
                "run_enrichment_batch",
                args=[source_type, limit],
                start_to_close_timeout=timedelta(hours=1),
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
            self._batches += 1
            self._processed += batch.get("processed", 0)
            self._failed += batch.get("failed", 0)

            if not drain or batch.get("error") or batch.get("processed", 0) == 0:
                break

            remaining = await workflow.execute_activity(
                "count_pending_enrichment",
                source_type,
                start_to_close_timeout=timedelta(minutes=1),
            )
            workflow.logger.info(f"Enrichment batch {self._batches} done, {remaining} {source_type} cases pending")
            if remaining == 0:
                break

            if self._batches >= BATCHES_PER_RUN:
                workflow.continue_as_new(
                    {**payload, "processed": self._processed, "failed": self._failed}
                )

        return {
            "source_type": source_type,
            "batches": self._batches,
            "processed": self._processed,
            "failed": self._failed,
            "error": batch.get("error"),
        }
