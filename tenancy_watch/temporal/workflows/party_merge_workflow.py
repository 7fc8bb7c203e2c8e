from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy


@workflow.defn
class PartyMergeWorkflow:
    """Offline duplicate-party merge followed by a full aggregate refresh."""

    @workflow.run
    async def run(self, dry_run: bool = False) -> dict:
        workflow.logger.info(f"Starting party merge (dry_run={dry_run})")
        return await workflow.execute_activity(
            "merge_duplicate_parties",
            dry_run,
            start_to_close_timeout=timedelta(hours=1),
            retry_policy=RetryPolicy(maximum_attempts=2),
        )
