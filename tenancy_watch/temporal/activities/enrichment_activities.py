from typing import Dict

from temporalio import activity


@activity.defn
async def run_enrichment_batch(source_type: str, limit: int) -> Dict:
    """Enrich up to ``limit`` pending cases and return the batch counts."""
    activity.logger.info(f"Running enrichment batch for {source_type} (limit {limit})")

    # Import inside function to avoid sandbox issues
    from tenancy_watch.services.enrichment.batch import EnrichmentBatchService

    result = await EnrichmentBatchService().process_pending(source_type, limit)
    return result.to_dict()


@activity.defn
async def count_pending_enrichment(source_type: str) -> int:
    from tenancy_watch.core.database import async_session_maker
    from tenancy_watch.repositories.case_repository import CaseRecordRepository

    async with async_session_maker() as session:
        return await CaseRecordRepository(session).count_pending_enrichment(source_type)
