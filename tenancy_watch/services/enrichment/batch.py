"""Bounded, concurrent enrichment of pending case records."""

import asyncio
import uuid
from dataclasses import asdict, dataclass
from typing import Callable, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenancy_watch.core.config import settings
from tenancy_watch.core.database import async_session_maker
from tenancy_watch.core.unified_llm import create_extraction_clients
from tenancy_watch.database.models import CaseRecord
from tenancy_watch.models.enums import SourceType
from tenancy_watch.repositories.case_repository import CaseRecordRepository
from tenancy_watch.services.entity.resolver import EntityResolver
from tenancy_watch.services.enrichment.verifier import (
    NO_DOCUMENT_MESSAGE,
    EnrichmentVerifier,
    failure_fields,
)
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

NO_CREDENTIALS_MESSAGE = "No AI API key configured"


@dataclass
class BatchResult:
    processed: int = 0
    failed: int = 0
    skipped_no_document: int = 0
    total: int = 0
    disagreements: int = 0
    parties_recomputed: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def default_verifier_factory() -> EnrichmentVerifier:
    clients = create_extraction_clients()
    return EnrichmentVerifier(primary=clients.primary, reviewer=clients.reviewer)


class EnrichmentBatchService:
    """Selects pending cases and enriches them with a bounded worker pool.

    Each case is verified and persisted independently: one failure is
    recorded on its own row and never cancels its siblings. Every
    concurrent task writes through its own session.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session_maker,
        verifier_factory: Callable[[], EnrichmentVerifier] = default_verifier_factory,
        concurrency: Optional[int] = None,
        has_credentials: Optional[bool] = None,
    ):
        self.session_factory = session_factory
        self.verifier_factory = verifier_factory
        self.concurrency = concurrency or settings.llm.concurrency
        self.has_credentials = settings.has_ai_credentials if has_credentials is None else has_credentials

    async def process_pending(self, source_type: str = SourceType.DISPUTES.value, limit: Optional[int] = None) -> BatchResult:
        """Enrich up to ``limit`` unprocessed cases of ``source_type``."""
        if not self.has_credentials:
            LOGGER.warning("Enrichment batch skipped: no AI credentials configured")
            return BatchResult(error=NO_CREDENTIALS_MESSAGE)

        limit = limit or settings.llm.batch_size
        result = BatchResult()

        async with self.session_factory() as session:
            repo = CaseRecordRepository(session)
            result.skipped_no_document = await repo.mark_without_documents(source_type, NO_DOCUMENT_MESSAGE)
            await session.commit()
            cases = list(await repo.list_pending_enrichment(source_type, limit))

        result.total = len(cases)
        if not cases:
            LOGGER.info(f"No pending {source_type} cases to enrich")
            return result

        verifier = self.verifier_factory()
        succeeded = await self._run(cases, verifier, result)
        result.processed = len(succeeded)
        result.failed = result.total - result.processed

        if succeeded:
            result.parties_recomputed = await self.recompute_party_awards(succeeded)

        LOGGER.info(f"Enrichment batch for {source_type} finished: {result.to_dict()}")
        return result

    async def _run(self, cases: List[CaseRecord], verifier: EnrichmentVerifier, result: BatchResult) -> List[uuid.UUID]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def process(case: CaseRecord) -> uuid.UUID:
            async with semaphore:
                try:
                    outcome = await verifier.verify(case)
                except Exception as e:
                    LOGGER.error(f"Enrichment failed for {case.case_ref}: {e}")
                    await self._save(case.id, failure_fields(str(e)))
                    raise
                if outcome.disagreement:
                    result.disagreements += 1
                await self._save(case.id, outcome.fields)
                return case.id

        outcomes = await asyncio.gather(*(process(case) for case in cases), return_exceptions=True)
        return [value for value in outcomes if isinstance(value, uuid.UUID)]

    async def _save(self, case_id: uuid.UUID, fields: dict) -> None:
        async with self.session_factory() as session:
            await CaseRecordRepository(session).save_enrichment(case_id, fields)
            await session.commit()

    async def recompute_party_awards(self, case_ids: Iterable[uuid.UUID]) -> int:
        async with self.session_factory() as session:
            updated = await EntityResolver(session).recompute_for_cases(case_ids)
            await session.commit()
        return updated

    async def reverify_high_awards(
        self,
        source_type: str = SourceType.DISPUTES.value,
        floor: Optional[float] = None,
        limit: int = 500,
    ) -> BatchResult:
        """Re-run extraction on stored awards at or above ``floor`` and overwrite them."""
        if not self.has_credentials:
            return BatchResult(error=NO_CREDENTIALS_MESSAGE)

        floor = settings.llm.reverify_floor if floor is None else floor
        async with self.session_factory() as session:
            cases = list(await CaseRecordRepository(session).list_high_awards(source_type, floor, limit))

        result = BatchResult(total=len(cases))
        LOGGER.info(f"Re-verifying {len(cases)} {source_type} cases with awards >= {floor}")
        if not cases:
            return result

        verifier = self.verifier_factory()
        succeeded = await self._run(cases, verifier, result)
        result.processed = len(succeeded)
        result.failed = result.total - result.processed
        if succeeded:
            result.parties_recomputed = await self.recompute_party_awards(succeeded)
        return result
