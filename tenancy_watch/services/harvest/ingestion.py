"""Persists harvested page batches and resolves their parties."""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.core.exceptions import AppError
from tenancy_watch.repositories.case_repository import CaseRecordRepository
from tenancy_watch.services.entity.resolver import EntityResolver
from tenancy_watch.services.harvest.records import EnforcementRecord, PageBatch
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class IngestStats:
    total: int = 0
    new: int = 0
    updated: int = 0
    failed: int = 0
    new_case_ids: List[uuid.UUID] = field(default_factory=list)


class CaseIngestionService:
    """Upserts case records one at a time, each in its own transaction.

    Parties are resolved when a case is first seen; later sightings only
    refresh the case row. A record that fails is rolled back and skipped.
    """

    def __init__(
        self,
        session: AsyncSession,
        case_repo: Optional[CaseRecordRepository] = None,
        resolver: Optional[EntityResolver] = None,
    ):
        self.session = session
        self.case_repo = case_repo or CaseRecordRepository(session)
        self.resolver = resolver or EntityResolver(session)

    async def ingest_batch(self, batch: PageBatch) -> IngestStats:
        stats = IngestStats()

        for record in batch.records:
            stats.total += 1
            try:
                linked_case_id = None
                if isinstance(record, EnforcementRecord):
                    linked_case_id = await self.case_repo.find_dispute_id(record.prtb_no)

                case, created = await self.case_repo.upsert_record(record, batch.page, linked_case_id)
                if created:
                    await self.resolver.resolve_case_parties(case)
                await self.session.commit()
            except (SQLAlchemyError, AppError) as e:
                await self.session.rollback()
                stats.failed += 1
                LOGGER.error(
                    f"Failed to ingest {record.source_type.value} record {record.case_ref!r} "
                    f"from page {batch.page}: {e}",
                    extra={"page": batch.page, "case_ref": record.case_ref},
                )
                continue

            if created:
                stats.new += 1
                stats.new_case_ids.append(case.id)
            else:
                stats.updated += 1

        LOGGER.info(
            f"Page {batch.page}: {stats.total} records, {stats.new} new, "
            f"{stats.updated} updated, {stats.failed} failed"
        )
        return stats
