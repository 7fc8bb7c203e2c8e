import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, cast, func, select, update
from sqlalchemy.dialects.postgresql import JSONB, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.database.models import CaseRecord
from tenancy_watch.models.enums import SourceType
from tenancy_watch.repositories.base_repository import BaseRepository
from tenancy_watch.services.harvest.records import HarvestedRecord

_EMPTY_JSON_LIST = cast("[]", JSONB)


def record_to_columns(record: HarvestedRecord, source_page: Optional[int] = None) -> Dict[str, Any]:
    """Map a parsed listing record onto ``case_records`` columns."""
    return {
        "source_type": record.source_type.value,
        "case_ref": record.case_ref,
        "secondary_ref": record.secondary_ref,
        "heading": record.heading,
        "case_date": record.case_date,
        "subject": record.subject,
        "applicant_name": record.applicant_name,
        "applicant_role": record.applicant_role,
        "respondent_name": record.respondent_name,
        "respondent_role": record.respondent_role,
        "documents": [doc.to_dict() for doc in record.documents],
        "raw_html": record.raw_html,
        "source_page": source_page,
    }


class CaseRecordRepository(BaseRepository[CaseRecord]):
    """Repository for harvested case records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CaseRecord)

    async def get_by_ref(self, source_type: str, case_ref: str) -> Optional[CaseRecord]:
        query = select(CaseRecord).where(
            CaseRecord.source_type == source_type,
            CaseRecord.case_ref == case_ref,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def upsert_record(
        self, record: HarvestedRecord, source_page: Optional[int] = None, linked_case_id: Optional[uuid.UUID] = None
    ) -> Tuple[CaseRecord, bool]:
        """Insert a listing record, or refresh the existing row with the same natural key.

        Records without a case reference are always inserted.

        Returns:
            (case record, created) where created is False for an update
        """
        values = record_to_columns(record, source_page)
        if linked_case_id is not None:
            values["linked_case_id"] = linked_case_id

        try:
            stmt = (
                insert(CaseRecord)
                .values(id=uuid.uuid4(), **values)
                .on_conflict_do_nothing(index_elements=["source_type", "case_ref"])
                .returning(CaseRecord.id)
            )
            inserted_id = (await self.session.execute(stmt)).scalar_one_or_none()
            if inserted_id is not None:
                return await self.get_by_id(inserted_id), True

            existing = await self.get_by_ref(values["source_type"], values["case_ref"])
            refresh = {k: v for k, v in values.items() if v not in (None, [])}
            # New document links are merged, never dropped
            refresh["documents"] = self._merge_documents(existing.documents, values["documents"])
            refresh["updated_at"] = datetime.now(timezone.utc)
            await self.update_fields(existing.id, **refresh)
            await self.session.refresh(existing)
            return existing, False
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error upserting case record {values.get('case_ref')}: {str(e)}",
                exc_info=True,
            )
            raise

    @staticmethod
    def _merge_documents(existing: Optional[List[dict]], incoming: List[dict]) -> List[dict]:
        merged = list(existing or [])
        known = {doc.get("url") for doc in merged}
        for doc in incoming:
            if doc.get("url") not in known:
                merged.append(doc)
                known.add(doc.get("url"))
        return merged

    async def find_dispute_id(self, dispute_ref: Optional[str]) -> Optional[uuid.UUID]:
        """ID of the dispute whose reference equals an enforcement order's PRTB number."""
        if not dispute_ref:
            return None
        query = select(CaseRecord.id).where(
            CaseRecord.source_type == SourceType.DISPUTES.value,
            CaseRecord.case_ref == dispute_ref.strip(),
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def mark_without_documents(self, source_type: str, message: str) -> int:
        """Mark unprocessed cases that have no documents as processed with ``message``."""
        try:
            stmt = (
                update(CaseRecord)
                .where(
                    CaseRecord.source_type == source_type,
                    CaseRecord.ai_processed_at.is_(None),
                    CaseRecord.documents == _EMPTY_JSON_LIST,
                )
                .values(ai_error=message, ai_processed_at=datetime.now(timezone.utc))
            )
            result = await self.session.execute(stmt)
            return result.rowcount
        except SQLAlchemyError as e:
            self.logger.error(f"Error marking document-less cases: {str(e)}", exc_info=True)
            raise

    async def list_pending_enrichment(self, source_type: str, limit: int) -> Sequence[CaseRecord]:
        """Oldest unprocessed cases that have at least one document."""
        query = (
            select(CaseRecord)
            .where(
                CaseRecord.source_type == source_type,
                CaseRecord.ai_processed_at.is_(None),
                CaseRecord.documents != _EMPTY_JSON_LIST,
            )
            .order_by(CaseRecord.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count_pending_enrichment(self, source_type: str) -> int:
        query = select(func.count()).select_from(CaseRecord).where(
            CaseRecord.source_type == source_type,
            CaseRecord.ai_processed_at.is_(None),
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def list_high_awards(self, source_type: str, floor: float, limit: int) -> Sequence[CaseRecord]:
        """Processed cases whose stored compensation is at or above ``floor``, largest first."""
        query = (
            select(CaseRecord)
            .where(
                and_(
                    CaseRecord.source_type == source_type,
                    CaseRecord.ai_compensation_amount >= floor,
                )
            )
            .order_by(CaseRecord.ai_compensation_amount.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def save_enrichment(self, case_id: uuid.UUID, fields: Dict[str, Any]) -> None:
        """Write AI-derived fields onto a case."""
        await self.update_fields(case_id, **fields)
