import uuid
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.database.models import CaseParty, CaseRecord, Party
from tenancy_watch.models.enums import PartyType
from tenancy_watch.repositories.base_repository import BaseRepository


class PartyRepository(BaseRepository[Party]):
    """Repository for resolved parties."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Party)

    async def get_by_normalized_name(self, normalized_name: str) -> Optional[Party]:
        query = select(Party).where(Party.normalized_name == normalized_name)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_or_create(self, name: str, normalized_name: str, party_type: str) -> Party:
        """Return the party for ``normalized_name``, inserting it if absent.

        A concurrent insert of the same name loses quietly to the existing
        row, which is re-read instead of raising.
        """
        try:
            existing = await self.get_by_normalized_name(normalized_name)
            if existing is None:
                stmt = (
                    insert(Party)
                    .values(id=uuid.uuid4(), name=name, normalized_name=normalized_name, party_type=party_type)
                    .on_conflict_do_nothing(index_elements=["normalized_name"])
                    .returning(Party.id)
                )
                inserted_id = (await self.session.execute(stmt)).scalar_one_or_none()
                if inserted_id is not None:
                    return await self.get_by_id(inserted_id)
                self.logger.debug(f"Party insert raced for {normalized_name!r}, re-reading")
                existing = await self.get_by_normalized_name(normalized_name)

            if existing.party_type == PartyType.UNKNOWN.value and party_type != PartyType.UNKNOWN.value:
                existing.party_type = party_type
                await self.session.flush()
            return existing
        except SQLAlchemyError as e:
            self.logger.error(f"Error upserting party {normalized_name!r}: {str(e)}", exc_info=True)
            raise

    async def get_case_links(self, party_id: uuid.UUID) -> List[dict]:
        """Every case link of a party with the case columns aggregates depend on."""
        query = (
            select(
                CaseParty.case_id,
                CaseParty.role,
                CaseRecord.source_type,
                CaseRecord.case_ref,
                CaseRecord.case_date,
                CaseRecord.ai_compensation_amount,
            )
            .join(CaseRecord, CaseParty.case_id == CaseRecord.id)
            .where(CaseParty.party_id == party_id)
        )
        result = await self.session.execute(query)
        return [dict(row._mapping) for row in result]

    async def update_aggregates(self, party_id: uuid.UUID, **aggregates) -> None:
        try:
            await self.session.execute(update(Party).where(Party.id == party_id).values(**aggregates))
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating aggregates for party {party_id}: {str(e)}", exc_info=True)
            raise

    async def list_for_merge(self) -> Sequence[Party]:
        """All parties, highest case count first (ties: oldest first)."""
        query = select(Party).order_by(Party.total_cases.desc(), Party.created_at.asc())
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_ids(self) -> List[uuid.UUID]:
        result = await self.session.execute(select(Party.id))
        return list(result.scalars().all())

    async def ids_for_cases(self, case_ids: Iterable[uuid.UUID]) -> List[uuid.UUID]:
        """Distinct parties linked to any of the given cases."""
        case_ids = list(case_ids)
        if not case_ids:
            return []
        query = select(CaseParty.party_id).where(CaseParty.case_id.in_(case_ids)).distinct()
        result = await self.session.execute(query)
        return list(result.scalars().all())


class CasePartyRepository(BaseRepository[CaseParty]):
    """Repository for case/party links."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CaseParty)

    async def link(self, case_id: uuid.UUID, party_id: uuid.UUID, role: str, party_type: Optional[str]) -> bool:
        """Link a party to a case in ``role``; returns False if the link already existed."""
        stmt = (
            insert(CaseParty)
            .values(id=uuid.uuid4(), case_id=case_id, party_id=party_id, role=role, party_type=party_type)
            .on_conflict_do_nothing(index_elements=["case_id", "party_id", "role"])
            .returning(CaseParty.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_links_for_party(self, party_id: uuid.UUID) -> Sequence[CaseParty]:
        return await self.get_all(filters={"party_id": party_id})

    async def link_exists(self, case_id: uuid.UUID, party_id: uuid.UUID, role: str) -> bool:
        query = select(CaseParty.id).where(
            CaseParty.case_id == case_id,
            CaseParty.party_id == party_id,
            CaseParty.role == role,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None

    async def repoint(self, link_id: uuid.UUID, party_id: uuid.UUID) -> None:
        await self.update_fields(link_id, party_id=party_id)
