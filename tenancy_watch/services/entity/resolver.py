"""Online party resolution for ingested case records."""

import uuid
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.database.models import CaseRecord, Party
from tenancy_watch.models.enums import PartyRole, PartyType
from tenancy_watch.repositories.party_repository import CasePartyRepository, PartyRepository
from tenancy_watch.services.entity.aggregates import PartyAggregates, compute_party_aggregates
from tenancy_watch.services.entity.normalize import normalize_name
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EntityResolver:
    """Upserts parties, links them to cases and keeps their aggregates current.

    Does not commit; the caller decides the transaction boundary.
    """

    def __init__(
        self,
        session: AsyncSession,
        party_repo: Optional[PartyRepository] = None,
        link_repo: Optional[CasePartyRepository] = None,
    ):
        self.session = session
        self.party_repo = party_repo or PartyRepository(session)
        self.link_repo = link_repo or CasePartyRepository(session)

    async def resolve_party(self, name: Optional[str], role_text: Optional[str] = None) -> Optional[Party]:
        """Find or create the party for a raw listing name."""
        normalized = normalize_name(name)
        if not normalized:
            return None
        party_type = PartyType.from_role_text(role_text).value
        return await self.party_repo.get_or_create(
            name=" ".join(name.split()),
            normalized_name=normalized,
            party_type=party_type,
        )

    async def resolve_case_parties(self, case: CaseRecord) -> List[uuid.UUID]:
        """Link a case's applicant and respondent, then refresh their aggregates.

        Returns:
            IDs of the parties linked to the case
        """
        party_ids = []
        sides = (
            (PartyRole.APPLICANT, case.applicant_name, case.applicant_role),
            (PartyRole.RESPONDENT, case.respondent_name, case.respondent_role),
        )
        for role, name, role_text in sides:
            party = await self.resolve_party(name, role_text)
            if party is None:
                continue
            await self.link_repo.link(
                case_id=case.id,
                party_id=party.id,
                role=role.value,
                party_type=PartyType.from_role_text(role_text).value,
            )
            party_ids.append(party.id)

        for party_id in dict.fromkeys(party_ids):
            await self.recompute_party(party_id)
        return party_ids

    async def recompute_party(self, party_id: uuid.UUID) -> PartyAggregates:
        """Re-read a party's links and rewrite its derived counters."""
        links = await self.party_repo.get_case_links(party_id)
        aggregates = compute_party_aggregates(links)
        await self.party_repo.update_aggregates(party_id, **aggregates.to_dict())
        return aggregates

    async def recompute_parties(self, party_ids: Iterable[uuid.UUID]) -> int:
        count = 0
        for party_id in party_ids:
            await self.recompute_party(party_id)
            count += 1
        return count

    async def recompute_for_cases(self, case_ids: Iterable[uuid.UUID]) -> int:
        """Refresh every party linked to the given cases (after enrichment)."""
        party_ids = await self.party_repo.ids_for_cases(case_ids)
        updated = await self.recompute_parties(party_ids)
        LOGGER.info(f"Recomputed aggregates for {updated} parties")
        return updated

    async def recompute_all(self) -> int:
        party_ids = await self.party_repo.list_ids()
        updated = await self.recompute_parties(party_ids)
        LOGGER.info(f"Recomputed aggregates for all {updated} parties")
        return updated
