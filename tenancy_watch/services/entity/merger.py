"""Offline merge of parties that differ only by formatting or legal suffixes."""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.database.models import Party
from tenancy_watch.repositories.party_repository import CasePartyRepository, PartyRepository
from tenancy_watch.services.entity.normalize import merge_key
from tenancy_watch.services.entity.resolver import EntityResolver
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class MergeGroup:
    key: str
    canonical_id: str
    canonical_name: str
    duplicate_names: List[str] = field(default_factory=list)


@dataclass
class MergeReport:
    dry_run: bool
    groups: List[MergeGroup] = field(default_factory=list)
    parties_removed: int = 0
    links_repointed: int = 0
    links_deleted: int = 0
    parties_recomputed: int = 0

    def to_dict(self) -> Dict:
        return {
            "dry_run": self.dry_run,
            "groups": len(self.groups),
            "parties_removed": self.parties_removed,
            "links_repointed": self.links_repointed,
            "links_deleted": self.links_deleted,
            "parties_recomputed": self.parties_recomputed,
        }


def group_parties(parties: List[Party]) -> "OrderedDict[str, List[Party]]":
    """Group parties by merge key, keeping only groups with duplicates.

    ``parties`` must be ordered canonical-first (highest case count, then
    oldest), so the first member of each group is the survivor.
    """
    groups: "OrderedDict[str, List[Party]]" = OrderedDict()
    for party in parties:
        key = merge_key(party.name) or merge_key(party.normalized_name)
        if not key:
            continue
        groups.setdefault(key, []).append(party)
    return OrderedDict((k, v) for k, v in groups.items() if len(v) > 1)


class PartyMerger:
    """Collapses duplicate parties into a canonical survivor.

    Re-running is a no-op: after a merge every key has a single member.
    """

    def __init__(
        self,
        session: AsyncSession,
        party_repo: Optional[PartyRepository] = None,
        link_repo: Optional[CasePartyRepository] = None,
        resolver: Optional[EntityResolver] = None,
    ):
        self.session = session
        self.party_repo = party_repo or PartyRepository(session)
        self.link_repo = link_repo or CasePartyRepository(session)
        self.resolver = resolver or EntityResolver(session, self.party_repo, self.link_repo)

    async def run(self, dry_run: bool = False) -> MergeReport:
        report = MergeReport(dry_run=dry_run)
        parties = list(await self.party_repo.list_for_merge())
        groups = group_parties(parties)
        LOGGER.info(f"Found {len(groups)} duplicate groups among {len(parties)} parties")

        for key, members in groups.items():
            canonical, duplicates = members[0], members[1:]
            report.groups.append(
                MergeGroup(
                    key=key,
                    canonical_id=str(canonical.id),
                    canonical_name=canonical.name,
                    duplicate_names=[p.name for p in duplicates],
                )
            )
            LOGGER.info(
                f"Merge group {key!r}: keeping {canonical.name!r}, "
                f"merging {[p.name for p in duplicates]}"
            )
            if dry_run:
                continue

            for duplicate in duplicates:
                await self._merge_into(canonical, duplicate, report)

        if not dry_run:
            report.parties_recomputed = await self.resolver.recompute_all()
            await self.session.commit()

        LOGGER.info(f"Party merge finished: {report.to_dict()}")
        return report

    async def _merge_into(self, canonical: Party, duplicate: Party, report: MergeReport) -> None:
        links = await self.link_repo.get_links_for_party(duplicate.id)
        for link in links:
            if await self.link_repo.link_exists(link.case_id, canonical.id, link.role):
                await self.link_repo.delete(link.id)
                report.links_deleted += 1
            else:
                await self.link_repo.repoint(link.id, canonical.id)
                report.links_repointed += 1

        await self.party_repo.delete(duplicate.id)
        report.parties_removed += 1
