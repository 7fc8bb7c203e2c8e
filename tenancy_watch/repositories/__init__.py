from tenancy_watch.repositories.base_repository import BaseRepository
from tenancy_watch.repositories.case_repository import CaseRecordRepository
from tenancy_watch.repositories.harvest_job_repository import HarvestJobRepository
from tenancy_watch.repositories.party_repository import CasePartyRepository, PartyRepository

__all__ = [
    "BaseRepository",
    "CaseRecordRepository",
    "CasePartyRepository",
    "HarvestJobRepository",
    "PartyRepository",
]
