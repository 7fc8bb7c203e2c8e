"""Database module for SQLAlchemy models and session management."""

from tenancy_watch.core.database import Base, async_session_maker, engine, get_async_session
from tenancy_watch.database.models import CaseParty, CaseRecord, HarvestJob, Party

__all__ = [
    "Base",
    "engine",
    "async_session_maker",
    "get_async_session",
    "CaseRecord",
    "Party",
    "CaseParty",
    "HarvestJob",
]
