"""Shared enumerations for sources, job states and party roles."""

from enum import Enum


class SourceType(str, Enum):
    """Listings mirrored by the harvester."""

    DISPUTES = "disputes"
    ENFORCEMENT_ORDERS = "enforcement_orders"


class JobStatus(str, Enum):
    """Harvest job lifecycle: running -> completed | failed | cancelled."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PartyRole(str, Enum):
    APPLICANT = "applicant"
    RESPONDENT = "respondent"


class PartyType(str, Enum):
    LANDLORD = "Landlord"
    TENANT = "Tenant"
    UNKNOWN = "Unknown"

    @classmethod
    def from_role_text(cls, text: str | None) -> "PartyType":
        """Map listing role text ("Tenant", "Landlords", ...) onto a party type."""
        if not text:
            return cls.UNKNOWN
        value = text.strip().lower().rstrip("s")
        if value == "landlord":
            return cls.LANDLORD
        if value == "tenant":
            return cls.TENANT
        return cls.UNKNOWN
