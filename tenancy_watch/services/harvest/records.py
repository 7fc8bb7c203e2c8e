"""Typed records produced by the listing parsers.

Every listing entry becomes either a ``DisputeRecord`` or an
``EnforcementRecord``. Any field scraped from markup may be missing, so all
of them are optional; consumers branch on ``source_type`` (or ``isinstance``)
and on field presence.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Union

from tenancy_watch.models.enums import SourceType


@dataclass(frozen=True)
class DocumentLink:
    """A document attached to a listing entry."""

    label: str
    url: str

    def to_dict(self) -> dict:
        return {"label": self.label, "url": self.url}


@dataclass
class DisputeRecord:
    """Adjudication / tribunal order listing entry."""

    heading: Optional[str] = None
    dr_no: Optional[str] = None
    tr_no: Optional[str] = None
    dispute_date: Optional[date] = None
    applicant_name: Optional[str] = None
    applicant_role: Optional[str] = None
    respondent_name: Optional[str] = None
    respondent_role: Optional[str] = None
    documents: List[DocumentLink] = field(default_factory=list)
    raw_html: Optional[str] = None

    source_type: SourceType = field(default=SourceType.DISPUTES, init=False)

    @property
    def case_ref(self) -> Optional[str]:
        return self.dr_no

    @property
    def secondary_ref(self) -> Optional[str]:
        return self.tr_no

    @property
    def case_date(self) -> Optional[date]:
        return self.dispute_date

    @property
    def subject(self) -> Optional[str]:
        return None


@dataclass
class EnforcementRecord:
    """Court decision / enforcement order listing entry."""

    heading: Optional[str] = None
    court_ref_no: Optional[str] = None
    prtb_no: Optional[str] = None
    order_date: Optional[date] = None
    subject: Optional[str] = None
    applicant_name: Optional[str] = None
    respondent_name: Optional[str] = None
    documents: List[DocumentLink] = field(default_factory=list)
    raw_html: Optional[str] = None

    source_type: SourceType = field(default=SourceType.ENFORCEMENT_ORDERS, init=False)

    # The "X v Y" heading carries no landlord/tenant role
    applicant_role: Optional[str] = field(default=None, init=False)
    respondent_role: Optional[str] = field(default=None, init=False)

    @property
    def case_ref(self) -> Optional[str]:
        return self.court_ref_no

    @property
    def secondary_ref(self) -> Optional[str]:
        return self.prtb_no

    @property
    def case_date(self) -> Optional[date]:
        return self.order_date


HarvestedRecord = Union[DisputeRecord, EnforcementRecord]


@dataclass
class PageBatch:
    """One harvested listing page."""

    page: int
    total_pages: int
    total_results: int
    records: List[HarvestedRecord] = field(default_factory=list)
