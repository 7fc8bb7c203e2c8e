"""Pytest configuration and shared fixtures."""

import uuid
from datetime import date
from types import SimpleNamespace
from typing import Optional

import pytest

from tenancy_watch.models.enums import SourceType


DISPUTE_LISTING_HTML = """
<div class="listing">
  <article class="adjudication-orders-and-tribunal-orders-item">
    <h3 class="heading-xs">Applicant Tenant : Mary Byrne – Respondent Landlord : Acme Lettings Ltd</h3>
    <div class="field"><span class="label">DR No.</span> <span class="data">DR0100-1</span></div>
    <div class="field"><span class="label">TR No.</span> <span class="data">TR0042/2024</span></div>
    <time datetime="2024-03-12T00:00:00+00:00">12/03/2024</time>
    <a class="download-link" href="https://rtb.ie/wp-content/uploads/DR0100-1.pdf">Determination Order</a>
    <a class="text-link" href="https://rtb.ie/wp-content/uploads/DR0100-1.pdf">Determination Order</a>
  </article>
  <article class="adjudication-orders-and-tribunal-orders-item">
    <h3 class="heading-xs">Applicant Landlords : Acme Lettings Ltd - Respondent Tenants : John Ryan, Ann Ryan</h3>
    <div class="field"><span class="label">DR No.</span> <span class="data">DR0924-100040</span></div>
    <time>5 April 2024</time>
  </article>
</div>
"""

ENFORCEMENT_LISTING_HTML = """
<article class="court-decisions-enforcement-of-orders-item">
  <h3 class="heading-xs">Residential Tenancies Board v Patrick Walsh</h3>
  <div class="field"><span class="label">Court Ref No.</span> <span class="data">2023/1234</span></div>
  <div class="field"><span class="label">PRTB No.</span> <span class="data">DR0100-1</span></div>
  <time datetime="2023-11-02">2 November 2023</time>
  <div class="footer">
    <div class="field"><span class="label">Subject</span> <span class="data">Rent arrears</span></div>
  </div>
  <a class="download-link" href="https://rtb.ie/wp-content/uploads/order.pdf">Court Order</a>
</article>
"""


def make_case(
    case_ref: Optional[str] = "DR0100-1",
    source_type: str = SourceType.DISPUTES.value,
    documents: Optional[list] = None,
    **overrides,
) -> SimpleNamespace:
    """Lightweight stand-in for a ``CaseRecord`` row."""
    values = {
        "id": uuid.uuid4(),
        "source_type": source_type,
        "case_ref": case_ref,
        "secondary_ref": None,
        "heading": "Applicant Tenant : Mary Byrne – Respondent Landlord : Acme Lettings Ltd",
        "case_date": date(2024, 3, 12),
        "subject": None,
        "applicant_name": "Mary Byrne",
        "applicant_role": "Tenant",
        "respondent_name": "Acme Lettings Ltd",
        "respondent_role": "Landlord",
        "documents": (
            documents
            if documents is not None
            else [{"label": "Determination Order", "url": "https://rtb.ie/files/DR0100-1.pdf"}]
        ),
        "ai_compensation_amount": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def dispute_listing_html() -> str:
    return DISPUTE_LISTING_HTML


@pytest.fixture
def enforcement_listing_html() -> str:
    return ENFORCEMENT_LISTING_HTML


@pytest.fixture
def listing_payload(dispute_listing_html) -> dict:
    """A FacetWP refresh response for page 1 of a 3-page listing."""
    return {
        "template": dispute_listing_html,
        "settings": {"pager": {"page": 1, "per_page": 2, "total_rows": 6, "total_pages": 3}},
    }


@pytest.fixture
def case_factory():
    return make_case


@pytest.fixture
def sample_pdf_content() -> bytes:
    """Sample PDF content comfortably above the error-page threshold."""
    return b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<\n/Type /Catalog\n>>\nendobj\n" + b"0" * 2000
