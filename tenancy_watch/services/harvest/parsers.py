"""HTML parsers for listing fragments returned by the FacetWP refresh endpoint."""

import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from tenancy_watch.models.enums import PartyType
from tenancy_watch.services.harvest.records import DisputeRecord, DocumentLink, EnforcementRecord
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

DISPUTE_ITEM_SELECTOR = "article.adjudication-orders-and-tribunal-orders-item"
ENFORCEMENT_ITEM_SELECTOR = "article.court-decisions-enforcement-of-orders-item"
HEADING_SELECTOR = "h3.heading-xs"
DOCUMENT_LINK_SELECTOR = "a.download-link, a.text-link"

# "Applicant Landlord : Name – Respondent Tenant : Name"
DISPUTE_HEADING_PATTERN = re.compile(
    r"Applicant\s+(Landlords?|Tenants?)\s*:\s*(.+?)\s*[–\-]\s*Respondent\s+(Landlords?|Tenants?)\s*:\s*(.+)",
    re.IGNORECASE | re.DOTALL,
)
VERSUS_HEADING_PATTERN = re.compile(r"^(.+?)\s+v\s+(.+)$", re.IGNORECASE | re.DOTALL)

_DATE_FORMATS = ("%d/%m/%Y", "%d %B %Y", "%d %b %Y", "%B %d, %Y", "%b %d, %Y", "%Y-%m-%d", "%d-%m-%Y")


def parse_dispute_heading(heading: Optional[str]) -> Dict[str, Optional[str]]:
    """Split a dispute heading into applicant/respondent names and roles.

    Roles are normalised to their singular form ("Tenants" -> "Tenant").
    Headings that don't follow the pattern yield all-None values.
    """
    result = {
        "applicant_name": None,
        "applicant_role": None,
        "respondent_name": None,
        "respondent_role": None,
    }
    if not heading:
        return result

    match = DISPUTE_HEADING_PATTERN.search(heading)
    if match:
        result["applicant_role"] = PartyType.from_role_text(match.group(1)).value
        result["applicant_name"] = match.group(2).strip() or None
        result["respondent_role"] = PartyType.from_role_text(match.group(3)).value
        result["respondent_name"] = match.group(4).strip() or None
    return result


def parse_versus_heading(heading: Optional[str]) -> Dict[str, Optional[str]]:
    """Split an "A v B" heading into applicant and respondent names."""
    result = {"applicant_name": None, "respondent_name": None}
    if not heading:
        return result

    match = VERSUS_HEADING_PATTERN.match(heading.strip())
    if match:
        result["applicant_name"] = match.group(1).strip() or None
        result["respondent_name"] = match.group(2).strip() or None
    return result


def parse_listing_date(text: Optional[str]) -> Optional[date]:
    """Parse a listing date such as "12/03/2024", "12 March 2024" or an ISO timestamp.

    Day-first formats are tried before month-first ones.
    """
    if not text:
        return None
    value = " ".join(text.split())
    if not value:
        return None

    # ISO datetime attribute: "2024-03-12T00:00:00+00:00"
    iso_part = value.split("T")[0]
    try:
        return date.fromisoformat(iso_part)
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    LOGGER.debug(f"Unrecognised listing date: {value!r}")
    return None


def _field_value(fields: List[Tag], label: str) -> Optional[str]:
    """Value of the last ``span.data`` inside the field whose text mentions ``label``."""
    value = None
    for field in fields:
        if label in field.get_text():
            spans = field.select("span.data")
            if spans:
                value = spans[-1].get_text(strip=True) or None
    return value


def _heading(article: Tag) -> Optional[str]:
    element = article.select_one(HEADING_SELECTOR)
    if element is None:
        return None
    return element.get_text(" ", strip=True) or None


def _document_links(article: Tag) -> List[DocumentLink]:
    links = []
    seen = set()
    for anchor in article.select(DOCUMENT_LINK_SELECTOR):
        url = (anchor.get("href") or "").strip()
        label = anchor.get_text(strip=True)
        if not url or url in seen:
            continue
        seen.add(url)
        links.append(DocumentLink(label=label or "Document", url=url))
    return links


def parse_dispute_listing(html: str) -> List[DisputeRecord]:
    """Parse an adjudication/tribunal orders fragment into dispute records."""
    soup = BeautifulSoup(html or "", "html.parser")
    records = []

    for article in soup.select(DISPUTE_ITEM_SELECTOR):
        heading = _heading(article)
        fields = article.select("div.field")
        time_el = article.select_one("time")
        date_text = None
        if time_el is not None:
            date_text = time_el.get("datetime") or time_el.get_text(strip=True)

        records.append(
            DisputeRecord(
                heading=heading,
                dr_no=_field_value(fields, "DR No."),
                tr_no=_field_value(fields, "TR No."),
                dispute_date=parse_listing_date(date_text),
                documents=_document_links(article),
                raw_html=str(article),
                **parse_dispute_heading(heading),
            )
        )

    return records


def parse_enforcement_listing(html: str) -> List[EnforcementRecord]:
    """Parse a court decisions/enforcement orders fragment into enforcement records."""
    soup = BeautifulSoup(html or "", "html.parser")
    records = []

    for article in soup.select(ENFORCEMENT_ITEM_SELECTOR):
        heading = _heading(article)
        fields = article.select("div.field")
        footer_fields = article.select(".footer .field")

        time_el = article.select_one("time")
        order_date = None
        if time_el is not None:
            order_date = parse_listing_date(time_el.get("datetime")) or parse_listing_date(
                time_el.get_text(strip=True)
            )

        records.append(
            EnforcementRecord(
                heading=heading,
                court_ref_no=_field_value(fields, "Court Ref No."),
                prtb_no=_field_value(fields, "PRTB No."),
                order_date=order_date,
                subject=_field_value(footer_fields, "Subject") or _field_value(fields, "Subject"),
                documents=_document_links(article),
                raw_html=str(article),
                **parse_versus_heading(heading),
            )
        )

    return records


def extract_total_pages(payload: Dict[str, Any]) -> int:
    """Total page count from pager settings, falling back to the pager markup."""
    if not payload:
        return 0

    pager = (payload.get("settings") or {}).get("pager")
    if pager:
        return int(pager.get("total_pages") or 0)

    template = payload.get("template")
    if template:
        soup = BeautifulSoup(template, "html.parser")
        pages = soup.select("[data-page]")
        if pages:
            try:
                return int(pages[-1].get("data-page"))
            except (TypeError, ValueError):
                return 0
    return 0


def extract_total_results(payload: Dict[str, Any]) -> int:
    pager = (payload.get("settings") or {}).get("pager") or {}
    return int(pager.get("total_rows") or 0)
