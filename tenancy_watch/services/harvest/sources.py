"""Descriptors for the listings the harvester can mirror."""

from dataclasses import dataclass
from typing import Callable, Dict, List

from tenancy_watch.core.exceptions import ValidationError
from tenancy_watch.models.enums import SourceType
from tenancy_watch.services.harvest.parsers import parse_dispute_listing, parse_enforcement_listing
from tenancy_watch.services.harvest.records import HarvestedRecord

SITE_URL = "https://rtb.ie"
REFRESH_URL = f"{SITE_URL}/wp-json/facetwp/v1/refresh"


@dataclass(frozen=True)
class ListingSource:
    """Everything needed to query and parse one FacetWP listing."""

    source_type: SourceType
    uri: str
    template: str
    date_facet: str
    parse: Callable[[str], List[HarvestedRecord]]

    @property
    def landing_url(self) -> str:
        return f"{SITE_URL}/{self.uri}"


DISPUTES = ListingSource(
    source_type=SourceType.DISPUTES,
    uri="disputes/dispute-outcomes-and-orders/adjudication-and-tribunal-orders",
    template="adjudication_orders_and_tribunal_orders_listing",
    date_facet="adjudication_orders_and_tribunal_orders_date",
    parse=parse_dispute_listing,
)

ENFORCEMENT_ORDERS = ListingSource(
    source_type=SourceType.ENFORCEMENT_ORDERS,
    uri="disputes/dispute-outcomes-and-orders/court-decisions-enforcement-orders",
    template="court_decisions_enforcement_of_orders",
    date_facet="court_decisions_enforcement_of_orders_year",
    parse=parse_enforcement_listing,
)

LISTING_SOURCES: Dict[SourceType, ListingSource] = {
    DISPUTES.source_type: DISPUTES,
    ENFORCEMENT_ORDERS.source_type: ENFORCEMENT_ORDERS,
}


def get_listing_source(source_type) -> ListingSource:
    """Look up a listing by ``SourceType`` or its string value."""
    try:
        return LISTING_SOURCES[SourceType(source_type)]
    except ValueError as e:
        raise ValidationError(f"Unknown source type: {source_type}", original_error=e)
