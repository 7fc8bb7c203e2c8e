"""Harvest control routes."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenancy_watch.api.v1.errors import to_http_exception
from tenancy_watch.core.database import get_async_session
from tenancy_watch.core.exceptions import ValidationError
from tenancy_watch.schemas.harvest import (
    ErrorResponse,
    HarvestCancelResponse,
    HarvestStartRequest,
    HarvestStartResponse,
    HarvestStatusResponse,
    SearchResponse,
    SearchResultItem,
)
from tenancy_watch.services.harvest.client import ListingClient
from tenancy_watch.services.harvest.harvester import Harvester
from tenancy_watch.services.harvest.sources import get_listing_source
from tenancy_watch.services.harvest_job_service import HarvestJobService
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_harvest_job_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> HarvestJobService:
    """Dependency to create HarvestJobService instance."""
    return HarvestJobService(db_session)


@router.post(
    "/{source_type}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=HarvestStartResponse,
    responses={
        400: {"description": "Unknown source type", "model": ErrorResponse},
        409: {"description": "A harvest for this source is already running", "model": ErrorResponse},
        500: {"description": "Internal server error", "model": ErrorResponse},
    },
    summary="Start a harvest",
    description=(
        "Creates a running harvest job for the listing and starts its chunked "
        "Temporal workflow. Only one harvest per source type may run at a time."
    ),
    operation_id="start_harvest",
)
async def start_harvest(
    source_type: str,
    service: Annotated[HarvestJobService, Depends(get_harvest_job_service)],
    request: Optional[HarvestStartRequest] = None,
) -> HarvestStartResponse:
    start_page = request.start_page if request else 1
    try:
        result = await service.start_harvest(source_type, start_page=start_page)
    except Exception as e:
        raise to_http_exception(e, f"start {source_type} harvest")

    LOGGER.info("Harvest started", extra={"job_id": result["job_id"], "workflow_id": result["workflow_id"]})
    return HarvestStartResponse(**result)


@router.get(
    "/{source_type}",
    response_model=HarvestStatusResponse,
    responses={400: {"description": "Unknown source type", "model": ErrorResponse}},
    summary="Get harvest status",
    operation_id="get_harvest_status",
)
async def get_harvest_status(
    source_type: str,
    service: Annotated[HarvestJobService, Depends(get_harvest_job_service)],
) -> HarvestStatusResponse:
    try:
        result = await service.get_status(source_type)
    except Exception as e:
        raise to_http_exception(e, f"read {source_type} harvest status")
    return HarvestStatusResponse(**result)


@router.delete(
    "/{source_type}",
    response_model=HarvestCancelResponse,
    responses={
        400: {"description": "Unknown source type", "model": ErrorResponse},
        404: {"description": "No running harvest", "model": ErrorResponse},
    },
    summary="Cancel the running harvest",
    operation_id="cancel_harvest",
)
async def cancel_harvest(
    source_type: str,
    service: Annotated[HarvestJobService, Depends(get_harvest_job_service)],
) -> HarvestCancelResponse:
    try:
        result = await service.cancel_harvest(source_type)
    except Exception as e:
        raise to_http_exception(e, f"cancel {source_type} harvest")
    return HarvestCancelResponse(**result)


@router.get(
    "/{source_type}/search",
    response_model=SearchResponse,
    responses={400: {"description": "Unknown source type", "model": ErrorResponse}},
    summary="Search a listing",
    description="Runs a single-page live search against the listing without storing anything.",
    operation_id="search_listing",
)
async def search_listing(
    source_type: str,
    term: Annotated[str, Query(min_length=1, max_length=200)],
) -> SearchResponse:
    try:
        source = get_listing_source(source_type)
    except ValidationError as e:
        raise to_http_exception(e, "search listing")

    async with ListingClient() as client:
        found = await Harvester(client, source).search(term)

    if found["error"] and not found["results"]:
        LOGGER.warning(f"Search for {term!r} on {source_type} failed: {found['error']}")

    return SearchResponse(
        source_type=source_type,
        term=term,
        total_count=found["total_count"],
        search_url=found.get("search_url"),
        error=found["error"],
        results=[
            SearchResultItem(
                case_ref=record.case_ref,
                secondary_ref=record.secondary_ref,
                heading=record.heading,
                case_date=record.case_date,
                subject=record.subject,
                applicant_name=record.applicant_name,
                respondent_name=record.respondent_name,
                documents=[doc.to_dict() for doc in record.documents],
            )
            for record in found["results"]
        ],
    )
