from typing import Annotated

from fastapi import APIRouter, Depends, status

from tenancy_watch.api.v1.endpoints.harvest import get_harvest_job_service
from tenancy_watch.api.v1.errors import to_http_exception
from tenancy_watch.schemas.harvest import (
    EnrichmentTriggerRequest,
    EnrichmentTriggerResponse,
    ErrorResponse,
)
from tenancy_watch.services.harvest_job_service import HarvestJobService

router = APIRouter()


@router.post(
    "/batch",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=EnrichmentTriggerResponse,
    responses={400: {"description": "Invalid request parameters", "model": ErrorResponse}},
    summary="Trigger AI enrichment",
    description=(
        "Starts an enrichment workflow over pending cases. With `drain` the "
        "workflow keeps running batches until no pending case is left. "
        "Without AI credentials nothing is started and `error` is set."
    ),
    operation_id="trigger_enrichment_batch",
)
async def trigger_enrichment(
    request: EnrichmentTriggerRequest,
    service: Annotated[HarvestJobService, Depends(get_harvest_job_service)],
) -> EnrichmentTriggerResponse:
    try:
        result = await service.trigger_enrichment(request.source_type, limit=request.limit, drain=request.drain)
    except Exception as e:
        raise to_http_exception(e, "trigger enrichment")
    return EnrichmentTriggerResponse(**result)
