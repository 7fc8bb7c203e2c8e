from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class HarvestStartRequest(BaseModel):
    """Request model for starting a harvest."""

    start_page: int = Field(1, ge=1, description="First listing page to harvest")


class HarvestStartResponse(BaseModel):
    """Response model for harvest initiation."""

    job_id: str = Field(..., description="Harvest job ID")
    source_type: str = Field(..., description="Listing being harvested")
    workflow_id: str = Field(..., description="Temporal workflow execution ID")
    status: str = Field(..., description="Current job status")
    message: str = Field(..., description="Human-readable status message")


class HarvestJobResponse(BaseModel):
    job_id: str
    source_type: str
    status: str
    current_page: int = 0
    total_pages: Optional[int] = None
    total_results: Optional[int] = None
    total_records: int = 0
    new_records: int = 0
    updated_records: int = 0
    error_message: Optional[str] = None
    workflow_id: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class HarvestStatusResponse(BaseModel):
    """Latest job for a source plus the enrichment backlog."""

    source_type: str
    job: Optional[HarvestJobResponse] = Field(None, description="Most recent harvest job, if any")
    pending_enrichment: int = Field(..., description="Cases with documents awaiting AI enrichment")


class HarvestCancelResponse(BaseModel):
    job_id: str
    source_type: str
    status: str


class SearchResultItem(BaseModel):
    case_ref: Optional[str] = None
    secondary_ref: Optional[str] = None
    heading: Optional[str] = None
    case_date: Optional[date] = None
    subject: Optional[str] = None
    applicant_name: Optional[str] = None
    respondent_name: Optional[str] = None
    documents: List[dict] = Field(default_factory=list)


class SearchResponse(BaseModel):
    source_type: str
    term: str
    total_count: int
    search_url: Optional[str] = None
    results: List[SearchResultItem] = Field(default_factory=list)
    error: Optional[str] = None


class EnrichmentTriggerRequest(BaseModel):
    """Request model for an enrichment run."""

    source_type: str = Field("disputes", description="Listing whose cases are enriched")
    limit: Optional[int] = Field(None, ge=1, description="Cases per batch; defaults to AI_BATCH_SIZE")
    drain: bool = Field(False, description="Keep running batches until nothing is pending")


class EnrichmentTriggerResponse(BaseModel):
    source_type: str
    status: Optional[str] = None
    workflow_id: Optional[str] = None
    limit: Optional[int] = None
    drain: bool = False
    processed: Optional[int] = None
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standardized error response model."""

    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[str] = Field(None, description="Additional error details")


class HealthCheckResponse(BaseModel):
    """Health check response model."""

    status: str = Field(default="healthy", description="Service health status", examples=["healthy", "degraded"])
    version: str = Field(..., description="Application version", examples=["0.1.0"])
    service: str = Field(..., description="Service name", examples=["Tenancy Watch"])
    database: str = Field(default="unknown", description="Database status", examples=["healthy", "unhealthy"])
    schema_state: str = Field(default="unknown", description="Whether the harvest tables exist", examples=["ready", "missing"])
