from fastapi import APIRouter

from tenancy_watch.api.v1.endpoints import enrichment, harvest

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(harvest.router, prefix="/harvest", tags=["Harvest"])
api_router.include_router(enrichment.router, prefix="/enrichment", tags=["Enrichment"])

__all__ = ["api_router"]
