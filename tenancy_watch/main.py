"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tenancy_watch import __version__
from tenancy_watch.api.v1.router import api_router
from tenancy_watch.core.config import settings
from tenancy_watch.core.database import close_database, db_client, init_database
from tenancy_watch.core.temporal_client import close_temporal_client
from tenancy_watch.schemas.harvest import HealthCheckResponse
from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__, level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the FastAPI application.
    """
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": __version__,
            "environment": settings.environment,
        },
    )

    try:
        LOGGER.info("Initializing database...")
        await init_database(auto_migrate=settings.auto_migrate)
        LOGGER.info("Database initialized successfully")
    except Exception as e:
        # Keep serving; /health reports the database as degraded
        LOGGER.error("Failed to initialize database", exc_info=True, extra={"error": str(e)})

    yield

    LOGGER.info("Shutting down application")
    await close_temporal_client()
    try:
        await close_database()
    except Exception as e:
        LOGGER.error("Error closing database", exc_info=True, extra={"error": str(e)})


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="Harvests tenancy dispute and enforcement order listings and enriches them with AI-extracted outcomes",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get(
    "/health",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Check if the service is running and healthy",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    db_health = await db_client.health_check()

    return HealthCheckResponse(
        status="healthy" if db_health["status"] == "healthy" else "degraded",
        version=__version__,
        service=settings.app_name,
        database=db_health["status"],
        schema_state=db_health["schema"],
    )


app.include_router(api_router, prefix=settings.api_v1_prefix)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tenancy_watch.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
