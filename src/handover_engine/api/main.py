"""FastAPI application for the handover service."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ..clients.postgres_client import PostgresClient
from ..logging import configure_logging
from .config import get_settings
from .routes.deals import router as deals_router
from .routes.events import router as events_router
from .routes.health import router as health_router
from .routes.stakeholders import router as stakeholders_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the shared Postgres client at startup, dispose it at shutdown."""
    settings = get_settings()
    configure_logging(json_output=settings.LOG_JSON, log_level=settings.LOG_LEVEL)

    logger.info("lifespan.startup")

    postgres = PostgresClient(settings.DATABASE_URL)
    await postgres.connect()
    if not await postgres.verify_connectivity():
        logger.warning("lifespan.postgres_connectivity_failed")

    # Store on app.state for request handlers
    app.state.postgres = postgres

    logger.info("lifespan.ready")
    yield

    # Shutdown
    logger.info("lifespan.shutdown")
    await postgres.close()


app = FastAPI(
    title="handover-engine",
    description="Deal-to-production handover and run-of-show synchronization",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(deals_router)
app.include_router(events_router)
app.include_router(stakeholders_router)
