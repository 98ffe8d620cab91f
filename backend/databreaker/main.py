"""Data Breaker - FastAPI Application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from databreaker.config import settings
from databreaker.api.deps import get_connector_registry
from databreaker.api.routes import brokers, scans, requests, registry, reports
from databreaker.db.database import init_db
from databreaker.logging_setup import init_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging, database and connectors on startup; close connectors on shutdown."""
    init_logging()
    await init_db()
    connector_registry = get_connector_registry()
    logger.info("Connectors ready: %s", ", ".join(connector_registry.ids()))
    yield
    await connector_registry.aclose_all()
    get_connector_registry.cache_clear()


app = FastAPI(
    lifespan=lifespan,
    title=settings.app_name,
    description="Data broker scanning and deletion orchestration",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Include routers
app.include_router(brokers.router, prefix=f"{settings.api_prefix}/brokers", tags=["Data Brokers"])
app.include_router(scans.router, prefix=f"{settings.api_prefix}/scans", tags=["Scans"])
app.include_router(requests.router, prefix=f"{settings.api_prefix}/requests", tags=["Deletion Requests"])
app.include_router(registry.router, prefix=f"{settings.api_prefix}/registry", tags=["Broker Registry"])
app.include_router(reports.router, prefix=f"{settings.api_prefix}/reports", tags=["Reports"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
