"""
FastAPI application entry point for the Job Financial Health API.

This module configures logging, CORS and the shared feed API client lifecycle,
registers the API routers, and starts the ASGI server when run directly.

Dependency injection keeps handlers decoupled from infrastructure:
- The feed client is created in the lifespan and injected into endpoints
- Settings are injected so tests can override thresholds
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jobhealth import __version__
from jobhealth.api import api_router
from jobhealth.core.config import get_settings
from jobhealth.core.http_client import close_http_client, init_http_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Create the shared feed API client

    On shutdown:
        - Close the feed API client
    """
    # Startup
    logger.info("Job Financial Health API starting")
    await init_http_client()

    yield

    # Shutdown
    logger.info("Job Financial Health API shutting down")
    await close_http_client()
    logger.info("Feed API client closed")


# Create FastAPI application
app = FastAPI(
    title="Job Financial Health API",
    version=__version__,
    description=(
        "Computes per-job financial metrics, labor and cost trends, and a "
        "prioritized health classification from job management feeds."
    ),
    lifespan=lifespan,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "Job Financial Health API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "jobhealth.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
