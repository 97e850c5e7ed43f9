"""
FastAPI dependency injection module for the Job Financial Health backend.

Provides reusable FastAPI dependencies for configuration access and the shared
feed API client, so endpoint handlers stay decoupled from infrastructure and
tests can swap either one through app.dependency_overrides.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_feed_client: Returns the shared httpx.AsyncClient
- SettingsDep: Type alias for injecting Settings into endpoints
- FeedClientDep: Type alias for injecting the feed client into endpoints

Usage Examples:
    @router.get("/jobs/{job_id}/financial-health")
    async def get_job_financial_health(
        job_id: str,
        client: FeedClientDep,
        settings: SettingsDep,
    ) -> JobFinancialReport:
        return await evaluate_job(client, job_id, settings=settings)

    # In tests
    app.dependency_overrides[get_feed_client] = lambda: mock_client
"""

from typing import Annotated

import httpx
from fastapi import Depends

from jobhealth.core.config import Settings, get_settings
from jobhealth.core.http_client import get_http_client


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    This is a thin wrapper around get_settings() to enable FastAPI's
    dependency override mechanism for testing:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings

    Returns:
        Settings: The cached Settings instance with all configuration values.
    """
    return get_settings()


# =============================================================================
# Feed Client Dependency
# =============================================================================

async def get_feed_client() -> httpx.AsyncClient:
    """
    Return the shared feed API client.

    The client is owned by the application lifespan; handlers must not close it.

    Returns:
        httpx.AsyncClient: The shared client instance.
    """
    return await get_http_client()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

# Usage: async def endpoint(client: FeedClientDep)
FeedClientDep = Annotated[httpx.AsyncClient, Depends(get_feed_client)]
