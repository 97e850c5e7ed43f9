"""
Shared async HTTP client module for the job management feed API.

This module owns a single httpx.AsyncClient used by every feed request: one
client per process, created at startup and closed at shutdown, so that
keep-alive connections are reused across the concurrent feed fan-out.

Key Components:
- Global client singleton (_client)
- init_http_client(): Create the client at application startup
- get_http_client(): Get the client instance (initializes if needed)
- close_http_client(): Close the client at application shutdown

Usage:
    # At application startup (in FastAPI lifespan)
    await init_http_client()

    # In services
    client = await get_http_client()
    response = await client.get("/jobs/123")

    # At application shutdown
    await close_http_client()
"""

import logging
from typing import Dict, Optional

import httpx

from jobhealth.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Global Client Singleton
# =============================================================================

# None until init_http_client() is called
_client: Optional[httpx.AsyncClient] = None


def build_http_client(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build an httpx.AsyncClient configured for the feed API.

    Args:
        settings: Settings to read the base URL, token and timeout from
        transport: Optional transport override (httpx.MockTransport in tests)

    Returns:
        A new, unopened AsyncClient
    """
    if settings is None:
        settings = get_settings()

    headers: Dict[str, str] = {"Accept": "application/json"}
    if settings.feed_api_token:
        headers["Authorization"] = f"Bearer {settings.feed_api_token}"

    return httpx.AsyncClient(
        base_url=settings.feed_api_base_url.rstrip("/"),
        headers=headers,
        timeout=settings.feed_request_timeout_seconds,
        transport=transport,
    )


# =============================================================================
# Client Lifecycle Functions
# =============================================================================

async def init_http_client() -> httpx.AsyncClient:
    """
    Initialize the shared HTTP client.

    Idempotent: returns the existing client when already initialized.

    Returns:
        httpx.AsyncClient: The shared client instance.
    """
    global _client

    if _client is None:
        _client = build_http_client()
        logger.info(f"Feed API client initialized for {_client.base_url}")

    return _client


async def get_http_client() -> httpx.AsyncClient:
    """
    Get the shared HTTP client, initializing if needed.

    Returns:
        httpx.AsyncClient: The shared client instance.
    """
    global _client

    if _client is None:
        await init_http_client()

    assert _client is not None, "Client should be initialized after init_http_client()"

    return _client


async def close_http_client() -> None:
    """
    Close the shared HTTP client.

    Idempotent: calling it when no client exists has no effect. After closing,
    get_http_client() creates a fresh client (useful in tests).
    """
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None
