"""
Core infrastructure package for the FastAPI backend.

Provides:
- Configuration management via pydantic-settings
- Shared async HTTP client for the job management feed API via httpx
- FastAPI dependency injection utilities

Re-exports key components so other modules can write:

    from jobhealth.core import get_settings, get_http_client, FeedClientDep

Instead of:

    from jobhealth.core.config import get_settings
    from jobhealth.core.http_client import get_http_client
    from jobhealth.core.dependencies import FeedClientDep
"""

# =============================================================================
# Re-exports from jobhealth.core.config
# =============================================================================
from jobhealth.core.config import Settings, get_settings

# =============================================================================
# Re-exports from jobhealth.core.http_client
# =============================================================================
from jobhealth.core.http_client import (
    build_http_client,
    init_http_client,
    close_http_client,
    get_http_client,
)

# =============================================================================
# Re-exports from jobhealth.core.dependencies
# =============================================================================
from jobhealth.core.dependencies import (
    get_settings_dependency,
    get_feed_client,
    SettingsDep,
    FeedClientDep,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # HTTP client lifecycle (from http_client.py)
    'build_http_client',
    'init_http_client',
    'close_http_client',
    'get_http_client',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'get_feed_client',
    'SettingsDep',
    'FeedClientDep',
]
