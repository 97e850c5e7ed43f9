"""
Settings and environment management module for the Job Financial Health backend.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development
- Singleton pattern via @lru_cache for efficient access
- Health-rule thresholds that can be tuned per deployment

Environment Variables:
- FEED_API_BASE_URL: Base URL of the job management REST API (default: http://localhost:5000/api)
- FEED_API_TOKEN: Optional bearer token sent with every feed request
- FEED_REQUEST_TIMEOUT_SECONDS: Per-request timeout for feed calls
- PORTFOLIO_CONCURRENCY: Maximum number of jobs evaluated at the same time
- CORS_ORIGINS: Allowed browser origins for the single-page client

Health Rule Defaults:
- cpi_critical_threshold: 0.9 (CPI below this is over budget)
- cpi_target: 1.0 (CPI at or above this is on budget)
- budget_caution_percent: 75 (budget utilization above this needs attention)
- budget_critical_percent: 90 (budget utilization above this is critical)
- cost_trend_high_threshold: 0.20 (month-over-month cost increase flagged as high)
- trend_max_months: 6 (monthly buckets shown for spending trends)
- trend_max_weeks: 8 (weekly buckets shown for spending trends)

Usage:
    from jobhealth.core.config import get_settings

    settings = get_settings()
    base_url = settings.feed_api_base_url
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The class inherits from pydantic-settings BaseSettings which provides:
    - Automatic loading from environment variables (case-insensitive)
    - Support for .env file loading
    - Type validation and coercion
    - Default values for optional settings

    Attributes:
        feed_api_base_url: Base URL of the REST API that serves job feeds.
        feed_api_token: Optional bearer token for the feed API.
        feed_request_timeout_seconds: Timeout applied to each feed request.
        portfolio_concurrency: Upper bound on concurrently evaluated jobs.
        cors_origins: Browser origins allowed by the CORS middleware.
        cpi_critical_threshold: CPI below which a job is over budget.
        cpi_target: CPI at or above which a job is on budget.
        budget_caution_percent: Budget utilization warning threshold.
        budget_critical_percent: Budget utilization critical threshold.
        cost_trend_high_threshold: Relative month-over-month cost increase flagged as high.
        trend_max_months: Maximum number of monthly trend buckets.
        trend_max_weeks: Maximum number of weekly trend buckets.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',  # Ignore extra environment variables not defined in this class
        case_sensitive=False,
    )

    # =========================================================================
    # Feed API
    # =========================================================================

    # Base URL of the job management API; feed paths are appended to it
    feed_api_base_url: str = 'http://localhost:5000/api'

    # Sent as "Authorization: Bearer <token>" when set
    feed_api_token: Optional[str] = None

    feed_request_timeout_seconds: float = 10.0

    # Jobs evaluated concurrently by the portfolio endpoints
    portfolio_concurrency: int = 8

    cors_origins: List[str] = [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
    ]

    # =========================================================================
    # Health Rule Thresholds
    # =========================================================================

    # CPI < 0.9 -> over budget (critical); 0.9 <= CPI < 1.0 -> at risk
    cpi_critical_threshold: float = 0.9
    cpi_target: float = 1.0

    # Budget utilization percent thresholds, compared against progress percent
    budget_caution_percent: float = 75.0
    budget_critical_percent: float = 90.0

    # A >20% month-over-month cost increase is flagged
    cost_trend_high_threshold: float = 0.20

    # =========================================================================
    # Trend Window
    # =========================================================================

    trend_max_months: int = 6
    trend_max_weeks: int = 8


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns a cached Settings instance, ensuring that environment variables
    are only loaded once during the application lifecycle.

    Returns:
        Settings: The application settings instance with all configuration values.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
