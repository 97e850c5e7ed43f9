"""
API package initialization.

This package contains FastAPI router modules for the Job Financial Health service:
- financial_health: Per-job financial health (compute from feeds, fetch + compute,
  earned-vs-burned line analysis)
- portfolio: Multi-job financial health, filtering, sorting and at-risk ranking
"""

from fastapi import APIRouter

# Import router modules
from jobhealth.api.financial_health import router as financial_health_router
from jobhealth.api.portfolio import router as portfolio_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(financial_health_router, tags=["financial-health"])
api_router.include_router(portfolio_router)  # portfolio router has its own prefix

# Export all routers for selective imports
__all__ = [
    "api_router",
    "financial_health_router",
    "portfolio_router",
]
