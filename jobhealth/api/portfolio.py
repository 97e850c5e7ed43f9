"""
FastAPI router module for portfolio views over many jobs.

Implements:
- POST /portfolio/financial-health: evaluate jobs, filter by budget status,
  sort, and summarize
- POST /portfolio/at-risk: evaluate jobs and rank the unhealthy ones

Jobs are evaluated concurrently (bounded by PORTFOLIO_CONCURRENCY). The summary
covers every requested job; the reports list is the filtered, sorted view.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, Field

from jobhealth.core.dependencies import FeedClientDep, SettingsDep
from jobhealth.models import (
    BudgetStatusFilter,
    HealthStatus,
    JobFinancialReport,
    JobIssue,
    PortfolioSummary,
    Priority,
)
from jobhealth.services.engine import evaluate_portfolio
from jobhealth.services.portfolio import (
    SORT_FIELDS,
    filter_reports,
    rank_at_risk,
    sort_reports,
    summarize_portfolio,
)


# Configure logging
logger = logging.getLogger(__name__)


# =============================================================================
# Local Pydantic Models for API Requests/Responses
# =============================================================================

class PortfolioRequest(BaseModel):
    """Request model for portfolio financial health."""
    jobIds: List[str] = Field(..., description="Jobs to evaluate")
    statusFilter: BudgetStatusFilter = Field(
        default=BudgetStatusFilter.ALL,
        description="Budget status filter keyed on the CPI label"
    )
    sortBy: str = Field(default="jobName", description="Sort field")
    descending: bool = Field(default=False, description="Sort descending")
    asOf: Optional[date] = Field(default=None, description="Evaluation date; defaults to today")


class PortfolioResponse(BaseModel):
    """Filtered, sorted reports plus a summary over every requested job."""
    reports: List[JobFinancialReport] = Field(default_factory=list)
    summary: PortfolioSummary
    total: int = Field(..., ge=0, description="Reports after filtering")


class AtRiskRequest(BaseModel):
    """Request model for at-risk ranking."""
    jobIds: List[str] = Field(..., description="Jobs to evaluate")
    limit: int = Field(default=10, ge=1, le=500, description="Maximum jobs to return")
    asOf: Optional[date] = Field(default=None, description="Evaluation date; defaults to today")


class AtRiskJob(BaseModel):
    """One ranked unhealthy job."""
    jobId: Optional[str] = None
    jobName: Optional[str] = None
    jobNumber: Optional[str] = None
    healthStatus: HealthStatus
    priority: Priority
    topIssue: Optional[JobIssue] = Field(default=None, description="First issue in rule order")
    issueCount: int = 0
    cpi: Optional[float] = None
    budgetUtilization: float = 0.0


class AtRiskResponse(BaseModel):
    jobs: List[AtRiskJob] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Unhealthy jobs before the limit")


router = APIRouter(prefix="/portfolio", tags=["portfolio"])


def _require_job_ids(job_ids: List[str]) -> None:
    if not job_ids:
        raise HTTPException(status_code=400, detail="jobIds must contain at least one job id")


# =============================================================================
# Endpoint Implementations
# =============================================================================


@router.post("/financial-health", response_model=PortfolioResponse)
async def get_portfolio_financial_health(
    client: FeedClientDep,
    settings: SettingsDep,
    request: PortfolioRequest = Body(...),
) -> PortfolioResponse:
    """
    Evaluate a set of jobs and return the filtered, sorted reports.

    Raises:
        HTTPException(400) for an empty job list or unsupported sort field
    """
    _require_job_ids(request.jobIds)
    if request.sortBy not in SORT_FIELDS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported sortBy '{request.sortBy}'. Supported: {sorted(SORT_FIELDS)}"
        )

    try:
        reports = await evaluate_portfolio(
            client,
            request.jobIds,
            as_of=request.asOf,
            settings=settings,
        )
        summary = summarize_portfolio(reports)
        visible = sort_reports(
            filter_reports(reports, request.statusFilter),
            request.sortBy,
            request.descending,
        )
        return PortfolioResponse(reports=visible, summary=summary, total=len(visible))
    except Exception as e:
        logger.exception(f"Error evaluating portfolio of {len(request.jobIds)} jobs")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to evaluate portfolio: {str(e)}"
        )


@router.post("/at-risk", response_model=AtRiskResponse)
async def get_at_risk_jobs(
    client: FeedClientDep,
    settings: SettingsDep,
    request: AtRiskRequest = Body(...),
) -> AtRiskResponse:
    """
    Rank unhealthy jobs, most severe first.

    Raises:
        HTTPException(400) for an empty job list
    """
    _require_job_ids(request.jobIds)

    try:
        reports = await evaluate_portfolio(
            client,
            request.jobIds,
            as_of=request.asOf,
            settings=settings,
        )
        ranked = rank_at_risk(reports)
        jobs = [
            AtRiskJob(
                jobId=report.jobId,
                jobName=report.jobName,
                jobNumber=report.jobNumber,
                healthStatus=report.health.healthStatus,
                priority=report.health.priority,
                topIssue=report.health.issues[0] if report.health.issues else None,
                issueCount=len(report.health.issues),
                cpi=report.metrics.cpi,
                budgetUtilization=report.metrics.budgetUtilization,
            )
            for report in ranked[:request.limit]
        ]
        logger.info(f"Found {len(ranked)} at-risk jobs out of {len(reports)}")
        return AtRiskResponse(jobs=jobs, total=len(ranked))
    except Exception as e:
        logger.exception(f"Error ranking at-risk jobs for {len(request.jobIds)} jobs")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to rank at-risk jobs: {str(e)}"
        )


__all__ = ["router"]
