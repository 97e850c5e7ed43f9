"""
FastAPI router module for per-job financial health.

Implements:
- POST /financial-health/compute: pure computation over caller-supplied feeds
- GET /jobs/{job_id}/financial-health: fetch the job's feeds, then compute
- GET /jobs/{job_id}/earned-vs-burned: per SOV line earned value vs burned cost

Feed failures never surface as errors here: they degrade inside the fan-out
and are reported in the response's failedFeeds. Unexpected failures are logged
and returned as HTTP 500.
"""

import logging
from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Body, HTTPException, Query
from pydantic import BaseModel, Field

from jobhealth.core.dependencies import FeedClientDep, SettingsDep
from jobhealth.models import (
    BucketGranularity,
    EarnedVsBurnedAnalysis,
    FeedName,
    JobFinancialReport,
)
from jobhealth.services.earned_value import analyze_earned_vs_burned
from jobhealth.services.engine import compute_job_financials, evaluate_job
from jobhealth.services.feeds import EARNED_VS_BURNED_FEEDS, fetch_job_feeds
from jobhealth.services.ingestion import parse_job_feeds


# Configure logging
logger = logging.getLogger(__name__)


# =============================================================================
# Local Pydantic Models for API Requests/Responses
# =============================================================================

class ComputeFinancialHealthRequest(BaseModel):
    """
    Raw feed payloads plus evaluation options for the pure compute endpoint.

    Feed members are accepted as-is and validated by parse_job_feeds, so a
    malformed member degrades to its empty shape and is listed in failedFeeds
    instead of failing the whole request.
    """
    job: Optional[Any] = Field(default=None, description="Job record (GET /jobs/{jobId} data)")
    evm: Optional[Any] = Field(default=None, description="Earned-vs-burned totals feed")
    apRegister: Optional[Any] = Field(default=None, description="AP register feed")
    timelogRegister: Optional[Any] = Field(default=None, description="Timelog register feed")
    sovComponents: Optional[Any] = Field(default=None, description="SOV components feed")
    progressReports: Optional[Any] = Field(default=None, description="Progress reports feed")
    forecasts: Optional[Any] = Field(default=None, description="Cost-to-complete forecasts feed")
    failedFeeds: List[str] = Field(
        default_factory=list,
        description="Feeds the caller already knows failed"
    )
    asOf: Optional[date] = Field(
        default=None,
        description="Evaluation date; defaults to today"
    )
    granularity: BucketGranularity = Field(
        default=BucketGranularity.MONTH,
        description="Trend bucket width"
    )


class EarnedVsBurnedResponse(EarnedVsBurnedAnalysis):
    """Earned-vs-burned analysis plus the feeds that could not be fetched."""
    jobId: str
    failedFeeds: List[FeedName] = Field(default_factory=list)


router = APIRouter()


# =============================================================================
# Endpoint Implementations
# =============================================================================


@router.post("/financial-health/compute", response_model=JobFinancialReport)
async def compute_financial_health(
    settings: SettingsDep,
    request: ComputeFinancialHealthRequest = Body(...),
) -> JobFinancialReport:
    """
    Compute a financial health report from feeds supplied in the request body.

    Missing feeds take their empty shape, exactly as a failed fetch would.
    """
    try:
        feeds = parse_job_feeds(request.model_dump(exclude={"asOf", "granularity"}))
        return compute_job_financials(
            feeds,
            as_of=request.asOf,
            settings=settings,
            granularity=request.granularity,
        )
    except Exception as e:
        logger.exception("Error computing financial health from supplied feeds")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute financial health: {str(e)}"
        )


@router.get("/jobs/{job_id}/financial-health", response_model=JobFinancialReport)
async def get_job_financial_health(
    job_id: str,
    client: FeedClientDep,
    settings: SettingsDep,
    asOf: Optional[date] = Query(default=None, description="Evaluation date; defaults to today"),
    granularity: BucketGranularity = Query(default=BucketGranularity.MONTH, description="Trend bucket width"),
) -> JobFinancialReport:
    """
    Fetch a job's feeds and compute its financial health report.

    Args:
        job_id: Job identifier in the job management API
        asOf: Evaluation date
        granularity: Month or week trend buckets

    Returns:
        JobFinancialReport; failedFeeds lists feeds that degraded to defaults
    """
    try:
        return await evaluate_job(
            client,
            job_id,
            as_of=asOf,
            settings=settings,
            granularity=granularity,
        )
    except Exception as e:
        logger.exception(f"Error computing financial health for job {job_id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute financial health for job {job_id}: {str(e)}"
        )


@router.get("/jobs/{job_id}/earned-vs-burned", response_model=EarnedVsBurnedResponse)
async def get_job_earned_vs_burned(
    job_id: str,
    client: FeedClientDep,
) -> EarnedVsBurnedResponse:
    """
    Earned value against burned cost for each schedule of values line.

    Only the SOV components, AP register and timelog register feeds are fetched.
    """
    try:
        feeds = await fetch_job_feeds(client, job_id, EARNED_VS_BURNED_FEEDS)
        analysis = analyze_earned_vs_burned(feeds)
        logger.info(f"Earned vs burned for job {job_id}: {analysis.lineItemCount} lines")
        return EarnedVsBurnedResponse(
            **analysis.model_dump(),
            jobId=job_id,
            failedFeeds=feeds.failedFeeds,
        )
    except Exception as e:
        logger.exception(f"Error analyzing earned vs burned for job {job_id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to analyze earned vs burned for job {job_id}: {str(e)}"
        )


__all__ = ["router"]
