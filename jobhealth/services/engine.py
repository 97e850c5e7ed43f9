"""
Financial Health Engine

Orchestrates the four pipeline stages for a job:

    Ingest -> Derive -> Trend -> Classify

compute_job_financials() is synchronous, pure and total: it accepts any
combination of present, partial or failed feeds and always returns a
well-formed JobFinancialReport. The async entry points add the feed fan-out
(evaluate_job) and bounded concurrent evaluation of many jobs
(evaluate_portfolio), returning results in input order.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Sequence, Union

import httpx

from jobhealth.core.config import Settings, get_settings
from jobhealth.models import (
    BucketGranularity,
    HealthThresholds,
    JobFeeds,
    JobFinancialReport,
)
from jobhealth.services.classification import (
    budget_status_label,
    classify_job_health,
    cpi_status_label,
    spi_status_label,
)
from jobhealth.services.feeds import fetch_job_feeds
from jobhealth.services.ingestion import build_financial_inputs, parse_job_feeds
from jobhealth.services.metrics import derive_metrics
from jobhealth.services.trend import compute_trend, today_utc

# Configure module logger
logger = logging.getLogger(__name__)


def _as_date(value: Union[date, datetime, None]) -> date:
    if value is None:
        return today_utc()
    if isinstance(value, datetime):
        return value.date()
    return value


def compute_job_financials(
    feeds: Union[JobFeeds, Mapping[str, Any], None],
    as_of: Union[date, datetime, None] = None,
    settings: Optional[Settings] = None,
    granularity: BucketGranularity = BucketGranularity.MONTH,
    thresholds: Optional[HealthThresholds] = None,
    job_id: Optional[str] = None,
) -> JobFinancialReport:
    """
    Run the full pipeline for one job.

    Args:
        feeds: Feed bundle (JobFeeds or raw mapping of feed payloads)
        as_of: Evaluation date, defaults to today (UTC)
        settings: Source of thresholds and trend window sizes
        granularity: Month or week trend buckets
        thresholds: Explicit rule thresholds, overriding settings
        job_id: Identifier to report when the job record has none

    Returns:
        JobFinancialReport
    """
    settings = settings or get_settings()
    thresholds = thresholds or HealthThresholds.from_settings(settings)
    as_of_date = _as_date(as_of)

    bundle = parse_job_feeds(feeds)

    # Stage 1: Ingest
    inputs = build_financial_inputs(bundle)

    # Stage 2/3: Trend feeds into the derived metrics
    max_buckets = (
        settings.trend_max_weeks
        if granularity == BucketGranularity.WEEK
        else settings.trend_max_months
    )
    trend = compute_trend(
        bundle.job,
        bundle.timelogRegister.data,
        bundle.apRegister.data,
        as_of=as_of_date,
        granularity=granularity,
        max_buckets=max_buckets,
        cost_threshold=thresholds.costTrendHigh,
    )
    metrics = derive_metrics(inputs, trend)

    # Stage 4: Classify
    health = classify_job_health(metrics, inputs.safetyIncidentCount, thresholds)

    report = JobFinancialReport(
        jobId=bundle.job.id or job_id,
        jobName=bundle.job.name,
        jobNumber=bundle.job.jobNumber,
        asOf=as_of_date,
        inputs=inputs,
        metrics=metrics,
        health=health,
        trend=trend,
        cpiStatus=cpi_status_label(metrics.cpi, thresholds),
        spiStatus=spi_status_label(metrics.spi, thresholds),
        budgetStatus=budget_status_label(metrics.budgetUtilization, metrics.hasBudget, thresholds),
        failedFeeds=bundle.failedFeeds,
    )

    logger.info(
        f"Job {report.jobId or '<unknown>'}: health={health.healthStatus.value}, "
        f"priority={health.priority.value}, issues={len(health.issues)}"
    )
    return report


async def evaluate_job(
    client: httpx.AsyncClient,
    job_id: str,
    as_of: Union[date, datetime, None] = None,
    settings: Optional[Settings] = None,
    granularity: BucketGranularity = BucketGranularity.MONTH,
) -> JobFinancialReport:
    """Fetch a job's feeds and compute its financial health report."""
    feeds = await fetch_job_feeds(client, job_id)
    return compute_job_financials(
        feeds,
        as_of=as_of,
        settings=settings,
        granularity=granularity,
        job_id=job_id,
    )


async def evaluate_portfolio(
    client: httpx.AsyncClient,
    job_ids: Sequence[str],
    as_of: Union[date, datetime, None] = None,
    settings: Optional[Settings] = None,
    granularity: BucketGranularity = BucketGranularity.MONTH,
) -> List[JobFinancialReport]:
    """
    Evaluate many jobs concurrently.

    At most settings.portfolio_concurrency jobs are in flight at once. Results
    are returned in the order of job_ids.
    """
    settings = settings or get_settings()
    semaphore = asyncio.Semaphore(max(1, settings.portfolio_concurrency))

    async def _evaluate(job_id: str) -> JobFinancialReport:
        async with semaphore:
            return await evaluate_job(client, job_id, as_of, settings, granularity)

    logger.info(f"Evaluating portfolio of {len(job_ids)} jobs")
    return list(await asyncio.gather(*(_evaluate(job_id) for job_id in job_ids)))


__all__ = [
    "compute_job_financials",
    "evaluate_job",
    "evaluate_portfolio",
]
