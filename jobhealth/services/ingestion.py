"""
Feed Ingestion Service

Normalizes the job record and the six per-job feeds into a single
FinancialInputs record. This is the first stage of the financial health
pipeline; every later stage consumes only FinancialInputs.

Feeds:
- Job record: contract value fallback, stored progress, trend window dates
- Earned-vs-burned totals: CPI, SPI, cost variance, actual cost, earned value
- AP register: invoices plus totalAmount / paidAmount meta
- Timelog register: labor entries plus totalHours meta
- SOV components: budget baseline (summary.totalValue)
- Progress reports: approved percent complete to date
- Cost-to-complete forecasts: margin at completion

Key Rules:
- A missing or malformed feed degrades to its empty shape and never raises
- SOV budget takes precedence over the job's static contract value when positive
- Approved progress report percent overrides the job's stored progress
- Latest report / forecast are picked after an explicit descending re-sort
- totalHours prefers the register meta over summing the (possibly paged) entries
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from jobhealth.models import (
    APRegisterFeed,
    EVMFeed,
    FeedName,
    FinancialInputs,
    Forecast,
    ForecastsFeed,
    JobFeeds,
    JobRecord,
    ProgressReport,
    ProgressReportsFeed,
    SOVComponentsFeed,
    TimelogEntry,
    TimelogRegisterFeed,
)

# Configure module logger
logger = logging.getLogger(__name__)

FeedModel = TypeVar("FeedModel", bound=BaseModel)

# =============================================================================
# CONSTANTS
# =============================================================================

APPROVED_STATUS: str = "approved"
ARCHIVED_STATUS: str = "archived"

# Sort sentinel for reports without a parseable date
_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

# JobFeeds attribute -> (feed model, feed name)
FEED_MODELS = {
    "job": (JobRecord, FeedName.JOB),
    "evm": (EVMFeed, FeedName.EVM),
    "apRegister": (APRegisterFeed, FeedName.AP_REGISTER),
    "timelogRegister": (TimelogRegisterFeed, FeedName.TIMELOG_REGISTER),
    "sovComponents": (SOVComponentsFeed, FeedName.SOV_COMPONENTS),
    "progressReports": (ProgressReportsFeed, FeedName.PROGRESS_REPORTS),
    "forecasts": (ForecastsFeed, FeedName.FORECASTS),
}


# =============================================================================
# Feed Parsing
# =============================================================================

def parse_feed(
    model_cls: Type[FeedModel],
    payload: Any,
    feed_name: Optional[FeedName] = None,
) -> FeedModel:
    """
    Validate one feed payload, degrading to the empty shape on failure.

    Args:
        model_cls: The feed model to validate against
        payload: Raw decoded JSON (or an already-built model instance)
        feed_name: Feed name used in the warning log

    Returns:
        A model instance; the default instance when payload is missing or invalid
    """
    parsed, _ = _validate_feed(model_cls, payload, feed_name)
    return parsed


def _validate_feed(model_cls, payload, feed_name):
    """Returns (model, degraded) where degraded marks a discarded payload."""
    label = feed_name.value if feed_name else model_cls.__name__
    if isinstance(payload, model_cls):
        return payload, False
    if payload is None:
        return model_cls(), False
    if not isinstance(payload, Mapping):
        logger.warning(
            f"Feed {label} is not a JSON object ({type(payload).__name__}); using defaults"
        )
        return model_cls(), True
    try:
        return model_cls.model_validate(dict(payload)), False
    except ValidationError as e:
        logger.warning(f"Feed {label} failed validation ({e.error_count()} errors); using defaults")
        return model_cls(), True


def parse_job_feeds(raw: Union[JobFeeds, Mapping[str, Any], None]) -> JobFeeds:
    """
    Build a JobFeeds bundle, validating each feed independently.

    A malformed member degrades on its own and is added to failedFeeds, so one
    bad feed never discards the others.

    Args:
        raw: A JobFeeds instance or a mapping keyed by JobFeeds attribute names

    Returns:
        JobFeeds with every member populated
    """
    if isinstance(raw, JobFeeds):
        return raw
    if not isinstance(raw, Mapping):
        return JobFeeds()

    failed: List[FeedName] = []
    for name in raw.get("failedFeeds") or []:
        try:
            failed.append(FeedName(name))
        except ValueError:
            logger.warning(f"Ignoring unknown failed feed name {name!r}")

    members = {}
    for attr, (model_cls, feed_name) in FEED_MODELS.items():
        parsed, degraded = _validate_feed(model_cls, raw.get(attr), feed_name)
        if degraded:
            failed.append(feed_name)
        members[attr] = parsed

    return JobFeeds(**members, failedFeeds=list(dict.fromkeys(failed)))


# =============================================================================
# Selection Helpers
# =============================================================================

# Digit runs in report numbers compare numerically ("PR-10" after "PR-9")
_DIGIT_RUN = re.compile(r"([0-9]+)")


def _natural_key(value: str) -> tuple:
    return tuple(
        (0, int(part), "") if _DIGIT_RUN.fullmatch(part) else (1, 0, part.lower())
        for part in _DIGIT_RUN.split(value)
        if part
    )


def _report_sort_key(report: ProgressReport):
    return (report.reportDate or _EARLIEST, _natural_key(report.reportNumber or ""))



def select_latest_approved_report(
    reports: Sequence[ProgressReport]
) -> Optional[ProgressReport]:
    """
    Pick the most recent approved progress report.

    Reports are re-sorted descending by (reportDate, reportNumber). The sort is
    stable, so a feed that is already sorted yields the same pick as taking its
    first approved element.

    Args:
        reports: Progress reports in any order

    Returns:
        The latest approved report, or None when there is none
    """
    approved = [
        report for report in reports
        if (report.status or "").lower() == APPROVED_STATUS
    ]
    if not approved:
        return None
    return sorted(approved, key=_report_sort_key, reverse=True)[0]


def select_latest_forecast(forecasts: Sequence[Forecast]) -> Optional[Forecast]:
    """
    Pick the most recent non-archived forecast with computed results.

    Args:
        forecasts: Cost-to-complete forecasts in any order

    Returns:
        The forecast with the highest monthNumber among those that are not
        archived and carry a non-empty summary, or None
    """
    candidates = [
        forecast for forecast in forecasts
        if (forecast.status or "").lower() != ARCHIVED_STATUS
        and forecast.summary is not None
        and not forecast.summary.is_empty()
    ]
    if not candidates:
        return None
    ordered = sorted(
        candidates,
        key=lambda forecast: forecast.monthNumber if forecast.monthNumber is not None else float("-inf"),
        reverse=True,
    )
    return ordered[0]


def count_safety_incidents(entries: Sequence[TimelogEntry]) -> int:
    """Total safety incidents recorded across timelog entries."""
    return sum(len(entry.safetyIncidents or []) for entry in entries)


def resolve_total_hours(timelog: TimelogRegisterFeed) -> float:
    """
    Total labor hours for the job.

    The register meta is preferred because it covers entries beyond the page
    returned in data; the entry sum is the fallback.
    """
    if timelog.meta.totalHours is not None:
        return timelog.meta.totalHours
    return sum(entry.totalHours or 0.0 for entry in timelog.data)


def _available_index(value: Optional[float]) -> Optional[float]:
    # Zero or negative performance indices mean the upstream did not compute one
    if value is None or value <= 0:
        return None
    return value


# =============================================================================
# Main Ingestion Entry Point
# =============================================================================

def build_financial_inputs(feeds: Union[JobFeeds, Mapping[str, Any], None]) -> FinancialInputs:
    """
    Normalize a job's feeds into FinancialInputs.

    Total for every combination of present, partial, malformed or missing
    feeds: missing numbers default to 0, missing optional records to None.

    Args:
        feeds: JobFeeds bundle or a raw mapping of feed payloads

    Returns:
        FinancialInputs ready for metric derivation
    """
    bundle = parse_job_feeds(feeds)

    job = bundle.job
    totals = bundle.evm.totals
    ap_meta = bundle.apRegister.meta
    timelog = bundle.timelogRegister
    reports = bundle.progressReports.data

    total_budget = bundle.sovComponents.data.summary.totalValue or 0.0
    contract_value = total_budget if total_budget > 0 else (job.contractValue or 0.0)

    latest_report = select_latest_approved_report(reports)
    latest_forecast = select_latest_forecast(bundle.forecasts.data)

    report_progress = None
    if latest_report is not None and latest_report.summary is not None:
        report_progress = latest_report.summary.calculatedPercentCTD
    progress_percent = report_progress or job.overallProgress or 0.0

    inputs = FinancialInputs(
        actualCost=totals.actualCost or 0.0,
        earnedValue=totals.earnedValue or 0.0,
        laborCost=totals.laborCost or 0.0,
        apCost=totals.apCost or 0.0,
        costVariance=totals.costVariance or 0.0,
        cpi=_available_index(totals.cpi),
        spi=_available_index(totals.spi),
        totalBudget=total_budget,
        contractValue=contract_value,
        apTotalAmount=ap_meta.totalAmount or 0.0,
        apPaidAmount=ap_meta.paidAmount or 0.0,
        totalHours=resolve_total_hours(timelog),
        safetyIncidentCount=count_safety_incidents(timelog.data),
        progressReportsCount=len(reports),
        progressPercent=progress_percent,
        latestApprovedProgressReport=latest_report,
        latestForecast=latest_forecast,
    )

    logger.debug(
        f"Ingested job {job.id or '<unknown>'}: budget={total_budget:.2f}, "
        f"actual={inputs.actualCost:.2f}, progress={progress_percent:.1f}%"
    )
    return inputs


__all__ = [
    "parse_feed",
    "parse_job_feeds",
    "select_latest_approved_report",
    "select_latest_forecast",
    "count_safety_incidents",
    "resolve_total_hours",
    "build_financial_inputs",
    "FEED_MODELS",
]
