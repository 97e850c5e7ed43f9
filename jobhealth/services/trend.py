"""
Labor and Cost Trend Service

Buckets dated timelog and AP entries into consecutive calendar months (or
Monday-start weeks) ending at the job's reference date, then classifies the
movement between the final two buckets.

Window:
- referenceDate = min(jobEnd, asOf), jobEnd = plannedEndDate or endDate
- bucket count = clamp(ceil(days since jobStart / 30), 1, max_buckets) for months,
  clamp(ceil(days / 7), 1, max_buckets) for weeks
- A job without a start date shows the full max_buckets window

Accumulation:
- Timelog entries add hours and labor cost (burden-loaded cost preferred)
- AP invoices add materials cost
- Entries outside the window or without a usable date are ignored

Classification:
- laborTrend: hours delta, increasing / decreasing / stable
- costTrend: total cost delta, 'high' only when the rise over a non-zero
  previous bucket exceeds the threshold (default 20%)
"""

import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from jobhealth.models import (
    APEntry,
    BucketGranularity,
    CostTrendStatus,
    JobRecord,
    LaborTrendStatus,
    TimeBucket,
    TimelogEntry,
    TrendResult,
)

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_MAX_MONTHS: int = 6
DEFAULT_MAX_WEEKS: int = 8
DEFAULT_COST_TREND_THRESHOLD: float = 0.20

DAYS_PER_BUCKET = {
    BucketGranularity.MONTH: 30,
    BucketGranularity.WEEK: 7,
}

_VALUE_COLUMNS = ["hours", "labor", "materials"]


# =============================================================================
# Window Helpers
# =============================================================================

def _as_date(value: Optional[datetime]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def bucket_start(day: date, granularity: BucketGranularity) -> date:
    """First day of the month or week (Monday) containing day."""
    if granularity == BucketGranularity.WEEK:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def _shift_months(month_start: date, months: int) -> date:
    index = month_start.year * 12 + (month_start.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def resolve_window(
    job: JobRecord,
    as_of: Optional[date] = None,
    granularity: BucketGranularity = BucketGranularity.MONTH,
    max_buckets: Optional[int] = None,
) -> Tuple[date, int]:
    """
    Determine the reference date and number of buckets to show.

    Args:
        job: Job record supplying start and end dates
        as_of: Evaluation date (defaults to today, UTC)
        granularity: Month or week buckets
        max_buckets: Upper bound on the bucket count

    Returns:
        (reference_date, bucket_count)
    """
    as_of = as_of or today_utc()
    if max_buckets is None:
        max_buckets = DEFAULT_MAX_WEEKS if granularity == BucketGranularity.WEEK else DEFAULT_MAX_MONTHS
    max_buckets = max(1, max_buckets)

    job_end = _as_date(job.plannedEndDate or job.endDate)
    reference_date = min(job_end, as_of) if job_end is not None else as_of

    job_start = _as_date(job.plannedStartDate or job.startDate)
    if job_start is None:
        return reference_date, max_buckets

    days = (reference_date - job_start).days
    count = math.ceil(days / DAYS_PER_BUCKET[granularity])
    return reference_date, min(max(count, 1), max_buckets)


def window_starts(
    reference_date: date,
    count: int,
    granularity: BucketGranularity = BucketGranularity.MONTH,
) -> List[date]:
    """Chronological bucket start dates, the last one containing reference_date."""
    last = bucket_start(reference_date, granularity)
    if granularity == BucketGranularity.WEEK:
        return [last - timedelta(weeks=offset) for offset in range(count - 1, -1, -1)]
    return [_shift_months(last, -offset) for offset in range(count - 1, -1, -1)]


def _bucket_key(start: date, granularity: BucketGranularity) -> str:
    if granularity == BucketGranularity.WEEK:
        return start.isoformat()
    return f"{start.year:04d}-{start.month:02d}"


def _bucket_label(start: date, granularity: BucketGranularity) -> str:
    if granularity == BucketGranularity.WEEK:
        return f"{start:%b} {start.day}"
    return f"{start:%b %Y}"


# =============================================================================
# Bucketing
# =============================================================================

def build_time_buckets(
    job: JobRecord,
    timelog_entries: Iterable[TimelogEntry],
    ap_entries: Iterable[APEntry],
    as_of: Optional[date] = None,
    granularity: BucketGranularity = BucketGranularity.MONTH,
    max_buckets: Optional[int] = None,
) -> List[TimeBucket]:
    """
    Aggregate timelog and AP entries into the job's trend window.

    Args:
        job: Job record bounding the window
        timelog_entries: Labor entries (workDate, totalHours, cost)
        ap_entries: AP invoices (invoiceDate, totalAmount)
        as_of: Evaluation date (defaults to today, UTC)
        granularity: Month or week buckets
        max_buckets: Upper bound on the bucket count

    Returns:
        Chronological list of TimeBucket, zero-filled where nothing was logged
    """
    reference_date, count = resolve_window(job, as_of, granularity, max_buckets)
    starts = window_starts(reference_date, count, granularity)

    records = []
    for entry in timelog_entries:
        if entry.workDate is None:
            continue
        records.append({
            "start": bucket_start(entry.workDate.date(), granularity),
            "hours": entry.totalHours or 0.0,
            "labor": entry.totalCostWithBurden or entry.totalCost or 0.0,
            "materials": 0.0,
        })
    for invoice in ap_entries:
        if invoice.invoiceDate is None:
            continue
        records.append({
            "start": bucket_start(invoice.invoiceDate.date(), granularity),
            "hours": 0.0,
            "labor": 0.0,
            "materials": invoice.totalAmount or 0.0,
        })

    if records:
        frame = pd.DataFrame.from_records(records)
        frame = frame[frame["start"].isin(starts)]
        dropped = len(records) - len(frame)
        if dropped:
            logger.debug(f"Ignored {dropped} entries outside the {granularity.value} trend window")
        totals = (
            frame.groupby("start")[_VALUE_COLUMNS]
            .sum()
            .reindex(starts, fill_value=0.0)
            .astype(float)
        )
    else:
        totals = pd.DataFrame(0.0, index=starts, columns=_VALUE_COLUMNS)

    buckets = []
    for start in starts:
        row = totals.loc[start]
        labor = float(row["labor"])
        materials = float(row["materials"])
        buckets.append(TimeBucket(
            key=_bucket_key(start, granularity),
            label=_bucket_label(start, granularity),
            start=start,
            hours=float(row["hours"]),
            labor=labor,
            materials=materials,
            total=labor + materials,
        ))
    return buckets


# =============================================================================
# Classification
# =============================================================================

def classify_trend(
    buckets: List[TimeBucket],
    cost_threshold: float = DEFAULT_COST_TREND_THRESHOLD,
    granularity: BucketGranularity = BucketGranularity.MONTH,
) -> TrendResult:
    """
    Classify labor and cost movement between the final two buckets.

    A cost rise from a zero baseline is never 'high'. Fewer than two buckets
    yields a flat, normal trend.
    """
    if len(buckets) < 2:
        return TrendResult(granularity=granularity, buckets=buckets)

    previous, last = buckets[-2], buckets[-1]

    labor_trend = last.hours - previous.hours
    if labor_trend > 0:
        labor_status = LaborTrendStatus.INCREASING
    elif labor_trend < 0:
        labor_status = LaborTrendStatus.DECREASING
    else:
        labor_status = LaborTrendStatus.STABLE

    cost_trend = last.total - previous.total
    cost_status = CostTrendStatus.NORMAL
    if cost_trend > 0 and previous.total > 0 and cost_trend / previous.total > cost_threshold:
        cost_status = CostTrendStatus.HIGH

    return TrendResult(
        granularity=granularity,
        buckets=buckets,
        laborTrend=labor_trend,
        laborTrendStatus=labor_status,
        costTrend=cost_trend,
        costTrendStatus=cost_status,
    )


def compute_trend(
    job: JobRecord,
    timelog_entries: Iterable[TimelogEntry],
    ap_entries: Iterable[APEntry],
    as_of: Optional[date] = None,
    granularity: BucketGranularity = BucketGranularity.MONTH,
    max_buckets: Optional[int] = None,
    cost_threshold: float = DEFAULT_COST_TREND_THRESHOLD,
) -> TrendResult:
    """Bucket the entries and classify the trend in one step."""
    buckets = build_time_buckets(job, timelog_entries, ap_entries, as_of, granularity, max_buckets)
    return classify_trend(buckets, cost_threshold, granularity)


__all__ = [
    "bucket_start",
    "resolve_window",
    "window_starts",
    "build_time_buckets",
    "classify_trend",
    "compute_trend",
    "today_utc",
    "DEFAULT_MAX_MONTHS",
    "DEFAULT_MAX_WEEKS",
    "DEFAULT_COST_TREND_THRESHOLD",
]
