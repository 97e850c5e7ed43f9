"""
Portfolio Service

Filtering, sorting, at-risk ranking and summary statistics over many
JobFinancialReports, as used by the job list and dashboard views.

Key Rules:
- Budget status filter keys on the CPI label colour (green / yellow / red);
  jobs without CPI data only appear under 'all'
- Sorting by job name or number is case-insensitive; jobs missing the sort
  value always sort last regardless of direction
- At-risk ranking lists unhealthy jobs, most severe health first, then most
  urgent priority, then job name
- Aggregate CPI is weighted: total earned value over total actual cost for
  jobs that have incurred cost
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from jobhealth.models import (
    BudgetStatusFilter,
    HealthStatus,
    JobFinancialReport,
    PortfolioSummary,
    StatusColor,
)
from jobhealth.services.classification import HEALTH_ORDER, PRIORITY_ORDER

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

FILTER_COLORS: Dict[BudgetStatusFilter, StatusColor] = {
    BudgetStatusFilter.ON_BUDGET: StatusColor.GREEN,
    BudgetStatusFilter.AT_RISK: StatusColor.YELLOW,
    BudgetStatusFilter.OVER_BUDGET: StatusColor.RED,
}

CPI_LABELS: List[str] = ["On Budget", "At Risk", "Over Budget", "No Data"]

# Sort field -> value extractor; None values sort last
SORT_FIELDS: Dict[str, Callable[[JobFinancialReport], Any]] = {
    "jobName": lambda r: r.jobName.lower() if r.jobName else None,
    "jobNumber": lambda r: r.jobNumber.lower() if r.jobNumber else None,
    "healthStatus": lambda r: HEALTH_ORDER[r.health.healthStatus],
    "priority": lambda r: PRIORITY_ORDER[r.health.priority],
    "cpi": lambda r: r.metrics.cpi,
    "spi": lambda r: r.metrics.spi,
    "budgetUtilization": lambda r: r.metrics.budgetUtilization if r.metrics.hasBudget else None,
    "progressPercent": lambda r: r.metrics.progressPercent,
    "costVariance": lambda r: r.metrics.costVariance,
    "remainingBudget": lambda r: r.metrics.remainingBudget if r.metrics.hasBudget else None,
    "outstandingAP": lambda r: r.metrics.outstandingAP,
    "totalBudget": lambda r: r.metrics.totalBudget,
    "contractValue": lambda r: r.metrics.contractValue,
    "actualCost": lambda r: r.metrics.actualCost,
    "earnedValue": lambda r: r.metrics.earnedValue,
    "marginAtCompletion": lambda r: r.metrics.marginAtCompletion,
}


# =============================================================================
# Filter / Sort / Rank
# =============================================================================

def filter_reports(
    reports: Sequence[JobFinancialReport],
    status_filter: BudgetStatusFilter = BudgetStatusFilter.ALL,
) -> List[JobFinancialReport]:
    """Keep reports whose CPI label matches the budget status filter."""
    if status_filter == BudgetStatusFilter.ALL:
        return list(reports)
    color = FILTER_COLORS[status_filter]
    return [report for report in reports if report.cpiStatus.color == color]


def sort_reports(
    reports: Sequence[JobFinancialReport],
    sort_by: str = "jobName",
    descending: bool = False,
) -> List[JobFinancialReport]:
    """
    Sort reports by a named field.

    Args:
        reports: Reports to sort
        sort_by: A key of SORT_FIELDS
        descending: Reverse the order of present values

    Returns:
        Sorted list; reports missing the value keep their relative order at the end

    Raises:
        ValueError: If sort_by is not a supported field
    """
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort field '{sort_by}'. Supported: {sorted(SORT_FIELDS)}")
    extract = SORT_FIELDS[sort_by]

    present = [report for report in reports if extract(report) is not None]
    missing = [report for report in reports if extract(report) is None]
    return sorted(present, key=extract, reverse=descending) + missing


def rank_at_risk(
    reports: Sequence[JobFinancialReport],
    limit: Optional[int] = None,
) -> List[JobFinancialReport]:
    """
    Unhealthy jobs ordered by severity.

    Args:
        reports: Reports to rank
        limit: Maximum number of jobs to return (all when None)

    Returns:
        Reports that are not healthy, most severe first
    """
    unhealthy = [report for report in reports if not report.health.isHealthy]
    ranked = sorted(
        unhealthy,
        key=lambda r: (
            -HEALTH_ORDER[r.health.healthStatus],
            -PRIORITY_ORDER[r.health.priority],
            (r.jobName or "").lower(),
        ),
    )
    if limit is not None:
        ranked = ranked[:max(0, limit)]
    return ranked


# =============================================================================
# Summary
# =============================================================================

def summarize_portfolio(reports: Sequence[JobFinancialReport]) -> PortfolioSummary:
    """
    Aggregate statistics over a set of job reports.

    Args:
        reports: Job reports to summarize

    Returns:
        PortfolioSummary
    """
    health_counts = {status.value: 0 for status in HealthStatus}
    cpi_counts = {label: 0 for label in CPI_LABELS}
    for report in reports:
        health_counts[report.health.healthStatus.value] += 1
        cpi_counts[report.cpiStatus.label] = cpi_counts.get(report.cpiStatus.label, 0) + 1

    total_earned = float(np.sum([r.metrics.earnedValue for r in reports]))

    costed = [r for r in reports if r.metrics.actualCost > 0]
    aggregate_cpi = None
    if costed:
        costed_actual = float(np.sum([r.metrics.actualCost for r in costed]))
        costed_earned = float(np.sum([r.metrics.earnedValue for r in costed]))
        aggregate_cpi = costed_earned / costed_actual

    utilizations = [r.metrics.budgetUtilization for r in reports if r.metrics.hasBudget]
    average_utilization = float(np.mean(utilizations)) if utilizations else None

    summary = PortfolioSummary(
        jobCount=len(reports),
        healthCounts=health_counts,
        cpiStatusCounts=cpi_counts,
        totalBudget=float(np.sum([r.metrics.totalBudget for r in reports])),
        totalActualCost=float(np.sum([r.metrics.actualCost for r in reports])),
        totalEarnedValue=total_earned,
        aggregateCpi=aggregate_cpi,
        averageBudgetUtilization=average_utilization,
        totalOutstandingAP=float(np.sum([r.metrics.outstandingAP for r in reports])),
    )

    logger.info(
        f"Portfolio summary: {summary.jobCount} jobs, "
        f"{health_counts[HealthStatus.CRITICAL.value]} critical, "
        f"{health_counts[HealthStatus.AT_RISK.value]} at risk"
    )
    return summary


__all__ = [
    "SORT_FIELDS",
    "filter_reports",
    "sort_reports",
    "rank_at_risk",
    "summarize_portfolio",
]
