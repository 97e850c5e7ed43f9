"""
Earned-vs-Burned Line Item Analysis

Compares earned value against burned cost for each schedule of values line.

For every SOV line item:
- earnedValue = percentComplete / 100 * totalValue
- apCost: AP invoice cost code allocations for the line's cost code
- laborCost: approved timelog cost for the line's cost code (burden-loaded
  cost preferred over raw cost)
- variance = earnedValue - totalCost
- variancePercent = variance / totalCost * 100 (0 when nothing is burned)
- status: on_budget (>= 0%), at_risk (>= -10%), over_budget (< -10%)

Cost codes that no SOV line references are not reported. Totals roll up every
line and add overallProgress = earned / contract value.
"""

import logging
from typing import Dict, Iterable, List

import pandas as pd

from jobhealth.models import (
    APEntry,
    EarnedVsBurnedAnalysis,
    EarnedVsBurnedTotals,
    JobFeeds,
    LineItemAnalysis,
    LineItemStatus,
    SOVLineItem,
    TimelogEntry,
)
from jobhealth.services.metrics import safe_ratio

# Configure module logger
logger = logging.getLogger(__name__)

# Variance percent at or above which a line is at risk rather than over budget
AT_RISK_VARIANCE_PERCENT: float = -10.0

APPROVED_STATUS: str = "approved"


def line_item_status(variance_percent: float) -> LineItemStatus:
    if variance_percent >= 0:
        return LineItemStatus.ON_BUDGET
    if variance_percent >= AT_RISK_VARIANCE_PERCENT:
        return LineItemStatus.AT_RISK
    return LineItemStatus.OVER_BUDGET


def _sum_by_cost_code(rows: List[Dict[str, object]]) -> Dict[str, float]:
    if not rows:
        return {}
    frame = pd.DataFrame.from_records(rows)
    return frame.groupby("costCode")["amount"].sum().astype(float).to_dict()


def ap_cost_by_code(ap_entries: Iterable[APEntry]) -> Dict[str, float]:
    """Sum AP cost code allocations per cost code."""
    rows = [
        {"costCode": allocation.costCode, "amount": allocation.amount or 0.0}
        for invoice in ap_entries
        for allocation in invoice.costCodeBreakdown
        if allocation.costCode
    ]
    return _sum_by_cost_code(rows)


def labor_cost_by_code(timelog_entries: Iterable[TimelogEntry]) -> Dict[str, float]:
    """Sum approved labor cost per cost code. Entries without a status count as approved."""
    rows = [
        {
            "costCode": entry.costCode,
            "amount": entry.totalCostWithBurden or entry.totalCost or 0.0,
        }
        for entry in timelog_entries
        if entry.costCode and (entry.status is None or entry.status.lower() == APPROVED_STATUS)
    ]
    return _sum_by_cost_code(rows)


def analyze_line_item(
    item: SOVLineItem,
    ap_costs: Dict[str, float],
    labor_costs: Dict[str, float],
) -> LineItemAnalysis:
    contract_value = item.totalValue or 0.0
    percent_complete = item.percentComplete or 0.0
    earned_value = percent_complete / 100 * contract_value

    ap_cost = ap_costs.get(item.costCode, 0.0) if item.costCode else 0.0
    labor_cost = labor_costs.get(item.costCode, 0.0) if item.costCode else 0.0
    total_cost = ap_cost + labor_cost

    variance = earned_value - total_cost
    variance_percent = safe_ratio(variance, total_cost) * 100

    return LineItemAnalysis(
        lineNumber=item.lineNumber,
        costCode=item.costCode,
        description=item.description,
        contractValue=contract_value,
        percentComplete=percent_complete,
        earnedValue=earned_value,
        apCost=ap_cost,
        laborCost=labor_cost,
        totalCost=total_cost,
        variance=variance,
        variancePercent=variance_percent,
        status=line_item_status(variance_percent),
    )


def analyze_earned_vs_burned(feeds: JobFeeds) -> EarnedVsBurnedAnalysis:
    """
    Build the per-line earned-vs-burned analysis for a job.

    Args:
        feeds: Feed bundle; only SOV components, AP and timelog registers are read

    Returns:
        EarnedVsBurnedAnalysis with line items in SOV order
    """
    ap_costs = ap_cost_by_code(feeds.apRegister.data)
    labor_costs = labor_cost_by_code(feeds.timelogRegister.data)

    lines = [
        analyze_line_item(item, ap_costs, labor_costs)
        for item in feeds.sovComponents.data.sovLineItems
    ]

    contract_value = sum(line.contractValue for line in lines)
    earned_value = sum(line.earnedValue for line in lines)
    total_cost = sum(line.totalCost for line in lines)
    variance = earned_value - total_cost

    totals = EarnedVsBurnedTotals(
        contractValue=contract_value,
        earnedValue=earned_value,
        apCost=sum(line.apCost for line in lines),
        laborCost=sum(line.laborCost for line in lines),
        totalCost=total_cost,
        variance=variance,
        variancePercent=safe_ratio(variance, total_cost) * 100,
        overallProgress=safe_ratio(earned_value, contract_value) * 100,
    )

    analysis = EarnedVsBurnedAnalysis(
        data=lines,
        totals=totals,
        lineItemCount=len(lines),
        onBudgetCount=sum(1 for line in lines if line.status == LineItemStatus.ON_BUDGET),
        atRiskCount=sum(1 for line in lines if line.status == LineItemStatus.AT_RISK),
        overBudgetCount=sum(1 for line in lines if line.status == LineItemStatus.OVER_BUDGET),
    )

    logger.debug(
        f"Earned vs burned: {analysis.lineItemCount} lines, "
        f"{analysis.overBudgetCount} over budget"
    )
    return analysis


__all__ = [
    "line_item_status",
    "ap_cost_by_code",
    "labor_cost_by_code",
    "analyze_line_item",
    "analyze_earned_vs_burned",
]
