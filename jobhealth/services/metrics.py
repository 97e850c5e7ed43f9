"""
Financial Metrics Derivation

Derives the job-level financial metrics from normalized FinancialInputs and
the trend classification.

Metrics:
- cpi / spi: passed through; None when unavailable
- costVariance: earned value minus actual cost, from the earned-vs-burned feed
- budgetUtilization: actual cost as a percent of the SOV budget (0 without a budget)
- remainingBudget: budget minus actual cost, may go negative on overruns
- outstandingAP: invoiced minus paid AP, negative values are logged as anomalies
- marginAtCompletion: from the latest computed forecast, None without one
- earnedMarginPercent: margin on earned value, 0 when nothing is earned yet

Every ratio is guarded on its denominator so no metric can be NaN or Infinity.
"""

import logging
from typing import Optional

from jobhealth.models import FinancialInputs, FinancialMetrics, TrendResult

# Configure module logger
logger = logging.getLogger(__name__)


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    """numerator / denominator, or default when the denominator is not positive."""
    if denominator is None or denominator <= 0:
        return default
    return numerator / denominator


def derive_metrics(
    inputs: FinancialInputs,
    trend: Optional[TrendResult] = None,
) -> FinancialMetrics:
    """
    Compute FinancialMetrics for one job.

    Args:
        inputs: Normalized inputs from ingestion
        trend: Trend classification; a flat trend is assumed when omitted

    Returns:
        FinancialMetrics
    """
    trend = trend or TrendResult()

    total_budget = inputs.totalBudget
    budget_utilization = safe_ratio(inputs.actualCost, total_budget) * 100

    outstanding_ap = inputs.apTotalAmount - inputs.apPaidAmount
    if outstanding_ap < 0:
        logger.warning(
            f"AP paid amount {inputs.apPaidAmount:.2f} exceeds invoiced amount "
            f"{inputs.apTotalAmount:.2f}; outstanding AP is negative"
        )

    margin_at_completion = None
    margin_at_completion_percent = None
    forecast = inputs.latestForecast
    if forecast is not None and forecast.summary is not None:
        margin_at_completion = forecast.summary.marginAtCompletion
        margin_at_completion_percent = forecast.summary.marginAtCompletionPercent

    earned_margin_percent = safe_ratio(
        inputs.earnedValue - inputs.actualCost, inputs.earnedValue
    ) * 100

    return FinancialMetrics(
        cpi=inputs.cpi,
        spi=inputs.spi,
        costVariance=inputs.costVariance,
        budgetUtilization=budget_utilization,
        remainingBudget=total_budget - inputs.actualCost,
        outstandingAP=outstanding_ap,
        marginAtCompletion=margin_at_completion,
        marginAtCompletionPercent=margin_at_completion_percent,
        progressPercent=inputs.progressPercent,
        laborTrendStatus=trend.laborTrendStatus,
        costTrendStatus=trend.costTrendStatus,
        totalBudget=total_budget,
        contractValue=inputs.contractValue,
        actualCost=inputs.actualCost,
        earnedValue=inputs.earnedValue,
        hasBudget=total_budget > 0,
        earnedMarginPercent=earned_margin_percent,
    )


__all__ = ["safe_ratio", "derive_metrics"]
