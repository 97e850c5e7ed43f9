"""
Services Module

This module contains the business logic services for the Job Financial Health
system. The pipeline stages are stateless, synchronous and testable in isolation;
only the feed fan-out performs I/O.

Services:
- ingestion: Feed normalization into FinancialInputs
- trend: Monthly / weekly labor and cost buckets and trend classification
- metrics: Derived financial metrics with guarded ratios
- classification: Ordered health rules and display status labels
- feeds: Concurrent feed fetching with per-feed degradation
- engine: Pipeline orchestration for one job or a portfolio
- earned_value: Per SOV line earned-vs-burned analysis
- portfolio: Filtering, sorting, at-risk ranking and summaries

All services are designed to be consumed by the API layer (jobhealth/api/).
"""

# =============================================================================
# Ingestion Service Exports
# Normalizes the job record and six feeds into FinancialInputs, degrading
# malformed payloads to their empty shape
# =============================================================================

from jobhealth.services.ingestion import (
    parse_feed,
    parse_job_feeds,
    select_latest_approved_report,
    select_latest_forecast,
    build_financial_inputs,
)

# =============================================================================
# Trend Service Exports
# =============================================================================

from jobhealth.services.trend import (
    build_time_buckets,
    classify_trend,
    compute_trend,
    resolve_window,
)

# =============================================================================
# Metrics Service Exports
# =============================================================================

from jobhealth.services.metrics import (
    derive_metrics,
    safe_ratio,
)

# =============================================================================
# Classification Service Exports
# Seven ordered health rules with upward-only severity, plus CPI / SPI /
# budget display labels
# =============================================================================

from jobhealth.services.classification import (
    classify_job_health,
    cpi_status_label,
    spi_status_label,
    budget_status_label,
    HEALTH_RULES,
)

# =============================================================================
# Feed Fan-out and Engine Exports
# =============================================================================

from jobhealth.services.feeds import (
    fetch_feed,
    fetch_job_feeds,
)

from jobhealth.services.engine import (
    compute_job_financials,
    evaluate_job,
    evaluate_portfolio,
)

# =============================================================================
# Earned-vs-Burned and Portfolio Exports
# =============================================================================

from jobhealth.services.earned_value import analyze_earned_vs_burned

from jobhealth.services.portfolio import (
    filter_reports,
    sort_reports,
    rank_at_risk,
    summarize_portfolio,
)


__all__ = [
    # Ingestion
    "parse_feed",
    "parse_job_feeds",
    "select_latest_approved_report",
    "select_latest_forecast",
    "build_financial_inputs",
    # Trend
    "build_time_buckets",
    "classify_trend",
    "compute_trend",
    "resolve_window",
    # Metrics
    "derive_metrics",
    "safe_ratio",
    # Classification
    "classify_job_health",
    "cpi_status_label",
    "spi_status_label",
    "budget_status_label",
    "HEALTH_RULES",
    # Feeds / engine
    "fetch_feed",
    "fetch_job_feeds",
    "compute_job_financials",
    "evaluate_job",
    "evaluate_portfolio",
    # Earned vs burned / portfolio
    "analyze_earned_vs_burned",
    "filter_reports",
    "sort_reports",
    "rank_at_risk",
    "summarize_portfolio",
]
