"""
Package initialization file for jobhealth models.

Exports all Pydantic schemas and enumerations from schemas.py and enums.py so
other modules can import data models without knowing the internal layout.

Usage:
    from jobhealth.models import (
        HealthStatus,
        JobFeeds,
        FinancialInputs,
        FinancialMetrics,
        JobHealth,
        # ... etc
    )
"""

# =============================================================================
# Enums - Import and re-export all enumerations from enums.py
# =============================================================================

from jobhealth.models.enums import (
    # Classification
    HealthStatus,
    Priority,
    IssueType,
    IssueSeverity,
    # Trends
    LaborTrendStatus,
    CostTrendStatus,
    BucketGranularity,
    # Display and feeds
    StatusColor,
    FeedName,
    LineItemStatus,
    BudgetStatusFilter,
)


# =============================================================================
# Schemas - Import and re-export all Pydantic models from schemas.py
# =============================================================================

from jobhealth.models.schemas import (
    # -------------------------------------------------------------------------
    # Feed records
    # -------------------------------------------------------------------------
    JobRecord,
    EVMTotals,
    EVMFeed,
    CostCodeAmount,
    APEntry,
    APMeta,
    APRegisterFeed,
    TimelogEntry,
    TimelogMeta,
    TimelogRegisterFeed,
    SOVSummary,
    SOVLineItem,
    SOVComponentsData,
    SOVComponentsFeed,
    ProgressReportSummary,
    ProgressReport,
    ProgressReportsFeed,
    ForecastSummary,
    Forecast,
    ForecastsFeed,
    JobFeeds,

    # -------------------------------------------------------------------------
    # Engine records
    # -------------------------------------------------------------------------
    FinancialInputs,
    TimeBucket,
    TrendResult,
    FinancialMetrics,
    JobIssue,
    JobHealth,
    StatusLabel,
    HealthThresholds,
    JobFinancialReport,

    # -------------------------------------------------------------------------
    # Earned-vs-burned and portfolio
    # -------------------------------------------------------------------------
    LineItemAnalysis,
    EarnedVsBurnedTotals,
    EarnedVsBurnedAnalysis,
    PortfolioSummary,

    # -------------------------------------------------------------------------
    # Coercion helpers
    # -------------------------------------------------------------------------
    coerce_number,
    coerce_datetime,
)


__all__ = [
    # Enums
    "HealthStatus",
    "Priority",
    "IssueType",
    "IssueSeverity",
    "LaborTrendStatus",
    "CostTrendStatus",
    "BucketGranularity",
    "StatusColor",
    "FeedName",
    "LineItemStatus",
    "BudgetStatusFilter",
    # Feed records
    "JobRecord",
    "EVMTotals",
    "EVMFeed",
    "CostCodeAmount",
    "APEntry",
    "APMeta",
    "APRegisterFeed",
    "TimelogEntry",
    "TimelogMeta",
    "TimelogRegisterFeed",
    "SOVSummary",
    "SOVLineItem",
    "SOVComponentsData",
    "SOVComponentsFeed",
    "ProgressReportSummary",
    "ProgressReport",
    "ProgressReportsFeed",
    "ForecastSummary",
    "Forecast",
    "ForecastsFeed",
    "JobFeeds",
    # Engine records
    "FinancialInputs",
    "TimeBucket",
    "TrendResult",
    "FinancialMetrics",
    "JobIssue",
    "JobHealth",
    "StatusLabel",
    "HealthThresholds",
    "JobFinancialReport",
    # Earned-vs-burned and portfolio
    "LineItemAnalysis",
    "EarnedVsBurnedTotals",
    "EarnedVsBurnedAnalysis",
    "PortfolioSummary",
    # Helpers
    "coerce_number",
    "coerce_datetime",
]
