"""
Enumeration definitions for the Job Financial Health backend.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, so API responses carry the plain string
values the single-page client already understands ('at-risk', 'critical', ...).
"""

from enum import Enum


class HealthStatus(str, Enum):
    """
    Overall job health classification.

    Ordered from least to most severe: good < at-risk < critical.
    Once a rule raises a job to a level, later rules cannot lower it.
    """
    GOOD = "good"
    AT_RISK = "at-risk"
    CRITICAL = "critical"


class Priority(str, Enum):
    """
    Attention priority for a job.

    Ordered from least to most urgent: low < medium < high < critical.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IssueType(str, Enum):
    """Area of the business a health issue belongs to."""
    FINANCIAL = "financial"
    SAFETY = "safety"
    OPERATIONS = "operations"


class IssueSeverity(str, Enum):
    """Severity of a single health issue."""
    WARNING = "warning"
    CRITICAL = "critical"


class LaborTrendStatus(str, Enum):
    """
    Direction of labor hours between the last two trend buckets.

    - increasing: more hours in the latest bucket
    - decreasing: fewer hours in the latest bucket
    - stable: no change, or fewer than two buckets
    """
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class CostTrendStatus(str, Enum):
    """
    Month-over-month cost trend.

    - high: latest bucket total rose by more than the configured threshold
      over a non-zero previous total
    - normal: anything else
    """
    HIGH = "high"
    NORMAL = "normal"


class StatusColor(str, Enum):
    """Traffic-light colour used by display status labels."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    GRAY = "gray"


class BucketGranularity(str, Enum):
    """Width of a trend time bucket."""
    MONTH = "month"
    WEEK = "week"


class FeedName(str, Enum):
    """
    Upstream feeds consumed per job.

    Values double as the keys reported in JobFinancialReport.failedFeeds.
    """
    JOB = "job"
    EVM = "earned_vs_burned"
    AP_REGISTER = "ap_register"
    TIMELOG_REGISTER = "timelog_register"
    SOV_COMPONENTS = "sov_components"
    PROGRESS_REPORTS = "progress_reports"
    FORECASTS = "forecasts"


class LineItemStatus(str, Enum):
    """
    Earned-vs-burned status of a schedule of values line item.

    - on_budget: earned value covers cost (variance % >= 0)
    - at_risk: variance % between -10 and 0
    - over_budget: variance % below -10
    """
    ON_BUDGET = "on_budget"
    AT_RISK = "at_risk"
    OVER_BUDGET = "over_budget"


class BudgetStatusFilter(str, Enum):
    """Portfolio filter keyed on the CPI display label colour."""
    ALL = "all"
    ON_BUDGET = "on_budget"
    AT_RISK = "at_risk"
    OVER_BUDGET = "over_budget"
