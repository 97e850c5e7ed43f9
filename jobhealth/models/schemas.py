"""
Pydantic models for the Job Financial Health backend.

This module provides type-safe data validation and serialization for:
- Upstream feed payloads (job record, earned-vs-burned totals, AP register,
  timelog register, SOV components, progress reports, cost-to-complete forecasts)
- The normalized FinancialInputs record built by ingestion
- Derived outputs: TimeBucket, TrendResult, FinancialMetrics, JobHealth
- Earned-vs-burned line item analysis and portfolio summaries

Feed models are deliberately tolerant: upstream JSON is loosely typed, so
numeric fields accept numbers or numeric strings (anything else, including
NaN and infinities, becomes None), date fields accept ISO strings or datetimes,
list fields drop entries that are not objects, and unknown keys are ignored.
Each feed is an explicit optional-field record rather than an ad-hoc chain of
null checks.

Field names are camelCase to match the JSON contracts of the job management API.
All models use Pydantic v2 syntax. Output models are frozen.
"""

import math
from datetime import date as DateType, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from jobhealth.models.enums import (
    BucketGranularity,
    CostTrendStatus,
    FeedName,
    HealthStatus,
    IssueSeverity,
    IssueType,
    LaborTrendStatus,
    LineItemStatus,
    Priority,
    StatusColor,
)


# =============================================================================
# Lenient Field Coercion
# =============================================================================

def coerce_number(value: Any) -> Optional[float]:
    """
    Coerce a loosely typed JSON value to a finite float.

    Returns None for missing, boolean, non-numeric, NaN or infinite values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce a date-like JSON value to a timezone-aware datetime.

    An explicit offset is kept, so the calendar date seen by bucketing is the
    local date the record was written on. Naive values are treated as UTC.
    Unparseable values become None.
    """
    if not isinstance(value, (str, datetime, DateType)):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        stamp = pd.to_datetime(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(stamp):
        return None
    if stamp.tzinfo is None:
        stamp = stamp.tz_localize("UTC")
    return stamp.to_pydatetime()


def _coerce_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return None


def _object_or_empty(value: Any) -> Any:
    if isinstance(value, (dict, BaseModel)):
        return value
    return {}


def _object_or_none(value: Any) -> Any:
    if isinstance(value, (dict, BaseModel)):
        return value
    return None


def _objects_only(value: Any) -> List[Any]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


def _list_or_empty(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


LenientFloat = Annotated[Optional[float], BeforeValidator(coerce_number)]
LenientDateTime = Annotated[Optional[datetime], BeforeValidator(coerce_datetime)]
LenientStr = Annotated[Optional[str], BeforeValidator(_coerce_text)]
AnyList = Annotated[List[Any], BeforeValidator(_list_or_empty)]


# Shared configuration for upstream feed records
FEED_MODEL_CONFIG = ConfigDict(extra='ignore', populate_by_name=True)


# =============================================================================
# Job Record
# =============================================================================

class JobRecord(BaseModel):
    """
    Static job record as returned by GET /jobs/{jobId}.

    Supplies the contract value and stored progress used as fallbacks, and the
    planned/actual dates that bound the trend window.
    """
    model_config = ConfigDict(
        extra='ignore',
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "_id": "665f1c2e9b1e8a0012ab34cd",
                "name": "Riverside Medical Office HVAC",
                "jobNumber": "J-2024-017",
                "contractValue": 1250000,
                "overallProgress": 42,
                "plannedStartDate": "2025-01-06",
                "plannedEndDate": "2025-12-19"
            }
        }
    )

    id: LenientStr = Field(default=None, alias="_id", description="Job identifier")
    name: LenientStr = Field(default=None, description="Job name")
    jobNumber: LenientStr = Field(default=None, description="Human-facing job number")
    status: LenientStr = Field(default=None, description="Job lifecycle status")
    contractValue: LenientFloat = Field(default=None, description="Static contract value")
    overallProgress: LenientFloat = Field(default=None, description="Stored overall progress percent")
    plannedStartDate: LenientDateTime = None
    startDate: LenientDateTime = None
    plannedEndDate: LenientDateTime = None
    endDate: LenientDateTime = None


# =============================================================================
# Earned-vs-Burned Feed
# =============================================================================

class EVMTotals(BaseModel):
    """Job-level earned value totals from GET /financial/{jobId}/earned-vs-burned."""
    model_config = FEED_MODEL_CONFIG

    cpi: LenientFloat = Field(default=None, description="Cost performance index (EV / AC)")
    spi: LenientFloat = Field(default=None, description="Schedule performance index")
    costVariance: LenientFloat = Field(default=None, description="Earned value minus actual cost")
    scheduleVariance: LenientFloat = None
    actualCost: LenientFloat = None
    earnedValue: LenientFloat = None
    laborCost: LenientFloat = None
    apCost: LenientFloat = None


class EVMFeed(BaseModel):
    """Earned-vs-burned response envelope."""
    model_config = FEED_MODEL_CONFIG

    totals: Annotated[EVMTotals, BeforeValidator(_object_or_empty)] = Field(default_factory=EVMTotals)


# =============================================================================
# AP Register Feed
# =============================================================================

class CostCodeAmount(BaseModel):
    """One cost code allocation of an AP invoice."""
    model_config = FEED_MODEL_CONFIG

    costCode: LenientStr = None
    amount: LenientFloat = None


class APEntry(BaseModel):
    """A single AP invoice."""
    model_config = FEED_MODEL_CONFIG

    invoiceNumber: LenientStr = None
    invoiceDate: LenientDateTime = None
    totalAmount: LenientFloat = None
    paymentStatus: LenientStr = None
    costCodeBreakdown: Annotated[List[CostCodeAmount], BeforeValidator(_objects_only)] = Field(default_factory=list)


class APMeta(BaseModel):
    """AP register aggregate metadata."""
    model_config = FEED_MODEL_CONFIG

    total: LenientFloat = None
    totalAmount: LenientFloat = None
    paidAmount: LenientFloat = None
    paidCount: LenientFloat = None


class APRegisterFeed(BaseModel):
    """AP register response from GET /financial/{jobId}/ap-register."""
    model_config = FEED_MODEL_CONFIG

    data: Annotated[List[APEntry], BeforeValidator(_objects_only)] = Field(default_factory=list)
    meta: Annotated[APMeta, BeforeValidator(_object_or_empty)] = Field(default_factory=APMeta)
    summary: AnyList = Field(default_factory=list)


# =============================================================================
# Timelog Register Feed
# =============================================================================

class TimelogEntry(BaseModel):
    """A single timelog register entry."""
    model_config = FEED_MODEL_CONFIG

    workDate: LenientDateTime = None
    totalHours: LenientFloat = None
    totalCost: LenientFloat = None
    totalCostWithBurden: LenientFloat = None
    costCode: LenientStr = None
    status: LenientStr = None
    safetyIncidents: AnyList = Field(default_factory=list)


class TimelogMeta(BaseModel):
    """Timelog register aggregate metadata."""
    model_config = FEED_MODEL_CONFIG

    total: LenientFloat = None
    totalHours: LenientFloat = None
    totalCost: LenientFloat = None


class TimelogRegisterFeed(BaseModel):
    """Timelog register response from GET /financial/{jobId}/timelog-register."""
    model_config = FEED_MODEL_CONFIG

    data: Annotated[List[TimelogEntry], BeforeValidator(_objects_only)] = Field(default_factory=list)
    meta: Annotated[TimelogMeta, BeforeValidator(_object_or_empty)] = Field(default_factory=TimelogMeta)


# =============================================================================
# SOV Components Feed
# =============================================================================

class SOVSummary(BaseModel):
    """Schedule of values summary totals."""
    model_config = FEED_MODEL_CONFIG

    totalValue: LenientFloat = None
    totalCost: LenientFloat = None
    sovLineItemsCount: LenientFloat = None


class SOVLineItem(BaseModel):
    """A schedule of values line item."""
    model_config = FEED_MODEL_CONFIG

    lineNumber: LenientStr = None
    costCode: LenientStr = None
    description: LenientStr = None
    totalValue: LenientFloat = None
    percentComplete: LenientFloat = None


class SOVComponentsData(BaseModel):
    model_config = FEED_MODEL_CONFIG

    summary: Annotated[SOVSummary, BeforeValidator(_object_or_empty)] = Field(default_factory=SOVSummary)
    sovLineItems: Annotated[List[SOVLineItem], BeforeValidator(_objects_only)] = Field(default_factory=list)


class SOVComponentsFeed(BaseModel):
    """SOV components response from GET /jobs/{jobId}/sov-components."""
    model_config = FEED_MODEL_CONFIG

    data: Annotated[SOVComponentsData, BeforeValidator(_object_or_empty)] = Field(default_factory=SOVComponentsData)


# =============================================================================
# Progress Reports Feed
# =============================================================================

class ProgressReportSummary(BaseModel):
    model_config = FEED_MODEL_CONFIG

    calculatedPercentCTD: LenientFloat = Field(
        default=None,
        description="Calculated percent complete to date"
    )


class ProgressReport(BaseModel):
    """A progress report (pay application period)."""
    model_config = FEED_MODEL_CONFIG

    reportNumber: LenientStr = None
    reportDate: LenientDateTime = None
    status: LenientStr = None
    summary: Annotated[Optional[ProgressReportSummary], BeforeValidator(_object_or_none)] = None


class ProgressReportsFeed(BaseModel):
    """Progress reports response from GET /financial/{jobId}/progress-reports."""
    model_config = FEED_MODEL_CONFIG

    data: Annotated[List[ProgressReport], BeforeValidator(_objects_only)] = Field(default_factory=list)


# =============================================================================
# Cost-to-Complete Forecasts Feed
# =============================================================================

class ForecastSummary(BaseModel):
    """
    Computed results of a cost-to-complete forecast.

    Extra keys are kept so that a summary holding only fields this service does
    not read still counts as computed.
    """
    model_config = ConfigDict(extra='allow', populate_by_name=True)

    marginAtCompletion: LenientFloat = None
    marginAtCompletionPercent: LenientFloat = None
    forecastFinalCost: LenientFloat = None

    def is_empty(self) -> bool:
        return not self.model_fields_set and not self.model_extra


class Forecast(BaseModel):
    """A monthly cost-to-complete forecast."""
    model_config = FEED_MODEL_CONFIG

    monthNumber: LenientFloat = None
    forecastPeriod: LenientStr = None
    status: LenientStr = None
    summary: Annotated[Optional[ForecastSummary], BeforeValidator(_object_or_none)] = None


class ForecastsFeed(BaseModel):
    """Forecasts response from GET /financial/{jobId}/cost-to-complete/forecasts."""
    model_config = FEED_MODEL_CONFIG

    data: Annotated[List[Forecast], BeforeValidator(_objects_only)] = Field(default_factory=list)


# =============================================================================
# Feed Bundle
# =============================================================================

class JobFeeds(BaseModel):
    """
    Everything fetched for one job.

    Each member defaults to its empty shape, which is also what a failed fetch
    degrades to. failedFeeds lists the feeds that were degraded.
    """
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    job: Annotated[JobRecord, BeforeValidator(_object_or_empty)] = Field(default_factory=JobRecord)
    evm: Annotated[EVMFeed, BeforeValidator(_object_or_empty)] = Field(default_factory=EVMFeed)
    apRegister: Annotated[APRegisterFeed, BeforeValidator(_object_or_empty)] = Field(default_factory=APRegisterFeed)
    timelogRegister: Annotated[TimelogRegisterFeed, BeforeValidator(_object_or_empty)] = Field(
        default_factory=TimelogRegisterFeed
    )
    sovComponents: Annotated[SOVComponentsFeed, BeforeValidator(_object_or_empty)] = Field(
        default_factory=SOVComponentsFeed
    )
    progressReports: Annotated[ProgressReportsFeed, BeforeValidator(_object_or_empty)] = Field(
        default_factory=ProgressReportsFeed
    )
    forecasts: Annotated[ForecastsFeed, BeforeValidator(_object_or_empty)] = Field(default_factory=ForecastsFeed)
    failedFeeds: List[FeedName] = Field(default_factory=list)


# =============================================================================
# Normalized Inputs
# =============================================================================

class FinancialInputs(BaseModel):
    """
    Normalized per-job inputs for metric derivation.

    All monetary fields are finite numbers defaulting to 0. cpi and spi are
    None when the upstream value is missing or zero, which means "not
    available" rather than "zero performance".
    """
    model_config = ConfigDict(frozen=True)

    actualCost: float = 0.0
    earnedValue: float = 0.0
    laborCost: float = 0.0
    apCost: float = 0.0
    costVariance: float = 0.0
    cpi: Optional[float] = None
    spi: Optional[float] = None
    totalBudget: float = 0.0
    contractValue: float = 0.0
    apTotalAmount: float = 0.0
    apPaidAmount: float = 0.0
    totalHours: float = 0.0
    safetyIncidentCount: int = 0
    progressReportsCount: int = 0
    progressPercent: float = 0.0
    latestApprovedProgressReport: Optional[ProgressReport] = None
    latestForecast: Optional[Forecast] = None


# =============================================================================
# Trend Models
# =============================================================================

class TimeBucket(BaseModel):
    """
    Aggregated labor hours and cost for one calendar month or week.

    total is labor plus materials; materials come from AP invoices.
    """
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="YYYY-MM for months, week-start YYYY-MM-DD for weeks")
    label: str = Field(..., description="Display label, e.g. 'Mar 2025'")
    start: DateType = Field(..., description="First day of the bucket")
    hours: float = 0.0
    labor: float = 0.0
    materials: float = 0.0
    total: float = 0.0


class TrendResult(BaseModel):
    """Chronological buckets plus the trend of the final two."""
    model_config = ConfigDict(frozen=True)

    granularity: BucketGranularity = BucketGranularity.MONTH
    buckets: List[TimeBucket] = Field(default_factory=list)
    laborTrend: float = 0.0
    laborTrendStatus: LaborTrendStatus = LaborTrendStatus.STABLE
    costTrend: float = 0.0
    costTrendStatus: CostTrendStatus = CostTrendStatus.NORMAL


# =============================================================================
# Derived Outputs
# =============================================================================

class FinancialMetrics(BaseModel):
    """
    Derived financial metrics for one job.

    Ratio metrics never carry NaN or Infinity. marginAtCompletion is None when
    no forecast is available, which is distinct from a computed zero margin.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "cpi": 0.947,
                "spi": None,
                "costVariance": -50000,
                "budgetUtilization": 95.0,
                "remainingBudget": 50000,
                "outstandingAP": 12500,
                "marginAtCompletion": None,
                "marginAtCompletionPercent": None,
                "progressPercent": 80,
                "laborTrendStatus": "stable",
                "costTrendStatus": "normal",
                "totalBudget": 1000000,
                "contractValue": 1000000,
                "actualCost": 950000,
                "earnedValue": 900000,
                "hasBudget": True,
                "earnedMarginPercent": -5.56
            }
        }
    )

    cpi: Optional[float] = Field(default=None, description="Cost performance index, None if unavailable")
    spi: Optional[float] = Field(default=None, description="Schedule performance index, None if unavailable")
    costVariance: float = 0.0
    budgetUtilization: float = Field(default=0.0, description="Actual cost as a percent of budget")
    remainingBudget: float = 0.0
    outstandingAP: float = 0.0
    marginAtCompletion: Optional[float] = None
    marginAtCompletionPercent: Optional[float] = None
    progressPercent: float = 0.0
    laborTrendStatus: LaborTrendStatus = LaborTrendStatus.STABLE
    costTrendStatus: CostTrendStatus = CostTrendStatus.NORMAL
    totalBudget: float = 0.0
    contractValue: float = 0.0
    actualCost: float = 0.0
    earnedValue: float = 0.0
    hasBudget: bool = Field(default=False, description="False means budget metrics display as N/A")
    earnedMarginPercent: float = 0.0


class JobIssue(BaseModel):
    """A single health issue with a remediation hint."""
    model_config = ConfigDict(frozen=True)

    type: IssueType
    severity: IssueSeverity
    message: str
    action: str


class JobHealth(BaseModel):
    """
    Health classification for one job.

    issues are in rule evaluation order; issues[0] is the top issue shown in
    summary views.
    """
    model_config = ConfigDict(frozen=True)

    healthStatus: HealthStatus = HealthStatus.GOOD
    priority: Priority = Priority.LOW
    issues: List[JobIssue] = Field(default_factory=list)
    isHealthy: bool = True


class StatusLabel(BaseModel):
    """Display label and traffic-light colour for a metric."""
    model_config = ConfigDict(frozen=True)

    label: str
    color: StatusColor


class HealthThresholds(BaseModel):
    """Thresholds used by the health rules and status labels."""
    model_config = ConfigDict(frozen=True)

    cpiCritical: float = 0.9
    cpiTarget: float = 1.0
    budgetCautionPercent: float = 75.0
    budgetCriticalPercent: float = 90.0
    costTrendHigh: float = 0.20

    @classmethod
    def from_settings(cls, settings: Any) -> "HealthThresholds":
        return cls(
            cpiCritical=settings.cpi_critical_threshold,
            cpiTarget=settings.cpi_target,
            budgetCautionPercent=settings.budget_caution_percent,
            budgetCriticalPercent=settings.budget_critical_percent,
            costTrendHigh=settings.cost_trend_high_threshold,
        )


class JobFinancialReport(BaseModel):
    """Complete financial health report for one job."""
    model_config = ConfigDict(frozen=True)

    jobId: Optional[str] = None
    jobName: Optional[str] = None
    jobNumber: Optional[str] = None
    asOf: DateType
    inputs: FinancialInputs
    metrics: FinancialMetrics
    health: JobHealth
    trend: TrendResult
    cpiStatus: StatusLabel
    spiStatus: StatusLabel
    budgetStatus: StatusLabel
    failedFeeds: List[FeedName] = Field(default_factory=list)


# =============================================================================
# Earned-vs-Burned Line Item Analysis
# =============================================================================

class LineItemAnalysis(BaseModel):
    """Earned value against burned cost for one SOV line item."""
    model_config = ConfigDict(frozen=True)

    lineNumber: Optional[str] = None
    costCode: Optional[str] = None
    description: Optional[str] = None
    contractValue: float = 0.0
    percentComplete: float = 0.0
    earnedValue: float = 0.0
    apCost: float = 0.0
    laborCost: float = 0.0
    totalCost: float = 0.0
    variance: float = 0.0
    variancePercent: float = 0.0
    status: LineItemStatus = LineItemStatus.ON_BUDGET


class EarnedVsBurnedTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    contractValue: float = 0.0
    earnedValue: float = 0.0
    apCost: float = 0.0
    laborCost: float = 0.0
    totalCost: float = 0.0
    variance: float = 0.0
    variancePercent: float = 0.0
    overallProgress: float = 0.0


class EarnedVsBurnedAnalysis(BaseModel):
    """Line items, totals and per-status counts."""
    model_config = ConfigDict(frozen=True)

    data: List[LineItemAnalysis] = Field(default_factory=list)
    totals: EarnedVsBurnedTotals = Field(default_factory=EarnedVsBurnedTotals)
    lineItemCount: int = 0
    onBudgetCount: int = 0
    atRiskCount: int = 0
    overBudgetCount: int = 0


# =============================================================================
# Portfolio
# =============================================================================

class PortfolioSummary(BaseModel):
    """Aggregate view over many job reports."""
    model_config = ConfigDict(frozen=True)

    jobCount: int = 0
    healthCounts: Dict[str, int] = Field(default_factory=dict)
    cpiStatusCounts: Dict[str, int] = Field(default_factory=dict)
    totalBudget: float = 0.0
    totalActualCost: float = 0.0
    totalEarnedValue: float = 0.0
    aggregateCpi: Optional[float] = None
    averageBudgetUtilization: Optional[float] = None
    totalOutstandingAP: float = 0.0
