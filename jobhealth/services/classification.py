"""
Job Health Classification Engine

Evaluates a fixed, ordered list of health rules over a job's FinancialMetrics
and safety incident count, producing a JobHealth (status, priority, issues).

Health Rules (evaluated in this order):
1. CPI available and below the critical threshold (0.9)   -> critical / critical
2. CPI available and between 0.9 and target (1.0)         -> high / at-risk
3. Budget used > 90% while progress < 90%                 -> critical / critical
4. Budget used > 75% while progress < 75%                 -> high / at-risk
5. Any safety incident                                    -> high / at-risk
6. Labor hours decreasing while progress < 90%            -> medium / at-risk
7. Cost trend flagged high                                -> high / at-risk

Core Principle:
- Every matching rule appends one issue, in evaluation order
- Priority and health status only ratchet upward; a later, milder rule never
  lowers what an earlier rule set
- issues[0] is the "top issue" shown by summary views (evaluation order, not
  severity order)

Display labels for CPI, SPI and budget utilization are produced here as well
so every consumer renders the same traffic-light mapping.
"""

import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from jobhealth.models import (
    CostTrendStatus,
    FinancialMetrics,
    HealthStatus,
    HealthThresholds,
    IssueSeverity,
    IssueType,
    JobHealth,
    JobIssue,
    LaborTrendStatus,
    Priority,
    StatusColor,
    StatusLabel,
)

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Severity Ordering
# =============================================================================

HEALTH_ORDER: Dict[HealthStatus, int] = {
    HealthStatus.GOOD: 0,
    HealthStatus.AT_RISK: 1,
    HealthStatus.CRITICAL: 2,
}

PRIORITY_ORDER: Dict[Priority, int] = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.CRITICAL: 3,
}

# Progress below which spending / labor rules consider the job still in flight
LATE_STAGE_PROGRESS_PERCENT: float = 90.0


def escalate_health(current: HealthStatus, floor: HealthStatus) -> HealthStatus:
    """Return the more severe of two health statuses."""
    return floor if HEALTH_ORDER[floor] > HEALTH_ORDER[current] else current


def escalate_priority(current: Priority, floor: Priority) -> Priority:
    """Return the more urgent of two priorities."""
    return floor if PRIORITY_ORDER[floor] > PRIORITY_ORDER[current] else current


# =============================================================================
# Rule Table
# =============================================================================

class HealthRule(NamedTuple):
    number: int
    issue_type: IssueType
    severity: IssueSeverity
    priority_floor: Priority
    health_floor: HealthStatus
    applies: Callable[[FinancialMetrics, int, HealthThresholds], bool]
    message: Callable[[FinancialMetrics, int], str]
    action: str


def _cpi_critical(m: FinancialMetrics, _incidents: int, t: HealthThresholds) -> bool:
    return m.cpi is not None and m.cpi < t.cpiCritical


def _cpi_at_risk(m: FinancialMetrics, _incidents: int, t: HealthThresholds) -> bool:
    return m.cpi is not None and t.cpiCritical <= m.cpi < t.cpiTarget


def _budget_critical(m: FinancialMetrics, _incidents: int, t: HealthThresholds) -> bool:
    return m.budgetUtilization > t.budgetCriticalPercent and m.progressPercent < t.budgetCriticalPercent


def _budget_caution(m: FinancialMetrics, _incidents: int, t: HealthThresholds) -> bool:
    return m.budgetUtilization > t.budgetCautionPercent and m.progressPercent < t.budgetCautionPercent


def _safety(_m: FinancialMetrics, incidents: int, _t: HealthThresholds) -> bool:
    return incidents > 0


def _labor_declining(m: FinancialMetrics, _incidents: int, _t: HealthThresholds) -> bool:
    return (
        m.laborTrendStatus == LaborTrendStatus.DECREASING
        and m.progressPercent < LATE_STAGE_PROGRESS_PERCENT
    )


def _cost_spike(m: FinancialMetrics, _incidents: int, _t: HealthThresholds) -> bool:
    return m.costTrendStatus == CostTrendStatus.HIGH


HEALTH_RULES: List[HealthRule] = [
    HealthRule(
        number=1,
        issue_type=IssueType.FINANCIAL,
        severity=IssueSeverity.CRITICAL,
        priority_floor=Priority.CRITICAL,
        health_floor=HealthStatus.CRITICAL,
        applies=_cpi_critical,
        message=lambda m, _: f"Over budget: CPI {m.cpi:.2f}",
        action="Review cost code performance and identify areas for cost reduction",
    ),
    HealthRule(
        number=2,
        issue_type=IssueType.FINANCIAL,
        severity=IssueSeverity.WARNING,
        priority_floor=Priority.HIGH,
        health_floor=HealthStatus.AT_RISK,
        applies=_cpi_at_risk,
        message=lambda m, _: f"At risk of going over budget: CPI {m.cpi:.2f}",
        action="Monitor costs closely and review upcoming commitments",
    ),
    HealthRule(
        number=3,
        issue_type=IssueType.FINANCIAL,
        severity=IssueSeverity.CRITICAL,
        priority_floor=Priority.CRITICAL,
        health_floor=HealthStatus.CRITICAL,
        applies=_budget_critical,
        message=lambda m, _: (
            f"{m.budgetUtilization:.0f}% of budget used at {m.progressPercent:.0f}% complete"
        ),
        action="Reforecast cost to complete and review remaining scope",
    ),
    HealthRule(
        number=4,
        issue_type=IssueType.FINANCIAL,
        severity=IssueSeverity.WARNING,
        priority_floor=Priority.HIGH,
        health_floor=HealthStatus.AT_RISK,
        applies=_budget_caution,
        message=lambda m, _: (
            f"Spending ahead of progress: {m.budgetUtilization:.0f}% of budget used "
            f"at {m.progressPercent:.0f}% complete"
        ),
        action="Compare committed costs against remaining schedule of values",
    ),
    HealthRule(
        number=5,
        issue_type=IssueType.SAFETY,
        severity=IssueSeverity.CRITICAL,
        priority_floor=Priority.HIGH,
        health_floor=HealthStatus.AT_RISK,
        applies=_safety,
        message=lambda _, incidents: (
            f"{incidents} safety incident{'s' if incidents != 1 else ''} reported"
        ),
        action="Review incident reports and schedule a site safety meeting",
    ),
    HealthRule(
        number=6,
        issue_type=IssueType.OPERATIONS,
        severity=IssueSeverity.WARNING,
        priority_floor=Priority.MEDIUM,
        health_floor=HealthStatus.AT_RISK,
        applies=_labor_declining,
        message=lambda m, _: f"Labor hours declining at {m.progressPercent:.0f}% complete",
        action="Confirm crew allocation against the remaining schedule",
    ),
    HealthRule(
        number=7,
        issue_type=IssueType.FINANCIAL,
        severity=IssueSeverity.WARNING,
        priority_floor=Priority.HIGH,
        health_floor=HealthStatus.AT_RISK,
        applies=_cost_spike,
        message=lambda _m, _i: "Costs rose sharply over the previous period",
        action="Review recent invoices and labor charges for unexpected spend",
    ),
]


# =============================================================================
# Classification
# =============================================================================

def classify_job_health(
    metrics: FinancialMetrics,
    safety_incident_count: int = 0,
    thresholds: Optional[HealthThresholds] = None,
) -> JobHealth:
    """
    Classify a job's health from its derived metrics.

    Args:
        metrics: Derived financial metrics
        safety_incident_count: Safety incidents across timelog entries
        thresholds: Rule thresholds (defaults when omitted)

    Returns:
        JobHealth with issues in rule evaluation order
    """
    thresholds = thresholds or HealthThresholds()

    health = HealthStatus.GOOD
    priority = Priority.LOW
    issues: List[JobIssue] = []

    for rule in HEALTH_RULES:
        if not rule.applies(metrics, safety_incident_count, thresholds):
            continue
        issues.append(JobIssue(
            type=rule.issue_type,
            severity=rule.severity,
            message=rule.message(metrics, safety_incident_count),
            action=rule.action,
        ))
        priority = escalate_priority(priority, rule.priority_floor)
        health = escalate_health(health, rule.health_floor)

    return JobHealth(
        healthStatus=health,
        priority=priority,
        issues=issues,
        isHealthy=health == HealthStatus.GOOD and not issues,
    )


# =============================================================================
# Display Labels
# =============================================================================

def cpi_status_label(cpi: Optional[float], thresholds: Optional[HealthThresholds] = None) -> StatusLabel:
    """On Budget / At Risk / Over Budget, or No Data when CPI is unavailable."""
    thresholds = thresholds or HealthThresholds()
    if cpi is None:
        return StatusLabel(label="No Data", color=StatusColor.GRAY)
    if cpi >= thresholds.cpiTarget:
        return StatusLabel(label="On Budget", color=StatusColor.GREEN)
    if cpi >= thresholds.cpiCritical:
        return StatusLabel(label="At Risk", color=StatusColor.YELLOW)
    return StatusLabel(label="Over Budget", color=StatusColor.RED)


def spi_status_label(spi: Optional[float], thresholds: Optional[HealthThresholds] = None) -> StatusLabel:
    """On Schedule / At Risk / Behind, or No Data when SPI is unavailable."""
    thresholds = thresholds or HealthThresholds()
    if spi is None:
        return StatusLabel(label="No Data", color=StatusColor.GRAY)
    if spi >= thresholds.cpiTarget:
        return StatusLabel(label="On Schedule", color=StatusColor.GREEN)
    if spi >= thresholds.cpiCritical:
        return StatusLabel(label="At Risk", color=StatusColor.YELLOW)
    return StatusLabel(label="Behind", color=StatusColor.RED)


def budget_status_label(
    budget_utilization: float,
    has_budget: bool = True,
    thresholds: Optional[HealthThresholds] = None,
) -> StatusLabel:
    """Healthy / Caution / Critical by percent of budget used, N/A without a budget."""
    thresholds = thresholds or HealthThresholds()
    if not has_budget:
        return StatusLabel(label="N/A", color=StatusColor.GRAY)
    if budget_utilization > thresholds.budgetCriticalPercent:
        return StatusLabel(label="Critical", color=StatusColor.RED)
    if budget_utilization >= thresholds.budgetCautionPercent:
        return StatusLabel(label="Caution", color=StatusColor.YELLOW)
    return StatusLabel(label="Healthy", color=StatusColor.GREEN)


__all__ = [
    "HEALTH_ORDER",
    "PRIORITY_ORDER",
    "HEALTH_RULES",
    "HealthRule",
    "escalate_health",
    "escalate_priority",
    "classify_job_health",
    "cpi_status_label",
    "spi_status_label",
    "budget_status_label",
]
