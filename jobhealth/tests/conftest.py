"""
Pytest Configuration and Shared Fixtures for Job Financial Health Tests.

This module provides fixtures and configuration for all tests, supporting:
- Async test execution with pytest-asyncio
- Settings fixtures with defaults isolated from the local environment / .env
- Realistic feed payloads matching the job management API JSON contracts
- The end-to-end scenario job (95% of budget used at 80% complete, CPI ~0.947)
- Metric factories for rule-by-rule classification tests
- httpx.MockTransport-backed feed clients for fan-out and API tests

Dependencies:
- pytest
- pytest-asyncio
- httpx
"""

from datetime import date
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from jobhealth.core.config import Settings
from jobhealth.core.http_client import build_http_client
from jobhealth.models import FinancialMetrics


# ============================================================
# PYTEST PLUGINS CONFIGURATION
# ============================================================

# Configure pytest-asyncio for async test support
# This must be a module-level constant named pytest_plugins
pytest_plugins: List[str] = ['pytest_asyncio']


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests as slow (deselect with -m "not slow")
    - properties: Marks tests covering the engine's documented properties
      (totality, divide-by-zero safety, monotonic severity, ...)

    Usage:
        pytest -m properties
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'properties: marks tests covering documented engine properties'
    )


# ============================================================
# SETTINGS FIXTURES
# ============================================================

FEED_BASE_URL = 'http://feeds.test/api'


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings with default thresholds, ignoring any local .env file.

    The feed API points at a non-routable test host; tests that fetch feeds
    must supply a MockTransport.
    """
    return Settings(
        _env_file=None,
        feed_api_base_url=FEED_BASE_URL,
        feed_api_token='test-token',
        portfolio_concurrency=2,
    )


@pytest.fixture
def as_of() -> date:
    """Fixed evaluation date so trend windows are deterministic."""
    return date(2025, 6, 15)


# ============================================================
# FEED PAYLOAD FIXTURES
# ============================================================

@pytest.fixture
def job_payload() -> Dict[str, Any]:
    """Job record as returned (unwrapped) by GET /jobs/{jobId}."""
    return {
        '_id': 'job-001',
        'name': 'Riverside Medical Office HVAC',
        'jobNumber': 'J-2025-017',
        'status': 'active',
        'contractValue': 1100000,
        'overallProgress': 35,
        'plannedStartDate': '2025-01-06T00:00:00.000Z',
        'plannedEndDate': '2025-12-19T00:00:00.000Z',
    }


@pytest.fixture
def evm_payload() -> Dict[str, Any]:
    return {
        'totals': {
            'cpi': 1.05,
            'spi': 0.97,
            'costVariance': 12000,
            'actualCost': 240000,
            'earnedValue': 252000,
            'laborCost': 150000,
            'apCost': 90000,
        }
    }


@pytest.fixture
def ap_payload() -> Dict[str, Any]:
    return {
        'data': [
            {
                'invoiceNumber': 'INV-1001',
                'invoiceDate': '2025-05-12',
                'totalAmount': 30000,
                'paymentStatus': 'paid',
                'costCodeBreakdown': [{'costCode': '23-100', 'amount': 30000}],
            },
            {
                'invoiceNumber': 'INV-1002',
                'invoiceDate': '2025-06-03',
                'totalAmount': 20000,
                'paymentStatus': 'pending',
                'costCodeBreakdown': [
                    {'costCode': '23-100', 'amount': 5000},
                    {'costCode': '23-200', 'amount': 15000},
                ],
            },
        ],
        'meta': {'total': 2, 'totalAmount': 90000, 'paidAmount': 60000, 'paidCount': 1},
        'summary': [],
    }


@pytest.fixture
def timelog_payload() -> Dict[str, Any]:
    return {
        'data': [
            {
                'workDate': '2025-05-20',
                'totalHours': 40,
                'totalCost': 2000,
                'totalCostWithBurden': 2600,
                'costCode': '23-100',
                'status': 'approved',
                'safetyIncidents': [],
            },
            {
                'workDate': '2025-06-10',
                'totalHours': 32,
                'totalCost': 1600,
                'totalCostWithBurden': 2080,
                'costCode': '23-200',
                'status': 'approved',
                'safetyIncidents': [],
            },
        ],
        'meta': {'total': 2, 'totalHours': 1850, 'totalCost': 150000},
    }


@pytest.fixture
def sov_payload() -> Dict[str, Any]:
    return {
        'data': {
            'summary': {'totalValue': 1000000, 'sovLineItemsCount': 2},
            'sovLineItems': [
                {
                    'lineNumber': '1',
                    'costCode': '23-100',
                    'description': 'Rooftop units',
                    'totalValue': 600000,
                    'percentComplete': 30,
                },
                {
                    'lineNumber': '2',
                    'costCode': '23-200',
                    'description': 'Ductwork',
                    'totalValue': 400000,
                    'percentComplete': 10,
                },
            ],
        }
    }


@pytest.fixture
def progress_payload() -> Dict[str, Any]:
    return {
        'data': [
            {
                'reportNumber': 'PR-004',
                'reportDate': '2025-05-31',
                'status': 'approved',
                'summary': {'calculatedPercentCTD': 25.2},
            },
            {
                'reportNumber': 'PR-003',
                'reportDate': '2025-04-30',
                'status': 'approved',
                'summary': {'calculatedPercentCTD': 18.0},
            },
        ]
    }


@pytest.fixture
def forecast_payload() -> Dict[str, Any]:
    return {
        'data': [
            {
                'monthNumber': 5,
                'forecastPeriod': '2025-05',
                'status': 'submitted',
                'summary': {'marginAtCompletion': 95000, 'marginAtCompletionPercent': 8.6},
            },
            {
                'monthNumber': 4,
                'forecastPeriod': '2025-04',
                'status': 'approved',
                'summary': {'marginAtCompletion': 110000, 'marginAtCompletionPercent': 10.0},
            },
        ]
    }


@pytest.fixture
def feed_payloads(
    job_payload: Dict[str, Any],
    evm_payload: Dict[str, Any],
    ap_payload: Dict[str, Any],
    timelog_payload: Dict[str, Any],
    sov_payload: Dict[str, Any],
    progress_payload: Dict[str, Any],
    forecast_payload: Dict[str, Any],
) -> Dict[str, Any]:
    """All feeds for one healthy job, keyed by JobFeeds attribute."""
    return {
        'job': job_payload,
        'evm': evm_payload,
        'apRegister': ap_payload,
        'timelogRegister': timelog_payload,
        'sovComponents': sov_payload,
        'progressReports': progress_payload,
        'forecasts': forecast_payload,
    }


@pytest.fixture
def e2e_feed_payloads(job_payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Budget 1,000,000, actual cost 950,000, earned 900,000 (CPI ~0.947),
    80% complete, no safety incidents and no dated entries (flat trends).
    """
    return {
        'job': job_payload,
        'evm': {
            'totals': {
                'cpi': 900000 / 950000,
                'costVariance': -50000,
                'actualCost': 950000,
                'earnedValue': 900000,
            }
        },
        'apRegister': {'data': [], 'meta': {'totalAmount': 0, 'paidAmount': 0}},
        'timelogRegister': {'data': [], 'meta': {'totalHours': 0}},
        'sovComponents': {'data': {'summary': {'totalValue': 1000000}}},
        'progressReports': {
            'data': [
                {
                    'reportNumber': 'PR-010',
                    'reportDate': '2025-05-31',
                    'status': 'approved',
                    'summary': {'calculatedPercentCTD': 80},
                }
            ]
        },
        'forecasts': {'data': []},
    }


# ============================================================
# METRIC FACTORY
# ============================================================

@pytest.fixture
def make_metrics() -> Callable[..., FinancialMetrics]:
    """
    Factory for FinancialMetrics that trigger no rule by default.

    Usage:
        metrics = make_metrics(cpi=0.85, budgetUtilization=95, progressPercent=50)
    """
    def _make(**overrides: Any) -> FinancialMetrics:
        values: Dict[str, Any] = {
            'cpi': 1.05,
            'budgetUtilization': 40.0,
            'progressPercent': 45.0,
            'totalBudget': 1000000.0,
            'hasBudget': True,
        }
        values.update(overrides)
        return FinancialMetrics(**values)

    return _make


# ============================================================
# HTTP MOCK FIXTURES
# ============================================================

# JobFeeds attribute -> feed path template (relative to the API base)
FEED_ROUTE_TEMPLATES: Dict[str, str] = {
    'job': '/jobs/{job_id}',
    'evm': '/financial/{job_id}/earned-vs-burned',
    'apRegister': '/financial/{job_id}/ap-register',
    'timelogRegister': '/financial/{job_id}/timelog-register',
    'sovComponents': '/jobs/{job_id}/sov-components',
    'progressReports': '/financial/{job_id}/progress-reports',
    'forecasts': '/financial/{job_id}/cost-to-complete/forecasts',
}


def feed_routes(job_id: str, payloads: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map request paths to response bodies for one job.

    The job record is wrapped in a data envelope, as the API returns it. A
    value that is an httpx.Response is returned as-is, which lets tests
    simulate error statuses or non-JSON bodies.
    """
    routes: Dict[str, Any] = {}
    for attr, template in FEED_ROUTE_TEMPLATES.items():
        if attr not in payloads:
            continue
        body = payloads[attr]
        if attr == 'job' and isinstance(body, dict):
            body = {'success': True, 'data': body}
        routes['/api' + template.format(job_id=job_id)] = body
    return routes


@pytest.fixture
def mock_feed_client(test_settings: Settings) -> Callable[..., httpx.AsyncClient]:
    """
    Factory for an httpx.AsyncClient served by a MockTransport.

    Unknown paths return 404. Every handled request is appended to the
    returned client's `requests_seen` list.

    Usage:
        client = mock_feed_client(feed_routes('job-001', feed_payloads))
    """
    def _make(routes: Dict[str, Any], raise_for: Optional[Dict[str, Exception]] = None) -> httpx.AsyncClient:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            path = request.url.path
            if raise_for and path in raise_for:
                raise raise_for[path]
            if path not in routes:
                return httpx.Response(404, json={'success': False, 'message': 'Not found'})
            body = routes[path]
            if isinstance(body, httpx.Response):
                return body
            return httpx.Response(200, json=body)

        client = build_http_client(test_settings, transport=httpx.MockTransport(handler))
        client.requests_seen = seen
        return client

    return _make


@pytest.fixture
def routes_for() -> Callable[[str, Dict[str, Any]], Dict[str, Any]]:
    """Fixture form of feed_routes for use inside test modules."""
    return feed_routes
