"""
API Contract Test Module

Tests for the FastAPI routers via fastapi.testclient.TestClient. The feed
client and settings are swapped through app.dependency_overrides so no real
upstream API is contacted.

Covers:
- /health and / metadata endpoints
- POST /financial-health/compute (pure computation over supplied feeds)
- GET /jobs/{job_id}/financial-health and /earned-vs-burned
- POST /portfolio/financial-health and /portfolio/at-risk
- Error mapping: 400 for empty job lists / bad sort fields, 422 for invalid
  bodies, 500 for unexpected failures
"""

from typing import Any, Dict
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from jobhealth.core.dependencies import get_feed_client, get_settings_dependency
from jobhealth.main import app


@pytest.fixture
def api_client(test_settings):
    """TestClient with settings overridden; the lifespan is not started."""
    app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_routes(mock_feed_client):
    """Serve the given feed routes to every endpoint that fetches feeds."""
    def _use(routes: Dict[str, Any]) -> httpx.AsyncClient:
        client = mock_feed_client(routes)
        app.dependency_overrides[get_feed_client] = lambda: client
        return client

    return _use


# =============================================================================
# Metadata Endpoints
# =============================================================================

class TestMetadataEndpoints:

    def test_health(self, api_client):
        response = api_client.get('/health')
        assert response.status_code == 200
        assert response.json() == {'status': 'healthy'}

    def test_root(self, api_client):
        body = api_client.get('/').json()
        assert body['name'] == 'Job Financial Health API'
        assert body['docs'] == '/docs'


# =============================================================================
# Per-Job Endpoints
# =============================================================================

class TestComputeEndpoint:

    def test_end_to_end_scenario(self, api_client, e2e_feed_payloads):
        response = api_client.post(
            '/financial-health/compute',
            json={**e2e_feed_payloads, 'asOf': '2025-06-15'},
        )

        assert response.status_code == 200
        body = response.json()
        assert body['asOf'] == '2025-06-15'
        assert body['health']['healthStatus'] == 'critical'
        assert body['health']['priority'] == 'critical'
        assert len(body['health']['issues']) == 2
        assert body['cpiStatus'] == {'label': 'At Risk', 'color': 'yellow'}
        assert body['budgetStatus'] == {'label': 'Critical', 'color': 'red'}

    def test_empty_body_computes_defaults(self, api_client):
        response = api_client.post('/financial-health/compute', json={'asOf': '2025-06-15'})

        assert response.status_code == 200
        body = response.json()
        assert body['health']['isHealthy'] is True
        assert body['metrics']['cpi'] is None
        assert body['budgetStatus']['label'] == 'N/A'

    def test_weekly_granularity(self, api_client, feed_payloads):
        response = api_client.post(
            '/financial-health/compute',
            json={**feed_payloads, 'asOf': '2025-06-15', 'granularity': 'week'},
        )
        assert response.status_code == 200
        assert response.json()['trend']['granularity'] == 'week'

    def test_malformed_feeds_are_reported_as_failed(self, api_client, feed_payloads, caplog):
        body = {**feed_payloads, 'job': 'not-a-job', 'forecasts': 12, 'asOf': '2025-06-15'}

        with caplog.at_level('WARNING', logger='jobhealth.services.ingestion'):
            response = api_client.post('/financial-health/compute', json=body)

        assert response.status_code == 200
        report = response.json()
        assert report['failedFeeds'] == ['job', 'forecasts']
        assert report['jobId'] is None
        assert report['metrics']['marginAtCompletion'] is None
        assert report['metrics']['totalBudget'] == 1000000
        assert 'Feed job is not a JSON object' in caplog.text

    def test_caller_supplied_failed_feeds_pass_through(self, api_client):
        response = api_client.post('/financial-health/compute', json={
            'failedFeeds': ['ap_register'],
            'asOf': '2025-06-15',
        })
        assert response.json()['failedFeeds'] == ['ap_register']

    def test_invalid_granularity_is_rejected(self, api_client):
        response = api_client.post('/financial-health/compute', json={'granularity': 'fortnight'})
        assert response.status_code == 422


class TestJobFinancialHealthEndpoint:

    def test_fetches_and_computes(self, api_client, use_routes, routes_for, feed_payloads):
        use_routes(routes_for('job-001', feed_payloads))

        response = api_client.get('/jobs/job-001/financial-health', params={'asOf': '2025-06-15'})

        assert response.status_code == 200
        body = response.json()
        assert body['jobId'] == 'job-001'
        assert body['failedFeeds'] == []
        assert body['metrics']['totalBudget'] == 1000000
        assert body['health']['healthStatus'] == 'at-risk'

    def test_degraded_feed_is_reported(self, api_client, use_routes, routes_for, feed_payloads):
        routes = routes_for('job-001', feed_payloads)
        routes['/api/financial/job-001/earned-vs-burned'] = httpx.Response(502, text='Bad Gateway')
        use_routes(routes)

        response = api_client.get('/jobs/job-001/financial-health', params={'asOf': '2025-06-15'})

        assert response.status_code == 200
        body = response.json()
        assert body['failedFeeds'] == ['earned_vs_burned']
        assert body['cpiStatus']['label'] == 'No Data'

    def test_unexpected_error_returns_500(self, api_client, use_routes):
        use_routes({})
        with patch(
            'jobhealth.api.financial_health.evaluate_job',
            new=AsyncMock(side_effect=RuntimeError('boom')),
        ):
            response = api_client.get('/jobs/job-001/financial-health')

        assert response.status_code == 500
        assert 'boom' in response.json()['detail']


class TestEarnedVsBurnedEndpoint:

    def test_line_analysis(self, api_client, use_routes, routes_for, feed_payloads):
        client = use_routes(routes_for('job-001', feed_payloads))

        response = api_client.get('/jobs/job-001/earned-vs-burned')

        assert response.status_code == 200
        body = response.json()
        assert body['jobId'] == 'job-001'
        assert body['lineItemCount'] == 2
        assert body['totals']['overallProgress'] == pytest.approx(22.0)
        assert len(client.requests_seen) == 3


# =============================================================================
# Portfolio Endpoints
# =============================================================================

@pytest.fixture
def portfolio_routes(routes_for, feed_payloads, e2e_feed_payloads):
    healthy = dict(feed_payloads, job=dict(feed_payloads['job'], _id='job-h', name='Harbor Lofts'))
    critical = dict(e2e_feed_payloads, job=dict(e2e_feed_payloads['job'], _id='job-c', name='Cedar Clinic'))
    routes = {}
    routes.update(routes_for('job-h', healthy))
    routes.update(routes_for('job-c', critical))
    return routes


class TestPortfolioEndpoint:

    def test_reports_and_summary(self, api_client, use_routes, portfolio_routes):
        use_routes(portfolio_routes)

        response = api_client.post('/portfolio/financial-health', json={
            'jobIds': ['job-h', 'job-c'],
            'sortBy': 'jobName',
            'asOf': '2025-06-15',
        })

        assert response.status_code == 200
        body = response.json()
        assert [r['jobName'] for r in body['reports']] == ['Cedar Clinic', 'Harbor Lofts']
        assert body['total'] == 2
        assert body['summary']['jobCount'] == 2
        assert body['summary']['healthCounts'] == {'good': 0, 'at-risk': 1, 'critical': 1}

    def test_status_filter_narrows_reports_not_summary(self, api_client, use_routes, portfolio_routes):
        use_routes(portfolio_routes)

        response = api_client.post('/portfolio/financial-health', json={
            'jobIds': ['job-h', 'job-c'],
            'statusFilter': 'on_budget',
            'asOf': '2025-06-15',
        })

        body = response.json()
        assert [r['jobId'] for r in body['reports']] == ['job-h']
        assert body['summary']['jobCount'] == 2

    def test_empty_job_ids(self, api_client, use_routes):
        use_routes({})
        response = api_client.post('/portfolio/financial-health', json={'jobIds': []})
        assert response.status_code == 400

    def test_unsupported_sort_field(self, api_client, use_routes):
        use_routes({})
        response = api_client.post('/portfolio/financial-health', json={'jobIds': ['x'], 'sortBy': 'colour'})
        assert response.status_code == 400
        assert 'Unsupported sortBy' in response.json()['detail']

    def test_missing_job_ids(self, api_client, use_routes):
        use_routes({})
        response = api_client.post('/portfolio/financial-health', json={})
        assert response.status_code == 422


class TestAtRiskEndpoint:

    def test_ranked_jobs(self, api_client, use_routes, portfolio_routes):
        use_routes(portfolio_routes)

        response = api_client.post('/portfolio/at-risk', json={
            'jobIds': ['job-h', 'job-c', 'job-missing'],
            'limit': 5,
            'asOf': '2025-06-15',
        })

        assert response.status_code == 200
        body = response.json()
        assert body['total'] == 2
        assert [job['jobId'] for job in body['jobs']] == ['job-c', 'job-h']
        assert body['jobs'][0]['healthStatus'] == 'critical'
        assert body['jobs'][0]['topIssue']['message'].startswith('At risk of going over budget')
        assert body['jobs'][0]['issueCount'] == 2

    def test_limit(self, api_client, use_routes, portfolio_routes):
        use_routes(portfolio_routes)

        response = api_client.post('/portfolio/at-risk', json={
            'jobIds': ['job-h', 'job-c'],
            'limit': 1,
            'asOf': '2025-06-15',
        })

        body = response.json()
        assert len(body['jobs']) == 1
        assert body['total'] == 2

    def test_empty_job_ids(self, api_client, use_routes):
        use_routes({})
        response = api_client.post('/portfolio/at-risk', json={'jobIds': []})
        assert response.status_code == 400
