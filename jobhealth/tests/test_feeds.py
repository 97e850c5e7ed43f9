"""
Feed Fan-out Test Module

Tests for jobhealth/services/feeds.py using httpx.MockTransport:
- All seven requests are issued and joined into JobFeeds
- Each failure mode (HTTP error status, transport error, non-JSON body,
  malformed payload) degrades only the affected feed and records it
- Request details: bearer token, approved-only progress reports, path quoting
"""

import httpx
import pytest

from jobhealth.models import FeedName
from jobhealth.services.feeds import (
    EARNED_VS_BURNED_FEEDS,
    feed_url,
    fetch_feed,
    fetch_job_feeds,
)


pytestmark = pytest.mark.asyncio


class TestFetchJobFeeds:

    async def test_all_feeds_succeed(self, mock_feed_client, routes_for, feed_payloads):
        client = mock_feed_client(routes_for('job-001', feed_payloads))
        async with client:
            feeds = await fetch_job_feeds(client, 'job-001')

        assert feeds.failedFeeds == []
        assert feeds.job.id == 'job-001'
        assert feeds.job.name == 'Riverside Medical Office HVAC'
        assert feeds.evm.totals.cpi == 1.05
        assert len(feeds.apRegister.data) == 2
        assert feeds.sovComponents.data.summary.totalValue == 1000000
        assert len(client.requests_seen) == 7

    async def test_http_error_status_degrades_one_feed(self, mock_feed_client, routes_for, feed_payloads):
        routes = routes_for('job-001', feed_payloads)
        routes['/api/financial/job-001/earned-vs-burned'] = httpx.Response(500, json={'success': False})
        client = mock_feed_client(routes)

        async with client:
            feeds = await fetch_job_feeds(client, 'job-001')

        assert feeds.failedFeeds == [FeedName.EVM]
        assert feeds.evm.totals.cpi is None
        assert feeds.sovComponents.data.summary.totalValue == 1000000

    async def test_transport_error_degrades_one_feed(self, mock_feed_client, routes_for, feed_payloads):
        client = mock_feed_client(
            routes_for('job-001', feed_payloads),
            raise_for={'/api/jobs/job-001/sov-components': httpx.ConnectError('connection refused')},
        )
        async with client:
            feeds = await fetch_job_feeds(client, 'job-001')

        assert feeds.failedFeeds == [FeedName.SOV_COMPONENTS]
        assert feeds.sovComponents.data.summary.totalValue is None
        assert feeds.evm.totals.actualCost == 240000

    async def test_timeout_degrades_one_feed(self, mock_feed_client, routes_for, feed_payloads):
        client = mock_feed_client(
            routes_for('job-001', feed_payloads),
            raise_for={'/api/financial/job-001/cost-to-complete/forecasts': httpx.ReadTimeout('timed out')},
        )
        async with client:
            feeds = await fetch_job_feeds(client, 'job-001')

        assert feeds.failedFeeds == [FeedName.FORECASTS]
        assert feeds.forecasts.data == []

    async def test_non_json_body_degrades_one_feed(self, mock_feed_client, routes_for, feed_payloads):
        routes = routes_for('job-001', feed_payloads)
        routes['/api/financial/job-001/ap-register'] = httpx.Response(200, text='<html>Bad Gateway</html>')
        client = mock_feed_client(routes)

        async with client:
            feeds = await fetch_job_feeds(client, 'job-001')

        assert feeds.failedFeeds == [FeedName.AP_REGISTER]
        assert feeds.apRegister.meta.totalAmount is None

    async def test_non_object_json_degrades_one_feed(self, mock_feed_client, routes_for, feed_payloads):
        routes = routes_for('job-001', feed_payloads)
        routes['/api/financial/job-001/timelog-register'] = ['unexpected', 'list']
        client = mock_feed_client(routes)

        async with client:
            feeds = await fetch_job_feeds(client, 'job-001')

        assert feeds.failedFeeds == [FeedName.TIMELOG_REGISTER]

    async def test_null_json_body_degrades_one_feed(self, mock_feed_client, routes_for, feed_payloads):
        routes = routes_for('job-001', feed_payloads)
        routes['/api/jobs/job-001/sov-components'] = httpx.Response(
            200, content=b'null', headers={'Content-Type': 'application/json'}
        )
        client = mock_feed_client(routes)

        async with client:
            payload, ok = await fetch_feed(client, 'job-001', FeedName.SOV_COMPONENTS)
            feeds = await fetch_job_feeds(client, 'job-001')

        assert (payload, ok) == (None, False)
        assert feeds.failedFeeds == [FeedName.SOV_COMPONENTS]
        assert feeds.sovComponents.data.summary.totalValue is None

    async def test_everything_fails(self, mock_feed_client):
        client = mock_feed_client({})
        async with client:
            feeds = await fetch_job_feeds(client, 'job-001')

        assert set(feeds.failedFeeds) == set(FeedName)

    async def test_subset_fetch(self, mock_feed_client, routes_for, feed_payloads):
        client = mock_feed_client(routes_for('job-001', feed_payloads))
        async with client:
            feeds = await fetch_job_feeds(client, 'job-001', EARNED_VS_BURNED_FEEDS)

        assert len(client.requests_seen) == 3
        assert feeds.failedFeeds == []
        assert feeds.evm.totals.cpi is None
        assert len(feeds.sovComponents.data.sovLineItems) == 2


class TestFetchFeed:

    async def test_request_details(self, mock_feed_client, routes_for, feed_payloads):
        client = mock_feed_client(routes_for('job-001', feed_payloads))
        async with client:
            payload, ok = await fetch_feed(client, 'job-001', FeedName.PROGRESS_REPORTS)

        assert ok is True
        assert len(payload['data']) == 2
        request = client.requests_seen[0]
        assert request.url.params['status'] == 'approved'
        assert request.headers['Authorization'] == 'Bearer test-token'
        assert request.headers['Accept'] == 'application/json'

    async def test_job_record_without_envelope(self, mock_feed_client, job_payload):
        client = mock_feed_client({'/api/jobs/job-001': job_payload})
        async with client:
            payload, ok = await fetch_feed(client, 'job-001', FeedName.JOB)

        assert ok is True
        assert payload['_id'] == 'job-001'

    async def test_failure_returns_none(self, mock_feed_client):
        client = mock_feed_client({})
        async with client:
            payload, ok = await fetch_feed(client, 'job-001', FeedName.EVM)

        assert payload is None
        assert ok is False


class TestFeedUrl:

    async def test_job_id_is_path_quoted(self):
        assert feed_url(FeedName.SOV_COMPONENTS, 'a/b c') == '/jobs/a%2Fb%20c/sov-components'
