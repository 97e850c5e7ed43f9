"""
Feed Fan-out Service

Fetches the job record and the six per-job feeds from the job management API
concurrently and joins them into a JobFeeds bundle.

Each request is wrapped independently: a transport error, non-2xx status or
non-JSON body degrades that feed to its empty shape and records it in
failedFeeds. A failed feed never aborts the join, so the engine always
receives a complete (possibly default) bundle. No retries are attempted; the
shared client's timeout bounds each request.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import quote

import httpx

from jobhealth.models import FeedName, JobFeeds
from jobhealth.services.ingestion import FEED_MODELS, parse_job_feeds

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Feed Endpoints
# =============================================================================

# Paths are relative to the client's base_url
FEED_PATHS: Dict[FeedName, str] = {
    FeedName.JOB: "/jobs/{job_id}",
    FeedName.EVM: "/financial/{job_id}/earned-vs-burned",
    FeedName.AP_REGISTER: "/financial/{job_id}/ap-register",
    FeedName.TIMELOG_REGISTER: "/financial/{job_id}/timelog-register",
    FeedName.SOV_COMPONENTS: "/jobs/{job_id}/sov-components",
    FeedName.PROGRESS_REPORTS: "/financial/{job_id}/progress-reports",
    FeedName.FORECASTS: "/financial/{job_id}/cost-to-complete/forecasts",
}

FEED_PARAMS: Dict[FeedName, Dict[str, str]] = {
    FeedName.PROGRESS_REPORTS: {"status": "approved"},
}

# FeedName -> JobFeeds attribute
FEED_ATTRIBUTES: Dict[FeedName, str] = {
    feed_name: attr for attr, (_, feed_name) in FEED_MODELS.items()
}

ALL_FEEDS: Tuple[FeedName, ...] = tuple(FEED_PATHS)

# Feeds needed for the per-line earned-vs-burned analysis
EARNED_VS_BURNED_FEEDS: Tuple[FeedName, ...] = (
    FeedName.SOV_COMPONENTS,
    FeedName.AP_REGISTER,
    FeedName.TIMELOG_REGISTER,
)


def feed_url(feed_name: FeedName, job_id: str) -> str:
    return FEED_PATHS[feed_name].format(job_id=quote(str(job_id), safe=""))


# =============================================================================
# Single Feed Fetch
# =============================================================================

async def fetch_feed(
    client: httpx.AsyncClient,
    job_id: str,
    feed_name: FeedName,
) -> Tuple[Optional[Any], bool]:
    """
    Fetch one feed, never raising.

    Args:
        client: Shared feed API client
        job_id: Job identifier
        feed_name: Which feed to fetch

    Returns:
        (payload, ok) where payload is the decoded JSON, or None when the
        request failed and ok is False
    """
    url = feed_url(feed_name, job_id)
    try:
        response = await client.get(url, params=FEED_PARAMS.get(feed_name))
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as e:
        logger.warning(
            f"Feed {feed_name.value} for job {job_id} returned HTTP "
            f"{e.response.status_code}; using defaults"
        )
        return None, False
    except httpx.HTTPError as e:
        logger.warning(f"Feed {feed_name.value} for job {job_id} failed: {e!r}; using defaults")
        return None, False
    except ValueError as e:
        logger.warning(f"Feed {feed_name.value} for job {job_id} is not valid JSON: {e}; using defaults")
        return None, False

    if payload is None:
        logger.warning(f"Feed {feed_name.value} for job {job_id} returned an empty body; using defaults")
        return None, False

    # The job record is wrapped in a data envelope
    if feed_name == FeedName.JOB and isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    return payload, True


# =============================================================================
# Fan-out
# =============================================================================

async def fetch_job_feeds(
    client: httpx.AsyncClient,
    job_id: str,
    feeds: Iterable[FeedName] = ALL_FEEDS,
) -> JobFeeds:
    """
    Fetch feeds for one job concurrently and join them into JobFeeds.

    Args:
        client: Shared feed API client
        job_id: Job identifier
        feeds: Subset of feeds to fetch; others keep their empty shape

    Returns:
        JobFeeds with failedFeeds listing every degraded feed
    """
    requested = list(dict.fromkeys(feeds))
    results = await asyncio.gather(
        *(fetch_feed(client, job_id, feed_name) for feed_name in requested)
    )

    raw: Dict[str, Any] = {"failedFeeds": []}
    for feed_name, (payload, ok) in zip(requested, results):
        if ok:
            raw[FEED_ATTRIBUTES[feed_name]] = payload
        else:
            raw["failedFeeds"].append(feed_name.value)

    bundle = parse_job_feeds(raw)
    if bundle.failedFeeds:
        logger.info(
            f"Job {job_id}: {len(bundle.failedFeeds)}/{len(requested)} feeds degraded "
            f"({', '.join(f.value for f in bundle.failedFeeds)})"
        )
    return bundle


__all__ = [
    "FEED_PATHS",
    "FEED_PARAMS",
    "ALL_FEEDS",
    "EARNED_VS_BURNED_FEEDS",
    "feed_url",
    "fetch_feed",
    "fetch_job_feeds",
]
