# src/jobrelay/clients/apify.py
"""
Apify actor clients (LinkedIn and Glassdoor job scrapers).

Each source runs one actor synchronously (`.call()` waits for the run to
finish) and reads back the run's default dataset.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from apify_client import ApifyClient
from apify_client.errors import ApifyApiError

from jobrelay.clients import codes
from jobrelay.errors import ProviderError
from jobrelay.models import RawRecord, SearchQuery

logger = logging.getLogger(__name__)

LINKEDIN_ACTOR_ID = "9eTAaHrnHrljnL3Tg"
GLASSDOOR_ACTOR_ID = "t2FNNV3J6mvckgV2g"

RESIDENTIAL_PROXY = {
    "useApifyProxy": True,
    "apifyProxyGroups": ["RESIDENTIAL"],
}


def _without_none(data: Dict[str, Any]) -> Dict[str, Any]:
    # actor input schemas reject explicit nulls
    return {k: v for k, v in data.items() if v is not None}


def linkedin_input(query: SearchQuery) -> Dict[str, Any]:
    job_type = query.job_types[0] if query.job_types else None
    exp_level = query.exp_levels[0] if query.exp_levels else None
    return _without_none(
        {
            "title": query.field.strip(),
            "location": query.location or "United States",
            "companyName": [query.filter_by_company] if query.filter_by_company else [],
            "companyId": [],
            "workType": codes.work_type_code(query.work_type),
            "contractType": codes.job_type_code(job_type),
            "experienceLevel": codes.experience_code(exp_level),
            "publishedAt": codes.actor_recency_window(query.sort_by),
            "rows": query.total,
            "maxItems": query.total,
            "proxy": dict(RESIDENTIAL_PROXY),
        }
    )


def glassdoor_input(query: SearchQuery) -> Dict[str, Any]:
    job_type = query.job_types[0] if query.job_types else None
    exp_level = query.exp_levels[0] if query.exp_levels else None
    return _without_none(
        {
            "keyword": query.field,
            "maxItems": query.total,
            "fromAge": codes.glassdoor_from_age(query.sort_by),
            "baseUrl": "https://www.glassdoor.com",
            "includeNoSalaryJob": False,
            "minSalary": 0,
            "jobType": codes.glassdoor_job_type(job_type),
            "radius": "0",
            "industryType": "ALL",
            "domainType": "ALL",
            "employerSizes": "ALL",
            "applicationType": "ALL",
            "seniorityType": codes.glassdoor_seniority(exp_level),
            "remoteWorkType": codes.work_type_code(query.work_type) not in (None, "1"),
            "minRating": "0",
            "proxy": dict(RESIDENTIAL_PROXY),
        }
    )


def run_actor(
    provider: str,
    actor_id: str,
    run_input: Dict[str, Any],
    *,
    token: str,
    client: Optional[ApifyClient] = None,
) -> List[RawRecord]:
    """Run an actor to completion and return its dataset items."""
    if not token and client is None:
        raise ProviderError(provider, "Missing APIFY_API_KEY")
    client = client or ApifyClient(token)

    logger.info("%s: starting actor %s", provider, actor_id)
    try:
        run = client.actor(actor_id).call(run_input=run_input)
    except ApifyApiError as exc:
        raise ProviderError(provider, f"actor call failed: {exc}", status=getattr(exc, "status_code", None)) from exc
    if not run:
        raise ProviderError(provider, "actor run returned nothing")
    status = str(run.get("status") or "SUCCEEDED")
    if status != "SUCCEEDED":
        raise ProviderError(provider, f"actor run ended with status {status}")

    try:
        page = client.dataset(run["defaultDatasetId"]).list_items()
    except ApifyApiError as exc:
        raise ProviderError(provider, f"dataset read failed: {exc}", status=getattr(exc, "status_code", None)) from exc
    items = [i for i in (page.items or []) if isinstance(i, dict)]
    logger.info("%s: actor returned %d items", provider, len(items))
    return items


def fetch_linkedin(query: SearchQuery, *, token: str, client: Optional[ApifyClient] = None) -> List[RawRecord]:
    return run_actor("apify_linkedin", LINKEDIN_ACTOR_ID, linkedin_input(query), token=token, client=client)


def fetch_glassdoor(query: SearchQuery, *, token: str, client: Optional[ApifyClient] = None) -> List[RawRecord]:
    return run_actor("apify_glassdoor", GLASSDOOR_ACTOR_ID, glassdoor_input(query), token=token, client=client)
