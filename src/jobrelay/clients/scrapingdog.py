# src/jobrelay/clients/scrapingdog.py
"""
Plain-function client for ScrapingDog's LinkedIn Jobs API.

- Keep all HTTP details here so the pipeline only sees lists of raw job dicts.
- One call per page; paging and quotas are the pagination controller's job.
- Return raw records; normalization happens elsewhere.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from jobrelay.clients import codes
from jobrelay.errors import ProviderError
from jobrelay.models import Combo, RawRecord, SearchQuery

logger = logging.getLogger(__name__)

PROVIDER = "scrapingdog"
BASE_URL = "https://api.scrapingdog.com/linkedinjobs/"


# ---- Internal helpers ---------------------------------------------------------

def _default_headers() -> Dict[str, str]:
    return {"User-Agent": "job-relay/0.1", "Accept": "application/json"}


def _clean_params(params: Dict[str, Any]) -> Dict[str, str]:
    """Drop None/"" values; the API treats an empty parameter as a filter."""
    return {k: str(v) for k, v in params.items() if v is not None and v != ""}


def _get_json(url: str, params: Dict[str, str], timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None) -> Any:
    """One GET. Any failure becomes a ProviderError carrying the upstream status/body."""
    try:
        with httpx.Client(timeout=timeout, headers=_default_headers(), transport=transport) as client:
            resp = client.get(url, params=params)
    except httpx.HTTPError as exc:
        raise ProviderError(PROVIDER, f"request failed: {exc}") from exc

    if resp.status_code >= 400:
        body = resp.text
        raise ProviderError(
            PROVIDER,
            f"API {resp.status_code}: {body or resp.reason_phrase}",
            status=resp.status_code,
            body=body,
        )
    try:
        return resp.json()
    except ValueError as exc:
        raise ProviderError(PROVIDER, "response is not JSON", status=resp.status_code, body=resp.text) from exc


def _extract_jobs(data: Any) -> List[RawRecord]:
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = data.get("jobs") or data.get("results") or []
        if not isinstance(items, list):
            raise ProviderError(PROVIDER, "malformed body: jobs/results is not a list")
    else:
        raise ProviderError(PROVIDER, f"malformed body: {type(data).__name__}")
    return [j for j in items if isinstance(j, dict)]


# ---- Public API ---------------------------------------------------------------

def build_params(query: SearchQuery, combo: Optional[Combo], page: int) -> Dict[str, str]:
    """
    Map a SearchQuery + combo + page to ScrapingDog parameters.

    Generic words are translated ("senior" -> exp_level=4, "remote" ->
    work_type=2); sort_by already uses ScrapingDog's tokens (day/week/month).
    Passthrough extras are applied first so the explicit fields win.
    """
    params: Dict[str, Any] = dict(query.extra)
    params.update(
        {
            "field": query.field,
            "location": query.location,
            "geoid": query.geoid,
            "sort_by": query.sort_by,
            "work_type": codes.work_type_code(query.work_type),
            "filter_by_company": query.filter_by_company,
            "count": query.chunk,
            "page": page,
            "job_type": codes.job_type_code(combo.job_type) if combo else None,
            "exp_level": codes.experience_code(combo.exp_level) if combo else None,
        }
    )
    return _clean_params(params)


def scrapingdog_search(
    api_key: str,
    params: Dict[str, str],
    *,
    timeout: float = 30.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> List[RawRecord]:
    """
    Fetch ONE page of LinkedIn jobs and return the raw job dicts.

    The body may be a bare array or an object with "jobs"/"results".
    """
    if not api_key:
        raise ProviderError(PROVIDER, "API key missing")
    data = _get_json(BASE_URL, {"api_key": api_key, **params}, timeout=timeout, transport=transport)
    jobs = _extract_jobs(data)
    logger.debug("scrapingdog page=%s returned %d jobs", params.get("page"), len(jobs))
    return jobs


def page_fetcher(api_key: str, query: SearchQuery, *, timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None):
    """Bind credentials + query into the fetch_page(combo, page) callable the paginator drives."""

    def fetch_page(combo: Optional[Combo], page: int) -> List[RawRecord]:
        return scrapingdog_search(api_key, build_params(query, combo, page), timeout=timeout, transport=transport)

    return fetch_page
