# src/jobrelay/clients/brightdata.py
"""
Bright Data dataset client (Indeed and LinkedIn job datasets).

Bright Data does not answer a search with data: it answers with a snapshot
id. We trigger the collection, then poll the snapshot until it is ready
(see poller.SnapshotPoller for the backoff and the payload forms).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from jobrelay.clients import codes
from jobrelay.clients.poller import SnapshotPoller, describe, interpret_snapshot_response
from jobrelay.errors import ProviderError
from jobrelay.models import RawRecord, SearchQuery

logger = logging.getLogger(__name__)

API = "https://api.brightdata.com/datasets/v3"


def _auth_headers(api_key: str) -> Dict[str, str]:
    if not api_key:
        raise ProviderError("brightdata", "Missing BRIGHT_DATA_API_KEY")
    return {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}


def indeed_inputs(query: SearchQuery) -> List[Dict[str, Any]]:
    return [
        {
            "country": "US",
            "domain": "indeed.com",
            "keyword_search": query.field,
            "location": query.location or "United States",
            "date_posted": codes.brightdata_date_posted(query.sort_by),
            "posted_by": "",
            "location_radius": "",
        }
    ]


def linkedin_inputs(query: SearchQuery) -> List[Dict[str, Any]]:
    job_type = query.job_types[0] if query.job_types else ""
    exp_level = query.exp_levels[0] if query.exp_levels else ""
    return [
        {
            "location": query.location or "United States",
            "keyword": query.field,
            "country": "US",
            "time_range": codes.brightdata_time_range(query.sort_by),
            "job_type": codes.brightdata_job_type(job_type),
            "experience_level": codes.brightdata_experience(exp_level),
            "remote": codes.brightdata_remote(query.work_type),
            "company": query.filter_by_company,
            "location_radius": "",
        }
    ]


def _drop_error_records(items: List[RawRecord]) -> List[RawRecord]:
    # include_errors=true mixes per-input error rows into the data
    return [r for r in items if not ("error" in r and "error_code" in r and "url" not in r)]


class BrightDataClient:
    """Trigger + poll for one dataset. One instance per request."""

    def __init__(
        self,
        api_key: str,
        dataset_id: str,
        *,
        provider: str = "brightdata",
        poller: Optional[SnapshotPoller] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.provider = provider
        self.dataset_id = dataset_id
        self.headers = _auth_headers(api_key)
        self.poller = poller or SnapshotPoller(provider)
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "BrightDataClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderError(self.provider, f"request failed: {exc}") from exc

    def trigger(self, inputs: List[Dict[str, Any]], *, limit_per_input: int) -> str:
        params = {
            "dataset_id": self.dataset_id,
            "include_errors": "true",
            "type": "discover_new",
            "discover_by": "keyword",
            "limit_per_input": str(max(1, int(limit_per_input))),
        }
        resp = self._request("POST", f"{API}/trigger", params=params, json=inputs)
        if resp.status_code >= 400:
            raise ProviderError(self.provider, f"trigger failed: {resp.status_code} {resp.text}", status=resp.status_code, body=resp.text)
        try:
            snapshot_id = resp.json().get("snapshot_id")
        except (ValueError, AttributeError) as exc:
            raise ProviderError(self.provider, "trigger response is not a JSON object", status=resp.status_code, body=resp.text) from exc
        if not snapshot_id:
            raise ProviderError(self.provider, "trigger response has no snapshot_id", status=resp.status_code, body=resp.text)
        logger.info("%s: triggered snapshot %s", self.provider, snapshot_id)
        return str(snapshot_id)

    def _download(self, url: str) -> str:
        # presigned file URLs must not receive our bearer token
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as exc:
            raise ProviderError(self.provider, f"download failed: {exc}") from exc
        if resp.status_code >= 400:
            raise ProviderError(self.provider, f"download failed: {resp.status_code}", status=resp.status_code, body=resp.text)
        return resp.text

    def check_snapshot(self, snapshot_id: str) -> List[RawRecord]:
        resp = self._request("GET", f"{API}/snapshot/{snapshot_id}", params={"format": "json"})
        return interpret_snapshot_response(self.provider, resp, self._download)

    def collect(self, inputs: List[Dict[str, Any]], *, limit: int) -> List[RawRecord]:
        snapshot_id = self.trigger(inputs, limit_per_input=limit)
        items = self.poller.run(lambda: self.check_snapshot(snapshot_id))
        logger.info("%s: snapshot %s ready %s", self.provider, snapshot_id, describe(self.poller))
        return _drop_error_records(items)[:limit]


def _fetcher(
    provider: str,
    build_inputs: Callable[[SearchQuery], List[Dict[str, Any]]],
):
    def fetch(query: SearchQuery, *, api_key: str, dataset_id: str, poller: SnapshotPoller, **client_kwargs) -> List[RawRecord]:
        with BrightDataClient(api_key, dataset_id, provider=provider, poller=poller, **client_kwargs) as client:
            return client.collect(build_inputs(query), limit=query.total)

    return fetch


fetch_indeed = _fetcher("brightdata_indeed", indeed_inputs)
fetch_linkedin = _fetcher("brightdata_linkedin", linkedin_inputs)
