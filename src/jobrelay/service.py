# src/jobrelay/service.py
"""
Request-level orchestration.

fetch_jobs():     one paged provider (ScrapingDog) -> fixed columns -> one tab.
fetch_sources():  several providers in parallel -> discovered columns -> one
                  tab per provider, with per-source success/error reporting.

Both raise ConfigError before any provider call when a credential or the
destination is missing. Everything else is reported in the returned body.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from jobrelay.clients import apify, brightdata, scrapingdog
from jobrelay.clients.poller import SnapshotPoller
from jobrelay.config import Settings
from jobrelay.errors import ConfigError, SheetWriteError
from jobrelay.io.sheets import USER_COL, SheetSynchronizer
from jobrelay.models import Destination, ProviderErr, RawRecord, SearchQuery
from jobrelay.pipeline.aggregate import run_all
from jobrelay.pipeline.filter import RecordFilter
from jobrelay.pipeline.normalize import FIXED_HEADERS, canonical_to_sheet_row, discover_headers
from jobrelay.pipeline.paginate import FetchPage, collect_jobs
from jobrelay.pipeline.recency import sort_newest_first

logger = logging.getLogger(__name__)


# ---- Sources for the multi-provider flow --------------------------------------

def _poller(settings: Settings, provider: str) -> SnapshotPoller:
    return SnapshotPoller(
        provider,
        base_delay=settings.poll_base_delay_sec,
        backoff_cap=settings.poll_backoff_cap_sec,
        ceiling=settings.poll_ceiling_sec,
    )


@dataclass(frozen=True)
class Source:
    name: str
    default_sheet: str
    credential: str  # Settings attribute that must be non-empty
    credential_env: str
    fetch: Callable[[SearchQuery, Settings], List[RawRecord]]


SOURCES: Dict[str, Source] = {
    "linkedin": Source(
        "linkedin",
        "Sheet1",
        "apify_api_key",
        "APIFY_API_KEY",
        lambda q, s: apify.fetch_linkedin(q, token=s.apify_api_key),
    ),
    "indeed": Source(
        "indeed",
        "Sheet2",
        "brightdata_api_key",
        "BRIGHT_DATA_API_KEY",
        lambda q, s: brightdata.fetch_indeed(
            q,
            api_key=s.brightdata_api_key,
            dataset_id=s.brightdata_indeed_dataset_id,
            poller=_poller(s, "brightdata_indeed"),
            timeout=s.http_timeout_sec,
        ),
    ),
    "glassdoor": Source(
        "glassdoor",
        "Sheet3",
        "apify_api_key",
        "APIFY_API_KEY",
        lambda q, s: apify.fetch_glassdoor(q, token=s.apify_api_key),
    ),
    "linkedin_brightdata": Source(
        "linkedin_brightdata",
        "Sheet4",
        "brightdata_api_key",
        "BRIGHT_DATA_API_KEY",
        lambda q, s: brightdata.fetch_linkedin(
            q,
            api_key=s.brightdata_api_key,
            dataset_id=s.brightdata_linkedin_dataset_id,
            poller=_poller(s, "brightdata_linkedin"),
            timeout=s.http_timeout_sec,
        ),
    ),
}


def _require_sheets(settings: Settings, sheets: Optional[SheetSynchronizer]) -> None:
    if sheets is None and not settings.has_google_credentials:
        raise ConfigError("Google service-account credentials are not configured")


# ---- Single provider ----------------------------------------------------------

def fetch_jobs(
    query: SearchQuery,
    destination: Destination,
    settings: Settings,
    *,
    fetch_page: Optional[FetchPage] = None,
    sheets: Optional[SheetSynchronizer] = None,
    max_age_minutes: Optional[float] = None,
) -> Dict[str, Any]:
    """
    ScrapingDog flow: combos x pages -> dedupe/exclude -> fixed columns -> append.

    The sheet is not touched when nothing was collected.
    """
    if fetch_page is None and not settings.scrapingdog_api_key:
        raise ConfigError("API key missing")
    destination.require()
    _require_sheets(settings, sheets)

    fetch_page = fetch_page or scrapingdog.page_fetcher(
        settings.scrapingdog_api_key, query, timeout=settings.http_timeout_sec
    )
    record_filter = RecordFilter(max_age_minutes=max_age_minutes)
    combos = query.combos

    logger.info("total=%d | chunk=%d | combos=%d", query.total, query.chunk, len(combos))
    logger.info("Target sheet: %s (tab: %s)", destination.spreadsheet_id, destination.sheet_name)
    if record_filter.exclusions:
        logger.info("Excluding companies: %s", ", ".join(record_filter.exclusions))

    result = collect_jobs(
        fetch_page,
        combos,
        query.total,
        max_pages_per_combo=settings.max_pages_per_combo,
        max_fallback_pages=settings.max_fallback_pages,
        record_filter=record_filter,
    )

    rows = [canonical_to_sheet_row(j) for j in result.jobs]
    if rows:
        sheets = sheets or SheetSynchronizer.from_settings(settings)
        sheets.write(rows, destination, FIXED_HEADERS)
    else:
        logger.info("No rows to append.")

    return {
        "success": True,
        "rowCount": len(rows),
        "requestsMade": result.requests_made,
        "combos": [c.describe() for c in result.combos],
        "jobs": [dict(j) for j in result.jobs],
    }


# ---- Multiple providers -------------------------------------------------------

def resolve_sources(names: Sequence[str]) -> List[Source]:
    wanted = [str(n).strip().lower() for n in names if str(n).strip()]
    if not wanted:
        raise ConfigError("fetchfrom must name at least one source")
    unknown = [n for n in wanted if n not in SOURCES]
    if unknown:
        raise ConfigError(f"unknown source(s): {', '.join(unknown)}")
    out: List[Source] = []
    for n in wanted:
        if SOURCES[n] not in out:
            out.append(SOURCES[n])
    return out


def fetch_sources(
    query: SearchQuery,
    source_names: Sequence[str],
    spreadsheet_id: str,
    settings: Settings,
    *,
    user_id: str = "",
    sheet_names: Optional[Mapping[str, str]] = None,
    max_age_minutes: Optional[float] = None,
    newest_first: bool = False,
    fetchers: Optional[Mapping[str, Callable[[SearchQuery, Settings], List[RawRecord]]]] = None,
    sheets: Optional[SheetSynchronizer] = None,
) -> Dict[str, Any]:
    """
    Run the selected sources concurrently and write each one to its own tab.

    A failing source (fetch or sheet write) is reported in per_source and does
    not affect the others. success is true when at least one source fetched.
    """
    sources = resolve_sources(source_names)
    fetchers = dict(fetchers or {})
    for src in sources:
        if src.name not in fetchers and not getattr(settings, src.credential):
            raise ConfigError(f"{src.credential_env} missing for source {src.name}")
    Destination(spreadsheet_id).require()
    _require_sheets(settings, sheets)

    calls = {
        src.name: (lambda f=fetchers.get(src.name, src.fetch): f(query, settings))
        for src in sources
    }
    results = run_all(calls)

    writer: Optional[SheetSynchronizer] = sheets
    per_source: Dict[str, Dict[str, Any]] = {}
    total_saved = 0
    for src in sources:
        tab = (sheet_names or {}).get(src.name) or src.default_sheet
        outcome = results[src.name]
        entry: Dict[str, Any] = {
            "ok": False,
            "sheet_name": tab,
            "fetched": 0,
            "saved": 0,
            "error": None,
            "sheet_error": None,
            "jobs": [],
        }
        per_source[src.name] = entry
        if isinstance(outcome, ProviderErr):
            entry["error"] = outcome.reason
            continue

        entry["ok"] = True
        entry["fetched"] = len(outcome.items)
        kept = RecordFilter(max_age_minutes=max_age_minutes).apply(outcome.items, limit=query.total)
        if newest_first:
            kept = sort_newest_first(kept)
        rows = [{**r, USER_COL: user_id} for r in kept]
        entry["jobs"] = rows
        if not rows:
            continue

        try:
            writer = writer or SheetSynchronizer.from_settings(settings)
            saved = writer.write(rows, Destination(spreadsheet_id, tab), discover_headers(rows)).appended
        except (SheetWriteError, ConfigError) as exc:
            logger.error("%s: sheet write failed: %s", src.name, exc)
            entry["sheet_error"] = str(exc)
            continue
        entry["saved"] = saved
        total_saved += saved
        logger.info("%s: appended %d rows to %s", src.name, saved, tab)

    return {
        "success": any(e["ok"] for e in per_source.values()),
        "saved": total_saved,
        "requested": query.total,
        "per_source": per_source,
    }
