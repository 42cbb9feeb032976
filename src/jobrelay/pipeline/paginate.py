# src/jobrelay/pipeline/paginate.py
"""
Pagination / quota control for paged providers.

The collection state is an immutable value: absorb_page() takes the current
state plus one fetched page and returns the next state. collect_jobs() just
drives the fetches and stops when a page comes back empty, the page cap is
hit, or nothing is left to collect.

Pages are fetched strictly one after another: how many records the next page
still needs depends on what the previous page contributed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, FrozenSet, List, Optional, Sequence, Tuple

from jobrelay.models import CanonicalJob, Combo, RawRecord
from jobrelay.pipeline.filter import RecordFilter
from jobrelay.pipeline.normalize import to_canonical

logger = logging.getLogger(__name__)

# fetch_page(combo, page) -> raw records; combo is None for the broad fallback pass
FetchPage = Callable[[Optional[Combo], int], List[RawRecord]]


@dataclass(frozen=True)
class PageState:
    collected: Tuple[CanonicalJob, ...] = ()
    seen: FrozenSet[str] = frozenset()
    remaining: int = 0
    requests_made: int = 0

    @property
    def done(self) -> bool:
        return self.remaining <= 0


@dataclass(frozen=True)
class CollectionResult:
    jobs: List[CanonicalJob]
    requests_made: int
    combos: List[Combo]


def initial_state(total: int) -> PageState:
    return PageState(remaining=max(1, int(total)))


def absorb_page(
    state: PageState,
    items: Sequence[Any],
    combo: Optional[Combo],
    page: int,
    record_filter: RecordFilter,
) -> PageState:
    """Fold one fetched page into the state. Counts the request even if nothing is added."""
    collected = list(state.collected)
    seen = set(state.seen)
    remaining = state.remaining
    for raw in items:
        if remaining <= 0:
            break
        key = record_filter.check(raw, seen)
        if key is None:
            continue
        seen.add(key)
        collected.append(to_canonical(raw, combo, page))
        remaining -= 1
    return replace(
        state,
        collected=tuple(collected),
        seen=frozenset(seen),
        remaining=remaining,
        requests_made=state.requests_made + 1,
    )


def _run_pass(
    state: PageState,
    fetch_page: FetchPage,
    combo: Optional[Combo],
    max_pages: int,
    record_filter: RecordFilter,
    label: str,
) -> PageState:
    for page in range(1, max_pages + 1):
        if state.done:
            break
        logger.info("  • %s: fetch page %d/%d", label, page, max_pages)
        items = fetch_page(combo, page)
        if not items:
            # still counts as a request made
            state = replace(state, requests_made=state.requests_made + 1)
            logger.info("  %s: page %d empty, stopping early", label, page)
            break
        before = len(state.collected)
        state = absorb_page(state, items, combo, page, record_filter)
        logger.info(
            "    added %d from page %d, remaining=%d", len(state.collected) - before, page, state.remaining
        )
    return state


def collect_jobs(
    fetch_page: FetchPage,
    combos: Sequence[Combo],
    total: int,
    *,
    max_pages_per_combo: int = 5,
    max_fallback_pages: int = 8,
    record_filter: Optional[RecordFilter] = None,
) -> CollectionResult:
    """
    Phase 1: every combo in order, pages 1..max_pages_per_combo.
    Phase 2: if still short, a broad pass without job-type/experience filters.
    The result is truncated to exactly `total` (or fewer if the providers ran dry).
    """
    record_filter = record_filter or RecordFilter()
    combos = list(combos) or [Combo()]
    state = initial_state(total)

    for idx, combo in enumerate(combos, start=1):
        if state.done:
            break
        desc = combo.describe()
        logger.info(
            "Combo %d/%d: job_type=%s, exp_level=%s", idx, len(combos), desc["job_type"], desc["exp_level"]
        )
        state = _run_pass(state, fetch_page, combo, max_pages_per_combo, record_filter, f"combo {idx}")

    if not state.done and max_fallback_pages > 0:
        logger.info("Fallback: need %d more, running broad search", state.remaining)
        state = _run_pass(state, fetch_page, None, max_fallback_pages, record_filter, "fallback")

    jobs = list(state.collected)[: max(1, int(total))]
    return CollectionResult(jobs=jobs, requests_made=state.requests_made, combos=combos)
