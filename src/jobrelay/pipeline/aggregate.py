# src/jobrelay/pipeline/aggregate.py
"""
Run several providers side by side without letting one failure sink the rest.

Each provider call becomes a ProviderOk or a ProviderErr; the caller reads the
tag instead of guessing from an empty list.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Mapping

from jobrelay.models import ProviderErr, ProviderOk, ProviderResult, RawRecord

logger = logging.getLogger(__name__)


def run_isolated(name: str, fn: Callable[[], List[RawRecord]]) -> ProviderResult:
    try:
        items = fn()
    except Exception as exc:  # isolation boundary: the error is returned as data
        logger.error("%s failed: %s", name, exc)
        return ProviderErr(provider=name, reason=str(exc) or exc.__class__.__name__)
    return ProviderOk(provider=name, items=[i for i in (items or []) if isinstance(i, dict)])


def run_all(calls: Mapping[str, Callable[[], List[RawRecord]]], max_workers: int = 4) -> Dict[str, ProviderResult]:
    """Fire every call in parallel, wait for all, keep the input order."""
    if not calls:
        return {}
    workers = max(1, min(max_workers, len(calls)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {name: pool.submit(run_isolated, name, fn) for name, fn in calls.items()}
        return {name: fut.result() for name, fut in futures.items()}
