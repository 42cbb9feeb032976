# src/jobrelay/pipeline/recency.py
"""
Posting-age helpers.

Providers report recency either as an ISO timestamp ("2025-09-26T07:20:13Z")
or as a relative string ("3 days ago"). Both become an age in minutes; an age
we cannot derive is math.inf, which sorts last and fails any max-age filter.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from dateutil.parser import isoparse

# Checked in order; the first match wins.
_RELATIVE_PATTERNS = [
    (re.compile(r"(\d+)\s*min(ute)?s?", re.IGNORECASE), 1),
    (re.compile(r"(\d+)\s*h(ou)?rs?", re.IGNORECASE), 60),
    (re.compile(r"(\d+)\s*d(ay)?s?", re.IGNORECASE), 1440),
    (re.compile(r"(\d+)\s*w(eek)?s?", re.IGNORECASE), 10080),
]

TIMESTAMP_FIELDS = (
    "postedAt",
    "publishedAt",
    "datePosted",
    "date_posted",
    "job_posted_date",
    "posted_at",
    "created",
    "job_posting_date",
)
RELATIVE_FIELDS = (
    "postedTime",
    "posted",
    "postedAgo",
    "job_posted_time",
    "timeAgo",
    "job_posting_date",
)


def parse_relative_minutes(text: Any) -> float:
    """
    "just now" -> 0, "5 mins ago" -> 5, "2 hrs" -> 120, "3 days ago" -> 4320,
    "2 weeks" -> 20160. Anything else -> math.inf.
    """
    if not isinstance(text, str):
        return math.inf
    value = text.strip().lower()
    if not value:
        return math.inf
    if value == "just now" or value.startswith("just now"):
        return 0.0
    for pattern, minutes in _RELATIVE_PATTERNS:
        match = pattern.search(value)
        if match:
            return float(int(match.group(1)) * minutes)
    return math.inf


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = isoparse(value.strip())
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def record_age_minutes(record: Dict[str, Any], now: Optional[datetime] = None) -> float:
    """Age of a posting in minutes: ISO timestamp fields first, then relative text."""
    now = now or datetime.now(timezone.utc)
    for name in TIMESTAMP_FIELDS:
        stamp = parse_timestamp(record.get(name))
        if stamp is not None:
            return max(0.0, (now - stamp).total_seconds() / 60.0)
    for name in RELATIVE_FIELDS:
        minutes = parse_relative_minutes(record.get(name))
        if minutes != math.inf:
            return minutes
    return math.inf


def sort_newest_first(records: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Stable newest-first sort; records of unknown age keep arrival order at the end."""
    now = now or datetime.now(timezone.utc)
    return sorted(records, key=lambda r: record_age_minutes(r, now))
