# src/jobrelay/pipeline/filter.py
"""
Exclusion + dedupe + recency filtering for raw job records.

Records are plain dicts from any provider, so every field is looked up through
a list of candidate names (first present, non-empty value wins).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Any, Dict, Iterable, List, Optional, Sequence, Set
from urllib.parse import urlparse

from jobrelay.pipeline.recency import record_age_minutes

# Case-insensitive substring match against company name and company profile host.
# Example: ("Meta", "Google") would skip "Meta Platforms" and "google-cloud".
EXCLUDE_COMPANIES = (
    "Lensa",
    "TieTalent",
)

LINK_FIELDS = ("job_link", "jobUrl", "job_url", "url", "link", "applyUrl", "apply_link")
ID_FIELDS = ("job_id", "jobId", "id", "jobKey")
COMPANY_FIELDS = ("company_name", "companyName", "company", "employerName", "employer")
TITLE_FIELDS = ("job_position", "title", "job_title", "position", "jobTitle")
LOCATION_FIELDS = ("job_location", "location", "jobLocation", "job_location_name")
PROFILE_FIELDS = ("company_profile", "companyUrl", "company_url", "companyLinkedinUrl", "companyLink")


def first_value(record: Dict[str, Any], candidates: Sequence[str]) -> str:
    """First candidate field that is present and non-empty, as a string; else ""."""
    for name in candidates:
        value = record.get(name)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def identity_key(record: Dict[str, Any]) -> str:
    """Prefer a unique link/id; fall back to company|title|location."""
    key = first_value(record, LINK_FIELDS) or first_value(record, ID_FIELDS)
    if key:
        return key
    return "|".join(
        (
            first_value(record, COMPANY_FIELDS),
            first_value(record, TITLE_FIELDS),
            first_value(record, LOCATION_FIELDS),
        )
    )


def normalize_exclusions(names: Iterable[str]) -> List[str]:
    return [str(n or "").strip().lower() for n in names if str(n or "").strip()]


def _profile_host(record: Dict[str, Any]) -> str:
    url = first_value(record, PROFILE_FIELDS)
    if not url:
        return ""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def is_excluded(record: Dict[str, Any], exclusions: Sequence[str]) -> bool:
    """`exclusions` must already be lowercased (see normalize_exclusions)."""
    if not exclusions:
        return False
    name = first_value(record, COMPANY_FIELDS).lower()
    host = _profile_host(record)
    return any((name and x in name) or (host and x in host) for x in exclusions)


@dataclass
class RecordFilter:
    """
    Session-scoped filter: one instance per fetch request.

    admit() applies, in order: exclusion list, identity key, seen-key check,
    then the optional max-age window. Keys are only remembered for admitted
    records.
    """

    exclusions: List[str] = field(default_factory=lambda: normalize_exclusions(EXCLUDE_COMPANIES))
    max_age_minutes: Optional[float] = None
    now: Optional[datetime] = None
    seen: Set[str] = field(default_factory=set)

    def check(self, record: Any, seen: AbstractSet[str]) -> Optional[str]:
        """Identity key if `record` would be admitted against `seen`, else None. Mutates nothing."""
        if not isinstance(record, dict):
            return None
        if is_excluded(record, self.exclusions):
            return None
        key = identity_key(record)
        if key in seen:
            return None
        if self.max_age_minutes is not None:
            age = record_age_minutes(record, self.now)
            if age == math.inf or age > self.max_age_minutes:
                return None
        return key

    def admit(self, record: Any) -> bool:
        key = self.check(record, self.seen)
        if key is None:
            return False
        self.seen.add(key)
        return True

    def apply(self, records: Iterable[Any], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for r in records:
            if limit is not None and len(out) >= limit:
                break
            if self.admit(r):
                out.append(r)
        return out
