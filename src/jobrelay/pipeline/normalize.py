# src/jobrelay/pipeline/normalize.py
"""
Convert raw provider records into sheet rows.

Two modes:
- fixed schema: a known column list, each column filled from an ordered list
  of candidate field names (tolerates provider schema drift);
- dynamic schema: the header list is discovered from the data itself
  (first-seen union of keys) and every record is projected onto it.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from jobrelay.models import CanonicalJob, Combo
from jobrelay.pipeline.filter import (
    COMPANY_FIELDS,
    ID_FIELDS,
    LINK_FIELDS,
    LOCATION_FIELDS,
    PROFILE_FIELDS,
    TITLE_FIELDS,
    first_value,
)

DEFAULT_SAMPLE_SIZE = 1000

# (canonical key, candidate raw field names) in sheet column order.
FIXED_FIELDS: List[Tuple[str, Sequence[str]]] = [
    ("job_position", TITLE_FIELDS),
    ("job_link", LINK_FIELDS),
    ("job_id", ID_FIELDS),
    ("company_name", COMPANY_FIELDS),
    ("company_profile", PROFILE_FIELDS),
    ("job_location", LOCATION_FIELDS),
    ("job_posting_date", ("job_posting_date", "postedAt", "publishedAt", "datePosted", "date_posted")),
    ("company_logo_url", ("company_logo_url", "companyLogo", "company_logo", "logo")),
]

# Sheet headers for the fixed schema, parallel to CanonicalJob's keys.
FIXED_HEADERS = [
    "Position",
    "Link",
    "Job ID",
    "Company",
    "Company Profile",
    "Location",
    "Posted",
    "Logo URL",
    "Job Type",
    "Experience Level",
    "Page",
]

_CANONICAL_KEYS = [key for key, _ in FIXED_FIELDS] + ["job_type", "exp_level", "page"]


def to_canonical(raw: Dict[str, Any], combo: Optional[Combo], page: int) -> CanonicalJob:
    """
    Map one raw record to the fixed row shape, tagged with the combo it was
    fetched under (empty for the broad fallback pass) and its page number.
    """
    row: Dict[str, Any] = {key: first_value(raw, candidates) for key, candidates in FIXED_FIELDS}
    row["job_type"] = (combo.job_type if combo else None) or ""
    row["exp_level"] = (combo.exp_level if combo else None) or ""
    row["page"] = page
    return row  # type: ignore[return-value]


def canonical_to_sheet_row(job: CanonicalJob) -> Dict[str, Any]:
    """Re-key a canonical job by its sheet header names."""
    return {header: job.get(key, "") for header, key in zip(FIXED_HEADERS, _CANONICAL_KEYS)}


# ---- Dynamic schema -----------------------------------------------------------

def discover_headers(records: Iterable[Any], sample_size: int = DEFAULT_SAMPLE_SIZE) -> List[str]:
    """
    Union of top-level keys over the first `sample_size` dict records, in
    order of first appearance (not sorted).
    """
    headers: List[str] = []
    seen = set()
    sampled = 0
    for r in records:
        if sampled >= sample_size:
            break
        if not isinstance(r, dict):
            continue
        sampled += 1
        for k in r.keys():
            name = str(k)
            if name not in seen:
                seen.add(name)
                headers.append(name)
    return headers


def cell_value(value: Any) -> str:
    """Render one value for the sheet: None -> "", containers/bools -> JSON text."""
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple, bool)):
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def project_row(record: Dict[str, Any], headers: Sequence[str]) -> List[str]:
    return [cell_value(record.get(h)) for h in headers]
