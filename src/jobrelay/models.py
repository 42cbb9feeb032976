# src/jobrelay/models.py
"""
Typed shapes for the relay.

Raw provider records stay plain dicts (their schemas are not contractually
stable); the search intent, filter combos and per-provider results get small
dataclasses so the pipeline can pass them around explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, List, Optional, TypedDict, Union

from jobrelay.errors import ConfigError

# A raw record is whatever one provider returns for one job (a keyed mapping).
RawRecord = Dict[str, Any]

DEFAULT_SHEET_NAME = "Sheet1"
DEFAULT_TOTAL_RECORDS = 50
DEFAULT_CHUNK = 10
MAX_CHUNK = 49


class ScrapingDogJob(TypedDict, total=False):
    """
    One job as ScrapingDog's LinkedIn endpoint returns it.

    Only used as documentation/type hints; at runtime it is just a dict and
    nothing is validated.
    """

    job_position: str
    job_link: str
    job_id: str
    company_name: str
    company_profile: str
    job_location: str
    job_posting_date: str
    company_logo_url: str


class CanonicalJob(TypedDict):
    """Fixed-schema row produced by the single-provider flow."""

    job_position: str
    job_link: str
    job_id: str
    company_name: str
    company_profile: str
    job_location: str
    job_posting_date: str
    company_logo_url: str
    job_type: str
    exp_level: str
    page: Union[int, str]


def to_list(value: Any) -> List[str]:
    """Accept a list or a comma-separated string; drop blanks."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [s.strip() for s in str(value).split(",") if s.strip()]


@dataclass(frozen=True)
class Destination:
    spreadsheet_id: str
    sheet_name: str = DEFAULT_SHEET_NAME

    def require(self) -> "Destination":
        if not self.spreadsheet_id or not str(self.spreadsheet_id).strip():
            raise ConfigError("sheet_id is required")
        return self


@dataclass(frozen=True)
class Combo:
    """One (job type, experience level) pairing. None means "any"."""

    job_type: Optional[str] = None
    exp_level: Optional[str] = None

    def describe(self) -> Dict[str, str]:
        return {"job_type": self.job_type or "any", "exp_level": self.exp_level or "any"}


def build_combos(job_types: List[str], exp_levels: List[str]) -> List[Combo]:
    """Cartesian product of the selections, or a single any/any combo."""
    jts: List[Optional[str]] = list(job_types) or [None]
    xls: List[Optional[str]] = list(exp_levels) or [None]
    return [Combo(job_type=j, exp_level=x) for j in jts for x in xls]


@dataclass
class SearchQuery:
    """The caller's search intent, already clamped to sane bounds."""

    field: str = ""
    location: str = ""
    geoid: str = ""
    sort_by: str = ""  # "", "day", "week", "month"
    work_type: str = ""
    filter_by_company: str = ""
    job_types: List[str] = dc_field(default_factory=list)
    exp_levels: List[str] = dc_field(default_factory=list)
    total: int = DEFAULT_TOTAL_RECORDS
    chunk: int = DEFAULT_CHUNK
    extra: Dict[str, Any] = dc_field(default_factory=dict)

    def __post_init__(self) -> None:
        self.total = max(1, int(self.total or 1))
        chunk = DEFAULT_CHUNK if self.chunk is None else int(self.chunk)
        self.chunk = min(MAX_CHUNK, max(1, chunk))
        self.job_types = to_list(self.job_types)
        self.exp_levels = to_list(self.exp_levels)

    @property
    def combos(self) -> List[Combo]:
        return build_combos(self.job_types, self.exp_levels)


# ---- Per-provider result union ------------------------------------------------

@dataclass(frozen=True)
class ProviderOk:
    provider: str
    items: List[RawRecord]


@dataclass(frozen=True)
class ProviderErr:
    provider: str
    reason: str


ProviderResult = Union[ProviderOk, ProviderErr]
