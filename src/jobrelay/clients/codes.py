# src/jobrelay/clients/codes.py
"""
Translate generic search vocabulary into each provider's own codes.

Callers (the frontend, the CLI) speak in plain words: "senior", "remote",
"week". LinkedIn-style endpoints want numeric/letter codes, Glassdoor wants
its own slugs and Bright Data wants the labels shown on the job boards.
Values that are already in provider form pass through unchanged.
"""

from __future__ import annotations

from typing import Dict, Optional


def _key(value: object) -> str:
    return str(value or "").strip().lower().replace("_", "-").replace(" ", "-")


# ---- LinkedIn-style codes (ScrapingDog, Apify LinkedIn actor) -----------------

EXPERIENCE_CODES: Dict[str, str] = {
    "internship": "1",
    "intern": "1",
    "entry": "2",
    "entry-level": "2",
    "junior": "2",
    "associate": "3",
    "mid": "4",
    "mid-senior": "4",
    "mid-senior-level": "4",
    "senior": "4",
    "director": "5",
    "executive": "6",
}

JOB_TYPE_CODES: Dict[str, str] = {
    "full-time": "F",
    "fulltime": "F",
    "part-time": "P",
    "parttime": "P",
    "contract": "C",
    "temporary": "T",
    "volunteer": "V",
    "internship": "I",
    "other": "O",
}

WORK_TYPE_CODES: Dict[str, str] = {
    "on-site": "1",
    "onsite": "1",
    "remote": "2",
    "hybrid": "3",
}

# "r" + window length in seconds
RECENCY_WINDOWS: Dict[str, str] = {
    "day": "r86400",
    "24h": "r86400",
    "week": "r604800",
    "month": "r2592000",
}

# windows the LinkedIn actor does not accept, widened to one it does
_ACTOR_WINDOW_FALLBACK = {
    "r259200": "r604800",   # 3d -> 7d
    "r1209600": "r604800",  # 14d -> 7d
}


def _lookup(table: Dict[str, str], value: object, passthrough) -> Optional[str]:
    raw = str(value or "").strip()
    if not raw:
        return None
    code = table.get(_key(raw))
    if code:
        return code
    return raw if passthrough(raw) else None


def experience_code(value: object) -> Optional[str]:
    return _lookup(EXPERIENCE_CODES, value, str.isdigit)


def job_type_code(value: object) -> Optional[str]:
    return _lookup(JOB_TYPE_CODES, value, lambda v: len(v) == 1 and v.isalpha() and v.isupper())


def work_type_code(value: object) -> Optional[str]:
    return _lookup(WORK_TYPE_CODES, value, str.isdigit)


def recency_window(value: object) -> Optional[str]:
    """ "week" -> "r604800"; already-coded "r..." values pass through."""
    return _lookup(RECENCY_WINDOWS, value, lambda v: v.startswith("r") and v[1:].isdigit())


def actor_recency_window(value: object) -> Optional[str]:
    window = recency_window(value)
    if window is None:
        return None
    return _ACTOR_WINDOW_FALLBACK.get(window, window)


# ---- Glassdoor (Apify actor) --------------------------------------------------

GLASSDOOR_JOB_TYPES: Dict[str, str] = {
    "F": "fulltime",
    "P": "parttime",
    "C": "contract",
    "T": "temporary",
    "I": "internship",
    "V": "volunteer",
}

GLASSDOOR_SENIORITY: Dict[str, str] = {
    "all": "all",
    "1": "internship",
    "2": "entrylevel",
    "3": "midseniorlevel",
    "4": "midseniorlevel",
    "5": "director",
    "6": "executive",
}

# window -> "fromAge" in days
GLASSDOOR_AGE_DAYS: Dict[str, str] = {
    "r86400": "1",
    "r259200": "3",
    "r604800": "7",
    "r1209600": "14",
    "r2592000": "30",
}


def glassdoor_job_type(value: object) -> Optional[str]:
    code = job_type_code(value)
    return GLASSDOOR_JOB_TYPES.get(code) if code else None


def glassdoor_seniority(value: object) -> str:
    if _key(value) == "all":
        return "all"
    code = experience_code(value)
    return GLASSDOOR_SENIORITY.get(code, "all") if code else "all"


def glassdoor_from_age(value: object) -> Optional[str]:
    window = recency_window(value)
    return GLASSDOOR_AGE_DAYS.get(window) if window else None


# ---- Bright Data dataset inputs ----------------------------------------------

BRIGHTDATA_LINKEDIN_TIME_RANGE: Dict[str, str] = {
    "r86400": "Past 24 hours",
    "r604800": "Past week",
    "r2592000": "Past month",
}

BRIGHTDATA_INDEED_DATE_POSTED: Dict[str, str] = {
    "r86400": "Last 24 hours",
    "r259200": "Last 3 days",
    "r604800": "Last 7 days",
    "r1209600": "Last 14 days",
}

BRIGHTDATA_EXPERIENCE: Dict[str, str] = {
    "1": "Internship",
    "2": "Entry level",
    "3": "Associate",
    "4": "Mid-Senior level",
    "5": "Director",
    "6": "Executive",
}

BRIGHTDATA_JOB_TYPE: Dict[str, str] = {
    "F": "Full-time",
    "P": "Part-time",
    "C": "Contract",
    "T": "Temporary",
    "V": "Volunteer",
    "I": "Internship",
    "O": "Other",
}

BRIGHTDATA_REMOTE: Dict[str, str] = {
    "1": "On-site",
    "2": "Remote",
    "3": "Hybrid",
}


def _via(table: Dict[str, str], code: Optional[str]) -> str:
    return table.get(code, "") if code else ""


def brightdata_time_range(value: object) -> str:
    return _via(BRIGHTDATA_LINKEDIN_TIME_RANGE, recency_window(value))


def brightdata_date_posted(value: object) -> str:
    return _via(BRIGHTDATA_INDEED_DATE_POSTED, recency_window(value))


def brightdata_experience(value: object) -> str:
    return _via(BRIGHTDATA_EXPERIENCE, experience_code(value))


def brightdata_job_type(value: object) -> str:
    return _via(BRIGHTDATA_JOB_TYPE, job_type_code(value))


def brightdata_remote(value: object) -> str:
    return _via(BRIGHTDATA_REMOTE, work_type_code(value))
