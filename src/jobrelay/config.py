# src/jobrelay/config.py
"""
Environment-driven settings.

Values come from the process environment (a .env file is loaded by the CLI and
the API entry points via python-dotenv). Credentials are optional here; the
request handlers decide whether a missing one is fatal for the flow at hand.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from jobrelay.errors import ConfigError

# Public Bright Data job datasets (override per account if needed)
DEFAULT_INDEED_DATASET_ID = "gd_l4dx9j9sscpvs7no2"
DEFAULT_LINKEDIN_DATASET_ID = "gd_lpfll7v5hcqtkxl6l"


@dataclass(frozen=True)
class Settings:
    scrapingdog_api_key: str = ""
    apify_api_key: str = ""
    brightdata_api_key: str = ""
    brightdata_indeed_dataset_id: str = DEFAULT_INDEED_DATASET_ID
    brightdata_linkedin_dataset_id: str = DEFAULT_LINKEDIN_DATASET_ID

    google_service_account_file: str = ""
    google_client_email: str = ""
    google_private_key: str = ""

    max_pages_per_combo: int = 5
    max_fallback_pages: int = 8

    poll_base_delay_sec: float = 2.0
    poll_backoff_cap_sec: float = 15.0
    poll_ceiling_sec: float = 180.0

    http_timeout_sec: float = 30.0
    port: int = 5000
    log_level: str = "INFO"

    @property
    def has_google_credentials(self) -> bool:
        return bool(self.google_service_account_file or (self.google_client_email and self.google_private_key))


def _first(env: Mapping[str, str], *names: str) -> str:
    for name in names:
        value = env.get(name, "")
        if value and value.strip():
            return value.strip()
    return ""


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env` (defaults to os.environ).

    The poll ceiling must be finite: an unbounded wait would let a stuck
    snapshot hang the request forever.
    """
    env = os.environ if env is None else env

    ceiling = _float(env, "POLL_CEILING_SEC", 180.0)
    if not math.isfinite(ceiling) or ceiling <= 0:
        raise ConfigError("POLL_CEILING_SEC must be a finite number of seconds > 0")

    return Settings(
        scrapingdog_api_key=_first(env, "SCRAPPING_DOG_API_KEY", "SCRAPINGDOG_API_KEY"),
        apify_api_key=_first(env, "APIFY_API_KEY"),
        brightdata_api_key=_first(env, "BRIGHT_DATA_API_KEY"),
        brightdata_indeed_dataset_id=_first(env, "BRIGHTDATA_INDEED_DATASET_ID") or DEFAULT_INDEED_DATASET_ID,
        brightdata_linkedin_dataset_id=_first(env, "BRIGHTDATA_LINKEDIN_DATASET_ID") or DEFAULT_LINKEDIN_DATASET_ID,
        google_service_account_file=_first(env, "GOOGLE_SERVICE_ACCOUNT_FILE"),
        google_client_email=_first(env, "GOOGLE_CLIENT_EMAIL", "GOOGLE_SERVICE_ACCOUNT_EMAIL"),
        google_private_key=_first(
            env,
            "GOOGLE_SERVICE_KEY",
            "GOOGLE_SERVICE_ACCOUNT_KEY",
            "GOOGLE_PRIVATE_KEY",
            "GOOGLE_SERVICE_KEY_BASE64",
        ),
        max_pages_per_combo=max(1, _int(env, "MAX_PAGES_PER_COMBO", 5)),
        max_fallback_pages=max(0, _int(env, "MAX_FALLBACK_PAGES", 8)),
        poll_base_delay_sec=max(0.0, _float(env, "POLL_BASE_DELAY_SEC", 2.0)),
        poll_backoff_cap_sec=max(0.0, _float(env, "POLL_BACKOFF_CAP_SEC", 15.0)),
        poll_ceiling_sec=ceiling,
        http_timeout_sec=_float(env, "HTTP_TIMEOUT_SEC", 30.0),
        port=_int(env, "PORT", 5000),
        log_level=_first(env, "LOG_LEVEL") or "INFO",
    )
