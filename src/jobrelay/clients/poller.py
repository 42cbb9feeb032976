# src/jobrelay/clients/poller.py
"""
Poll an asynchronous snapshot until its data is ready.

Providers like Bright Data answer a trigger with a snapshot id; the data has
to be fetched later. SnapshotPoller calls a check function repeatedly with a
backoff (driven by tenacity) until it yields records, fails, or the ceiling on
cumulative waiting is reached.

    delay(attempt) = max(provider_hint, min(base_delay * attempt, backoff_cap))
"""

from __future__ import annotations

import enum
import json
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx
from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type

from jobrelay.errors import PollTimeoutError, ProviderError
from jobrelay.models import RawRecord

logger = logging.getLogger(__name__)

NOT_READY_STATUSES = {"running", "building", "starting", "collecting", "digesting", "pending", "queued"}
ITEM_LIST_KEYS = ("items", "data", "results", "records")
POINTER_KEYS = ("url", "download_url", "file_url")


class PollState(enum.Enum):
    TRIGGERED = "triggered"
    WAITING = "waiting"
    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class SnapshotNotReady(Exception):
    """Raised by a check function while the provider is still building the data."""

    def __init__(self, wait_hint: float = 0.0):
        super().__init__(f"snapshot not ready (hint {wait_hint}s)")
        self.wait_hint = max(0.0, float(wait_hint or 0.0))


class SnapshotPoller:
    def __init__(
        self,
        provider: str,
        *,
        base_delay: float = 2.0,
        backoff_cap: float = 15.0,
        ceiling: float = 180.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not ceiling or ceiling <= 0 or ceiling == float("inf"):
            raise ValueError("ceiling must be a finite number of seconds > 0")
        self.provider = provider
        self.base_delay = base_delay
        self.backoff_cap = backoff_cap
        self.ceiling = ceiling
        self.sleep = sleep
        self.state = PollState.TRIGGERED
        self.attempts = 0
        self.waited = 0.0

    def next_delay(self, attempt: int, hint: float = 0.0) -> float:
        return max(hint, min(self.base_delay * attempt, self.backoff_cap))

    # tenacity hooks

    def _wait(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        hint = getattr(exc, "wait_hint", 0.0) or 0.0
        return self.next_delay(retry_state.attempt_number, hint)

    def _stop(self, retry_state: RetryCallState) -> bool:
        # stop before a sleep that would push the total past the ceiling
        return retry_state.idle_for + self._wait(retry_state) > self.ceiling

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        self.state = PollState.WAITING
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        self.waited = retry_state.idle_for
        logger.info("%s: snapshot not ready, sleeping %.1fs (attempt %d)", self.provider, delay, retry_state.attempt_number)

    def run(self, check: Callable[[], List[RawRecord]]) -> List[RawRecord]:
        """
        Call `check` until it returns records. `check` raises SnapshotNotReady
        to ask for another round; any other exception ends polling as FAILED.
        """
        def attempt() -> List[RawRecord]:
            self.attempts += 1
            return check()

        retrying = Retrying(
            retry=retry_if_exception_type(SnapshotNotReady),
            wait=self._wait,
            stop=self._stop,
            sleep=self.sleep,
            before_sleep=self._before_sleep,
        )
        try:
            items = retrying(attempt)
        except RetryError as exc:
            self.state = PollState.TIMED_OUT
            raise PollTimeoutError(self.provider, self.waited, self.ceiling) from exc
        except Exception:
            self.state = PollState.FAILED
            raise
        self.state = PollState.READY
        return items


# ---- Payload interpretation ---------------------------------------------------

def parse_ndjson(text: str) -> List[RawRecord]:
    out: List[RawRecord] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except ValueError:
            continue
        if isinstance(obj, dict):
            out.append(obj)
    return out


def parse_records_text(text: str) -> List[RawRecord]:
    """A body that is either one JSON document or newline-delimited JSON."""
    stripped = (text or "").strip()
    if not stripped:
        return []
    try:
        data = json.loads(stripped)
    except ValueError:
        return parse_ndjson(stripped)
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    if isinstance(data, dict):
        for key in ITEM_LIST_KEYS:
            if isinstance(data.get(key), list):
                return [r for r in data[key] if isinstance(r, dict)]
        return [data]
    return []


def _retry_after(headers: Mapping[str, str], payload: Any) -> float:
    raw = headers.get("retry-after") or headers.get("Retry-After")
    if isinstance(payload, dict):
        raw = raw or payload.get("retry_after") or payload.get("wait")
    try:
        return float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def interpret_snapshot_response(
    provider: str,
    response: httpx.Response,
    download: Callable[[str], str],
) -> List[RawRecord]:
    """
    Turn one snapshot fetch into records, or raise SnapshotNotReady/ProviderError.

    Ready payloads come in four forms: a direct array, an object holding an
    items list, a pointer to a downloadable JSON/NDJSON file, or an explicit
    "empty" sentinel.
    """
    status = response.status_code
    text = response.text or ""

    if status == 204:
        return []
    if status == 202:
        payload: Any = None
        try:
            payload = response.json()
        except ValueError:
            pass
        raise SnapshotNotReady(_retry_after(response.headers, payload))
    if status >= 400:
        raise ProviderError(provider, f"snapshot fetch failed: {status} {text}", status=status, body=text)

    lowered = text.strip().lower()
    if "not ready" in lowered and not lowered.startswith(("[", "{")):
        raise SnapshotNotReady(_retry_after(response.headers, None))
    if lowered.startswith("snapshot is empty"):
        return []

    try:
        payload = json.loads(text) if text.strip() else []
    except ValueError:
        # newline-delimited JSON body
        return parse_ndjson(text)

    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    if not isinstance(payload, dict):
        raise ProviderError(provider, f"malformed snapshot body: {type(payload).__name__}", status=status, body=text)

    state = str(payload.get("status") or "").strip().lower()
    if state in NOT_READY_STATUSES or "not ready" in str(payload.get("message") or "").lower():
        raise SnapshotNotReady(_retry_after(response.headers, payload))
    if state == "empty":
        return []
    if state == "failed":
        raise ProviderError(provider, f"snapshot failed: {payload.get('error') or payload.get('message') or ''}", status=status, body=text)

    for key in ITEM_LIST_KEYS:
        if isinstance(payload.get(key), list):
            return [r for r in payload[key] if isinstance(r, dict)]
    for key in POINTER_KEYS:
        pointer = payload.get(key)
        if isinstance(pointer, str) and pointer.startswith("http"):
            return parse_records_text(download(pointer))

    # a single record
    return [payload]


def describe(poller: SnapshotPoller) -> Dict[str, Any]:
    return {"state": poller.state.value, "attempts": poller.attempts, "waited_sec": round(poller.waited, 2)}
