# src/jobrelay/errors.py
"""
Exception types shared by the relay.

Every failure the relay knows how to explain is a RelayError, so the HTTP
layer can map them to status codes without inspecting third-party types.
"""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for all errors raised on purpose by the relay."""


class ConfigError(RelayError):
    """A credential or destination is missing. Raised before any provider call."""


class ProviderError(RelayError):
    """An upstream job provider answered with a non-2xx status or a malformed body."""

    def __init__(self, provider: str, message: str, *, status: Optional[int] = None, body: str = ""):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status
        self.body = body


class PollTimeoutError(RelayError, TimeoutError):
    """An asynchronous snapshot was not ready before the poll ceiling."""

    def __init__(self, provider: str, waited_sec: float, ceiling_sec: float):
        super().__init__(
            f"{provider}: snapshot not ready after waiting {waited_sec:.1f}s (ceiling {ceiling_sec:.1f}s)"
        )
        self.provider = provider
        self.waited_sec = waited_sec
        self.ceiling_sec = ceiling_sec


class SheetWriteError(RelayError):
    """The spreadsheet API rejected a structural or data write."""
