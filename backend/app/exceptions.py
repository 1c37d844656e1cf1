"""Error taxonomy for the competitive-landscape analyzer.

Every error carries the HTTP status the API layer should answer with, so the
FastAPI exception handlers in ``main.py`` can render ``{"error": ...}``
without knowing about individual pipeline stages.
"""

from __future__ import annotations

from typing import Optional


class AnalyzerError(Exception):
    """Base class for all analyzer failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(AnalyzerError):
    """Caller contract violation (e.g. blank problem title). Rejected before any I/O."""

    status_code = 400


class ConfigurationError(AnalyzerError):
    """Missing or rejected search-provider credential. Fatal, never retried."""

    status_code = 500


class UpstreamError(AnalyzerError):
    """The search provider answered with a non-success response."""

    status_code = 500

    def __init__(self, message: str, upstream_status: Optional[int] = None) -> None:
        if upstream_status is not None:
            message = f"{message} (upstream status {upstream_status})"
        super().__init__(message)
        self.upstream_status = upstream_status


class PersistenceError(AnalyzerError):
    """Competitor store read/write failure."""

    status_code = 500
