# FILE: alttext/errors.py
"""Error taxonomy for the dispatch pipeline.

Components raise these; the Dispatcher converts them to a DispatchOutcome
exactly once. None of them is retried internally.
"""

from typing import Optional


class DispatchError(Exception):
    """Base class for dispatch failures."""

    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DispatchError):
    """Caller-fixable request problem. The backend is never contacted."""

    http_status = 400


class PayloadTooLargeError(ValidationError):
    http_status = 413


class TransportError(DispatchError):
    """Local or infrastructure fault: temp file I/O, upload, network."""

    http_status = 500


class UpstreamError(DispatchError):
    """Backend rejected the request or returned unusable output."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def http_status(self) -> int:  # type: ignore[override]
        # Backend client errors stay 4xx; only backend 5xx (or unusable
        # output with no status) becomes a gateway error.
        if self.status is None or self.status >= 500:
            return 502
        return 400
