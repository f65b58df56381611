"""Error types for quota tracking and the rate-limited client."""

from __future__ import annotations


class RateQuotaError(Exception):
    """Base error for ratequota operations."""


class MissingFieldError(RateQuotaError):
    """Raised when a quota header is absent or does not parse as a non-negative integer."""

    def __init__(self, field: str, header: str, raw_value: str | None = None) -> None:
        self.field = field
        self.header = header
        self.raw_value = raw_value
        if raw_value is None:
            message = f"{header} header is missing"
        else:
            message = f"{header} header is malformed: {raw_value!r}"
        super().__init__(message)


class QuotaRequestError(RateQuotaError):
    """Raised when the remote service rejects a request."""


class QuotaTemporaryError(QuotaRequestError):
    """Raised when retries are exhausted on transient failures."""
