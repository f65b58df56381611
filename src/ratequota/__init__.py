from __future__ import annotations

from .errors import MissingFieldError, QuotaRequestError, QuotaTemporaryError, RateQuotaError
from .headers import HeaderNames, QuotaSnapshot, parse_quota
from .rate_limit import LimiterState, RateLimiter

__all__ = [
    "HeaderNames",
    "LimiterState",
    "MissingFieldError",
    "QuotaRequestError",
    "QuotaSnapshot",
    "QuotaTemporaryError",
    "RateLimiter",
    "RateQuotaError",
    "parse_quota",
]
