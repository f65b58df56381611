from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import re

from pydantic import BaseModel, Field

from .errors import MissingFieldError


DEFAULT_PREFIX = "X-RateLimit"
_COUNT_PATTERN = re.compile(r"\+?[0-9]+")
# Header values are signed 64-bit integers on the wire.
_MAX_COUNT = 2**63 - 1


@dataclass(frozen=True, slots=True)
class HeaderNames:
    limit: str = f"{DEFAULT_PREFIX}-Limit"
    remaining: str = f"{DEFAULT_PREFIX}-Remaining"
    reset: str = f"{DEFAULT_PREFIX}-Reset"

    @classmethod
    def with_prefix(cls, prefix: str) -> HeaderNames:
        prefix = prefix.strip().rstrip("-")
        if not prefix:
            raise ValueError("header prefix must not be empty")
        return cls(limit=f"{prefix}-Limit", remaining=f"{prefix}-Remaining", reset=f"{prefix}-Reset")


class QuotaSnapshot(BaseModel):
    """Quota state as reported by the remote service."""

    remaining: int = Field(ge=0)
    reset: int = Field(ge=0)
    limit: int | None = Field(default=None, ge=0)


def _lookup(metadata: Mapping[str, str], key: str) -> str | None:
    value = metadata.get(key)
    if value is not None:
        return value
    lowered = key.lower()
    for name, candidate in metadata.items():
        if name.lower() == lowered:
            return candidate
    return None


def _parse_count(metadata: Mapping[str, str], field: str, header: str, required: bool) -> int | None:
    raw_value = _lookup(metadata, header)
    if raw_value is None:
        if required:
            raise MissingFieldError(field, header)
        return None
    text = str(raw_value).strip()
    if not _COUNT_PATTERN.fullmatch(text):
        raise MissingFieldError(field, header, str(raw_value))
    value = int(text)
    if value > _MAX_COUNT:
        raise MissingFieldError(field, header, str(raw_value))
    return value


def parse_quota(metadata: Mapping[str, str], names: HeaderNames | None = None) -> QuotaSnapshot:
    """Extract reset, remaining and (optionally) limit from response metadata.

    Lookup tries the exact key first and falls back to a case-insensitive
    match, so plain dicts behave like ``httpx.Headers``. Raises
    ``MissingFieldError`` for the first field that is absent or malformed.
    """
    names = names or HeaderNames()
    reset = _parse_count(metadata, "reset", names.reset, required=True)
    remaining = _parse_count(metadata, "remaining", names.remaining, required=True)
    limit = _parse_count(metadata, "limit", names.limit, required=False)
    return QuotaSnapshot(remaining=remaining, reset=reset, limit=limit)
