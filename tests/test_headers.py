from __future__ import annotations

import httpx
import pytest

from ratequota.errors import MissingFieldError
from ratequota.headers import HeaderNames, parse_quota


def test_parse_quota_reads_all_three_fields() -> None:
    snapshot = parse_quota(
        {"X-RateLimit-Reset": "1700000000", "X-RateLimit-Remaining": "7", "X-RateLimit-Limit": "10"}
    )

    assert snapshot.reset == 1700000000
    assert snapshot.remaining == 7
    assert snapshot.limit == 10


def test_parse_quota_limit_is_optional() -> None:
    snapshot = parse_quota({"X-RateLimit-Reset": "1700000000", "X-RateLimit-Remaining": " 3 "})

    assert snapshot.remaining == 3
    assert snapshot.limit is None


def test_parse_quota_lookup_is_case_insensitive() -> None:
    snapshot = parse_quota({"x-ratelimit-reset": "5", "x-ratelimit-remaining": "2"})
    assert (snapshot.reset, snapshot.remaining) == (5, 2)

    headers = httpx.Headers({"x-ratelimit-reset": "6", "X-RATELIMIT-REMAINING": "1"})
    assert parse_quota(headers).reset == 6


@pytest.mark.parametrize(
    ("metadata", "field", "header"),
    [
        ({"X-RateLimit-Remaining": "3"}, "reset", "X-RateLimit-Reset"),
        ({"X-RateLimit-Reset": "10"}, "remaining", "X-RateLimit-Remaining"),
        ({"X-RateLimit-Reset": "soon", "X-RateLimit-Remaining": "3"}, "reset", "X-RateLimit-Reset"),
        ({"X-RateLimit-Reset": "10", "X-RateLimit-Remaining": "-1"}, "remaining", "X-RateLimit-Remaining"),
        ({"X-RateLimit-Reset": "10", "X-RateLimit-Remaining": "1_0"}, "remaining", "X-RateLimit-Remaining"),
        ({"X-RateLimit-Reset": "\u0661\u0662", "X-RateLimit-Remaining": "3"}, "reset", "X-RateLimit-Reset"),
        ({"X-RateLimit-Reset": "9" * 30, "X-RateLimit-Remaining": "3"}, "reset", "X-RateLimit-Reset"),
        (
            {"X-RateLimit-Reset": "10", "X-RateLimit-Remaining": "3", "X-RateLimit-Limit": "3.5"},
            "limit",
            "X-RateLimit-Limit",
        ),
    ],
)
def test_parse_quota_names_the_offending_field(metadata: dict[str, str], field: str, header: str) -> None:
    with pytest.raises(MissingFieldError) as excinfo:
        parse_quota(metadata)

    assert excinfo.value.field == field
    assert excinfo.value.header == header
    assert header in str(excinfo.value)


def test_missing_field_message_distinguishes_absent_from_malformed() -> None:
    with pytest.raises(MissingFieldError, match="is missing"):
        parse_quota({"X-RateLimit-Remaining": "1"})
    with pytest.raises(MissingFieldError, match="is malformed") as excinfo:
        parse_quota({"X-RateLimit-Reset": "abc", "X-RateLimit-Remaining": "1"})
    assert excinfo.value.raw_value == "abc"


def test_header_names_with_prefix() -> None:
    names = HeaderNames.with_prefix("X-App-RateLimit-")

    assert names.reset == "X-App-RateLimit-Reset"
    assert names.remaining == "X-App-RateLimit-Remaining"
    assert names.limit == "X-App-RateLimit-Limit"

    snapshot = parse_quota({"X-App-RateLimit-Reset": "1", "X-App-RateLimit-Remaining": "0"}, names)
    assert snapshot.remaining == 0

    with pytest.raises(ValueError):
        HeaderNames.with_prefix("  ")
