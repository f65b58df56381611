from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
import logging
import random
import time
from typing import Any

import httpx

from .config import Settings
from .errors import MissingFieldError, QuotaRequestError, QuotaTemporaryError
from .rate_limit import RateLimiter


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RequestTelemetry:
    total_requests: int = 0
    successful_requests: int = 0
    retries: int = 0
    rate_limited: int = 0
    errors: int = 0
    header_errors: int = 0
    throttled_seconds: float = 0.0
    total_latency_seconds: float = 0.0

    @property
    def mean_latency_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return (self.total_latency_seconds / self.total_requests) * 1000.0


def retry_after_seconds(response: httpx.Response) -> float | None:
    raw_value = response.headers.get("Retry-After")
    if not raw_value:
        return None
    try:
        return max(0.0, float(raw_value))
    except ValueError:
        try:
            date_value = parsedate_to_datetime(raw_value)
        except (TypeError, ValueError):
            return None
        return max(0.0, (date_value - datetime.now(UTC)).total_seconds())


class QuotaClient:
    """Async HTTP client that throttles itself from the server's quota headers."""

    def __init__(
        self,
        settings: Settings,
        limiter: RateLimiter | None = None,
        telemetry: RequestTelemetry | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.limiter = limiter or settings.new_limiter()
        self.telemetry = telemetry or RequestTelemetry()
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            headers={"User-Agent": "ratequota/0.1"},
            transport=transport,
        )

    async def __aenter__(self) -> QuotaClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _throttle(self) -> None:
        started_at = time.monotonic()
        await self.limiter.acquire()
        self.telemetry.throttled_seconds += time.monotonic() - started_at

    def _sync_quota(self, response: httpx.Response) -> None:
        try:
            self.limiter.update(response.headers)
        except MissingFieldError as exc:
            self.telemetry.header_errors += 1
            if self.settings.strict_headers:
                raise
            logger.warning("keeping previous quota state for %s: %s", response.request.url, exc)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        params = params or {}
        backoff_seconds = 0.5

        for attempt in range(self.settings.max_retries + 1):
            await self._throttle()
            started_at = time.monotonic()
            self.telemetry.total_requests += 1
            try:
                response = await self._client.get(path, params=params)
            except httpx.HTTPError as exc:
                self.telemetry.errors += 1
                if attempt >= self.settings.max_retries:
                    raise QuotaTemporaryError(str(exc)) from exc
                self.telemetry.retries += 1
                logger.info("transport error on %s (%s), retrying", path, exc)
                await asyncio.sleep(backoff_seconds * (2**attempt) + random.random() * 0.1)
                continue
            finally:
                self.telemetry.total_latency_seconds += time.monotonic() - started_at

            self._sync_quota(response)

            if response.status_code < 400:
                self.telemetry.successful_requests += 1
                return response

            if response.status_code == 429:
                self.telemetry.rate_limited += 1
                if attempt >= self.settings.max_retries:
                    raise QuotaTemporaryError(f"429 Too Many Requests for {path}")
                self.telemetry.retries += 1
                retry_after = retry_after_seconds(response)
                if retry_after is not None:
                    logger.info("429 on %s, honouring Retry-After (%.1fs)", path, retry_after)
                    await asyncio.sleep(retry_after + random.random() * 0.1)
                elif self.limiter.remaining > 0:
                    # Quota headers did not reflect exhaustion; fall back to backoff.
                    await asyncio.sleep(backoff_seconds * (2**attempt) + random.random() * 0.1)
                continue

            if 500 <= response.status_code < 600:
                self.telemetry.errors += 1
                if attempt >= self.settings.max_retries:
                    raise QuotaTemporaryError(f"{response.status_code} for {path}")
                self.telemetry.retries += 1
                logger.info("%s on %s, retrying", response.status_code, path)
                await asyncio.sleep(backoff_seconds * (2**attempt) + random.random() * 0.1)
                continue

            self.telemetry.errors += 1
            raise QuotaRequestError(f"{response.status_code} for {path}")

        raise QuotaTemporaryError(f"Exhausted retries for {path}")

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self.get(path, params=params)
        return response.json()
