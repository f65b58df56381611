from __future__ import annotations

from collections.abc import Callable
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
import time

from .config import Settings
from .http_client import QuotaClient, RequestTelemetry
from .rate_limit import LimiterState


@dataclass(slots=True)
class ProbeSample:
    index: int
    status_code: int
    waited_seconds: float
    state: LimiterState


@dataclass(slots=True)
class ProbeResult:
    url: str
    telemetry: RequestTelemetry
    samples: list[ProbeSample] = field(default_factory=list)


async def run_probe(
    *,
    url: str,
    count: int,
    settings: Settings | None = None,
    client: QuotaClient | None = None,
    callback: Callable[[ProbeSample, int], None] | None = None,
) -> ProbeResult:
    """Issue ``count`` throttled GETs against ``url`` and record the quota after each."""
    if count < 1:
        raise ValueError("count must be >= 1")
    settings = settings or Settings()

    async with AsyncExitStack() as stack:
        if client is None:
            client = QuotaClient(settings=settings)
            await stack.enter_async_context(client)

        result = ProbeResult(url=url, telemetry=client.telemetry)
        for index in range(1, count + 1):
            started_at = time.monotonic()
            response = await client.get(url)
            sample = ProbeSample(
                index=index,
                status_code=response.status_code,
                waited_seconds=time.monotonic() - started_at,
                state=client.limiter.state(),
            )
            result.samples.append(sample)
            if callback is not None:
                callback(sample, count)
    return result
