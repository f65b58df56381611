from __future__ import annotations

import pytest

from ratequota.config import Settings
from ratequota.http_client import QuotaClient
from ratequota.probe import run_probe
from tests.fakes import FakeQuotaServer


@pytest.mark.asyncio
async def test_probe_records_quota_after_each_request() -> None:
    server = FakeQuotaServer(limit=5)
    settings = Settings(initial_limit=5)
    seen: list[int] = []

    async with QuotaClient(settings=settings, transport=server.transport()) as client:
        result = await run_probe(
            url="https://api.example.test/items",
            count=3,
            settings=settings,
            client=client,
            callback=lambda sample, total: seen.append(sample.index),
        )

    assert seen == [1, 2, 3]
    assert [sample.state.remaining for sample in result.samples] == [4, 3, 2]
    assert all(sample.status_code == 200 for sample in result.samples)
    assert result.samples[-1].state.reset_at == server.reset + 1
    assert result.telemetry.total_requests == 3


@pytest.mark.asyncio
async def test_probe_rejects_non_positive_count() -> None:
    with pytest.raises(ValueError):
        await run_probe(url="https://api.example.test/items", count=0)
