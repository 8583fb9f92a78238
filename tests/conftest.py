from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from faultecho.services.metrics import AggregatorConfig, RequestMetricsAggregator
from faultecho.services.store import InMemoryMetricsStore, RedisMetricsStore


@pytest_asyncio.fixture
async def fake_redis() -> AsyncIterator[FakeRedis]:
    client = FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.aclose()


@pytest.fixture
def memory_store() -> InMemoryMetricsStore:
    return InMemoryMetricsStore()


@pytest.fixture(params=["memory", "redis"])
def metrics_store(request, fake_redis):
    """Both store backends; aggregator behavior must not depend on which one."""
    if request.param == "memory":
        return InMemoryMetricsStore()
    return RedisMetricsStore(fake_redis)


@pytest.fixture
def aggregator(metrics_store) -> RequestMetricsAggregator:
    return RequestMetricsAggregator(metrics_store, AggregatorConfig())
