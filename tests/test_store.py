from __future__ import annotations

import pytest
from _fixtures.stores import UnreachableRedis
from fakeredis.aioredis import FakeRedis

from faultecho.services.errors import StoreDataError, StoreUnavailableError
from faultecho.services.store import InMemoryMetricsStore, RedisMetricsStore


@pytest.mark.asyncio
async def test_transaction_pushes_trims_and_increments(metrics_store) -> None:
    for i in range(5):
        txn = metrics_store.transaction()
        txn.push_and_trim("ns:log", f"entry-{i}", 3)
        txn.increment("ns:count")
        txn.increment_hash("ns:bucket:a", {"total": 1, "failures": i % 2}, 60)
        await txn.execute()

    assert await metrics_store.range("ns:log", 10) == ["entry-4", "entry-3", "entry-2"]
    assert await metrics_store.get_counter("ns:count") == 5
    assert await metrics_store.get_hashes(["ns:bucket:a", "ns:bucket:missing"]) == [
        {"total": "5", "failures": "2"},
        {},
    ]


@pytest.mark.asyncio
async def test_range_limits_count_and_handles_missing_keys(metrics_store) -> None:
    txn = metrics_store.transaction()
    for i in range(4):
        txn.push_and_trim("ns:log", str(i), 10)
    await txn.execute()

    assert await metrics_store.range("ns:log", 2) == ["3", "2"]
    assert await metrics_store.range("ns:log", 0) == []
    assert await metrics_store.range("ns:absent", 5) == []
    assert await metrics_store.get_counter("ns:absent") == 0


@pytest.mark.asyncio
async def test_delete_by_prefix_removes_only_matching_keys(metrics_store) -> None:
    txn = metrics_store.transaction()
    for i in range(25):
        txn.increment_hash(f"faultecho:a:bucket:{i:04d}", {"total": 1}, 60)
    txn.increment_hash("faultecho:b:bucket:0001", {"total": 1}, 60)
    txn.increment("faultecho:a:total_requests")
    await txn.execute()

    deleted = await metrics_store.delete_by_prefix("faultecho:a:bucket:", batch_size=4)

    assert deleted == 25
    assert await metrics_store.get_hashes(["faultecho:b:bucket:0001"]) == [{"total": "1"}]
    assert await metrics_store.get_counter("faultecho:a:total_requests") == 1
    assert await metrics_store.delete_by_prefix("faultecho:a:bucket:", batch_size=4) == 0


@pytest.mark.asyncio
async def test_delete_reports_existing_keys_only(metrics_store) -> None:
    txn = metrics_store.transaction()
    txn.increment("ns:count")
    await txn.execute()

    assert await metrics_store.delete("ns:count", "ns:never") == 1
    assert await metrics_store.delete("ns:count") == 0
    assert await metrics_store.delete() == 0


@pytest.mark.asyncio
async def test_redis_transaction_sets_bucket_ttl(fake_redis: FakeRedis) -> None:
    store = RedisMetricsStore(fake_redis)
    txn = store.transaction()
    txn.increment_hash("ns:bucket:x", {"total": 1, "failures": 0}, 375)
    await txn.execute()

    ttl = await fake_redis.ttl("ns:bucket:x")
    assert 0 < ttl <= 375
    # Zero increments are not written as fields.
    assert await fake_redis.hgetall("ns:bucket:x") == {"total": "1"}


@pytest.mark.asyncio
async def test_redis_store_reads_bytes_clients() -> None:
    client = FakeRedis(decode_responses=False)
    try:
        store = RedisMetricsStore(client)
        txn = store.transaction()
        txn.push_and_trim("ns:log", "hello", 5)
        txn.increment("ns:count")
        txn.increment_hash("ns:bucket:x", {"total": 2, "failures": 1}, 60)
        await txn.execute()

        assert await store.range("ns:log", 5) == ["hello"]
        assert await store.get_counter("ns:count") == 1
        assert await store.get_hashes(["ns:bucket:x"]) == [{"total": "2", "failures": "1"}]
        assert await store.ping() is True
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_redis_store_ignores_non_integer_counter(fake_redis: FakeRedis) -> None:
    await fake_redis.set("ns:count", "not-a-number")

    assert await RedisMetricsStore(fake_redis).get_counter("ns:count") == 0


@pytest.mark.asyncio
async def test_redis_prefix_scan_escapes_glob_characters(fake_redis: FakeRedis) -> None:
    await fake_redis.set("ns[1]:bucket:a", "1")
    await fake_redis.set("ns1:bucket:a", "1")

    deleted = await RedisMetricsStore(fake_redis).delete_by_prefix("ns[1]:bucket:", 10)

    assert deleted == 1
    assert await fake_redis.exists("ns1:bucket:a") == 1


@pytest.mark.asyncio
async def test_redis_failures_surface_as_store_unavailable() -> None:
    store = RedisMetricsStore(UnreachableRedis())

    txn = store.transaction()
    txn.push_and_trim("ns:log", "x", 5)
    with pytest.raises(StoreUnavailableError, match="transaction"):
        await txn.execute()

    with pytest.raises(StoreUnavailableError, match="range"):
        await store.range("ns:log", 5)
    with pytest.raises(StoreUnavailableError, match="get_counter"):
        await store.get_counter("ns:count")
    with pytest.raises(StoreUnavailableError, match="get_hashes"):
        await store.get_hashes(["ns:bucket:x"])
    with pytest.raises(StoreUnavailableError, match="delete_by_prefix"):
        await store.delete_by_prefix("ns:", 10)
    with pytest.raises(StoreUnavailableError, match="ping"):
        await store.ping()


@pytest.mark.asyncio
async def test_memory_store_expires_hashes_lazily() -> None:
    now = {"value": 1_000.0}
    store = InMemoryMetricsStore(clock=lambda: now["value"])

    txn = store.transaction()
    txn.increment_hash("ns:bucket:x", {"total": 1}, 30)
    await txn.execute()

    now["value"] += 29
    assert await store.get_hashes(["ns:bucket:x"]) == [{"total": "1"}]

    # A later increment pushes the expiry out again.
    txn = store.transaction()
    txn.increment_hash("ns:bucket:x", {"total": 1}, 30)
    await txn.execute()
    now["value"] += 29
    assert await store.get_hashes(["ns:bucket:x"]) == [{"total": "2"}]

    now["value"] += 2
    assert await store.get_hashes(["ns:bucket:x"]) == [{}]
    assert await store.keys("ns:") == []


@pytest.mark.asyncio
async def test_memory_store_sweeps_expired_hashes_on_write() -> None:
    now = {"value": 0.0}
    store = InMemoryMetricsStore(clock=lambda: now["value"])

    for i in range(50):
        now["value"] = float(i * 10)
        txn = store.transaction()
        txn.increment_hash(f"ns:bucket:{i:04d}", {"total": 1}, 30)
        await txn.execute()

    # Only the hashes written in the last 30 seconds survive.
    assert sorted(store._hashes) == ["ns:bucket:0047", "ns:bucket:0048", "ns:bucket:0049"]
    assert sorted(store._expiry) == sorted(store._hashes)


@pytest.mark.asyncio
async def test_redis_wrong_type_surfaces_as_data_error(fake_redis: FakeRedis) -> None:
    store = RedisMetricsStore(fake_redis)
    await fake_redis.set("ns:log", "plain string")
    await fake_redis.rpush("ns:bucket:x", "a list")

    with pytest.raises(StoreDataError, match="range"):
        await store.range("ns:log", 5)
    with pytest.raises(StoreDataError, match="get_hashes"):
        await store.get_hashes(["ns:bucket:x"])

    txn = store.transaction()
    txn.push_and_trim("ns:log", "x", 5)
    with pytest.raises(StoreDataError, match="transaction"):
        await txn.execute()
