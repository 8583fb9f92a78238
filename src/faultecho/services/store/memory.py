"""In-process metrics store for tests and Redis-less development."""

import asyncio
import time
from collections.abc import Callable, Mapping, Sequence


class InMemoryMetricsTransaction:
    """Buffers writes and applies them under the store lock."""

    def __init__(self, store: "InMemoryMetricsStore") -> None:
        self._store = store
        self._ops: list[Callable[[], None]] = []

    def push_and_trim(self, key: str, value: str, max_len: int) -> None:
        def _apply() -> None:
            entries = self._store._lists.setdefault(key, [])
            entries.insert(0, value)
            del entries[max_len:]

        self._ops.append(_apply)

    def increment(self, key: str) -> None:
        def _apply() -> None:
            self._store._counters[key] = self._store._counters.get(key, 0) + 1

        self._ops.append(_apply)

    def increment_hash(
        self, key: str, fields: Mapping[str, int], ttl_seconds: int
    ) -> None:
        increments = dict(fields)

        def _apply() -> None:
            self._store._expire_if_due(key)
            bucket = self._store._hashes.setdefault(key, {})
            for field, amount in increments.items():
                if amount:
                    bucket[field] = bucket.get(field, 0) + amount
            self._store._expiry[key] = self._store._clock() + ttl_seconds

        self._ops.append(_apply)

    async def execute(self) -> None:
        async with self._store._lock:
            for op in self._ops:
                op()
            self._store._sweep_expired()
        self._ops.clear()


class InMemoryMetricsStore:
    """
    Dict-backed ``MetricsStore``.

    A single ``asyncio.Lock`` serializes transactions so readers never see a
    half-applied ingest. Hash expiry is checked against ``clock`` (seconds,
    monotonic by default, replaceable in tests) on reads, and expired hashes
    are swept after every transaction.
    """

    backend_name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = asyncio.Lock()
        self._lists: dict[str, list[str]] = {}
        self._counters: dict[str, int] = {}
        self._hashes: dict[str, dict[str, int]] = {}
        self._expiry: dict[str, float] = {}

    def _expire_if_due(self, key: str) -> None:
        deadline = self._expiry.get(key)
        if deadline is not None and deadline <= self._clock():
            self._hashes.pop(key, None)
            self._expiry.pop(key, None)

    def _sweep_expired(self) -> None:
        """Drop every hash whose TTL has passed."""
        now = self._clock()
        for key in [key for key, deadline in self._expiry.items() if deadline <= now]:
            self._hashes.pop(key, None)
            del self._expiry[key]

    def _all_keys(self) -> list[str]:
        self._sweep_expired()
        return sorted({*self._lists, *self._counters, *self._hashes})

    def _delete_key(self, key: str) -> bool:
        existed = False
        for mapping in (self._lists, self._counters, self._hashes):
            if mapping.pop(key, None) is not None:
                existed = True
        self._expiry.pop(key, None)
        return existed

    def transaction(self) -> InMemoryMetricsTransaction:
        return InMemoryMetricsTransaction(self)

    async def range(self, key: str, count: int) -> list[str]:
        if count <= 0:
            return []
        async with self._lock:
            return list(self._lists.get(key, [])[:count])

    async def get_counter(self, key: str) -> int:
        async with self._lock:
            return self._counters.get(key, 0)

    async def get_hashes(self, keys: Sequence[str]) -> list[dict[str, str]]:
        async with self._lock:
            hashes: list[dict[str, str]] = []
            for key in keys:
                self._expire_if_due(key)
                bucket = self._hashes.get(key, {})
                hashes.append({field: str(value) for field, value in bucket.items()})
            return hashes

    async def delete(self, *keys: str) -> int:
        async with self._lock:
            return sum(1 for key in keys if self._delete_key(key))

    async def delete_by_prefix(self, prefix: str, batch_size: int) -> int:
        async with self._lock:
            matching = [key for key in self._all_keys() if key.startswith(prefix)]

        size = max(batch_size, 1)
        deleted = 0
        for start in range(0, len(matching), size):
            batch = matching[start : start + size]
            async with self._lock:
                deleted += sum(1 for key in batch if self._delete_key(key))
            # Yield between batches.
            await asyncio.sleep(0)
        return deleted

    async def ping(self) -> bool:
        return True

    async def keys(self, prefix: str = "") -> list[str]:
        """Live keys starting with ``prefix``."""
        async with self._lock:
            return [key for key in self._all_keys() if key.startswith(prefix)]
