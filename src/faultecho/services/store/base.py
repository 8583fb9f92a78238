"""Store protocol for per-namespace request metrics."""

from collections.abc import Mapping, Sequence
from typing import Protocol


class MetricsTransaction(Protocol):
    """
    Buffered writes applied as one atomic unit.

    Nothing is visible to readers until ``execute()`` returns, and either
    every buffered write lands or none do.
    """

    def push_and_trim(self, key: str, value: str, max_len: int) -> None:
        """Prepend ``value`` to a list and trim it to ``max_len`` newest entries."""
        ...

    def increment(self, key: str) -> None:
        """Increment an integer counter by one."""
        ...

    def increment_hash(
        self, key: str, fields: Mapping[str, int], ttl_seconds: int
    ) -> None:
        """Increment hash fields and (re)set the hash's expiry."""
        ...

    async def execute(self) -> None:
        """Apply the buffered writes atomically."""
        ...


class MetricsStore(Protocol):
    """
    Protocol for the key-value backend behind the metrics aggregator.

    Implementations raise ``StoreUnavailableError`` for any connectivity or
    timeout failure; they never return partial or fabricated data instead.
    """

    backend_name: str

    def transaction(self) -> MetricsTransaction:
        """Start a new atomic write batch."""
        ...

    async def range(self, key: str, count: int) -> list[str]:
        """Return up to ``count`` entries from the head (newest end) of a list."""
        ...

    async def get_counter(self, key: str) -> int:
        """Read an integer counter; missing counters read as 0."""
        ...

    async def get_hashes(self, keys: Sequence[str]) -> list[dict[str, str]]:
        """Read several hashes at once; missing hashes read as ``{}``."""
        ...

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        ...

    async def delete_by_prefix(self, prefix: str, batch_size: int) -> int:
        """Delete every key starting with ``prefix`` in batches of ``batch_size``."""
        ...

    async def ping(self) -> bool:
        """Check connectivity."""
        ...
