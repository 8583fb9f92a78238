"""Redis backend for request metrics."""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from redis.exceptions import RedisError, ResponseError

from faultecho.services.errors import StoreDataError, StoreUnavailableError

logger = logging.getLogger(__name__)

# redis-py raises its own TimeoutError/ConnectionError (RedisError subclasses),
# but socket-level failures can still surface as OSError or TimeoutError.
# ResponseError (e.g. WRONGTYPE) is a data problem and is caught first.
_UNAVAILABLE_ERRORS: tuple[type[BaseException], ...] = (
    RedisError,
    OSError,
    TimeoutError,
)

_GLOB_SPECIAL = frozenset("*?[]\\")


def _decode_text(value: object) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode()
        except UnicodeDecodeError:
            return None
    return None


def _escape_glob(value: str) -> str:
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in value)


class RedisMetricsTransaction:
    """MULTI/EXEC pipeline wrapper."""

    def __init__(self, client: Any) -> None:
        self._pipe = client.pipeline(transaction=True)

    def push_and_trim(self, key: str, value: str, max_len: int) -> None:
        self._pipe.lpush(key, value)
        self._pipe.ltrim(key, 0, max_len - 1)

    def increment(self, key: str) -> None:
        self._pipe.incr(key)

    def increment_hash(
        self, key: str, fields: Mapping[str, int], ttl_seconds: int
    ) -> None:
        for field, amount in fields.items():
            if amount:
                self._pipe.hincrby(key, field, amount)
        self._pipe.expire(key, ttl_seconds)

    async def execute(self) -> None:
        try:
            await self._pipe.execute()
        except ResponseError as exc:
            raise StoreDataError("transaction", exc) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError("transaction", exc) from exc


class RedisMetricsStore:
    """
    Metrics store backed by a ``redis.asyncio`` client.

    Works with clients created with or without ``decode_responses``.

    Example:
        client = redis.asyncio.from_url("redis://localhost:6379")
        store = RedisMetricsStore(client)
        aggregator = RequestMetricsAggregator(store)
    """

    backend_name = "redis"

    def __init__(self, client: Any) -> None:
        """
        Args:
            client: Redis-compatible async client (redis.asyncio or fakeredis)
        """
        self._client: Any = client

    @property
    def client(self) -> Any:
        if self._client is None:
            raise RuntimeError("Metrics store client is None.")
        return self._client

    def transaction(self) -> RedisMetricsTransaction:
        return RedisMetricsTransaction(self.client)

    async def range(self, key: str, count: int) -> list[str]:
        if count <= 0:
            return []
        try:
            raw_values = await self.client.lrange(key, 0, count - 1)
        except ResponseError as exc:
            raise StoreDataError("range", exc) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError("range", exc) from exc

        values: list[str] = []
        for raw_value in raw_values or []:
            value = _decode_text(raw_value)
            if value is not None:
                values.append(value)
        return values

    async def get_counter(self, key: str) -> int:
        try:
            raw_value = await self.client.get(key)
        except ResponseError as exc:
            raise StoreDataError("get_counter", exc) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError("get_counter", exc) from exc

        value = _decode_text(raw_value)
        if value is None:
            return 0
        try:
            return max(int(value), 0)
        except ValueError:
            logger.debug("Ignoring non-integer counter at %s", key)
            return 0

    async def get_hashes(self, keys: Sequence[str]) -> list[dict[str, str]]:
        if not keys:
            return []
        pipe = self.client.pipeline(transaction=False)
        for key in keys:
            pipe.hgetall(key)
        try:
            raw_hashes = await pipe.execute()
        except ResponseError as exc:
            raise StoreDataError("get_hashes", exc) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError("get_hashes", exc) from exc

        hashes: list[dict[str, str]] = []
        for raw_hash in raw_hashes:
            normalized: dict[str, str] = {}
            if isinstance(raw_hash, Mapping):
                for raw_field, raw_item in raw_hash.items():
                    field = _decode_text(raw_field)
                    item = _decode_text(raw_item)
                    if field is not None and item is not None:
                        normalized[field] = item
            hashes.append(normalized)
        return hashes

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(await self.client.delete(*keys))
        except ResponseError as exc:
            raise StoreDataError("delete", exc) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError("delete", exc) from exc

    async def delete_by_prefix(self, prefix: str, batch_size: int) -> int:
        match = f"{_escape_glob(prefix)}*"
        deleted = 0
        cursor = 0
        try:
            while True:
                cursor, keys = await self.client.scan(
                    cursor=cursor, match=match, count=batch_size
                )
                if keys:
                    deleted += int(await self.client.delete(*keys))
                if int(cursor) == 0:
                    break
        except ResponseError as exc:
            raise StoreDataError("delete_by_prefix", exc) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError("delete_by_prefix", exc) from exc
        return deleted

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except ResponseError as exc:
            raise StoreDataError("ping", exc) from exc
        except _UNAVAILABLE_ERRORS as exc:
            raise StoreUnavailableError("ping", exc) from exc
