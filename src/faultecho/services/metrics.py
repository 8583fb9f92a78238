"""Per-namespace request metrics aggregator.

Two views of the same traffic are kept in the store:

- a rolling log of the most recent request records (newest first), trimmed
  to ``max_retained_logs`` on every write; it feeds the last-minute stats
  and the recent-request listing;
- fixed-width bucket hashes (``total``/``failures``) maintained
  incrementally at ingest time; they feed the time series without having
  to scan the log.

The aggregator itself holds no mutable state. Every ingest is a single
store transaction, so concurrent writers only ever coordinate through the
store.
"""

import logging
import time
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from faultecho.config import Settings
from faultecho.contracts import (
    MetricsSnapshot,
    MetricsStats,
    RequestOutcome,
    RequestRecord,
    SeriesPoint,
)
from faultecho.keys import (
    BUCKET_FAILURES_FIELD,
    BUCKET_TOTAL_FIELD,
    KEY_SEPARATOR,
    bucket_key,
    bucket_key_prefix,
    recent_logs_key,
    total_requests_key,
)
from faultecho.services.buckets import BucketClock
from faultecho.services.errors import (
    InvalidOutcomeError,
    StoreDataError,
    StoreUnavailableError,
)
from faultecho.services.store import MetricsStore

logger = logging.getLogger(__name__)

LAST_MINUTE_MS = 60_000
DEFAULT_QUERY_LIMIT = 50


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _require_namespace(namespace: str) -> None:
    if not namespace:
        raise InvalidOutcomeError("namespace must be a non-empty string")
    if KEY_SEPARATOR in namespace:
        raise InvalidOutcomeError(
            f"namespace must not contain {KEY_SEPARATOR!r}: {namespace!r}"
        )


def _new_record_id(timestamp_ms: int) -> str:
    """Time-sortable id: zero-padded ms timestamp plus a random suffix."""
    return f"{timestamp_ms:013d}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class AggregatorConfig:
    """Sizing for the rolling log and the bucket series."""

    max_retained_logs: int = 1000
    recent_fetch_floor: int = 500
    bucket_width_seconds: int = 15
    series_buckets: int = 20
    bucket_ttl_slack_seconds: int = 60
    reset_scan_batch: int = 500

    @property
    def bucket_ttl_seconds(self) -> int:
        window = self.series_buckets * self.bucket_width_seconds
        return window + self.bucket_width_seconds + self.bucket_ttl_slack_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "AggregatorConfig":
        return cls(
            max_retained_logs=settings.metrics_max_retained_logs,
            recent_fetch_floor=settings.metrics_recent_fetch_floor,
            bucket_width_seconds=settings.metrics_bucket_width_seconds,
            series_buckets=settings.metrics_series_buckets,
            bucket_ttl_slack_seconds=settings.metrics_bucket_ttl_slack_seconds,
            reset_scan_batch=settings.metrics_reset_scan_batch,
        )


class _BucketHash(BaseModel):
    """Typed store hash payload for one bucket."""

    model_config = ConfigDict(extra="ignore")

    total: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)


def _parse_bucket(raw_bucket: Mapping[str, str]) -> _BucketHash:
    try:
        return _BucketHash.model_validate(raw_bucket)
    except ValidationError:
        return _BucketHash()


def _point(bucket_start: int, total: int, failures: int) -> SeriesPoint:
    return SeriesPoint(
        bucket_start=bucket_start, total=total, failures=min(failures, total)
    )


class SeriesStrategy(Protocol):
    """Produces the zero-filled, oldest-first bucket series."""

    name: str

    def build(self) -> list[SeriesPoint]: ...


class StoredBucketSeries:
    """Trust the pre-aggregated bucket hashes read from the store."""

    name = "stored"

    def __init__(self, slots: Sequence[int], buckets: Sequence[_BucketHash]) -> None:
        self._slots = list(slots)
        self._buckets = list(buckets)

    @property
    def is_empty(self) -> bool:
        return all(bucket.total == 0 for bucket in self._buckets)

    def build(self) -> list[SeriesPoint]:
        return [
            _point(start, bucket.total, bucket.failures)
            for start, bucket in zip(self._slots, self._buckets, strict=True)
        ]


class RebuiltLogSeries:
    """Re-bucket fetched log records in memory.

    Bounded by however many records the query fetched, so it is a repair for
    lost bucket state, not an exact recount.
    """

    name = "rebuilt"

    def __init__(
        self,
        slots: Sequence[int],
        records: Sequence[RequestRecord],
        clock: BucketClock,
    ) -> None:
        self._slots = list(slots)
        self._records = records
        self._clock = clock

    def build(self) -> list[SeriesPoint]:
        totals = [0] * len(self._slots)
        failures = [0] * len(self._slots)
        for record in self._records:
            index = _slot_index(self._slots, self._clock, record.timestamp)
            if index is None:
                continue
            totals[index] += 1
            if not record.success:
                failures[index] += 1
        return [
            _point(start, totals[i], failures[i]) for i, start in enumerate(self._slots)
        ]


def _slot_index(slots: Sequence[int], clock: BucketClock, timestamp_ms: int) -> int | None:
    if not slots:
        return None
    index = (clock.bucket_start(timestamp_ms) - slots[0]) // clock.width_ms
    if 0 <= index < len(slots):
        return index
    return None


def choose_series_strategy(
    stored: StoredBucketSeries,
    slots: Sequence[int],
    records: Sequence[RequestRecord],
    clock: BucketClock,
) -> SeriesStrategy:
    """Fall back to rebuilding from the log when every stored bucket is empty
    but the log still holds records inside the series horizon."""
    if not stored.is_empty:
        return stored
    if any(_slot_index(slots, clock, record.timestamp) is not None for record in records):
        return RebuiltLogSeries(slots, records, clock)
    return stored


class RequestMetricsAggregator:
    """Ingests request outcomes and serves windowed stats per namespace."""

    def __init__(
        self,
        store: MetricsStore,
        config: AggregatorConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or AggregatorConfig()
        self._clock = BucketClock(self._config.bucket_width_seconds)

    @property
    def store(self) -> MetricsStore:
        return self._store

    @property
    def config(self) -> AggregatorConfig:
        return self._config

    @property
    def clock(self) -> BucketClock:
        return self._clock

    def build_record(self, outcome: RequestOutcome | Mapping[str, Any]) -> RequestRecord:
        """Validate an outcome and stamp it with an id and timestamp."""
        if not isinstance(outcome, RequestOutcome):
            try:
                outcome = RequestOutcome.model_validate(outcome)
            except ValidationError as exc:
                raise InvalidOutcomeError(str(exc)) from exc

        timestamp = outcome.timestamp if outcome.timestamp is not None else _now_ms()
        return RequestRecord(
            id=_new_record_id(timestamp),
            method=outcome.method,
            status_code=outcome.status_code,
            success=outcome.success,
            latency_millis=outcome.latency_millis,
            timestamp=timestamp,
            path=outcome.path,
        )

    async def ingest(
        self, namespace: str, outcome: RequestOutcome | Mapping[str, Any]
    ) -> bool:
        """
        Record one request outcome.

        The log push/trim, the all-time counter and the bucket increment
        (with TTL refresh) run as one store transaction.

        Returns:
            False when the store was unavailable or rejected the write and the
            record was dropped.

        Raises:
            InvalidOutcomeError: The namespace or outcome is malformed.
                Nothing is written.
        """
        _require_namespace(namespace)
        record = self.build_record(outcome)

        txn = self._store.transaction()
        txn.push_and_trim(
            recent_logs_key(namespace),
            record.model_dump_json(by_alias=True),
            self._config.max_retained_logs,
        )
        txn.increment(total_requests_key(namespace))
        txn.increment_hash(
            bucket_key(namespace, self._clock.bucket_id(record.timestamp)),
            {
                BUCKET_TOTAL_FIELD: 1,
                BUCKET_FAILURES_FIELD: 0 if record.success else 1,
            },
            self._config.bucket_ttl_seconds,
        )
        try:
            await txn.execute()
        except (StoreUnavailableError, StoreDataError) as exc:
            logger.warning(
                "Dropping request metrics for namespace %s: %s",
                namespace,
                exc,
                extra={"namespace": namespace},
            )
            return False
        return True

    async def query(
        self,
        namespace: str,
        limit: int = DEFAULT_QUERY_LIMIT,
        *,
        now_ms: int | None = None,
    ) -> MetricsSnapshot:
        """
        Build the metrics snapshot for a namespace.

        Last-minute stats are computed from at most
        ``max(limit, recent_fetch_floor)`` log entries; sustained traffic
        above that many requests per minute is undercounted.

        Raises:
            InvalidOutcomeError: Bad namespace, or ``limit`` is below 1.
            StoreUnavailableError: The store could not be read.
            StoreDataError: A key of the namespace holds unexpected data.
        """
        _require_namespace(namespace)
        if limit < 1:
            raise InvalidOutcomeError("limit must be at least 1")
        now = now_ms if now_ms is not None else _now_ms()

        fetch_count = max(limit, self._config.recent_fetch_floor)
        raw_entries = await self._store.range(recent_logs_key(namespace), fetch_count)
        records = self._parse_records(raw_entries)

        stats_window_start = now - LAST_MINUTE_MS
        last_minute_requests = 0
        last_minute_failures = 0
        latency_sum = 0.0
        for record in records:
            if record.timestamp < stats_window_start:
                continue
            last_minute_requests += 1
            latency_sum += record.latency_millis
            if not record.success:
                last_minute_failures += 1

        slots = self._clock.slots(now, self._config.series_buckets)
        raw_buckets = await self._store.get_hashes(
            [bucket_key(namespace, self._clock.bucket_id(start)) for start in slots]
        )
        stored = StoredBucketSeries(slots, [_parse_bucket(raw) for raw in raw_buckets])
        strategy = choose_series_strategy(stored, slots, records, self._clock)
        if strategy is not stored:
            logger.debug(
                "Bucket index empty for namespace %s; rebuilding series from %d log entries",
                namespace,
                len(records),
                extra={"namespace": namespace},
            )

        total_requests = await self._store.get_counter(total_requests_key(namespace))

        stats = MetricsStats(
            total_requests=total_requests,
            last_minute_requests=last_minute_requests,
            last_minute_failures=last_minute_failures,
            last_minute_failure_rate=(
                round(last_minute_failures / last_minute_requests * 100, 2)
                if last_minute_requests
                else 0.0
            ),
            average_latency_ms=(
                round(latency_sum / last_minute_requests, 2)
                if last_minute_requests
                else 0.0
            ),
        )
        return MetricsSnapshot(
            stats=stats,
            recent_requests=records[:limit],
            series=strategy.build(),
        )

    async def reset(self, namespace: str) -> int:
        """
        Delete the log, the counter and every bucket of a namespace.

        Bucket keys are removed through a batched prefix scan. Idempotent;
        returns the number of keys deleted.
        """
        _require_namespace(namespace)
        deleted = await self._store.delete(
            recent_logs_key(namespace), total_requests_key(namespace)
        )
        deleted += await self._store.delete_by_prefix(
            bucket_key_prefix(namespace), self._config.reset_scan_batch
        )
        logger.info(
            "Reset metrics for namespace %s (%d keys deleted)",
            namespace,
            deleted,
            extra={"namespace": namespace},
        )
        return deleted

    @staticmethod
    def _parse_records(raw_entries: Sequence[str]) -> list[RequestRecord]:
        records: list[RequestRecord] = []
        for raw_entry in raw_entries:
            try:
                records.append(RequestRecord.model_validate_json(raw_entry))
            except ValidationError:
                continue
        return records


# Aggregator singleton, wired during app startup
_aggregator: RequestMetricsAggregator | None = None


def init_aggregator(
    store: MetricsStore, config: AggregatorConfig | None = None
) -> RequestMetricsAggregator:
    """Create the process-wide aggregator over ``store``."""
    global _aggregator
    _aggregator = RequestMetricsAggregator(store, config)
    return _aggregator


def get_aggregator() -> RequestMetricsAggregator:
    """
    Get the aggregator.

    Raises RuntimeError if init_aggregator() hasn't been called.
    """
    if _aggregator is None:
        raise RuntimeError("Metrics aggregator not initialized. Call init_aggregator() first.")
    return _aggregator


def clear_aggregator() -> None:
    global _aggregator
    _aggregator = None
