"""Key-value backends for the request metrics aggregator."""

from faultecho.services.store.base import MetricsStore, MetricsTransaction
from faultecho.services.store.memory import InMemoryMetricsStore
from faultecho.services.store.redis import RedisMetricsStore

__all__ = [
    "InMemoryMetricsStore",
    "MetricsStore",
    "MetricsTransaction",
    "RedisMetricsStore",
]
