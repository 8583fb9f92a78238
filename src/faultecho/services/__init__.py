"""Service layer."""

from faultecho.services.errors import (
    InvalidOutcomeError,
    MetricsError,
    StoreDataError,
    StoreUnavailableError,
)
from faultecho.services.metrics import (
    AggregatorConfig,
    RequestMetricsAggregator,
    get_aggregator,
    init_aggregator,
)

__all__ = [
    "AggregatorConfig",
    "InvalidOutcomeError",
    "MetricsError",
    "RequestMetricsAggregator",
    "StoreDataError",
    "StoreUnavailableError",
    "get_aggregator",
    "init_aggregator",
]
