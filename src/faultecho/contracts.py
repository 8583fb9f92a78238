"""Wire and storage contracts.

JSON payloads use camelCase keys (``statusCode``, ``lastMinuteRequests``...);
Python attributes stay snake_case.
"""

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequestOutcome(_CamelModel):
    """What the fault injector observed for one request."""

    method: str = Field(min_length=1)
    status_code: int = Field(ge=100, le=599)
    success: bool
    latency_millis: float = Field(ge=0)
    path: str
    timestamp: int | None = Field(default=None, ge=0)

    @field_validator("latency_millis")
    @classmethod
    def _finite_latency(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("latency must be finite")
        return value


class RequestRecord(_CamelModel):
    """One stored entry of the rolling request log."""

    model_config = ConfigDict(frozen=True)

    id: str
    method: str
    status_code: int
    success: bool
    latency_millis: float = Field(ge=0)
    timestamp: int = Field(ge=0)
    path: str


class SeriesPoint(_CamelModel):
    """Request counts for one fixed-width time bucket."""

    model_config = ConfigDict(frozen=True)

    bucket_start: int
    total: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _failures_within_total(self) -> "SeriesPoint":
        if self.failures > self.total:
            raise ValueError("bucket failures cannot exceed total")
        return self


class MetricsStats(_CamelModel):
    model_config = ConfigDict(frozen=True)

    total_requests: int = 0
    last_minute_requests: int = 0
    last_minute_failures: int = 0
    last_minute_failure_rate: float = 0.0
    average_latency_ms: float = 0.0


class MetricsSnapshot(_CamelModel):
    """Read-side metrics view for one namespace."""

    model_config = ConfigDict(frozen=True)

    stats: MetricsStats = Field(default_factory=MetricsStats)
    recent_requests: list[RequestRecord] = Field(default_factory=list)
    series: list[SeriesPoint] = Field(default_factory=list)


class EchoConfig(_CamelModel):
    """Fault-injection knobs applied to every echo request."""

    delay: float = Field(default=0.0, ge=0)
    failure_rate: float = Field(default=0.0, ge=0, le=100)


class EchoConfigUpdate(_CamelModel):
    """Partial config update; omitted fields keep their current value."""

    model_config = ConfigDict(extra="ignore")

    delay: float | None = None
    failure_rate: float | None = None

    @field_validator("delay", "failure_rate", mode="before")
    @classmethod
    def _require_number(cls, value: object) -> object:
        # JSON booleans decode to bool, which is an int subclass.
        if value is None:
            return value
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ValueError("must be a number")
        if not math.isfinite(value):
            raise ValueError("must be finite")
        return value

    @field_validator("delay")
    @classmethod
    def _non_negative_delay(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError("must be non-negative")
        return value

    @field_validator("failure_rate")
    @classmethod
    def _percentage(cls, value: float | None) -> float | None:
        if value is not None and not 0 <= value <= 100:
            raise ValueError("must be between 0 and 100")
        return value


class EchoResponse(_CamelModel):
    message: str = "Echo response"
    timestamp: str
    config: EchoConfig


class EchoQueryResponse(EchoResponse):
    query_params: dict[str, str] = Field(default_factory=dict)


class EchoBodyResponse(EchoResponse):
    body: Any = None


class ResetResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str


class DependencyHealth(BaseModel):
    status: Literal["ok", "error", "skipped"]
    detail: str | None = None


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    version: str
    store_backend: Literal["redis", "memory", "none"]
    store: DependencyHealth


__all__ = [
    "DependencyHealth",
    "EchoConfig",
    "EchoBodyResponse",
    "EchoConfigUpdate",
    "EchoQueryResponse",
    "EchoResponse",
    "ErrorResponse",
    "HealthResponse",
    "MetricsSnapshot",
    "MetricsStats",
    "RequestOutcome",
    "RequestRecord",
    "ResetResponse",
    "SeriesPoint",
]
