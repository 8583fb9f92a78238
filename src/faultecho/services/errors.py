"""Metrics error taxonomy."""


class MetricsError(Exception):
    """Base exception for metrics errors."""


class InvalidOutcomeError(MetricsError, ValueError):
    """Raised when an ingest/query argument is malformed; the store is never touched."""


class StoreUnavailableError(MetricsError):
    """Raised when the backing key-value store cannot be reached or times out."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Metrics store unavailable during {operation}{detail}")


class StoreDataError(MetricsError):
    """Raised when the store rejects a command because a key holds unexpected data."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Metrics store rejected {operation}{detail}")
