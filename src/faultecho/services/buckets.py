"""Fixed-width time bucket arithmetic."""

from dataclasses import dataclass
from datetime import UTC, datetime

BUCKET_ID_FORMAT = "%Y%m%dT%H%M%S"


@dataclass(frozen=True)
class BucketClock:
    """Maps millisecond timestamps onto aligned buckets of ``width_seconds``."""

    width_seconds: int

    def __post_init__(self) -> None:
        if self.width_seconds < 1:
            raise ValueError("bucket width must be at least one second")

    @property
    def width_ms(self) -> int:
        return self.width_seconds * 1000

    def bucket_start(self, timestamp_ms: int) -> int:
        return timestamp_ms - (timestamp_ms % self.width_ms)

    def bucket_id(self, timestamp_ms: int) -> str:
        """UTC calendar id of the containing bucket, second resolution."""
        start = self.bucket_start(timestamp_ms)
        return datetime.fromtimestamp(start / 1000, UTC).strftime(BUCKET_ID_FORMAT)

    def slots(self, now_ms: int, count: int) -> list[int]:
        """Bucket starts of the ``count`` most recent buckets, oldest first."""
        current = self.bucket_start(now_ms)
        return [current - (count - 1 - i) * self.width_ms for i in range(count)]
