from __future__ import annotations

import pytest
from _fixtures.time import utc_ms

from faultecho.services.buckets import BucketClock


def test_bucket_start_aligns_down_to_width() -> None:
    clock = BucketClock(15)
    base = utc_ms(2026, 3, 1, 12, 0, 0)

    assert clock.bucket_start(base) == base
    assert clock.bucket_start(base + 14_999) == base
    assert clock.bucket_start(base + 15_000) == base + 15_000


def test_timestamps_in_same_bucket_share_an_id() -> None:
    clock = BucketClock(15)
    base = utc_ms(2026, 3, 1, 12, 0, 30)

    ids = {clock.bucket_id(base + offset) for offset in (0, 1, 7_500, 14_999)}

    assert ids == {"20260301T120030"}


def test_distinct_buckets_get_distinct_ids_over_a_day() -> None:
    clock = BucketClock(15)
    start = utc_ms(2026, 3, 1)
    starts = [start + i * clock.width_ms for i in range(24 * 60 * 4)]

    ids = [clock.bucket_id(value) for value in starts]

    assert len(set(ids)) == len(ids)


def test_slots_are_oldest_first_and_end_at_current_bucket() -> None:
    clock = BucketClock(15)
    now = utc_ms(2026, 3, 1, 12, 5, 7)

    slots = clock.slots(now, 20)

    assert len(slots) == 20
    assert slots[-1] == utc_ms(2026, 3, 1, 12, 5, 0)
    assert slots[0] == slots[-1] - 19 * 15_000
    assert all(b - a == 15_000 for a, b in zip(slots, slots[1:], strict=False))


def test_width_must_be_positive() -> None:
    with pytest.raises(ValueError, match="at least one second"):
        BucketClock(0)
