"""Property tests: no window ever admits more than its capacity.

The clock is driven in whole milliseconds and every admission is bucketed on a
grid computed here in integers, independently of what the limiter reports.
"""

from __future__ import annotations

from collections import Counter

from hypothesis import given, settings
from hypothesis import strategies as st

from CrptApi.errors import QuotaExceeded
from CrptApi.ratelimit import FixedWindowRateLimiter


class _Clock:
    def __init__(self) -> None:
        self.now_ms = 0

    def __call__(self) -> float:
        return self.now_ms / 1000


steps = st.lists(
    st.tuples(
        st.integers(min_value=0, max_value=3_000),  # clock advance in ms
        st.integers(min_value=0, max_value=6),  # acquire attempts
    ),
    min_size=1,
    max_size=40,
)


@settings(max_examples=300, deadline=None)
@given(
    capacity=st.integers(min_value=1, max_value=5),
    window_ms=st.integers(min_value=1, max_value=2_000),
    plan=steps,
)
def test_admissions_never_exceed_capacity_per_window(capacity, window_ms, plan) -> None:
    clock = _Clock()
    limiter = FixedWindowRateLimiter(capacity, window_ms / 1000, now=clock)
    admitted_at: list[int] = []
    per_bucket: Counter = Counter()

    for advance_ms, attempts in plan:
        clock.now_ms += advance_ms
        bucket = clock.now_ms // window_ms
        for _ in range(attempts):
            try:
                acquisition = limiter.acquire(timeout=0)
            except QuotaExceeded:
                # A rejection only happens when this grid cell is full.
                assert per_bucket[bucket] == capacity
                continue
            per_bucket[bucket] += 1
            admitted_at.append(clock.now_ms)
            assert round(acquisition.window_start * 1000) == bucket * window_ms
            limiter.release(acquisition)

    assert all(count <= capacity for count in per_bucket.values())
    for start in {t - t % window_ms for t in admitted_at}:
        inside = [t for t in admitted_at if start <= t < start + window_ms]
        assert len(inside) <= capacity

    snap = limiter.snapshot()
    assert snap.granted_total == len(admitted_at)
    assert snap.in_flight == 0
    assert snap.waiting == 0


@given(k=st.integers(min_value=1, max_value=10_000), window_ms=st.integers(1, 1_000))
def test_boundary_reading_belongs_to_later_window(k, window_ms) -> None:
    clock = _Clock()
    limiter = FixedWindowRateLimiter(1, window_ms / 1000, now=clock)

    clock.now_ms = k * window_ms
    acquisition = limiter.acquire(timeout=0)

    assert round(acquisition.window_start * 1000) == k * window_ms
    assert limiter.snapshot().remaining == 0
