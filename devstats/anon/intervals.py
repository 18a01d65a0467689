"""
Aligned time windows for aggregation.

Windows are multiples of the interval size counted from the Unix epoch in
UTC, so every caller that uses the same size lands on the same buckets.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterator, Tuple

from devstats.domain.records import ensure_utc

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Timestamps are stored with microsecond precision. Windows end one tick
# before the next one starts so inclusive range queries never overlap.
RESOLUTION = timedelta(microseconds=1)

Window = Tuple[datetime, datetime]


class AggregationConfigError(ValueError):
    """Invalid aggregation settings, such as a zero interval size."""


def _check_size(size: timedelta) -> None:
    if size <= timedelta(0):
        raise AggregationConfigError(f"interval size must be greater than 0, got {size}")


def floor_to_interval(moment: datetime, size: timedelta) -> datetime:
    """Start of the aligned window containing ``moment``."""
    _check_size(size)
    moment = ensure_utc(moment)
    return moment - (moment - EPOCH) % size


def previous_window(now: datetime, size: timedelta) -> Window:
    """The most recent window that has fully elapsed at ``now``."""
    next_start = floor_to_interval(now, size)
    return next_start - size, next_start - RESOLUTION


def iter_windows(start: datetime, end: datetime, size: timedelta) -> Iterator[Window]:
    """
    Aligned windows covering ``[start, end)``, oldest first.

    The first window starts at ``start`` rounded down; the last one is the
    window containing the instant just before ``end``.
    """
    current = floor_to_interval(start, size)
    end = ensure_utc(end)
    while current < end:
        yield current, current + size - RESOLUTION
        current += size


__all__ = [
    "AggregationConfigError",
    "EPOCH",
    "RESOLUTION",
    "Window",
    "floor_to_interval",
    "iter_windows",
    "previous_window",
]
