"""
Anonymization package for devstats.

Exports the aggregation service and the window helpers used to pick
intervals for it.
"""

from devstats.anon.intervals import (
    AggregationConfigError,
    floor_to_interval,
    iter_windows,
    previous_window,
)
from devstats.anon.service import (
    AggregationConfig,
    AggregationError,
    AggregationService,
    PartialAggregationError,
)

__all__ = [
    "AggregationConfig",
    "AggregationConfigError",
    "AggregationError",
    "AggregationService",
    "PartialAggregationError",
    "floor_to_interval",
    "iter_windows",
    "previous_window",
]
