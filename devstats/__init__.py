"""
devstats - typed telemetry storage with interval anonymization.

Producers append small timestamped records (keystrokes, file changes) to a
typed store; an aggregation service later reduces each fixed time window into
anonymized summaries stored alongside. Two store backends are provided:

- a flat JSON file holding the whole collection
- a SQLite table whose schema is derived from the record model
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from devstats.anon import (
    AggregationConfig,
    AggregationConfigError,
    AggregationError,
    AggregationService,
    PartialAggregationError,
    previous_window,
)
from devstats.config import Settings, get_settings
from devstats.domain import (
    Column,
    FileChangeAnonymousStats,
    FileChangeData,
    KeypressAnonymousStats,
    KeypressData,
    TelemetryRecord,
    Timestamp,
)
from devstats.errors import (
    CoercionError,
    RecordDecodeError,
    StoreClosedError,
    StoreConfigurationError,
    StoreError,
)
from devstats.storage import FlatFileStore, RelationalStore, TypedStore, open_store
from devstats.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Records
    "Column",
    "TelemetryRecord",
    "Timestamp",
    "FileChangeAnonymousStats",
    "FileChangeData",
    "KeypressAnonymousStats",
    "KeypressData",
    # Stores
    "TypedStore",
    "FlatFileStore",
    "RelationalStore",
    "open_store",
    # Aggregation
    "AggregationConfig",
    "AggregationService",
    "previous_window",
    # Errors
    "AggregationConfigError",
    "AggregationError",
    "CoercionError",
    "PartialAggregationError",
    "RecordDecodeError",
    "StoreClosedError",
    "StoreConfigurationError",
    "StoreError",
    # Logging
    "configure_logging",
    "get_logger",
]
