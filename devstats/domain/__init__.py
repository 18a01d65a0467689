"""
Domain package for devstats.

Exports the record base model and the concrete telemetry record types.
Keep this package focused on data definitions and their reductions.
"""

from devstats.domain.filechange import FileChangeAnonymousStats, FileChangeData
from devstats.domain.keypress import KeypressAnonymousStats, KeypressData
from devstats.domain.records import Column, TelemetryRecord, Timestamp

__all__ = [
    "Column",
    "FileChangeAnonymousStats",
    "FileChangeData",
    "KeypressAnonymousStats",
    "KeypressData",
    "TelemetryRecord",
    "Timestamp",
]
