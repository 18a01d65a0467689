"""Keystroke records and their per-interval count."""
from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Sequence

from pydantic import Field

from devstats.domain.records import TelemetryRecord, Timestamp


class KeypressAnonymousStats(TelemetryRecord):
    """How many keys were pressed in one interval; never which ones."""

    table_name: ClassVar[str] = "keypresses_anonymous"

    timestamp: Timestamp = Field(..., json_schema_extra={"sql": "DATETIME NOT NULL"})
    keypresses_count: int = Field(..., ge=0, json_schema_extra={"sql": "INTEGER NOT NULL"})


class KeypressData(TelemetryRecord):
    """A single captured keystroke."""

    table_name: ClassVar[str] = "keypresses"

    key: str = Field(..., json_schema_extra={"sql": "TEXT NOT NULL"})
    timestamp: Timestamp = Field(..., json_schema_extra={"sql": "DATETIME NOT NULL"})

    @classmethod
    def anonymize(
        cls, records: Sequence[KeypressData], interval_start: datetime
    ) -> list[KeypressAnonymousStats]:
        return [KeypressAnonymousStats(timestamp=interval_start, keypresses_count=len(records))]


__all__ = ["KeypressAnonymousStats", "KeypressData"]
