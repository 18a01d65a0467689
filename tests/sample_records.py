"""Record types used only by the test-suite."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, List, Optional, Sequence

from pydantic import Field

from devstats.domain.records import TelemetryRecord, Timestamp


class SampleEvent(TelemetryRecord):
    """Covers every default column mapping plus a field that is not stored."""

    name: str
    count: int
    ratio: float
    active: bool
    timestamp: Timestamp
    seen_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    scratch: str = Field("", exclude=True)


class SampleSummary(TelemetryRecord):
    table_name: ClassVar[str] = "sample_summaries"

    timestamp: Timestamp
    total: int


class BadTableName(TelemetryRecord):
    table_name: ClassVar[str] = "events; DROP TABLE x"

    timestamp: Timestamp


class MistypedOverride(TelemetryRecord):
    """A text field forced into an INTEGER column."""

    label: str = Field(..., json_schema_extra={"sql": "INTEGER"})
    timestamp: Timestamp


def summarize(records: Sequence[SampleEvent], interval_start: datetime) -> List[SampleSummary]:
    return [SampleSummary(timestamp=interval_start, total=sum(r.count for r in records))]


class TextStamped(TelemetryRecord):
    """Timestamp kept in a TEXT column instead of DATETIME."""

    key: str
    timestamp: Timestamp = Field(..., json_schema_extra={"sql": "TEXT NOT NULL"})


class Priced(TelemetryRecord):
    """Parameterized column types."""

    sku: str = Field(..., json_schema_extra={"sql": "VARCHAR(32) NOT NULL"})
    price: float = Field(..., json_schema_extra={"sql": "NUMERIC(10,2)"})
    quantity: int = Field(..., json_schema_extra={"sql": "BIGINT"})
    timestamp: Timestamp


class PlainStamped(TelemetryRecord):
    """Timestamp annotated as a bare datetime."""

    key: str
    timestamp: datetime
