"""
File-change records and their per-language aggregate.

Aggregates keep only the language of the touched file and a count, so the
anonymized table never contains paths.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from pathlib import PurePath
from typing import ClassVar, Literal, Sequence

from pydantic import Field

from devstats.domain.records import TelemetryRecord, Timestamp

FileAction = Literal["opened", "modified", "closed"]

LANGUAGES_BY_EXTENSION = {
    ".go": "go",
    ".rs": "rust",
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".java": "java",
    ".rb": "ruby",
    ".md": "markdown",
}


def language_of(filepath: str) -> str:
    suffix = PurePath(filepath).suffix.lower()
    if not suffix:
        return "other"
    return LANGUAGES_BY_EXTENSION.get(suffix, suffix.lstrip("."))


class FileChangeAnonymousStats(TelemetryRecord):
    table_name: ClassVar[str] = "filechanges_anonymous"

    timestamp: Timestamp = Field(..., json_schema_extra={"sql": "DATETIME NOT NULL"})
    language: str = Field(..., json_schema_extra={"sql": "TEXT NOT NULL"})
    changes_count: int = Field(..., ge=0, json_schema_extra={"sql": "INTEGER NOT NULL"})


class FileChangeData(TelemetryRecord):
    """A filesystem event on a watched path."""

    table_name: ClassVar[str] = "filechanges"

    filepath: str
    action: FileAction
    timestamp: Timestamp

    @classmethod
    def anonymize(
        cls, records: Sequence[FileChangeData], interval_start: datetime
    ) -> list[FileChangeAnonymousStats]:
        counts = Counter(language_of(record.filepath) for record in records)
        return [
            FileChangeAnonymousStats(timestamp=interval_start, language=language, changes_count=count)
            for language, count in sorted(counts.items())
        ]


__all__ = [
    "FileAction",
    "FileChangeAnonymousStats",
    "FileChangeData",
    "LANGUAGES_BY_EXTENSION",
    "language_of",
]
