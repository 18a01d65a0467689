"""
Relational store: one SQLite table per record type.

The table layout comes from the record type's column descriptors and is
created once at construction (``id`` identity column first, then one column
per persisted field in declaration order). There are no migrations: a table
left behind by an older record shape is attached as-is.

Columns that exist in the table but match no field are handled by the
``strict`` flag: strict stores raise ``RecordDecodeError``, lenient stores
skip the column, log it once and count it in ``skipped_columns``.
"""

from __future__ import annotations

import sqlite3
import threading
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence, Type

from pydantic import ValidationError

from devstats.domain.records import format_timestamp
from devstats.errors import RecordDecodeError, StoreConfigurationError, StoreError
from devstats.storage.abstract import AbstractTypedStore, T
from devstats.utils.logging import get_logger

log = get_logger(__name__)

IDENTITY_COLUMN = "id"
MEMORY_DB = ":memory:"


class RelationalStore(AbstractTypedStore[T]):
    """
    SQLite-backed append-only store for one record type.

    Parameters
    ----------
    record_type : type
        Record class mapped onto the table.
    db_path : Path | str
        Database file, shared by every record type stored in it. ``:memory:``
        gives a private in-memory database.
    strict : bool
        Whether unmatched table columns fail reads instead of being skipped.
    """

    def __init__(self, record_type: Type[T], db_path: Path | str, strict: bool = False) -> None:
        super().__init__(record_type)
        self.db_path = str(db_path)
        self.strict = strict
        self.table = record_type.resource_name()
        self.columns = record_type.columns()
        self.timestamp_column = record_type.timestamp_column()
        self.skipped_columns: Counter[str] = Counter()
        self._skip_lock = threading.Lock()
        self._columns_by_name = {column.name: column for column in self.columns}

        names = ", ".join(column.name for column in self.columns)
        placeholders = ", ".join("?" for _ in self.columns)
        self._insert_sql = f"INSERT INTO {self.table} ({names}) VALUES ({placeholders})"

        if self.db_path != MEMORY_DB:
            path = Path(self.db_path)
            if path.is_dir():
                raise StoreConfigurationError(f"database path {path} is a directory")
            path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as exc:
            log.exception("Failed to open database", extra={"db_path": self.db_path})
            raise StoreError(f"failed to open database {self.db_path}: {exc}") from exc
        self._conn.row_factory = sqlite3.Row

        try:
            self._init_table()
        except sqlite3.Error as exc:
            log.exception("Failed to initialize table", extra={"table": self.table})
            self._conn.close()
            raise StoreError(f"failed to initialize table {self.table}: {exc}") from exc

        log.debug(
            "Opened relational store",
            extra={"db_path": self.db_path, "table": self.table, "columns": len(self.columns)},
        )

    def schema_sql(self) -> str:
        definitions = [f"{IDENTITY_COLUMN} INTEGER PRIMARY KEY AUTOINCREMENT"]
        definitions.extend(f"{column.name} {column.sql_type}" for column in self.columns)
        body = ",\n    ".join(definitions)
        return f"CREATE TABLE IF NOT EXISTS {self.table} (\n    {body}\n)"

    def _init_table(self) -> None:
        with self._conn:
            self._conn.execute(self.schema_sql())

    def _save(self, record: T) -> None:
        values = record.column_values()
        try:
            with self._conn:
                self._conn.execute(self._insert_sql, values)
        except sqlite3.Error as exc:
            log.exception("Failed to insert data", extra={"table": self.table})
            raise StoreError(f"failed to insert into {self.table}: {exc}") from exc
        log.debug("Saved record", extra={"table": self.table})

    def get_all(self, ordered: bool = False) -> List[T]:
        """
        Every stored record. Row order is whatever SQLite returns unless
        ``ordered`` is set, which sorts by timestamp and then insertion.
        """
        with self._lock.read_locked():
            self._ensure_open()
            return self._select(ordered=ordered)

    def _get_all(self) -> List[T]:
        return self._select()

    def _find_between(self, start: datetime, end: datetime) -> List[T]:
        where = f"WHERE {self.timestamp_column.name} BETWEEN ? AND ?"
        return self._select(where, (format_timestamp(start), format_timestamp(end)))

    def _select(self, where: str = "", params: Sequence[Any] = (), ordered: bool = False) -> List[T]:
        sql = f"SELECT * FROM {self.table}"
        if where:
            sql = f"{sql} {where}"
        if ordered:
            sql = f"{sql} ORDER BY {self.timestamp_column.name}, {IDENTITY_COLUMN}"
        try:
            rows = self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"failed to query {self.table}: {exc}") from exc
        return [self._to_record(row) for row in rows]

    def _to_record(self, row: sqlite3.Row) -> T:
        values: Dict[str, Any] = {}
        for name in row.keys():
            if name == IDENTITY_COLUMN:
                continue
            column = self._columns_by_name.get(name)
            if column is None:
                self._unmatched_column(name)
                continue
            values[column.field] = column.decode(row[name])
        try:
            return self.record_type.model_validate(values)
        except ValidationError as exc:
            raise RecordDecodeError(
                f"row in {self.table} is not a valid {self.record_type.__name__}: {exc}"
            ) from exc

    def _unmatched_column(self, name: str) -> None:
        if self.strict:
            raise RecordDecodeError(
                f"column '{name}' in {self.table} has no field on {self.record_type.__name__}"
            )
        with self._skip_lock:
            first = name not in self.skipped_columns
            self.skipped_columns[name] += 1
        if first:
            log.warning(
                "Skipping column with no matching field",
                extra={"table": self.table, "column": name},
            )

    def _close(self) -> None:
        self._conn.close()
        log.debug("Closed relational store", extra={"table": self.table})


__all__ = ["IDENTITY_COLUMN", "RelationalStore"]
