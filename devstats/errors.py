"""
Exceptions raised by typed record stores.

Configuration problems surface at construction and are never retried.
Decoding and coercion problems fail the single operation that hit them.
Plain file I/O failures are not wrapped and reach callers as ``OSError``.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every store failure."""


class StoreConfigurationError(StoreError, ValueError):
    """Malformed path, invalid table name or unknown backend."""


class StoreClosedError(StoreError):
    """Operation attempted on a store after ``close()``."""


class RecordDecodeError(StoreError):
    """Persisted data could not be turned back into records."""


class CoercionError(StoreError, TypeError):
    """A field value does not fit its declared storage type."""

    def __init__(self, column: str, sql_type: str, value: object) -> None:
        self.column = column
        self.sql_type = sql_type
        self.value = value
        super().__init__(
            f"cannot coerce {type(value).__name__} value {value!r} "
            f"for column '{column}' declared {sql_type}"
        )


__all__ = [
    "CoercionError",
    "RecordDecodeError",
    "StoreClosedError",
    "StoreConfigurationError",
    "StoreError",
]
