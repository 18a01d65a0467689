"""
Typed store contract for devstats.

Concrete stores (flat JSON file, SQLite table) implement the TypedStore
protocol. AbstractTypedStore carries what both share: the bound record type,
the per-instance reader/writer lock, the closed flag and argument checks.
"""

from __future__ import annotations

import abc
from datetime import datetime
from types import TracebackType
from typing import Generic, List, Optional, Protocol, Type, TypeVar, runtime_checkable

from devstats.domain.records import TelemetryRecord, ensure_utc
from devstats.errors import StoreClosedError
from devstats.storage.locks import ReadWriteLock

T = TypeVar("T", bound=TelemetryRecord)
StoreT = TypeVar("StoreT", bound="AbstractTypedStore")


@runtime_checkable
class TypedStore(Protocol[T]):
    """
    Append-only persistence for one record type.

    Attributes
    ----------
    record_type : type
        The record class every stored value is an instance of.
    """

    record_type: Type[T]

    def save(self, record: T) -> None:
        """Append one record. Concurrent calls are serialized."""
        ...

    def get_all(self) -> List[T]:
        """Snapshot of every stored record."""
        ...

    def find_between(self, start: datetime, end: datetime) -> List[T]:
        """Records with ``start <= timestamp <= end``."""
        ...

    def close(self) -> None:
        ...


class AbstractTypedStore(abc.ABC, Generic[T]):
    """
    ABC helper for store implementations.

    Subclasses implement the ``_save``/``_get_all``/``_find_between``/``_close``
    hooks; the public methods take the lock and reject use after close.
    """

    def __init__(self, record_type: Type[T]) -> None:
        if not (isinstance(record_type, type) and issubclass(record_type, TelemetryRecord)):
            raise TypeError(f"record_type must be a TelemetryRecord subclass, got {record_type!r}")
        self.record_type = record_type
        self._lock = ReadWriteLock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError(f"{type(self).__name__} for {self.record_type.__name__} is closed")

    def save(self, record: T) -> None:
        if not isinstance(record, self.record_type):
            raise TypeError(
                f"{type(self).__name__} stores {self.record_type.__name__}, "
                f"got {type(record).__name__}"
            )
        with self._lock.write_locked():
            self._ensure_open()
            self._save(record)

    def get_all(self) -> List[T]:
        with self._lock.read_locked():
            self._ensure_open()
            return self._get_all()

    def find_between(self, start: datetime, end: datetime) -> List[T]:
        with self._lock.read_locked():
            self._ensure_open()
            return self._find_between(ensure_utc(start), ensure_utc(end))

    def close(self) -> None:
        with self._lock.write_locked():
            if self._closed:
                return
            self._closed = True
            self._close()

    def __enter__(self: StoreT) -> StoreT:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    @abc.abstractmethod
    def _save(self, record: T) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def _get_all(self) -> List[T]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def _find_between(self, start: datetime, end: datetime) -> List[T]:  # pragma: no cover
        raise NotImplementedError

    def _close(self) -> None:
        """Release the backing resource. Called once, under the write lock."""


__all__ = [
    "AbstractTypedStore",
    "TypedStore",
]
