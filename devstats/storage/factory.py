"""
Store construction from settings.

Raw telemetry and anonymized aggregates live in separate databases (or
separate JSON files) so the raw side can be wiped without losing summaries.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Type

from devstats.config import Settings, get_settings
from devstats.errors import StoreConfigurationError
from devstats.storage.abstract import AbstractTypedStore, T
from devstats.storage.file_store import FlatFileStore
from devstats.storage.sqlite_store import RelationalStore


def _file_factory(record_type: Type[T], settings: Settings, anon: bool) -> AbstractTypedStore[T]:
    del anon  # one file per record type already keeps aggregates apart
    return FlatFileStore(record_type, settings.data_dir / f"{record_type.resource_name()}.json")


def _sqlite_factory(record_type: Type[T], settings: Settings, anon: bool) -> AbstractTypedStore[T]:
    db_path = settings.anon_db_path if anon else settings.db_path
    return RelationalStore(record_type, db_path, strict=settings.strict_reads)


def _store_factories() -> Dict[str, Callable[[Type[T], Settings, bool], AbstractTypedStore[T]]]:
    """Registry of available backends."""
    return {
        "file": _file_factory,
        "sqlite": _sqlite_factory,
    }


def available_backends() -> List[str]:
    return sorted(_store_factories().keys())


def open_store(
    record_type: Type[T],
    backend: Optional[str] = None,
    settings: Optional[Settings] = None,
    anon: bool = False,
) -> AbstractTypedStore[T]:
    """
    Open the store for ``record_type`` on the configured backend.

    Parameters
    ----------
    record_type : type
        Record class to bind the store to.
    backend : str | None
        ``"sqlite"`` or ``"file"``. Defaults to ``settings.store_backend``.
    settings : Settings | None
        Defaults to the cached process settings.
    anon : bool
        Whether the store holds anonymized aggregates.
    """
    settings = settings or get_settings()
    name = backend or settings.store_backend
    factories = _store_factories()
    if name not in factories:
        raise StoreConfigurationError(
            f"Unknown store backend '{name}'. Available: {', '.join(available_backends())}"
        )
    return factories[name](record_type, settings, anon)


__all__ = ["available_backends", "open_store"]
