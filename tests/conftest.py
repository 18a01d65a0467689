"""
Pytest configuration for devstats.

Provides fixtures for:
- Settings pointed at a temporary data directory
- A fixed interval start used across scenarios
- Store factories for both backends, closed after each test
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Generator, List, Type

import pytest

from devstats.config import Settings, get_settings
from devstats.storage import AbstractTypedStore, FlatFileStore, RelationalStore

BACKENDS = ["file", "sqlite"]


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Keep cached settings from leaking env overrides between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """
    Settings fixture with a throwaway data directory.
    """
    return Settings(
        data_dir=tmp_path,
        db_filename="raw.db",
        anon_db_filename="anon.db",
        store_backend="sqlite",
        interval_minutes=10,
        log_level="DEBUG",
    )


@pytest.fixture
def nine_am() -> datetime:
    """Start of the reference ten-minute bucket."""
    return datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store_path(tmp_path: Path) -> Callable[[str, Type], Path]:
    """Backend-appropriate resource path for a record type."""

    def _path(backend: str, record_type: Type) -> Path:
        if backend == "file":
            return tmp_path / f"{record_type.resource_name()}.json"
        return tmp_path / "devstats.db"

    return _path


@pytest.fixture(params=BACKENDS)
def backend(request: pytest.FixtureRequest) -> str:
    return request.param


@pytest.fixture
def open_test_store(
    backend: str, store_path: Callable[[str, Type], Path]
) -> Generator[Callable[[Type], AbstractTypedStore], None, None]:
    """
    Open stores on the parametrized backend; every store opened is closed
    at teardown.
    """
    opened: List[AbstractTypedStore] = []

    def _open(record_type: Type) -> AbstractTypedStore:
        path = store_path(backend, record_type)
        if backend == "file":
            store: AbstractTypedStore = FlatFileStore(record_type, path)
        else:
            store = RelationalStore(record_type, path)
        opened.append(store)
        return store

    yield _open

    for store in opened:
        store.close()
