"""
Storage package for devstats.

Re-exports the store contract and both implementations so callers can import
from `devstats.storage` directly.
"""

from devstats.storage.abstract import AbstractTypedStore, TypedStore
from devstats.storage.factory import available_backends, open_store
from devstats.storage.file_store import FlatFileStore
from devstats.storage.locks import ReadWriteLock
from devstats.storage.sqlite_store import RelationalStore

__all__ = [
    # Contract
    "AbstractTypedStore",
    "TypedStore",
    # Implementations
    "FlatFileStore",
    "RelationalStore",
    # Helpers
    "ReadWriteLock",
    "available_backends",
    "open_store",
]
