"""
Flat-file store: the whole collection as one pretty-printed JSON array.

Every save rewrites the file, so writes cost O(n) in the collection size.
That is fine for personal-scale logs and is not meant to scale further.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import List, Type

from pydantic import TypeAdapter, ValidationError

from devstats.errors import RecordDecodeError, StoreConfigurationError
from devstats.storage.abstract import AbstractTypedStore, T
from devstats.utils.logging import get_logger

log = get_logger(__name__)


class FlatFileStore(AbstractTypedStore[T]):
    """
    Keep records in memory and mirror them to a JSON file.

    Records come back from ``get_all`` in insertion order. The file is only
    created by the first ``save``.
    """

    def __init__(self, record_type: Type[T], path: Path | str) -> None:
        super().__init__(record_type)
        self.path = Path(path)
        if self.path.is_dir():
            raise StoreConfigurationError(f"store path {self.path} is a directory")
        self._records: List[T] = self._load()
        log.debug(
            "Opened flat-file store",
            extra={"path": str(self.path), "records": len(self._records)},
        )

    def _load(self) -> List[T]:
        if not self.path.exists():
            return []
        raw = self.path.read_text(encoding="utf-8")
        try:
            return list(TypeAdapter(List[self.record_type]).validate_json(raw))
        except ValidationError as exc:
            raise RecordDecodeError(
                f"cannot decode {self.record_type.__name__} records from {self.path}: {exc}"
            ) from exc

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [record.model_dump(mode="json", by_alias=True) for record in self._records]
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, self.path)

    def _save(self, record: T) -> None:
        self._records.append(record)
        try:
            self._persist()
        except Exception:
            self._records.pop()
            log.exception("Failed to write flat-file store", extra={"path": str(self.path)})
            raise
        log.debug("Saved record", extra={"path": str(self.path), "records": len(self._records)})

    def _get_all(self) -> List[T]:
        return list(self._records)

    def _find_between(self, start: datetime, end: datetime) -> List[T]:
        return [record for record in self._records if start <= record.get_timestamp() <= end]


__all__ = ["FlatFileStore"]
