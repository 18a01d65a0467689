"""
Interval anonymization: reduce raw records into aggregate records.

Usage:
    service = AggregationService(
        keypress_store,
        keypress_anon_store,
        AggregationConfig(interval_size=timedelta(minutes=10)),
    )
    service.process_interval(start, end)

The service does not schedule itself and does not serialize its own calls;
whoever triggers it must not run overlapping intervals for the same pair of
stores. Storage is append-only, so processing an interval twice writes a
second set of aggregates.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from devstats.anon.intervals import AggregationConfigError
from devstats.domain.records import TelemetryRecord, ensure_utc
from devstats.storage.abstract import TypedStore
from devstats.utils.logging import get_logger

log = get_logger(__name__)

S = TypeVar("S", bound=TelemetryRecord)
R = TypeVar("R", bound=TelemetryRecord)

Reducer = Callable[[Sequence[S], datetime], Sequence[R]]


class AggregationError(RuntimeError):
    """The reduction step failed; nothing was written for the interval."""


class PartialAggregationError(AggregationError):
    """
    A save failed after some aggregates were already written.

    Written aggregates stay in the target store. Re-running the interval
    writes them again.
    """

    def __init__(self, message: str, saved: int, produced: int) -> None:
        super().__init__(message)
        self.saved = saved
        self.produced = produced


class AggregationConfig(BaseModel):
    """Aggregation cadence. The size documents the expected window length."""

    interval_size: timedelta

    model_config = {"frozen": True}


class AggregationService(Generic[S, R]):
    """
    Reduce one source store into one target store, one interval at a time.

    Parameters
    ----------
    source_store : TypedStore
        Store holding raw records.
    target_store : TypedStore
        Store receiving aggregates.
    config : AggregationConfig
        Must carry a positive interval size.
    reducer : callable, optional
        ``(records, interval_start) -> aggregates``. Defaults to the source
        record type's ``anonymize``; required when that type defines none.
    """

    def __init__(
        self,
        source_store: TypedStore[S],
        target_store: TypedStore[R],
        config: AggregationConfig,
        reducer: Optional[Reducer[S, R]] = None,
    ) -> None:
        if config.interval_size <= timedelta(0):
            raise AggregationConfigError(
                f"interval size must be greater than 0, got {config.interval_size}"
            )
        source_type = source_store.record_type
        if reducer is None and not source_type.has_anonymization():
            raise AggregationConfigError(
                f"{source_type.__name__} defines no anonymization; pass a reducer"
            )
        self.source_store = source_store
        self.target_store = target_store
        self.config = config
        self.reducer: Reducer[S, R] = reducer or source_type.anonymize

    @property
    def interval_size(self) -> timedelta:
        return self.config.interval_size

    def process_interval(self, start: datetime, end: datetime) -> int:
        """
        Aggregate records stamped within ``[start, end]``.

        Returns the number of aggregates written. Aggregates are stamped with
        ``start``. An interval without source records writes nothing.
        """
        start, end = ensure_utc(start), ensure_utc(end)
        source = self.source_store.record_type.__name__
        target = self.target_store.record_type.__name__

        records = self.source_store.find_between(start, end)
        if not records:
            log.debug(
                "No records in interval",
                extra={"source": source, "start": start.isoformat(), "end": end.isoformat()},
            )
            return 0

        try:
            aggregates: List[R] = list(self.reducer(records, start))
        except Exception as exc:
            log.exception("Failed to anonymize records", extra={"source": source})
            raise AggregationError(f"failed to anonymize {source} records: {exc}") from exc

        saved = 0
        for aggregate in aggregates:
            try:
                self.target_store.save(aggregate)
            except Exception as exc:
                log.error(
                    "Failed to save anonymized data",
                    extra={"target": target, "saved": saved, "produced": len(aggregates)},
                )
                raise PartialAggregationError(
                    f"failed to save anonymized {target} ({saved}/{len(aggregates)} saved): {exc}",
                    saved=saved,
                    produced=len(aggregates),
                ) from exc
            saved += 1

        log.info(
            "Interval anonymized",
            extra={
                "source": source,
                "target": target,
                "start": start.isoformat(),
                "end": end.isoformat(),
                "records": len(records),
                "aggregates": saved,
            },
        )
        return saved


__all__ = [
    "AggregationConfig",
    "AggregationError",
    "AggregationService",
    "PartialAggregationError",
    "Reducer",
]
