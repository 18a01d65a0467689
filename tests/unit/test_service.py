"""Aggregation service behaviour against in-memory stores."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Type

import pytest

from devstats.anon import (
    AggregationConfig,
    AggregationConfigError,
    AggregationError,
    AggregationService,
    PartialAggregationError,
)
from devstats.domain import (
    FileChangeAnonymousStats,
    FileChangeData,
    KeypressAnonymousStats,
    KeypressData,
)
from devstats.errors import StoreError
from devstats.storage import RelationalStore, TypedStore
from sample_records import SampleEvent, SampleSummary, summarize

NINE_AM = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)
TEN_MINUTES = AggregationConfig(interval_size=timedelta(minutes=10))


class _ListStore:
    """Minimal TypedStore kept in a list; can be told to fail on save."""

    def __init__(self, record_type: Type, fail_on_save: int | None = None) -> None:
        self.record_type = record_type
        self.records: List = []
        self.fail_on_save = fail_on_save
        self.save_calls = 0

    def save(self, record) -> None:
        self.save_calls += 1
        if self.fail_on_save is not None and self.save_calls >= self.fail_on_save:
            raise StoreError("disk full")
        self.records.append(record)

    def get_all(self) -> List:
        return list(self.records)

    def find_between(self, start: datetime, end: datetime) -> List:
        return [r for r in self.records if start <= r.get_timestamp() <= end]

    def close(self) -> None:
        pass


def _at(minutes: float) -> datetime:
    return NINE_AM + timedelta(minutes=minutes)


class TestConstruction:
    @pytest.mark.parametrize("size", [timedelta(0), timedelta(seconds=-1)])
    def test_non_positive_interval_rejected(self, size: timedelta):
        with pytest.raises(AggregationConfigError):
            AggregationService(
                _ListStore(KeypressData),
                _ListStore(KeypressAnonymousStats),
                AggregationConfig(interval_size=size),
            )

    def test_list_store_satisfies_protocol(self):
        assert isinstance(_ListStore(KeypressData), TypedStore)

    def test_default_reducer_is_source_anonymize(self):
        service = AggregationService(
            _ListStore(KeypressData), _ListStore(KeypressAnonymousStats), TEN_MINUTES
        )
        assert service.reducer == KeypressData.anonymize
        assert service.interval_size == timedelta(minutes=10)

    def test_source_without_anonymization_needs_a_reducer(self):
        with pytest.raises(AggregationConfigError, match="KeypressAnonymousStats"):
            AggregationService(
                _ListStore(KeypressAnonymousStats), _ListStore(KeypressAnonymousStats), TEN_MINUTES
            )

    def test_explicit_reducer_covers_types_without_anonymization(self):
        service = AggregationService(
            _ListStore(SampleEvent), _ListStore(SampleSummary), TEN_MINUTES, reducer=summarize
        )
        assert service.reducer is summarize


class TestProcessInterval:
    def test_empty_interval_is_a_noop(self):
        target = _ListStore(KeypressAnonymousStats)
        service = AggregationService(_ListStore(KeypressData), target, TEN_MINUTES)

        assert service.process_interval(NINE_AM, _at(10)) == 0
        assert target.save_calls == 0

    def test_aggregate_stamped_with_interval_start(self):
        source = _ListStore(KeypressData)
        for minute in (0.5, 4, 9.9):
            source.save(KeypressData(key="x", timestamp=_at(minute)))
        target = _ListStore(KeypressAnonymousStats)

        written = AggregationService(source, target, TEN_MINUTES).process_interval(NINE_AM, _at(10))

        assert written == 1
        assert target.records == [KeypressAnonymousStats(timestamp=NINE_AM, keypresses_count=3)]

    def test_records_outside_interval_are_excluded(self):
        source = _ListStore(FileChangeData)
        source.save(FileChangeData(filepath="/src/main.go", action="modified", timestamp=_at(1 / 60)))
        source.save(FileChangeData(filepath="/src/util.go", action="modified", timestamp=_at(3)))
        source.save(FileChangeData(filepath="/src/lib.rs", action="modified", timestamp=_at(11)))
        target = _ListStore(FileChangeAnonymousStats)

        AggregationService(source, target, TEN_MINUTES).process_interval(NINE_AM, _at(10))

        assert target.records == [
            FileChangeAnonymousStats(timestamp=NINE_AM, language="go", changes_count=2)
        ]

    def test_rerun_appends_a_second_aggregate(self):
        source = _ListStore(KeypressData)
        source.save(KeypressData(key="x", timestamp=_at(1)))
        target = _ListStore(KeypressAnonymousStats)
        service = AggregationService(source, target, TEN_MINUTES)

        service.process_interval(NINE_AM, _at(10))
        service.process_interval(NINE_AM, _at(10))

        assert len(target.records) == 2

    def test_custom_reducer(self):
        source = _ListStore(SampleEvent)
        for count in (2, 5):
            source.save(
                SampleEvent(name="e", count=count, ratio=1.0, active=True, timestamp=_at(count))
            )
        target = _ListStore(SampleSummary)

        AggregationService(source, target, TEN_MINUTES, reducer=summarize).process_interval(
            NINE_AM, _at(10)
        )

        assert target.records == [SampleSummary(timestamp=NINE_AM, total=7)]

    def test_reducer_failure_writes_nothing(self):
        source = _ListStore(KeypressData)
        source.save(KeypressData(key="x", timestamp=_at(1)))
        target = _ListStore(KeypressAnonymousStats)

        def broken(records, interval_start):
            raise ValueError("bad batch")

        service = AggregationService(source, target, TEN_MINUTES, reducer=broken)
        with pytest.raises(AggregationError) as excinfo:
            service.process_interval(NINE_AM, _at(10))

        assert not isinstance(excinfo.value, PartialAggregationError)
        assert isinstance(excinfo.value.__cause__, ValueError)
        assert target.records == []

    def test_partial_failure_keeps_saved_aggregates(self):
        source = _ListStore(FileChangeData)
        source.save(FileChangeData(filepath="a.go", action="opened", timestamp=_at(1)))
        source.save(FileChangeData(filepath="b.py", action="opened", timestamp=_at(2)))
        source.save(FileChangeData(filepath="c.rs", action="opened", timestamp=_at(3)))
        target = _ListStore(FileChangeAnonymousStats, fail_on_save=2)

        service = AggregationService(source, target, TEN_MINUTES)
        with pytest.raises(PartialAggregationError) as excinfo:
            service.process_interval(NINE_AM, _at(10))

        assert excinfo.value.saved == 1
        assert excinfo.value.produced == 3
        assert isinstance(excinfo.value.__cause__, StoreError)
        assert [r.language for r in target.records] == ["go"]
        assert target.save_calls == 2

    def test_source_store_errors_propagate_unchanged(self):
        source = RelationalStore(KeypressData, ":memory:")
        source.close()
        service = AggregationService(source, _ListStore(KeypressAnonymousStats), TEN_MINUTES)

        with pytest.raises(StoreError):
            service.process_interval(NINE_AM, _at(10))
