"""Tests del Aggregator."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from telemetry_ingest.aggregation.aggregator import Aggregator
from telemetry_ingest.core.domain.aggregate import AggregateBucket, Granularity
from telemetry_ingest.core.domain.errors import AggregationRunFailure

from tests.conftest import reading

UTC = timezone.utc
BASE = datetime(2026, 3, 4, 12, 0, tzinfo=UTC)


@pytest.fixture
def aggregator(reading_store, aggregate_store) -> Aggregator:
    return Aggregator(reading_store, aggregate_store)


def _seed(store, device_id, temps, start=BASE, step=timedelta(seconds=20)):
    for i, temp in enumerate(temps):
        store.save_if_changed(reading(temp, at=start + i * step, device_id=device_id))


def _all_buckets(aggregate_store, device_id, granularity):
    return aggregate_store.list_buckets(
        device_id, granularity, BASE - timedelta(days=1), BASE + timedelta(days=1),
        newest_first=False,
    )


class TestAggregatorRun:
    def test_medians_per_device(self, aggregator, reading_store, aggregate_store):
        _seed(reading_store, "d1", [20.0, 24.0, 22.0])
        _seed(reading_store, "d2", [10.0, 11.0])

        buckets = aggregator.run(Granularity.MINUTE, BASE, BASE + timedelta(minutes=5))

        assert len(buckets) == 2
        d1 = _all_buckets(aggregate_store, "d1", Granularity.MINUTE)
        d2 = _all_buckets(aggregate_store, "d2", Granularity.MINUTE)
        assert [(b.bucket_start, b.median_c) for b in d1] == [(BASE, 22.0)]
        assert [(b.bucket_start, b.median_c) for b in d2] == [(BASE, 10.5)]

    def test_idempotent(self, aggregator, reading_store, aggregate_store):
        _seed(reading_store, "d1", [20.0, 21.0, 22.0, 23.0, 24.0, 25.0], step=timedelta(minutes=1))
        window = (BASE, BASE + timedelta(minutes=15))

        aggregator.run(Granularity.FIVE_MINUTES, *window)
        first = _all_buckets(aggregate_store, "d1", Granularity.FIVE_MINUTES)
        aggregator.run(Granularity.FIVE_MINUTES, *window)
        second = _all_buckets(aggregate_store, "d1", Granularity.FIVE_MINUTES)

        assert first == second
        assert [b.bucket_start for b in second] == [BASE, BASE + timedelta(minutes=5)]
        assert [b.median_c for b in second] == [22.0, 25.0]

    def test_overlapping_windows_do_not_duplicate(self, aggregator, reading_store, aggregate_store):
        _seed(reading_store, "d1", [20.0, 21.0, 22.0, 23.0], step=timedelta(minutes=1))

        aggregator.run(Granularity.FIVE_MINUTES, BASE, BASE + timedelta(minutes=15))
        # from no alineado: cae dentro del primer bucket y se baja a su inicio
        aggregator.run(Granularity.FIVE_MINUTES, BASE + timedelta(minutes=2), BASE + timedelta(minutes=15))

        buckets = _all_buckets(aggregate_store, "d1", Granularity.FIVE_MINUTES)
        assert len(buckets) == 1
        assert buckets[0].median_c == 21.5

    def test_recomputes_late_readings(self, aggregator, reading_store, aggregate_store):
        _seed(reading_store, "d1", [20.0])
        aggregator.run(Granularity.MINUTE, BASE, BASE + timedelta(minutes=15))

        reading_store.save_if_changed(reading(30.0, at=BASE + timedelta(seconds=30)))
        aggregator.run(Granularity.MINUTE, BASE, BASE + timedelta(minutes=15))

        buckets = _all_buckets(aggregate_store, "d1", Granularity.MINUTE)
        assert [b.median_c for b in buckets] == [25.0]

    def test_no_readings_no_buckets(self, aggregator, aggregate_store):
        assert aggregator.run(Granularity.HOUR, BASE, BASE + timedelta(hours=6)) == []
        assert _all_buckets(aggregate_store, "d1", Granularity.HOUR) == []

    def test_granularities_are_independent(self, aggregator, reading_store, aggregate_store):
        _seed(reading_store, "d1", [20.0, 22.0])

        aggregator.run(Granularity.MINUTE, BASE, BASE + timedelta(minutes=15))
        aggregator.run(Granularity.FIVE_MINUTES, BASE, BASE + timedelta(minutes=15))

        assert len(_all_buckets(aggregate_store, "d1", Granularity.MINUTE)) == 1
        assert len(_all_buckets(aggregate_store, "d1", Granularity.FIVE_MINUTES)) == 1

    def test_failure_aborts_run(self, reading_store):
        _seed(reading_store, "d1", [20.0])
        _seed(reading_store, "d2", [21.0])
        aggregates = MagicMock()
        aggregates.replace_window.side_effect = [
            1,
            OperationalError("DELETE", {}, Exception("locked")),
        ]

        with pytest.raises(AggregationRunFailure) as exc_info:
            Aggregator(reading_store, aggregates).run(
                Granularity.MINUTE, BASE, BASE + timedelta(minutes=15),
            )

        err = exc_info.value
        assert err.device_id == "d2"
        assert err.completed_devices == ["d1"]
        assert err.granularity == "1m"


class TestAggregateBucket:
    def test_to_dict(self):
        b = AggregateBucket("d1", Granularity.DAY, BASE, 21.5)
        assert b.to_dict()["granularity"] == "1d"
