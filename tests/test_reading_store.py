"""Tests del ReadingStore (Change-Gate + persistencia + consultas)."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from telemetry_ingest.core.domain.errors import PersistenceFailure
from telemetry_ingest.core.storage.reading_store import ReadingStore

from tests.conftest import T0, reading


class TestSaveIfChanged:
    def test_first_reading_saved_with_id(self, reading_store):
        stored = reading_store.save_if_changed(reading(20.0))

        assert stored is not None
        assert stored.id is not None
        assert reading_store.latest_for_device("d1").temperature == 20.0

    def test_constant_readings_deduped(self, reading_store):
        """N lecturas constantes a 20.00 sin humedad → 1 sola guardada."""
        for i in range(10):
            reading_store.save_if_changed(reading(20.00, at=T0 + timedelta(seconds=i)))

        rows = reading_store.readings_in_range("d1", T0, T0 + timedelta(minutes=1))
        assert len(rows) == 1

    def test_compares_with_same_device_latest(self, reading_store):
        reading_store.save_if_changed(reading(20.0, device_id="a"))
        stored = reading_store.save_if_changed(reading(20.0, device_id="b"))

        assert stored is not None

    def test_db_error_wrapped(self):
        engine = MagicMock()
        engine.begin.side_effect = OperationalError("SELECT", {}, Exception("down"))
        store = ReadingStore(engine)

        with pytest.raises(PersistenceFailure):
            store.save_if_changed(reading(20.0))


class TestQueries:
    def _seed(self, store):
        for i, temp in enumerate([20.0, 21.0, 22.0, 23.0]):
            store.save_if_changed(reading(temp, at=T0 + timedelta(minutes=i), humidity=40.0 + i))

    def test_half_open_range(self, reading_store):
        self._seed(reading_store)

        rows = reading_store.readings_in_range("d1", T0, T0 + timedelta(minutes=3))

        assert [r.temperature for r in rows] == [20.0, 21.0, 22.0]

    def test_newest_first_with_limit(self, reading_store):
        self._seed(reading_store)

        rows = reading_store.readings_in_range(
            "d1", T0, T0 + timedelta(hours=1), limit=2, newest_first=True,
        )

        assert [r.temperature for r in rows] == [23.0, 22.0]

    def test_received_at_is_utc(self, reading_store):
        self._seed(reading_store)

        latest = reading_store.latest_for_device("d1")

        assert latest.received_at == T0 + timedelta(minutes=3)

    def test_devices_in_range(self, reading_store):
        self._seed(reading_store)
        reading_store.save_if_changed(reading(10.0, device_id="d2", at=T0 + timedelta(hours=2)))

        assert reading_store.device_ids_in_range(T0, T0 + timedelta(hours=1)) == ["d1"]

    def test_stats_per_device(self, reading_store):
        self._seed(reading_store)

        stats = reading_store.device_stats("d1", T0, T0 + timedelta(hours=1))

        assert stats["reading_count"] == 4
        assert stats["min_temp"] == 20.0
        assert stats["max_temp"] == 23.0
        assert stats["avg_temp"] == pytest.approx(21.5)
        assert stats["avg_humidity"] == pytest.approx(41.5)

    def test_stats_without_readings(self, reading_store):
        assert reading_store.device_stats("d1", T0, T0 + timedelta(hours=1)) is None


class TestDeviceRegistry:
    def test_first_touch_creates_device(self, registry):
        registry.touch_last_seen("d1", T0)

        assert registry.last_seen("d1") == T0

    def test_updates_last_seen(self, registry):
        registry.touch_last_seen("d1", T0)
        registry.touch_last_seen("d1", T0 + timedelta(minutes=5))

        assert registry.last_seen("d1") == T0 + timedelta(minutes=5)
