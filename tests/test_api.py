"""Tests de la API HTTP de historial y health."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from telemetry_ingest.aggregation.aggregator import Aggregator
from telemetry_ingest.core.domain.aggregate import Granularity
from telemetry_ingest.endpoints.deps import get_db_engine
from telemetry_ingest.main import app

from tests.conftest import T0, reading

FROM = (T0 - timedelta(hours=1)).isoformat()
TO = (T0 + timedelta(hours=1)).isoformat()


@pytest.fixture
def client(engine):
    # Sin context manager: no corre el lifespan (ni BD real ni MQTT)
    app.dependency_overrides[get_db_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(reading_store, aggregate_store):
    for i, temp in enumerate([20.0, 21.0, 25.0]):
        reading_store.save_if_changed(reading(temp, at=T0 + timedelta(minutes=i), humidity=40.0))
    reading_store.save_if_changed(reading(10.0, at=T0, device_id="d2"))
    Aggregator(reading_store, aggregate_store).run(
        Granularity.MINUTE, T0, T0 + timedelta(minutes=10),
    )


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready"}

    def test_receiver_disabled(self, client):
        assert client.get("/health/receiver").json()["status"] == "disabled"

    def test_metrics_prometheus(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "heatsync_readings_total" in response.text


class TestReadings:
    def test_latest_for_device(self, client, seeded):
        body = client.get("/devices/d1/readings/latest").json()

        assert body["temperature"] == 25.0

    def test_latest_without_readings(self, client):
        assert client.get("/devices/nada/readings/latest").status_code == 404

    def test_latest_global_filtered(self, client, seeded):
        body = client.get("/readings/latest", params={"device_id": "d2"}).json()

        assert [r["device_id"] for r in body] == ["d2"]

    def test_history_in_range(self, client, seeded):
        body = client.get("/devices/d1/readings", params={"from": FROM, "to": TO}).json()

        assert [r["temperature"] for r in body] == [25.0, 21.0, 20.0]

    def test_inverted_range(self, client):
        response = client.get("/devices/d1/readings", params={"from": TO, "to": FROM})

        assert response.status_code == 422


class TestAggregates:
    def test_buckets(self, client, seeded):
        body = client.get(
            "/devices/d1/aggregates",
            params={"granularity": "1m", "from": FROM, "to": TO},
        ).json()

        assert [b["median_c"] for b in body] == [25.0, 21.0, 20.0]

    def test_invalid_granularity(self, client):
        response = client.get("/devices/d1/aggregates", params={"granularity": "2m"})

        assert response.status_code == 422


class TestStats:
    def test_device_stats(self, client, seeded):
        body = client.get("/devices/d1/stats", params={"from": FROM, "to": TO}).json()

        assert body["reading_count"] == 3
        assert body["max_temp"] == 25.0

    def test_stats_without_readings(self, client):
        response = client.get("/devices/d1/stats", params={"from": FROM, "to": TO})

        assert response.status_code == 404

    def test_global_stats(self, client, seeded):
        body = client.get("/stats", params={"from": FROM, "to": TO}).json()

        assert [s["device_id"] for s in body] == ["d1", "d2"]
