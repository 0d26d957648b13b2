"""Fixtures compartidas: BD SQLite en memoria, reloj fijo y sinks de prueba."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from common.schema import ensure_schema
from telemetry_ingest.core.alerts.evaluator import AlertRuleEvaluator
from telemetry_ingest.core.domain.reading import Reading
from telemetry_ingest.core.pipeline.processor import ReadingProcessor
from telemetry_ingest.core.storage.aggregate_store import AggregateStore
from telemetry_ingest.core.storage.alert_rule_repository import AlertRuleRepository
from telemetry_ingest.core.storage.device_registry import DeviceRegistry
from telemetry_ingest.core.storage.reading_store import ReadingStore
from telemetry_ingest.core.validation.rule_validator import AlertRuleIn

# Miércoles 4 de marzo de 2026, 12:00 UTC
T0 = datetime(2026, 3, 4, 12, 0, 0, tzinfo=timezone.utc)


class RecordingSink:
    """NotificationSink que guarda cada envío."""

    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.sent: List[dict] = []
        self._result = result
        self._error = error

    def send(self, recipients, subject, body) -> bool:
        self.sent.append({"recipients": list(recipients), "subject": subject, "body": body})
        if self._error is not None:
            raise self._error
        return self._result


class RecordingFanout:
    """FanoutSink que guarda cada broadcast."""

    def __init__(self):
        self.messages: List[tuple] = []

    def broadcast(self, device_id, temperature, humidity, timestamp) -> None:
        self.messages.append((device_id, temperature, humidity, timestamp))


@pytest.fixture
def engine():
    """SQLite en memoria compartida entre conexiones."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def reading_store(engine) -> ReadingStore:
    return ReadingStore(engine)


@pytest.fixture
def aggregate_store(engine) -> AggregateStore:
    return AggregateStore(engine)


@pytest.fixture
def rules(engine) -> AlertRuleRepository:
    return AlertRuleRepository(engine)


@pytest.fixture
def registry(engine) -> DeviceRegistry:
    return DeviceRegistry(engine)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fanout() -> RecordingFanout:
    return RecordingFanout()


@pytest.fixture
def evaluator(rules, sink) -> AlertRuleEvaluator:
    return AlertRuleEvaluator(rules, sink, clock=lambda: T0)


@pytest.fixture
def processor(reading_store, evaluator, fanout, registry) -> ReadingProcessor:
    return ReadingProcessor(reading_store, evaluator, fanout=fanout, registry=registry)


@pytest.fixture
def make_rule(rules):
    """Inserta una regla validada y devuelve la AlertRule persistida."""

    def _make(**fields):
        data = {
            "device_id": "d1",
            "metric": "temperature",
            "emails": ["ops@example.com"],
        }
        data.update(fields)
        return rules.insert(AlertRuleIn(**data), now=T0)

    return _make


def reading(
    temperature: float,
    at: datetime = T0,
    device_id: str = "d1",
    humidity: Optional[float] = None,
) -> Reading:
    return Reading(device_id=device_id, temperature=temperature, received_at=at, humidity=humidity)
