"""Tests del throttle atómico de AlertRuleRepository."""

import threading
from datetime import timedelta

import pytest
from sqlalchemy import create_engine

from common.schema import ensure_schema
from telemetry_ingest.core.alerts.evaluator import COOLDOWN
from telemetry_ingest.core.storage.alert_rule_repository import AlertRuleRepository
from telemetry_ingest.core.validation.rule_validator import AlertRuleIn

from tests.conftest import T0


def _rule_in(**fields):
    data = {"device_id": "d1", "metric": "temperature", "max_threshold": 25, "emails": ["ops@example.com"]}
    data.update(fields)
    return AlertRuleIn(**data)


class TestTryClaimTrigger:
    def test_first_claim_wins(self, rules):
        rule = rules.insert(_rule_in(), now=T0)

        assert rules.try_claim_trigger(rule.id, T0, COOLDOWN) is True
        assert rules.get(rule.id).last_triggered_at == T0

    def test_second_claim_inside_cooldown_loses(self, rules):
        rule = rules.insert(_rule_in(), now=T0)
        rules.try_claim_trigger(rule.id, T0, COOLDOWN)

        assert rules.try_claim_trigger(rule.id, T0 + timedelta(minutes=59), COOLDOWN) is False
        assert rules.get(rule.id).last_triggered_at == T0

    def test_claim_after_cooldown_moves_timestamp(self, rules):
        rule = rules.insert(_rule_in(), now=T0)
        rules.try_claim_trigger(rule.id, T0, COOLDOWN)
        later = T0 + timedelta(hours=1, minutes=1)

        assert rules.try_claim_trigger(rule.id, later, COOLDOWN) is True
        assert rules.get(rule.id).last_triggered_at == later

    def test_unknown_rule_is_not_claimed(self, rules):
        assert rules.try_claim_trigger(9999, T0, COOLDOWN) is False


class TestConcurrentClaims:
    @pytest.fixture
    def file_rules(self, tmp_path):
        """BD en fichero: cada hilo usa su propia conexión del pool."""
        eng = create_engine(
            f"sqlite:///{tmp_path / 'claims.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
            future=True,
        )
        ensure_schema(eng)
        yield AlertRuleRepository(eng)
        eng.dispose()

    def test_only_one_thread_claims(self, file_rules):
        """Varios workers que ven la misma violación a la vez disparan una sola vez."""
        rule = file_rules.insert(_rule_in(), now=T0)
        workers = 8
        barrier = threading.Barrier(workers)
        results = []
        lock = threading.Lock()

        def claim():
            barrier.wait()
            won = file_rules.try_claim_trigger(rule.id, T0, COOLDOWN)
            with lock:
                results.append(won)

        threads = [threading.Thread(target=claim) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert len(results) == workers
        assert results.count(True) == 1
        assert file_rules.get(rule.id).last_triggered_at == T0
