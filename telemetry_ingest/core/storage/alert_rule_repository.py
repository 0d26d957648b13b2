"""Repositorio de reglas de alerta - operaciones de persistencia."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import insert, or_, select, update
from sqlalchemy.engine import Engine

from common.clock import as_utc, utc_now
from common.schema import alert_rules as r

from ..domain.alert_rule import AlertRule, AlertSchedule, MetricKind
from ..validation.rule_validator import AlertRuleIn

logger = logging.getLogger(__name__)


def _row_to_rule(row) -> AlertRule:
    return AlertRule(
        id=int(row.id),
        device_id=row.device_id,
        metric=MetricKind(row.metric),
        emails=list(row.emails or []),
        min_threshold=float(row.min_threshold) if row.min_threshold is not None else None,
        max_threshold=float(row.max_threshold) if row.max_threshold is not None else None,
        schedule=AlertSchedule(
            start_time=row.start_time,
            end_time=row.end_time,
            start_date=as_utc(row.start_date),
            end_date=as_utc(row.end_date),
            days_of_week=frozenset(int(d) for d in (row.days_of_week or [])),
        ),
        enabled=bool(row.enabled),
        last_triggered_at=as_utc(row.last_triggered_at),
    )


class AlertRuleRepository:
    """Lectura de reglas y actualización atómica del throttle."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def enabled_rules_for_device(self, device_id: str) -> List[AlertRule]:
        stmt = (
            select(r)
            .where(r.c.device_id == device_id, r.c.enabled == True)  # noqa: E712
            .order_by(r.c.id)
        )
        with self._engine.connect() as conn:
            return [_row_to_rule(row) for row in conn.execute(stmt)]

    def get(self, rule_id: int) -> Optional[AlertRule]:
        with self._engine.connect() as conn:
            row = conn.execute(select(r).where(r.c.id == rule_id)).fetchone()
        return _row_to_rule(row) if row else None

    def insert(self, rule: AlertRuleIn, now: Optional[datetime] = None) -> AlertRule:
        """Inserta una regla ya validada (camino de escritura del gestor de reglas)."""
        now = now or utc_now()
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(r).values(**rule.to_row(), created_at=now, updated_at=now)
            )
            rule_id = int(result.inserted_primary_key[0])
        logger.info("[ALERT_RULES] Created rule id=%d device=%s", rule_id, rule.device_id)
        return self.get(rule_id)

    def try_claim_trigger(self, rule_id: int, now: datetime, cooldown: timedelta) -> bool:
        """Check-then-set atómico del throttle.

        UPDATE ... SET last_triggered_at = now
        WHERE id = :rule AND (last_triggered_at IS NULL OR last_triggered_at <= now - cooldown)

        Returns:
            True si la actualización aplicó (la regla puede disparar).
        """
        cutoff = now - cooldown
        with self._engine.begin() as conn:
            result = conn.execute(
                update(r)
                .where(
                    r.c.id == rule_id,
                    or_(r.c.last_triggered_at.is_(None), r.c.last_triggered_at <= cutoff),
                )
                .values(last_triggered_at=now)
            )
        return result.rowcount == 1
