"""Evaluador de reglas de alerta.

Se invoca de forma síncrona por cada lectura aceptada. Para cada regla
habilitada del dispositivo:

1. Rango de fechas
2. Día de la semana
3. Franja horaria (con cruce de medianoche)
4. Umbral (estricto: < min o > max)
5. Throttle de 1 hora (UPDATE condicional atómico)
6. Envío del email (fire-and-forget)
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, List, Optional

from common.clock import as_utc, utc_now

from ..domain.alert_rule import AlertEvent, AlertRule, MetricKind
from ..domain.errors import NotificationFailure
from ..domain.reading import Reading
from ..monitoring.metrics import ALERTS_FIRED, ALERTS_SUPPRESSED, NOTIFICATION_FAILURES
from ..storage.alert_rule_repository import AlertRuleRepository
from .notification_service import NotificationSink, build_alert_email
from .schedule import schedule_skip_reason

logger = logging.getLogger(__name__)

COOLDOWN = timedelta(hours=1)


class AlertRuleEvaluator:
    """Aplica calendario, umbral y throttle a cada regla del dispositivo."""

    def __init__(
        self,
        rules: AlertRuleRepository,
        sink: NotificationSink,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._rules = rules
        self._sink = sink
        self._tz = tz
        self._clock = clock

    def evaluate(self, reading: Reading, now: Optional[datetime] = None) -> List[AlertEvent]:
        """Evalúa todas las reglas habilitadas del dispositivo.

        Args:
            reading: Lectura ya persistida
            now: Hora del servidor para las decisiones de calendario y
                throttle (por defecto, el reloj)

        Returns:
            Eventos efectivamente disparados
        """
        now = as_utc(now) if now is not None else self._clock()
        events = []
        for rule in self._rules.enabled_rules_for_device(reading.device_id):
            event = self._evaluate_rule(rule, reading, now)
            if event is not None:
                events.append(event)
        return events

    def _evaluate_rule(
        self, rule: AlertRule, reading: Reading, now: datetime,
    ) -> Optional[AlertEvent]:
        skip = schedule_skip_reason(rule.schedule, now, self._tz)
        if skip is not None:
            ALERTS_SUPPRESSED.labels(reason=skip).inc()
            logger.debug("[ALERTS] rule=%d skipped reason=%s", rule.id, skip)
            return None

        value = self._metric_value(rule, reading)
        if value is None:
            return None

        if not rule.is_violated_by(value):
            return None

        if not self._rules.try_claim_trigger(rule.id, now, COOLDOWN):
            ALERTS_SUPPRESSED.labels(reason="throttled").inc()
            logger.debug("[ALERTS] rule=%d throttled value=%.2f", rule.id, value)
            return None

        ALERTS_FIRED.inc()
        logger.info(
            "[ALERTS] rule=%d fired device=%s metric=%s value=%.2f min=%s max=%s",
            rule.id,
            rule.device_id,
            rule.metric.value,
            value,
            rule.min_threshold,
            rule.max_threshold,
        )
        notified = self._notify(rule, value, now)

        return AlertEvent(
            rule_id=rule.id,
            device_id=rule.device_id,
            metric=rule.metric,
            value=value,
            min_threshold=rule.min_threshold,
            max_threshold=rule.max_threshold,
            recipients=list(rule.emails),
            triggered_at=now,
            notified=notified,
        )

    @staticmethod
    def _metric_value(rule: AlertRule, reading: Reading) -> Optional[float]:
        if rule.metric == MetricKind.TEMPERATURE:
            return reading.temperature
        # Regla de humedad sin humedad en esta lectura: se omite
        return reading.humidity

    def _notify(self, rule: AlertRule, value: float, now: datetime) -> bool:
        """Envía el email. Nunca propaga errores del sink."""
        subject, body = build_alert_email(rule, value, now, self._tz)
        try:
            sent = bool(self._sink.send(list(rule.emails), subject, body))
        except NotificationFailure as e:
            logger.error("[ALERTS] Notification failed rule=%d: %s", rule.id, e)
            sent = False
        except Exception:
            logger.exception("[ALERTS] Notification sink error rule=%d", rule.id)
            sent = False
        else:
            if not sent:
                logger.error("[ALERTS] Notification not delivered rule=%d", rule.id)

        if not sent:
            NOTIFICATION_FAILURES.inc()
        return sent
