"""Procesador principal de lecturas."""

from __future__ import annotations

import logging
from typing import Optional

from ..alerts.evaluator import AlertRuleEvaluator
from ..domain.reading import Reading
from ..fanout.publisher import FanoutSink
from ..monitoring.metrics import READINGS_TOTAL
from ..storage.device_registry import DeviceRegistry
from ..storage.reading_store import ReadingStore

logger = logging.getLogger(__name__)


class ReadingProcessor:
    """Procesa lecturas a través del pipeline completo.

    Pipeline:
    1. Change-Gate + persistencia (una transacción)
    2. last_seen del dispositivo
    3. Evaluación de reglas de alerta
    4. Fan-out en tiempo real

    Solo el paso 1 puede fallar hacia el llamador (PersistenceFailure).
    Una vez guardada la lectura, los errores de 2-4 se loguean y no
    deshacen la ingesta.
    """

    def __init__(
        self,
        store: ReadingStore,
        evaluator: AlertRuleEvaluator,
        fanout: Optional[FanoutSink] = None,
        registry: Optional[DeviceRegistry] = None,
    ):
        self._store = store
        self._evaluator = evaluator
        self._fanout = fanout
        self._registry = registry

    def process(self, reading: Reading) -> bool:
        """Procesa una lectura ya adaptada.

        Returns:
            True si la lectura se aceptó y guardó, False si el Change-Gate
            la descartó por no tener cambio material.

        Raises:
            PersistenceFailure: error de BD al consultar o insertar
        """
        stored = self._store.save_if_changed(reading)
        if stored is None:
            READINGS_TOTAL.labels(status="unchanged").inc()
            logger.debug(
                "[PROCESSOR] Unchanged device=%s temp=%.2f",
                reading.device_id,
                reading.temperature,
            )
            return False

        READINGS_TOTAL.labels(status="accepted").inc()
        logger.debug(
            "[PROCESSOR] Stored id=%s device=%s temp=%.2f hum=%s",
            stored.id,
            stored.device_id,
            stored.temperature,
            stored.humidity,
        )

        self._touch_device(stored)
        self._evaluate_alerts(stored)
        self._broadcast(stored)
        return True

    def _touch_device(self, reading: Reading) -> None:
        if self._registry is None:
            return
        try:
            self._registry.touch_last_seen(reading.device_id, reading.received_at)
        except Exception:
            logger.exception("[PROCESSOR] Device touch failed device=%s", reading.device_id)

    def _evaluate_alerts(self, reading: Reading) -> None:
        # Calendario y throttle usan la hora de recepción de la lectura
        try:
            self._evaluator.evaluate(reading, now=reading.received_at)
        except Exception:
            logger.exception("[PROCESSOR] Alert evaluation failed device=%s", reading.device_id)

    def _broadcast(self, reading: Reading) -> None:
        if self._fanout is None:
            return
        try:
            self._fanout.broadcast(
                reading.device_id,
                reading.temperature,
                reading.humidity,
                reading.received_at,
            )
        except Exception as e:
            logger.warning("[PROCESSOR] Fan-out failed device=%s: %s", reading.device_id, e)
