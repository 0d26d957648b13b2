"""Handler de mensajes de telemetría."""

from __future__ import annotations

import json
import logging
from typing import Optional

from ..adapters.telemetry_adapter import TelemetryAdapter
from ..domain.errors import MalformedMessage, PersistenceFailure
from ..domain.reading import Reading
from ..monitoring.metrics import READINGS_TOTAL
from ..monitoring.stats import Stats
from ..pipeline.dispatcher import DeviceLaneDispatcher
from ..pipeline.processor import ReadingProcessor

logger = logging.getLogger(__name__)


class MessageHandler:
    """Maneja mensajes MQTT y los procesa a través del pipeline.

    Responsabilidades:
    - Parseo de JSON
    - Adaptación de contrato → Dominio (MalformedMessage se descarta)
    - Delegación al dispatcher por carril, o inline si no hay
    - Tracking de estadísticas
    """

    def __init__(
        self,
        processor: ReadingProcessor,
        adapter: Optional[TelemetryAdapter] = None,
        dispatcher: Optional[DeviceLaneDispatcher] = None,
    ):
        self._processor = processor
        self._adapter = adapter or TelemetryAdapter()
        self._dispatcher = dispatcher
        self._stats = Stats()

    def attach_dispatcher(self, dispatcher: DeviceLaneDispatcher) -> None:
        self._dispatcher = dispatcher

    def handle(self, topic: str, payload: bytes) -> None:
        """Procesa un mensaje MQTT. Nunca lanza hacia el loop de paho."""
        self._stats.incr("received")

        try:
            data = self._parse_json(payload, topic)
            reading = self._adapter.to_reading(data, topic=topic)
        except MalformedMessage as e:
            self._stats.incr("malformed")
            READINGS_TOTAL.labels(status="malformed").inc()
            logger.warning("[HANDLER] Dropped malformed message: %s", e)
            return

        if self._dispatcher is not None:
            if not self._dispatcher.submit(reading.device_id, reading):
                self._stats.incr("dropped")
            return

        self.process_reading(reading)

    def process_reading(self, reading: Reading) -> None:
        """Ejecuta el pipeline para una lectura (inline o desde un carril)."""
        try:
            accepted = self._processor.process(reading)
        except PersistenceFailure as e:
            self._stats.incr("failed")
            READINGS_TOTAL.labels(status="failed").inc()
            logger.error(
                "[HANDLER] Persistence failed device=%s: %s", reading.device_id, e,
            )
            return

        self._stats.incr("accepted" if accepted else "unchanged")

        # Log periódico
        if accepted and self._stats.accepted % 100 == 0:
            logger.info("[HANDLER] %s", self._stats)

    def _parse_json(self, payload: bytes, topic: str) -> dict:
        try:
            return json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedMessage(f"invalid JSON: {e}", topic=topic) from e

    @property
    def stats(self) -> Stats:
        return self._stats
