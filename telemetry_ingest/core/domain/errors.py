"""Taxonomía de errores del pipeline de telemetría."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional


class TelemetryError(Exception):
    """Base de los errores del servicio."""


class MalformedMessage(TelemetryError):
    """Payload imposible de parsear o validar. Se descarta, nunca se reintenta."""

    def __init__(self, reason: str, topic: Optional[str] = None):
        self.reason = reason
        self.topic = topic
        super().__init__(reason if topic is None else f"{reason} (topic={topic})")


class PersistenceFailure(TelemetryError):
    """La BD no respondió. Sin lectura guardada no hay alertas ni fan-out."""


class NotificationFailure(TelemetryError):
    """Fallo del envío de email. Solo se loguea."""


class AggregationRunFailure(TelemetryError):
    """Una corrida de agregación abortó completa.

    Los dispositivos ya escritos quedan en ``completed_devices``; el resto
    se recalcula en la siguiente corrida (la ventana se solapa).
    """

    def __init__(
        self,
        granularity: str,
        window_from: datetime,
        window_to: datetime,
        device_id: Optional[str],
        completed_devices: Optional[List[str]] = None,
    ):
        self.granularity = granularity
        self.window_from = window_from
        self.window_to = window_to
        self.device_id = device_id
        self.completed_devices = list(completed_devices or [])
        super().__init__(
            f"aggregation {granularity} [{window_from.isoformat()}, {window_to.isoformat()}) "
            f"failed at device={device_id} after {len(self.completed_devices)} devices"
        )
