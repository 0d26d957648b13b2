"""Adaptador payload de telemetría → Modelo de Dominio."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from common.clock import from_epoch_ms, utc_now

from ..domain.errors import MalformedMessage
from ..domain.reading import Reading
from ..validation.payload_validator import validate_telemetry

logger = logging.getLogger(__name__)


class TelemetryAdapter:
    """Adapta payloads de telemetría al modelo de dominio.

    Responsabilidades:
    - Validación del payload
    - Sello de hora de recepción del servidor (clave canónica de orden)
    - Conversión del timestamp del dispositivo (solo metadata)
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    def to_reading(
        self,
        data: dict,
        received_at: Optional[datetime] = None,
        topic: Optional[str] = None,
    ) -> Reading:
        """Convierte payload a Reading de dominio.

        Raises:
            MalformedMessage: si el payload no es válido
        """
        result = validate_telemetry(data)
        if not result.valid:
            raise MalformedMessage(result.error or "invalid payload", topic=topic)

        for warning in result.warnings:
            logger.debug("[ADAPTER] %s", warning)

        payload = result.payload
        return Reading(
            device_id=payload.device_id,
            temperature=float(payload.temperature),
            humidity=float(payload.humidity) if payload.humidity is not None else None,
            received_at=received_at or self._clock(),
            device_timestamp=from_epoch_ms(payload.timestamp),
        )
