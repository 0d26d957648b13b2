"""Publicador de lecturas aceptadas a suscriptores en tiempo real."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Optional, Protocol

from .connection import RedisConnection

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_PREFIX = "heatsync:device:"


class FanoutSink(Protocol):
    """Contrato del colaborador de broadcast por dispositivo."""

    def broadcast(
        self,
        device_id: str,
        temperature: float,
        humidity: Optional[float],
        timestamp: datetime,
    ) -> None:
        ...


class RedisFanoutSink:
    """Publica cada lectura aceptada en el canal pub/sub del dispositivo.

    Canal: ``<prefix><device_id>``. Los suscriptores (dashboards, websockets)
    escuchan el canal del dispositivo que les interesa.
    """

    def __init__(
        self,
        connection: RedisConnection,
        channel_prefix: str = DEFAULT_CHANNEL_PREFIX,
    ):
        self._conn = connection
        self._prefix = channel_prefix

    def channel_for(self, device_id: str) -> str:
        return f"{self._prefix}{device_id}"

    def broadcast(
        self,
        device_id: str,
        temperature: float,
        humidity: Optional[float],
        timestamp: datetime,
    ) -> None:
        """Publica la lectura. Sin conexión no hace nada."""
        if not self._conn.is_connected:
            return

        message = json.dumps({
            "deviceId": device_id,
            "temperature": temperature,
            "humidity": humidity,
            "timestamp": timestamp.isoformat(),
        })
        receivers = self._conn.client.publish(self.channel_for(device_id), message)
        logger.debug(
            "[FANOUT] Broadcast device=%s temp=%.2f receivers=%s",
            device_id,
            temperature,
            receivers,
        )
