"""Modelo de dominio para lecturas de telemetría."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Reading:
    """Lectura de temperatura/humedad - modelo canónico de dominio.

    Este es el contrato que fluye por todo el pipeline:
    MQTT → Change-Gate → BD → Alertas → Fan-out

    ``received_at`` es la hora de recepción del servidor y es la única clave
    de orden. ``device_timestamp`` es metadata informativa del dispositivo.
    """
    device_id: str
    temperature: float
    received_at: datetime
    humidity: Optional[float] = None
    device_timestamp: Optional[datetime] = None
    id: Optional[int] = None

    def to_row(self) -> dict:
        """Convierte a parámetros de inserción."""
        return {
            "device_id": self.device_id,
            "temperature_c": float(self.temperature),
            "humidity": float(self.humidity) if self.humidity is not None else None,
            "received_at": self.received_at,
            "device_timestamp": self.device_timestamp,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "received_at": self.received_at.isoformat(),
            "device_timestamp": (
                self.device_timestamp.isoformat() if self.device_timestamp else None
            ),
        }
