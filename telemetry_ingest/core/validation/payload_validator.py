"""Validadores de payloads de telemetría.

Formato esperado (topic ``heatsync/telemetry``):
{
    "deviceId": "esp32-salon",
    "temperature": 21.43,
    "humidity": 48.2,          # opcional
    "timestamp": 1767225600000 # opcional, epoch ms, solo informativo
}
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# Epoch ms máximo aceptado (año ~5138); evita overflow al convertir.
MAX_EPOCH_MS = 1e14


def _require_number(v: Any, name: str) -> Any:
    # bool es subclase de int: "true" no es una temperatura
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ValueError(f"{name} must be a number")
    if math.isnan(v):
        raise ValueError(f"{name} is NaN")
    if math.isinf(v):
        raise ValueError(f"{name} is infinite")
    return v


class TelemetryPayload(BaseModel):
    """Schema de validación para mensajes de telemetría."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    device_id: str = Field(..., alias="deviceId")
    temperature: float
    humidity: Optional[float] = None
    timestamp: Optional[float] = None

    @field_validator("device_id", mode="before")
    @classmethod
    def validate_device_id(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("deviceId is required")
        v = v.strip()
        if len(v) > 128:
            raise ValueError("deviceId longer than 128 chars")
        return v

    @field_validator("temperature", mode="before")
    @classmethod
    def validate_temperature(cls, v):
        return _require_number(v, "temperature")

    @field_validator("humidity", mode="before")
    @classmethod
    def validate_humidity(cls, v):
        if v is None:
            return v
        return _require_number(v, "humidity")

    @field_validator("timestamp", mode="before")
    @classmethod
    def validate_timestamp(cls, v):
        if v is None:
            return v
        v = _require_number(v, "timestamp")
        if v < 0 or v > MAX_EPOCH_MS:
            raise ValueError("timestamp out of range (epoch milliseconds expected)")
        return v


@dataclass
class ValidationResult:
    """Resultado de validación."""

    valid: bool
    payload: Optional[TelemetryPayload] = None
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


def validate_telemetry(data: Any) -> ValidationResult:
    """Valida un mensaje de telemetría ya decodificado de JSON.

    Args:
        data: Objeto JSON del mensaje

    Returns:
        ValidationResult con payload validado o error
    """
    if not isinstance(data, dict):
        return ValidationResult(valid=False, error="payload must be a JSON object")

    warnings = []
    data = dict(data)
    if "deviceId" not in data and "device_id" in data:
        data["deviceId"] = data.pop("device_id")
        warnings.append("Used snake_case device_id instead of deviceId")

    try:
        payload = TelemetryPayload.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.warning("[VALIDATOR] Validation failed: %s", errors)
        return ValidationResult(valid=False, error=errors)

    return ValidationResult(valid=True, payload=payload, warnings=warnings)
