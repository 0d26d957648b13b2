"""Buckets agregados por dispositivo y granularidad."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Granularity(str, Enum):
    """Ancho de bucket soportado."""
    MINUTE = "1m"
    FIVE_MINUTES = "5m"
    HOUR = "1h"
    SIX_HOURS = "6h"
    DAY = "1d"

    @classmethod
    def parse(cls, token: str) -> "Granularity":
        try:
            return cls(token)
        except ValueError:
            valid = ", ".join(g.value for g in cls)
            raise ValueError(f"Unknown granularity {token!r} (expected one of: {valid})")


@dataclass(frozen=True)
class AggregateBucket:
    """Mediana de temperatura de un intervalo alineado.

    Identidad: (device_id, granularity, bucket_start).
    """
    device_id: str
    granularity: Granularity
    bucket_start: datetime
    median_c: float

    def to_row(self) -> dict:
        return {
            "device_id": self.device_id,
            "granularity": self.granularity.value,
            "bucket_start": self.bucket_start,
            "median_c": float(self.median_c),
        }

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "granularity": self.granularity.value,
            "bucket_start": self.bucket_start.isoformat(),
            "median_c": self.median_c,
        }
